from collections import Counter, defaultdict
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlmodel import Session, func, select

from campus_sports.core.enums import BookingPaymentStatus, Role
from campus_sports.core.errors import Forbidden
from campus_sports.models.facility import Facility
from campus_sports.models.user import User
from campus_sports.repositories.base import storage_errors
from campus_sports.repositories.bookings import BookingFilter, BookingRepository


def _money(amount: Decimal) -> str:
    return str(amount.quantize(Decimal("0.01")))


class StatisticsService:
    def __init__(self, session: Session):
        self.session = session
        self.bookings = BookingRepository(session)

    def summary(
        self,
        admin: User,
        university_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> Dict[str, Any]:
        # university admins only ever see their own university
        if admin.role != Role.SUPER_ADMIN:
            if admin.university_id is None:
                raise Forbidden("Admin is not assigned to a university")
            if university_id is not None and university_id != admin.university_id:
                raise Forbidden("Admins can only view statistics of their own university")
            university_id = admin.university_id

        bookings = self.bookings.find(
            BookingFilter(university_id=university_id, date_from=date_from, date_to=date_to)
        )

        with storage_errors("statistics lookup"):
            facility_query = select(Facility)
            if university_id is not None:
                facility_query = facility_query.where(Facility.university_id == university_id)
            facilities = {f.id: f for f in self.session.exec(facility_query).all()}

            user_query = select(func.count()).select_from(User)
            if university_id is not None:
                user_query = user_query.where(User.university_id == university_id)
            total_users = self.session.exec(user_query).one()

        total = len(bookings)
        by_status = Counter(b.status for b in bookings)

        # revenue: paid bookings only, refunds excluded, one total per currency
        revenue: Dict[str, Decimal] = defaultdict(Decimal)
        paid_count: Counter = Counter()
        for b in bookings:
            if b.payment_status == BookingPaymentStatus.PAID:
                revenue[b.currency] += Decimal(b.total_price)
                paid_count[b.currency] += 1

        by_type = Counter()
        for b in bookings:
            facility = facilities.get(b.facility_id)
            by_type[facility.type if facility else "unknown"] += 1

        top = []
        for facility_id, qty in Counter(b.facility_id for b in bookings).most_common(5):
            facility = facilities.get(facility_id)
            if facility:
                top.append({"facility_id": facility_id, "name": facility.name, "count": qty})

        days = len({b.date for b in bookings})

        return {
            "university_id": university_id,
            "date_from": date_from.isoformat() if date_from else None,
            "date_to": date_to.isoformat() if date_to else None,
            "total_bookings": total,
            "status": dict(by_status),
            "revenue": {currency: _money(amount) for currency, amount in sorted(revenue.items())},
            "average_revenue_per_booking": {
                currency: _money(amount / paid_count[currency]) for currency, amount in sorted(revenue.items())
            },
            "average_bookings_per_day": round(total / days, 2) if days else 0,
            "by_facility_type": dict(by_type),
            "top_facilities": top,
            "total_facilities": len(facilities),
            "total_users": total_users,
        }
