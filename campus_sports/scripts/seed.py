from datetime import datetime, timedelta
from decimal import Decimal

from sqlmodel import Session, select

from campus_sports.core.security import get_password_hash
from campus_sports.database import create_db_and_tables, engine
from campus_sports.models.facility import Facility, default_operating_hours
from campus_sports.models.university import University
from campus_sports.models.user import User
from campus_sports.services.availability_service import AvailabilityService


ADMIN_EMAIL = "admin@campus.test"
ADMIN_PASSWORD = "admin123"
UNIVERSITY_NAME = "Campus Test University"


def main():
    create_db_and_tables()

    with Session(engine) as session:
        # 1) super admin
        admin = session.exec(select(User).where(User.email == ADMIN_EMAIL)).first()
        if not admin:
            admin = User(
                name="Administrator",
                email=ADMIN_EMAIL,
                role="super-admin",
                password_hash=get_password_hash(ADMIN_PASSWORD),
            )
            session.add(admin)

        # 2) university
        university = session.exec(select(University).where(University.name == UNIVERSITY_NAME)).first()
        if not university:
            university = University(
                name=UNIVERSITY_NAME,
                city="Springfield",
                country="US",
                contact_email="sports@campus.test",
            )
            session.add(university)
            session.commit()
            session.refresh(university)

        # 3) facilities (mon-sat 08-22, sunday closed)
        hours = default_operating_hours()
        hours["sunday"] = {"is_open": False, "open": "08:00", "close": "22:00"}

        existing = session.exec(
            select(Facility).where(Facility.university_id == university.id)
        ).first()

        if not existing:
            session.add_all(
                [
                    Facility(name="Main Football Field", university_id=university.id, type="football_field",
                             capacity=22, price_per_hour=Decimal("50.00"), operating_hours=hours),
                    Facility(name="Tennis Court 1", university_id=university.id, type="tennis_court",
                             capacity=4, price_per_hour=Decimal("20.00"), operating_hours=hours),
                    Facility(name="Swimming Pool", university_id=university.id, type="swimming_pool",
                             capacity=30, price_per_hour=Decimal("1500.00"), currency="RUB",
                             operating_hours=hours),
                ]
            )

        session.commit()

        # 4) example maintenance block, tomorrow 15:00-16:00 on the first facility
        facility = session.exec(
            select(Facility).where(Facility.university_id == university.id).order_by(Facility.id)
        ).first()
        tomorrow = (datetime.now() + timedelta(days=1)).date()
        AvailabilityService(session).block_slots(facility.id, tomorrow, "15:00", "16:00", "maintenance")

        print("Seed complete")
        print(f"Admin: {ADMIN_EMAIL} / {ADMIN_PASSWORD}")
        print(f"University: {university.id} ({university.name})")
        print(f"Maintenance block: facility {facility.id} on {tomorrow} 15:00-16:00")


if __name__ == "__main__":
    main()
