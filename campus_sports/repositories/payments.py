from typing import List, Optional

from sqlmodel import Session, select

from campus_sports.models.payment import Payment
from campus_sports.repositories.base import storage_errors


class PaymentRepository:
    def __init__(self, session: Session):
        self.session = session

    def get(self, payment_id: int) -> Optional[Payment]:
        with storage_errors("payment lookup"):
            return self.session.get(Payment, payment_id)

    def find_by_transaction(self, transaction_id: str) -> Optional[Payment]:
        with storage_errors("payment lookup"):
            return self.session.exec(
                select(Payment).where(Payment.transaction_id == transaction_id)
            ).first()

    def find_for_user(self, user_id: int) -> List[Payment]:
        with storage_errors("payment lookup"):
            return list(
                self.session.exec(
                    select(Payment).where(Payment.user_id == user_id).order_by(Payment.created_at.desc())
                ).all()
            )

    def insert(self, payment: Payment) -> Payment:
        with storage_errors("payment insert"):
            self.session.add(payment)
            self.session.flush()
            return payment

    def update(self, payment: Payment) -> Payment:
        with storage_errors("payment update"):
            self.session.add(payment)
            self.session.flush()
            return payment
