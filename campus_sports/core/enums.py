from enum import Enum


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"
    SUPER_ADMIN = "super-admin"


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class BookingPaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    REFUNDED = "refunded"
    FAILED = "failed"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    BANK_TRANSFER = "bank_transfer"
    CASH = "cash"
    OTHER = "other"


class FacilityType(str, Enum):
    FOOTBALL_FIELD = "football_field"
    BASKETBALL_COURT = "basketball_court"
    TENNIS_COURT = "tennis_court"
    SWIMMING_POOL = "swimming_pool"
    GYM = "gym"
    TRACK_FIELD = "track_field"
    VOLLEYBALL_COURT = "volleyball_court"
    OTHER = "other"


class Currency(str, Enum):
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    RUB = "RUB"
    JPY = "JPY"
    CNY = "CNY"
    AUD = "AUD"


class UnavailableReason(str, Enum):
    MAINTENANCE = "maintenance"
    HOLIDAY = "holiday"
    SPECIAL_EVENT = "special_event"
    CLOSURE = "closure"


TERMINAL_STATUSES = (BookingStatus.CANCELLED.value, BookingStatus.COMPLETED.value)
