import string
import uuid


BOOKING_CODE_LENGTH = 8

_ALPHABET = string.digits + string.ascii_uppercase


def generate_booking_code() -> str:
    """8 base-36 digits taken from a random uuid4."""
    value = uuid.uuid4().int
    chars = []
    for _ in range(BOOKING_CODE_LENGTH):
        value, digit = divmod(value, len(_ALPHABET))
        chars.append(_ALPHABET[digit])
    return "".join(chars)


def normalize_code(raw: str) -> str:
    """Codes are stored upper-case; lookups go through here first."""
    return (raw or "").strip().upper()
