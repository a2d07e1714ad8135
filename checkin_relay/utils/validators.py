# checkin_relay/utils/validators.py
import re
from decimal import Decimal

PLATE_MAX_LEN = 7
PLATE_STRIP_REGEX = re.compile(r"[^A-Za-z0-9]")
# conventional Brazilian layout, informative only
PLATE_REGEX = re.compile(r"^[A-Z]{3}[0-9][A-Z0-9][0-9]{2}$")


def normalize_plate(raw: str) -> str:
    """
    Keep ASCII letters and digits, uppercase them and cut at 7 characters.
    Runs on every keystroke, so applying it twice must give the same result.
    """
    if not raw:
        return ""
    return PLATE_STRIP_REGEX.sub("", str(raw)).upper()[:PLATE_MAX_LEN]


def looks_like_plate(plate: str) -> bool:
    return bool(PLATE_REGEX.match(plate or ""))


def is_blank(value) -> bool:
    if value is None:
        return True
    return str(value).strip() == ""


def format_coordinate(value) -> str:
    """Plain decimal text for a coordinate, never exponent notation (5e-05 -> 0.00005)."""
    return format(Decimal(repr(float(value))), "f")
