"""Human readable identifiers for bookings, leads and partners."""

import itertools
import re
import secrets
import string
import threading
import time

BOOKING_PREFIX = "BK"
LEAD_PREFIXES = {
    "loan": "LN",
    "insurance": "IN",
    "real_estate": "RE",
}

REFERENCE_PATTERN = re.compile(r"^[A-Z]{2}\d{6}\d{4}$")

# Suffixes come from a counter seeded at a random point so two ids minted in
# the same millisecond by this process never share a suffix.
_suffix_counter = itertools.count(secrets.randbelow(10000))
_suffix_lock = threading.Lock()


def _next_suffix() -> int:
    with _suffix_lock:
        return next(_suffix_counter) % 10000


def generate_reference(prefix: str, now: float = None) -> str:
    """
    Generate a reference such as ``BK4821930042``.

    The layout is the two letter prefix, the last six digits of the current
    epoch time in milliseconds, and a four digit suffix.

    Args:
        prefix: Two upper case letters identifying the record type
        now: Epoch seconds to use instead of the current time

    Returns:
        str: The reference
    """
    if not re.fullmatch(r"[A-Z]{2}", prefix or ""):
        raise ValueError(f"Reference prefix must be two upper case letters, got {prefix!r}")

    millis = int((time.time() if now is None else now) * 1000)
    return f"{prefix}{str(millis)[-6:].zfill(6)}{_next_suffix():04d}"


def generate_booking_id(now: float = None) -> str:
    return generate_reference(BOOKING_PREFIX, now)


def generate_lead_id(lead_type: str, now: float = None) -> str:
    """Lead ids are prefixed by lead type; unknown types fall back to RE."""
    return generate_reference(LEAD_PREFIXES.get(lead_type, "RE"), now)


def generate_partner_id(state: str, country: str) -> str:
    """
    Generate an affiliate partner id.

    Two letters of country, two of state, four random alphanumerics and a
    four digit number, e.g. ``INKAX7Q24821``.
    """
    alphabet = string.ascii_uppercase + string.digits
    random_alpha = "".join(secrets.choice(alphabet) for _ in range(4))
    random_num = 1000 + secrets.randbelow(9000)
    return f"{country[:2].upper()}{state[:2].upper()}{random_alpha}{random_num}"
