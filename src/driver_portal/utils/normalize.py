import re
from typing import Optional

PIN_PATTERN = re.compile(r"^\d{4,6}$")


def normalize_login(login_id: Optional[str]) -> str:
    """Trim and case-fold a driver login identifier."""
    return (login_id or "").strip().casefold()


def normalize_pin(pin: Optional[str]) -> str:
    return (pin or "").strip()


def is_valid_pin(pin: str) -> bool:
    """PINs are 4-6 digits."""
    return bool(PIN_PATTERN.match(pin))
