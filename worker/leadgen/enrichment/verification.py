"""Format-level checks for phone numbers and email addresses.

Neither check contacts the number or mailbox; a ``True`` result means the
value is well formed, which is the strongest guarantee available here.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import phonenumbers

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
INTERNATIONAL_MIN_DIGITS = 7
INTERNATIONAL_MAX_DIGITS = 15


@dataclass
class PhoneCheck:
    verified: bool
    details: Dict[str, Any] = field(default_factory=dict)


def _north_american_digits(raw: str, digits: str) -> Optional[str]:
    stripped = raw.strip()
    if stripped.startswith("+") and not stripped.startswith("+1"):
        return None
    if len(digits) == 10:
        return digits
    if len(digits) == 11 and digits.startswith("1"):
        return digits[1:]
    return None


def _to_e164(raw: str, region: Optional[str]) -> Optional[str]:
    try:
        parsed = phonenumbers.parse(raw, region)
    except phonenumbers.NumberParseException:
        return None
    if not phonenumbers.is_possible_number(parsed):
        return None
    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)


def verify_phone(phone: Optional[str], default_region: Optional[str] = "US") -> PhoneCheck:
    """Passes a North American number with an area code starting 2-9, or any 7-15 digit number."""
    if not phone:
        return PhoneCheck(verified=False)

    digits = re.sub(r"\D", "", phone)
    national = _north_american_digits(phone, digits)
    verified = national is not None and national[0] not in "01"
    method = "nanp_format_check"
    if not verified:
        verified = INTERNATIONAL_MIN_DIGITS <= len(digits) <= INTERNATIONAL_MAX_DIGITS
        method = "international_format_check"

    details: Dict[str, Any] = {"clean": digits, "validation_method": method}
    e164 = _to_e164(phone, default_region) if verified else None
    if e164:
        details["e164"] = e164
    return PhoneCheck(verified=verified, details=details)


def verify_email(email: Optional[str]) -> bool:
    if not email:
        return False
    return bool(EMAIL_PATTERN.match(email.strip()))
