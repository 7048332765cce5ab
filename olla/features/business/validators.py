"""
Business data validators used by the onboarding wizard.

- French phone number normalization (formats accepted by the backend)
- Business category keys and labels
"""

import re
from dataclasses import dataclass
from typing import Optional


BUSINESS_CATEGORIES = {
    "restaurant": "Restaurant",
    "café": "Café",
    "boulangerie": "Boulangerie",
    "commerce": "Commerce général",
    "pizzeria": "Pizzeria",
    "pharmacie": "Pharmacie",
    "coiffeur": "Salon de coiffure",
    "librairie": "Librairie",
    "fleuriste": "Fleuriste",
    "supermarché": "Supermarché",
    "bar": "Bar",
    "garage": "Garage/Automobile",
    "vêtements": "Mode & Vêtements",
}

DEFAULT_CATEGORY = "commerce"

_SEPARATORS = re.compile(r"[\s\-().]+")
_INTERNATIONAL_DISPLAY = re.compile(r"^\+33\s\d\s\d{2}\s\d{2}\s\d{2}\s\d{2}$")


@dataclass(frozen=True)
class PhoneValidationResult:
    is_valid: bool
    formatted: str
    error: Optional[str] = None


def _clean(phone: str) -> str:
    return _SEPARATORS.sub("", phone)


def _international(digits: str) -> str:
    return f"+33 {digits[0]} {digits[1:3]} {digits[3:5]} {digits[5:7]} {digits[7:9]}"


def format_phone_number(phone: str) -> PhoneValidationResult:
    """Normalize a French number to `+33 X XX XX XX XX` or ten bare digits."""
    cleaned = _clean(phone)

    if cleaned.startswith("+33"):
        digits = cleaned[3:]
        if len(digits) != 9 or not digits.isdigit():
            return PhoneValidationResult(False, phone, "The number must have 9 digits after +33")
        return PhoneValidationResult(True, _international(digits))

    if cleaned.startswith("0"):
        if len(cleaned) != 10 or not cleaned.isdigit():
            return PhoneValidationResult(False, phone, "The number must have 10 digits")
        return PhoneValidationResult(True, cleaned)

    if cleaned.startswith("33"):
        digits = cleaned[2:]
        if len(digits) != 9 or not digits.isdigit():
            return PhoneValidationResult(False, phone, "The number must have 9 digits after 33")
        return PhoneValidationResult(True, _international(digits))

    # Missing leading zero
    if cleaned.isdigit() and len(cleaned) == 9:
        return PhoneValidationResult(True, "0" + cleaned)

    return PhoneValidationResult(
        False,
        phone,
        "Invalid format. Use a French number (e.g. 01 23 45 67 89 or +33 1 23 45 67 89)",
    )


def validate_phone_number(phone: Optional[str]) -> bool:
    if not phone or not phone.strip():
        return False
    return format_phone_number(phone).is_valid


def display_phone_number(phone: str) -> str:
    """Format a stored number for display, grouping digits by pairs."""
    if _INTERNATIONAL_DISPLAY.match(phone):
        return phone

    cleaned = _clean(phone)
    if len(cleaned) == 10 and cleaned.startswith("0") and cleaned.isdigit():
        return " ".join(cleaned[i:i + 2] for i in range(0, 10, 2))
    if cleaned.startswith("+33") and len(cleaned) == 12:
        return _international(cleaned[3:])
    return phone


def category_key(label_or_key: str) -> str:
    """Resolve a category key from a key, a label, or a decorated label."""
    if label_or_key in BUSINESS_CATEGORIES:
        return label_or_key
    for key, label in BUSINESS_CATEGORIES.items():
        if label == label_or_key:
            return key
    for key, label in BUSINESS_CATEGORIES.items():
        if label in label_or_key:
            return key
    return DEFAULT_CATEGORY
