"""
Checkout form validation, demo payment check and order totals.
"""
import re
from typing import Dict, Iterable, Optional

from models import PAYMENT_METHODS

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

DEMO_CARD_NUMBER = "4242424242424242"
DEMO_EXPIRY = "12/28"
DEMO_CVV = "123"
CARD_PAYMENT_METHODS = ("card", "demo")
DELIVERY_METHODS = ("delivery", "pickup")

# Both are currently fixed at zero
DELIVERY_FEE = 0.0
TAX_RATE = 0.0

DISCOUNT_CODES = {
    "WELCOME15": 0.15,
}

MIN_PHONE_DIGITS = 10
MAX_PHONE_DIGITS = 15
MIN_ADDRESS_LENGTH = 5

REQUIRED_FIELDS = {
    "customer_name": "Full name is required",
    "customer_email": "Email is required",
    "customer_phone": "Phone number is required",
    "address": "Address is required",
    "city": "City is required",
    "zip_code": "ZIP code is required",
}


def _normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def validate_payment(form) -> Dict[str, str]:
    errors = {}
    if form.payment_method not in CARD_PAYMENT_METHODS:
        return errors

    card_number = re.sub(r"\s", "", form.card_number or "")
    if not card_number:
        errors["card_number"] = "Card number is required"
    elif card_number != DEMO_CARD_NUMBER:
        errors["card_number"] = "For demo, use: 4242 4242 4242 4242"

    expiry = (form.expiry_date or "").strip()
    if not expiry:
        errors["expiry_date"] = "Expiry date is required"
    elif expiry != DEMO_EXPIRY:
        errors["expiry_date"] = f"For demo, use expiry {DEMO_EXPIRY}"

    cvv = (form.cvv or "").strip()
    if not cvv:
        errors["cvv"] = "CVV is required"
    elif cvv != DEMO_CVV:
        errors["cvv"] = f"For demo, use CVV {DEMO_CVV}"

    return errors


def validate_checkout(form) -> Dict[str, str]:
    """Return {field: message} for every invalid field; empty when the form is valid."""
    errors = {}

    for field, message in REQUIRED_FIELDS.items():
        if not (getattr(form, field) or "").strip():
            errors[field] = message

    email = (form.customer_email or "").strip()
    if email and not EMAIL_RE.match(email):
        errors["customer_email"] = "Please enter a valid email address"

    phone = (form.customer_phone or "").strip()
    if phone:
        digits = re.sub(r"\D", "", phone)
        if not MIN_PHONE_DIGITS <= len(digits) <= MAX_PHONE_DIGITS:
            errors["customer_phone"] = (
                f"Phone number must have {MIN_PHONE_DIGITS} to {MAX_PHONE_DIGITS} digits"
            )

    address = (form.address or "").strip()
    if address and len(address) < MIN_ADDRESS_LENGTH:
        errors["address"] = f"Address must be at least {MIN_ADDRESS_LENGTH} characters"

    if form.payment_method not in PAYMENT_METHODS:
        errors["payment_method"] = f"Payment method must be one of: {', '.join(PAYMENT_METHODS)}"

    if form.delivery_method not in DELIVERY_METHODS:
        errors["delivery_method"] = "Delivery method must be 'delivery' or 'pickup'"

    code = _normalize_code(form.discount_code)
    if code and code not in DISCOUNT_CODES:
        errors["discount_code"] = "Unknown discount code"

    errors.update(validate_payment(form))
    return errors


def calculate_totals(lines: Iterable[Dict], discount_code: Optional[str] = None) -> Dict[str, float]:
    subtotal = round(sum(float(line["price"]) * int(line["quantity"]) for line in lines), 2)
    rate = DISCOUNT_CODES.get(_normalize_code(discount_code), 0.0)
    discount = round(subtotal * rate, 2)
    tax = round((subtotal - discount) * TAX_RATE, 2)
    total = round(subtotal - discount + DELIVERY_FEE + tax, 2)
    return {
        "subtotal": subtotal,
        "discount": discount,
        "delivery_fee": DELIVERY_FEE,
        "tax": tax,
        "total": total,
    }


def payment_status_for(payment_method: str) -> str:
    return "paid" if payment_method in CARD_PAYMENT_METHODS else "pending"


def format_address(form) -> str:
    return f"{form.address.strip()}, {form.city.strip()}, {form.zip_code.strip()}"
