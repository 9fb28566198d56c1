"""Cart to Stripe Checkout line items, and the hosted session client."""

import logging
from decimal import ROUND_HALF_UP, Decimal, DecimalException
from typing import Dict, List, Optional, Tuple

import requests

from .errors import ConfigurationMissing, InvalidCart, PaymentProviderError

logger = logging.getLogger(__name__)

SUCCESS_PATH = "/success"
CANCEL_PATH = "/cancel"

# Stripe caps unit_amount at eight digits of minor units.
MAX_UNIT_AMOUNT = 99999999
MAX_QUANTITY = 999999


def _parse_decimal(value, label: str) -> Decimal:
    if isinstance(value, bool):
        raise InvalidCart(f"Invalid {label}: {value!r}")
    try:
        number = Decimal(str(value).strip())
    except (DecimalException, ValueError) as exc:
        raise InvalidCart(f"Invalid {label}: {value!r}") from exc
    if not number.is_finite():
        raise InvalidCart(f"Invalid {label}: {value!r}")
    return number


def to_minor_units(price) -> int:
    """Convert a major-unit price (number or numeric string) to minor units."""
    amount = _parse_decimal(price, "price")
    # Bound before any arithmetic so huge exponents never get expanded.
    if amount < 0 or amount > Decimal(MAX_UNIT_AMOUNT) / 100:
        raise InvalidCart(f"Invalid price: {price!r}")
    try:
        minor = int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    except DecimalException as exc:
        raise InvalidCart(f"Invalid price: {price!r}") from exc
    if minor > MAX_UNIT_AMOUNT:
        raise InvalidCart(f"Invalid price: {price!r}")
    return minor


def parse_quantity(value) -> int:
    numeric = _parse_decimal(value, "quantity")
    if numeric < 1 or numeric > MAX_QUANTITY or numeric != numeric.to_integral_value():
        raise InvalidCart(f"Invalid quantity: {value!r}")
    return int(numeric)


def build_line_items(cart, currency: str) -> List[Dict]:
    if not isinstance(cart, list) or not cart:
        raise InvalidCart("Cart must be a non-empty list of items.")

    line_items = []
    for entry in cart:
        if not isinstance(entry, dict):
            raise InvalidCart("Each cart item must be an object.")
        name = str(entry.get("name") or "").strip()
        if not name:
            raise InvalidCart("Each cart item needs a name.")
        line_items.append(
            {
                "price_data": {
                    "currency": currency,
                    "product_data": {"name": name},
                    "unit_amount": to_minor_units(entry.get("price")),
                },
                "quantity": parse_quantity(entry.get("qty")),
            }
        )
    return line_items


def encode_form(value, prefix: str = "") -> List[Tuple[str, str]]:
    """Flatten nested dicts/lists into Stripe's bracketed form encoding.

    Leaves are strings, ints or bools; bools become ``true``/``false``.
    """
    if isinstance(value, dict):
        pairs = []
        for key, item in value.items():
            pairs.extend(encode_form(item, f"{prefix}[{key}]" if prefix else key))
        return pairs
    if isinstance(value, (list, tuple)):
        pairs = []
        for index, item in enumerate(value):
            pairs.extend(encode_form(item, f"{prefix}[{index}]"))
        return pairs
    if isinstance(value, bool):
        return [(prefix, "true" if value else "false")]
    return [(prefix, str(value))]


class StripeCheckoutClient:
    """Creates hosted Checkout Sessions through Stripe's REST API."""

    def __init__(
        self,
        secret_key: Optional[str],
        frontend_url: str,
        api_base: str = "https://api.stripe.com",
        timeout: float = 30.0,
    ):
        if not secret_key:
            raise ConfigurationMissing(["STRIPE_SECRET_KEY"])
        self.secret_key = secret_key
        self.frontend_url = frontend_url.rstrip("/")
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout

    def create_session(self, line_items: List[Dict]) -> Dict[str, str]:
        payload = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": line_items,
            "success_url": f"{self.frontend_url}{SUCCESS_PATH}",
            "cancel_url": f"{self.frontend_url}{CANCEL_PATH}",
        }
        try:
            response = requests.post(
                f"{self.api_base}/v1/checkout/sessions",
                data=encode_form(payload),
                headers={"Authorization": f"Bearer {self.secret_key}"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise PaymentProviderError(f"Payment provider unreachable: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = {}

        if not response.ok:
            error = body.get("error") if isinstance(body, dict) else None
            message = (
                error.get("message") if isinstance(error, dict) else None
            ) or response.text or "Failed to create checkout session."
            raise PaymentProviderError(message, response.status_code)

        session = {"id": body.get("id"), "url": body.get("url")}
        if not session["url"]:
            raise PaymentProviderError("Payment provider returned no session URL.")
        logger.info("Created checkout session %s", session["id"])
        return session
