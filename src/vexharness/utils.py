from __future__ import annotations

import base64
import json
from decimal import Decimal, InvalidOperation, localcontext
from typing import Any

NEAR_NOMINATION_EXP = 24
NEAR_NOMINATION = 10**NEAR_NOMINATION_EXP

# Enough digits for any u128 balance plus the fractional part
_PRECISION = 80


def parse_near_amount(amount: str) -> int:
    """Convert a human NEAR amount ("0.01") to yoctoNEAR."""
    text = amount.strip().replace(",", "")
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        try:
            value = Decimal(text)
        except InvalidOperation:
            raise ValueError(f"Invalid NEAR amount: {amount!r}") from None
        if not value.is_finite() or value < 0:
            raise ValueError(f"Invalid NEAR amount: {amount!r}")

        exponent = value.as_tuple().exponent
        if isinstance(exponent, int) and -exponent > NEAR_NOMINATION_EXP:
            raise ValueError(f"Too many fractional digits in NEAR amount: {amount!r}")

        return int(value.scaleb(NEAR_NOMINATION_EXP))


def format_near_amount(yocto: int | str, fraction_digits: int = 5) -> str:
    """Format a yoctoNEAR balance as a NEAR decimal string."""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        value = Decimal(int(yocto)).scaleb(-NEAR_NOMINATION_EXP)
        text = f"{value.quantize(Decimal(1).scaleb(-fraction_digits)):f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def base64_json(obj: Any) -> str:
    raw = json.dumps(obj or {}, separators=(",", ":")).encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def decode_json_bytes(raw: bytes) -> Any:
    if not raw:
        return None
    text = raw.decode("utf-8")
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text
