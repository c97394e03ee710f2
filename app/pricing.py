"""
Booking prices.

Amounts are integers in the currency's minor unit (cents, paise). Decimals
from the API are converted once with ROUND_HALF_UP and never touch a float.
"""
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

import config

MINOR_UNITS_PER_MAJOR = 100
_WHOLE = Decimal("1")
_CENT = Decimal("0.01")


def to_minor_units(amount) -> int:
    value = Decimal(str(amount)) * MINOR_UNITS_PER_MAJOR
    return int(value.quantize(_WHOLE, rounding=ROUND_HALF_UP))


def from_minor_units(value: int) -> Decimal:
    return (Decimal(value) / MINOR_UNITS_PER_MAJOR).quantize(_CENT)


def compute_total(nights: int, nightly_rate: int) -> int:
    if nights < 0:
        raise ValueError("nights cannot be negative")
    if nightly_rate < 0:
        raise ValueError("nightly_rate cannot be negative")
    return nights * nightly_rate


def service_fee(subtotal: int, rate=None) -> int:
    rate = Decimal(str(config.SERVICE_FEE_RATE if rate is None else rate))
    return int((Decimal(subtotal) * rate).quantize(_WHOLE, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class Quote:
    nights: int
    nightly_rate: int
    subtotal: int
    service_fee: int
    total: int


def quote(nights: int, nightly_rate: int, fee_rate=None) -> Quote:
    subtotal = compute_total(nights, nightly_rate)
    fee = service_fee(subtotal, fee_rate)
    return Quote(
        nights=nights,
        nightly_rate=nightly_rate,
        subtotal=subtotal,
        service_fee=fee,
        total=subtotal + fee,
    )
