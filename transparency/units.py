"""
transparency/units.py

Amount conversion and display helpers.

Ledger amounts are integers in base units (10**18 per whole token). Conversion
between base units and decimal strings is exact (Decimal / integer arithmetic);
only percentages are computed in float and are display-grade.

The display currency is a fixed multiple of the native token. The rate is
injected (config DISPLAY_CURRENCY_RATE) so a correction never needs a code change.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from web3 import Web3

from .errors import ParseError

BASE_UNIT_DECIMALS = 18
BASE_UNITS_PER_TOKEN = 10 ** BASE_UNIT_DECIMALS
# Largest amount a uint256 ledger field can hold.
MAX_UINT256 = 2 ** 256 - 1

STATUS_PENDING = "Pending"
STATUS_IN_PROGRESS = "In Progress"
STATUS_COMPLETED = "Completed"

# Presentation heuristic only; the ledger has no completion event.
COMPLETED_THRESHOLD = 90.0

_MILLION = Decimal("1000000")
_THOUSAND = Decimal("1000")


# ---------------------------------------------------------------------
# Base units <-> decimal strings
# ---------------------------------------------------------------------
def _to_decimal(value) -> Decimal:
    """Convert user/ledger input to Decimal, raising ParseError on garbage."""
    if isinstance(value, bool):
        raise ParseError(value)
    if isinstance(value, Decimal):
        d = value
    elif isinstance(value, int):
        d = Decimal(value)
    elif isinstance(value, float):
        d = Decimal(repr(value))
    elif isinstance(value, str):
        raw = value.strip()
        if raw == "":
            raise ParseError(value, "empty")
        try:
            d = Decimal(raw)
        except InvalidOperation:
            raise ParseError(value) from None
    else:
        raise ParseError(value, f"unsupported type {type(value).__name__}")

    if not d.is_finite():
        raise ParseError(value, "not finite")
    return d


def parse_units(value) -> int:
    """
    Convert a decimal amount ("1.5") to base units (1500000000000000000).

    Rejects negative amounts and amounts with more than 18 fractional digits
    instead of silently truncating them.
    """
    d = _to_decimal(value)
    if d < 0:
        raise ParseError(value, "negative")
    if d.normalize().as_tuple().exponent < -BASE_UNIT_DECIMALS:
        raise ParseError(value, f"more than {BASE_UNIT_DECIMALS} decimal places")
    try:
        units = int(Web3.to_wei(d, "ether"))
    except (ValueError, TypeError, InvalidOperation) as exc:
        raise ParseError(value, str(exc)) from None
    if units > MAX_UINT256:
        raise ParseError(value, "exceeds uint256")
    return units


def format_units(value: int) -> str:
    """
    Convert base units to a decimal string ("1.0", "0.25", "350.0").

    Pure integer arithmetic: no precision is lost for any uint256.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ParseError(value, "base units must be an integer")
    sign = "-" if value < 0 else ""
    whole, frac = divmod(abs(value), BASE_UNITS_PER_TOKEN)
    frac_str = str(frac).rjust(BASE_UNIT_DECIMALS, "0").rstrip("0") or "0"
    return f"{sign}{whole}.{frac_str}"


# ---------------------------------------------------------------------
# Derived metrics
# ---------------------------------------------------------------------
def utilization_rate(spent: int, budget: int) -> float:
    """Percentage of budget spent; 0 when there is no budget."""
    if budget <= 0:
        return 0.0
    return spent / budget * 100


def status_for(rate: float) -> str:
    """
    Map utilization to a display status.

    0% -> Pending, >= 90% -> Completed, anything in between -> In Progress.
    """
    if rate >= COMPLETED_THRESHOLD:
        return STATUS_COMPLETED
    if rate > 0:
        return STATUS_IN_PROGRESS
    return STATUS_PENDING


# ---------------------------------------------------------------------
# Display currency
# ---------------------------------------------------------------------
def _fixed(d: Decimal, places: int) -> str:
    quantum = Decimal(1).scaleb(-places)
    return str(d.quantize(quantum, rounding=ROUND_HALF_UP))


class CurrencyConverter:
    """Native token -> display currency at a fixed, injected rate."""

    def __init__(self, rate, symbol: str = "RM"):
        self.rate = _to_decimal(rate)
        if self.rate <= 0:
            raise ParseError(rate, "exchange rate must be positive")
        self.symbol = symbol

    def to_display(self, native) -> Decimal:
        """Native amount (decimal string/number) -> display amount."""
        return _to_decimal(native) * self.rate

    def format(self, native, show_decimals: bool = True) -> str:
        """Compact display string: "RM 1.50M", "RM 2.5K", "RM 12.00"."""
        try:
            amount = self.to_display(native)
        except ParseError:
            return f"{self.symbol} 0.00"

        if show_decimals:
            if amount >= _MILLION:
                return f"{self.symbol} {_fixed(amount / _MILLION, 2)}M"
            if amount >= _THOUSAND:
                return f"{self.symbol} {_fixed(amount / _THOUSAND, 1)}K"
            return f"{self.symbol} {_fixed(amount, 2)}"

        if amount >= _MILLION:
            return f"{self.symbol} {_fixed(amount / _MILLION, 0)}M"
        if amount >= _THOUSAND:
            return f"{self.symbol} {_fixed(amount / _THOUSAND, 0)}K"
        return f"{self.symbol} {_fixed(amount, 0)}"

    def format_chart(self, native) -> str:
        """Axis label in whole millions."""
        try:
            amount = self.to_display(native)
        except ParseError:
            return f"{self.symbol} 0M"
        return f"{self.symbol} {_fixed(amount / _MILLION, 0)}M"


def format_percentage(value: float) -> str:
    return f"{value:.1f}%"


def format_rating(value: float) -> str:
    return f"{value:.1f}⭐"
