"""Ledger balance strings and fixed-point helpers.

Balances arrive from the ledger as ``"<amount> <symbol>"`` strings such as
``"12.50000000 WAX"``. The number of fractional digits in the literal is the
token's precision, and every amount reported back in that denomination is
rounded to it.
"""

import re
from dataclasses import dataclass
from decimal import ROUND_CEILING, ROUND_FLOOR, Context, Decimal, localcontext
from typing import Optional, Union

DEFAULT_SYMBOL = "WAX"
DEFAULT_DECIMALS = 8
LEDGER_PRECISION = 50  # significant digits for intermediate math

_AMOUNT_RE = re.compile(r"^[+-]?\d+(?:\.(\d*))?$")


def ledger_context(precision: int = LEDGER_PRECISION):
    """Private decimal context for tier math.

    Used as ``with ledger_context(): ...`` so results never depend on, or
    leak into, the calling thread's decimal context.
    """
    return localcontext(Context(prec=precision))


def quantum(decimals: int) -> Decimal:
    """Smallest representable step at ``decimals`` precision (1e-decimals)."""
    return Decimal(1).scaleb(-decimals)


def quantize_up(value: Decimal, decimals: int) -> Decimal:
    """Round towards +infinity at the given precision."""
    if not value.is_finite():
        return value
    return value.quantize(quantum(decimals), rounding=ROUND_CEILING)


def quantize_down(value: Decimal, decimals: int) -> Decimal:
    """Round towards -infinity at the given precision."""
    if not value.is_finite():
        return value
    return value.quantize(quantum(decimals), rounding=ROUND_FLOOR)


@dataclass(frozen=True)
class TokenQuantity:
    """Parsed ledger balance.

    ``decimals`` is taken from the source literal rather than a fixed constant,
    so two balances of the same token can disagree if the ledger printed them
    differently; callers report results at the pool's precision.
    """
    amount: Decimal = Decimal(0)
    symbol: str = DEFAULT_SYMBOL
    decimals: int = DEFAULT_DECIMALS

    @property
    def quantum(self) -> Decimal:
        return quantum(self.decimals)

    def with_amount(self, amount: Decimal) -> "TokenQuantity":
        """Same symbol and precision, different amount."""
        return TokenQuantity(amount=amount, symbol=self.symbol, decimals=self.decimals)

    def __str__(self) -> str:
        return format_token_amount(self.amount, self.symbol, self.decimals)


def parse_quantity(
    text: Optional[str],
    default_symbol: str = DEFAULT_SYMBOL,
    default_decimals: int = DEFAULT_DECIMALS,
) -> TokenQuantity:
    """Parse ``"<amount> <symbol>"`` into a TokenQuantity.

    Never raises: empty, ``None`` or malformed input returns a zero quantity
    with the default symbol and precision. A zero result therefore means
    "no usable data" as often as it means a real zero balance.

    Args:
        text: Ledger balance string, e.g. ``"10.0000 TOK"``
        default_symbol: Symbol used when the string carries none
        default_decimals: Precision used when the literal has no fractional digits

    Returns:
        Parsed quantity
    """
    fallback = TokenQuantity(Decimal(0), default_symbol, default_decimals)
    if not isinstance(text, str):
        return fallback

    parts = text.strip().split(None, 1)
    if not parts:
        return fallback

    literal = parts[0]
    match = _AMOUNT_RE.match(literal)
    if match is None:
        return fallback

    fraction = match.group(1)
    decimals = len(fraction) if fraction else default_decimals
    symbol = parts[1].strip() if len(parts) > 1 else ""

    return TokenQuantity(
        amount=Decimal(literal),
        symbol=symbol or default_symbol,
        decimals=decimals,
    )


def coerce_quantity(value: Union[str, TokenQuantity, None]) -> TokenQuantity:
    """Accept either a balance string or an already parsed quantity."""
    if isinstance(value, TokenQuantity):
        return value
    return parse_quantity(value)


def format_token_amount(amount: Optional[Decimal], symbol: str, decimals: int = DEFAULT_DECIMALS) -> str:
    """Render an amount the way the ledger prints it.

    Missing or non-finite amounts render as zero at the requested precision.
    """
    if amount is None or not Decimal(amount).is_finite():
        amount = Decimal(0)
    with ledger_context():
        value = Decimal(amount).quantize(quantum(decimals), rounding=ROUND_FLOOR)
    return f"{value:f} {symbol}"
