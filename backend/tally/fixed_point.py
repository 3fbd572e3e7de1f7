"""Fixed-point token amount helpers.

On-chain amounts (campaign pools, vote totals, funds received) are integers
with 18 implied decimals. Everything here converts them to plain decimals
without raising on garbage input.
"""

import math
from typing import Any

# HARDCODED ASSUMPTION: all campaign tokens use 18 decimals (CELO / cUSD / G$)
TOKEN_DECIMALS = 18
SCALE = 10**TOKEN_DECIMALS


def safe_amount(value: Any) -> int:
    """Coerce a raw fixed-point amount to a non-negative int.

    Accepts ints, decimal strings, hex strings ("0x...") and integral floats.
    Anything unparsable, negative, or non-finite becomes 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(value, 0)
    if isinstance(value, float):
        if not math.isfinite(value):
            return 0
        return max(int(value), 0)
    if isinstance(value, str):
        text = value.strip()
        try:
            parsed = int(text, 16) if text.lower().startswith("0x") else int(text)
        except ValueError:
            return 0
        return max(parsed, 0)
    return 0


def to_decimal(value: Any) -> float:
    """Convert a fixed-point amount to decimal token units (value / 1e18)."""
    raw = safe_amount(value)
    # Split to keep precision for amounts far above 2**53
    whole, frac = divmod(raw, SCALE)
    try:
        return whole + frac / SCALE
    except OverflowError:
        # Beyond float range; no real token amount gets here
        return 0.0
