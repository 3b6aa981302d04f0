"""Numeric helpers shared by the scaling stages."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round like a person would (``0.125 -> 0.13``, ``2.5 -> 3``), unlike :func:`round`."""
    quantum = Decimal(1).scaleb(-ndigits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))
