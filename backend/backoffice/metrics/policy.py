# Overview: Named valuation constants and the policy object that carries them.

"""
Valuation policy.

The cost fallback chain and COGS estimate use fixed sale-price ratios when no
real cost is known. They live here as named constants (basis points,
10000 = 100%) and are carried through the engine in a frozen ValuationPolicy
so tests can assert on them and operators can tune them from config.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Mapping

BPS_SCALE = 10_000

# No batches and no cost price, but the tenant has received purchases elsewhere
SALE_RATIO_WITH_PURCHASES_BPS = 7000
# No batches, no cost price, no purchase activity at all
SALE_RATIO_BPS = 6000
# COGS estimate for a sold line with no cost price and no purchase average
COGS_SALE_RATIO_BPS = 7000
# Number of most recent received purchases averaged for the COGS estimate
RECENT_PURCHASES_LIMIT = 10

FIFO = "FIFO"
LIFO = "LIFO"
WAC = "WAC"
COSTING_METHODS = (FIFO, LIFO, WAC)


class ValuationError(ValueError):
    """Raised for an unknown costing method or an invalid policy value."""


@dataclass(frozen=True)
class ValuationPolicy:
    sale_ratio_with_purchases_bps: int = SALE_RATIO_WITH_PURCHASES_BPS
    sale_ratio_bps: int = SALE_RATIO_BPS
    cogs_sale_ratio_bps: int = COGS_SALE_RATIO_BPS
    recent_purchases_limit: int = RECENT_PURCHASES_LIMIT

    def __post_init__(self):
        for name in ("sale_ratio_with_purchases_bps", "sale_ratio_bps", "cogs_sale_ratio_bps"):
            if getattr(self, name) < 0:
                raise ValuationError(f"{name} must be >= 0")
        if self.recent_purchases_limit < 1:
            raise ValuationError("recent_purchases_limit must be >= 1")

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "ValuationPolicy":
        """Build a policy from a Flask config mapping, defaulting missing keys."""
        return cls(
            sale_ratio_with_purchases_bps=int(
                config.get("VALUATION_SALE_RATIO_WITH_PURCHASES_BPS", SALE_RATIO_WITH_PURCHASES_BPS)
            ),
            sale_ratio_bps=int(config.get("VALUATION_SALE_RATIO_BPS", SALE_RATIO_BPS)),
            cogs_sale_ratio_bps=int(config.get("COGS_SALE_RATIO_BPS", COGS_SALE_RATIO_BPS)),
            recent_purchases_limit=int(config.get("RECENT_PURCHASES_LIMIT", RECENT_PURCHASES_LIMIT)),
        )


DEFAULT_POLICY = ValuationPolicy()


def normalize_method(method: str | None, default: str = FIFO) -> str:
    if method is None or not method.strip():
        return default
    value = method.strip().upper()
    if value not in COSTING_METHODS:
        raise ValuationError(f"costing method must be one of {', '.join(COSTING_METHODS)}")
    return value


def div_half_up(numerator: int, denominator: int) -> int:
    """Integer division rounded half away from zero; 0 when denominator is 0."""
    if not denominator:
        return 0
    quotient = Decimal(numerator) / Decimal(denominator)
    return int(quotient.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def apply_ratio(cents: int | None, bps: int) -> int:
    """Scale an amount in cents by a basis-point ratio, nearest cent."""
    return div_half_up((cents or 0) * bps, BPS_SCALE)
