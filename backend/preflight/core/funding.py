"""Funding — balance snapshots, unit conversion, and the minimum-funding threshold.

Invariants:
    - Conversion is exact (Decimal): 4_999_999 uakt is 4.999999 AKT, never rounded up to 5
    - funds_ready is False when the snapshot was fetched for a different address
    - Threshold comparison is inclusive (balance == minimum satisfies)
"""

from dataclasses import dataclass
from decimal import Decimal

from preflight.core.domain_types import (
    Address, BASE_UNITS_PER_DISPLAY_UNIT, MIN_FUNDING_DISPLAY,
)


@dataclass(frozen=True)
class BalanceSnapshot:
    """Balance in base units, valid only for the address it was fetched for."""

    amount_in_base_unit: int
    address: Address

    @property
    def display_amount(self) -> Decimal:
        return to_display_units(self.amount_in_base_unit)


def to_display_units(amount_in_base_unit: int) -> Decimal:
    return Decimal(amount_in_base_unit) / Decimal(BASE_UNITS_PER_DISPLAY_UNIT)


def funds_ready(
    snapshot: BalanceSnapshot | None,
    current_address: Address | None,
    minimum: Decimal = MIN_FUNDING_DISPLAY,
) -> bool:
    """Rule: a fresh snapshot for the current address at or above the minimum."""
    if snapshot is None or current_address is None:
        return False
    if snapshot.address != current_address:
        return False
    return snapshot.display_amount >= minimum
