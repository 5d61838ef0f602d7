"""
Lot size and quantity-scale inference for MCX natural gas contracts.

Brokers report quantity either in units (MMBtu) or in lots. The scale is
inferred from divisibility by the lot size; a quantity that does not divide
evenly is assumed to already be in lots.
"""

import re
from typing import Tuple

from risk.models import Position

# Longest prefixes first; first match wins
NAT_GAS_LOT_SIZES = [
    ('NATGASMICRO', 25),
    ('NATGASMINI', 250),
    ('NATGAS', 125),
    ('NATURALGASMICRO', 25),
    ('NATURALGASMINI', 250),
    ('NATURALGAS', 125),
]
DEFAULT_NAT_GAS_LOT_SIZE = 125

NAT_GAS_PATTERN = re.compile(r'NAT(?:URAL)?GAS', re.IGNORECASE)


def lot_size_from_symbol(symbol: str) -> int:
    """Lot size from the contract prefix table, 0 when unknown."""
    upper = symbol.upper()
    for prefix, lot_size in NAT_GAS_LOT_SIZES:
        if upper.startswith(prefix):
            return lot_size
    return 0


def infer_lot_size(position: Position) -> int:
    """
    Prefix table, else the broker multiplier when > 1, else the nat-gas
    default for nat-gas names, else 1.
    """
    from_symbol = lot_size_from_symbol(position.trading_symbol)
    if from_symbol:
        return from_symbol

    multiplier = abs(position.multiplier or 1)
    if multiplier > 1:
        return int(multiplier)

    if NAT_GAS_PATTERN.search(position.trading_symbol):
        return DEFAULT_NAT_GAS_LOT_SIZE

    return 1


def infer_position_scale(quantity: int, lot_size: int) -> Tuple[int, int]:
    """
    Split a signed quantity into (number_of_lots, quantity_units).

    - divisible by lot_size: quantity is in units
    - otherwise: quantity is assumed to already be in lots
    """
    if quantity == 0:
        return 0, 0

    if lot_size <= 1:
        return quantity, quantity

    if abs(quantity) % lot_size == 0:
        return quantity // lot_size, quantity

    # Assume already in lots
    return quantity, quantity * lot_size
