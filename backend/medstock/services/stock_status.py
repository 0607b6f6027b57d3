"""Stock status derivation.

The single place that decides an item's status. Every write path that
touches ``current_stock`` or ``threshold`` goes through ``derive_status``.
"""

from medstock.models.inventory_item import ItemStatus


def derive_status(current_stock: int, threshold: int) -> ItemStatus:
    """Derive the stock status from the current quantity and the threshold.

    - 0 units -> out_of_stock
    - 1..threshold units -> low_stock
    - more than threshold -> in_stock

    ``threshold`` is expected to be >= 1; input validation rejects anything
    else before it reaches this function.
    """
    if current_stock < 0:
        raise ValueError(f"current_stock must be non-negative, got {current_stock}")
    if current_stock == 0:
        return ItemStatus.OUT_OF_STOCK
    if current_stock <= threshold:
        return ItemStatus.LOW_STOCK
    return ItemStatus.IN_STOCK
