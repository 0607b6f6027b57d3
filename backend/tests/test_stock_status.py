"""Tests for stock status derivation."""

import pytest

from medstock.models.inventory_item import ItemStatus
from medstock.services.stock_status import derive_status


class TestDeriveStatus:
    """The status is a pure function of stock and threshold."""

    @pytest.mark.parametrize(
        "current_stock, threshold, expected",
        [
            (0, 1, ItemStatus.OUT_OF_STOCK),
            (0, 50, ItemStatus.OUT_OF_STOCK),
            (1, 50, ItemStatus.LOW_STOCK),
            (25, 50, ItemStatus.LOW_STOCK),
            (50, 50, ItemStatus.LOW_STOCK),
            (51, 50, ItemStatus.IN_STOCK),
            (1, 1, ItemStatus.LOW_STOCK),
            (2, 1, ItemStatus.IN_STOCK),
            (15, 5, ItemStatus.IN_STOCK),
        ],
    )
    def test_boundaries(self, current_stock, threshold, expected):
        assert derive_status(current_stock, threshold) == expected

    def test_stock_equal_to_threshold_is_low(self):
        assert derive_status(20, 20) == ItemStatus.LOW_STOCK

    def test_negative_stock_rejected(self):
        with pytest.raises(ValueError):
            derive_status(-1, 10)

    def test_status_values_on_the_wire(self):
        assert [s.value for s in ItemStatus] == ["in_stock", "low_stock", "out_of_stock"]
