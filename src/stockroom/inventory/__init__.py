"""Inventory business transactions."""

from stockroom.inventory.allocator import Allocation, InventoryAllocator, parse_quantity

__all__ = ["Allocation", "InventoryAllocator", "parse_quantity"]
