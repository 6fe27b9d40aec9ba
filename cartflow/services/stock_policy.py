# cartflow/services/stock_policy.py
"""
Stock clamp rules shared by every cart mutation path.

A line quantity is never rejected, only clamped: at least 1, and at most
the known stock when the catalog reported one.
"""


def clamp_quantity(requested: int, stock_limit: int | None) -> int:
    quantity = int(requested)
    if stock_limit is not None:
        quantity = min(quantity, stock_limit)
    return max(1, quantity)


def merge_quantity(existing_qty: int, added_qty: int, stock_limit: int | None) -> int:
    return clamp_quantity(existing_qty + added_qty, stock_limit)


def is_out_of_stock(stock_limit: int | None) -> bool:
    return stock_limit is not None and stock_limit < 1
