"""Pagination helpers for list endpoints"""
from typing import List, Sequence, Tuple, TypeVar

T = TypeVar("T")


def page_offset(page: int, page_size: int) -> int:
    """Row offset of a 1-indexed page"""
    return (page - 1) * page_size


def paginate(items: Sequence[T], page: int, page_size: int) -> Tuple[List[T], int]:
    """
    Slice a 1-indexed page out of rows already in memory. Returns (page_items, total).

    Only for rows that cannot be paged in SQL, such as ratings unpacked from a JSON list.
    """
    start = page_offset(page, page_size)
    return list(items[start:start + page_size]), len(items)


def total_pages(total: int, page_size: int) -> int:
    return (total + page_size - 1) // page_size
