import math
from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """One page of a larger result set (zero-based page index)."""

    content: list[T]
    page: int
    size: int
    total_elements: int
    total_pages: int
    first: bool
    last: bool

    @classmethod
    def build(cls, content: list[T], page: int, size: int, total: int) -> "Page[T]":
        total_pages = math.ceil(total / size) if size > 0 else 0
        return cls(
            content=content,
            page=page,
            size=size,
            total_elements=total,
            total_pages=total_pages,
            first=page == 0,
            last=page >= total_pages - 1,
        )
