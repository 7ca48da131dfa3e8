"""Paged result wrapper."""

import math
from typing import Generic, TypeVar

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """One page of results plus the pagination metadata callers need."""

    content: list[T]
    page_number: int
    page_size: int
    total_elements: int
    total_pages: int
    last: bool

    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    @classmethod
    def of(cls, content: list[T], page: int, size: int, total: int) -> "Page[T]":
        """Build a page; pages are zero-based."""
        total_pages = math.ceil(total / size) if size > 0 else 0
        return cls(
            content=content,
            page_number=page,
            page_size=size,
            total_elements=total,
            total_pages=total_pages,
            last=page + 1 >= total_pages,
        )
