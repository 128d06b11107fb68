"""Pagination envelope"""

from pydantic import BaseModel
from typing import Generic, List, TypeVar

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """One window of a list result"""
    items: List[T]
    total: int
    limit: int
    offset: int
