"""
services/result_engine/ranking.py

- Deterministic ordering of student rows
  * cgpa   : CGPA descending, ties → registration number ascending
  * reg_no : registration number ascending
  * name   : name ascending (case-insensitive), ties → registration number
- Ranks are positions after sorting: equal CGPA never shares a rank.
"""

from enum import Enum
from typing import Any, Callable, Iterable, List, TypeVar

T = TypeVar("T")


class SortKey(str, Enum):
    CGPA = "cgpa"
    REG_NO = "reg_no"
    NAME = "name"


def _cgpa_of(item: Any) -> float:
    value = getattr(item, "overall_cgpa", None)
    if value is None:
        value = getattr(item, "gpa", None)
    return float(value or 0.0)


def sort_key_for(key: SortKey) -> Callable[[Any], tuple]:
    key = SortKey(key)
    if key is SortKey.CGPA:
        return lambda item: (-_cgpa_of(item), item.registration_number)
    if key is SortKey.NAME:
        return lambda item: (item.name.casefold(), item.registration_number)
    return lambda item: (item.registration_number,)


def sort_students(items: Iterable[T], key: SortKey = SortKey.REG_NO) -> List[T]:
    return sorted(items, key=sort_key_for(key))


def assign_ranks(items: Iterable[T]) -> List[T]:
    """1-based rank by position; items must be frozen pydantic models with a rank field."""
    return [item.model_copy(update={"rank": idx}) for idx, item in enumerate(items, start=1)]


def rank_by_cgpa(items: Iterable[T]) -> List[T]:
    return assign_ranks(sort_students(items, SortKey.CGPA))
