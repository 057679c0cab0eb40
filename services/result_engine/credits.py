"""
services/result_engine/credits.py

- CreditMap: subject_code → credit hours for one batch/curriculum (read-only)
- CreditFallback decides what happens to a graded subject that has no
  entry in the map. Every policy still reports a missing_credit gap.
"""

from enum import Enum
from numbers import Real
from types import MappingProxyType
from collections.abc import Mapping
from typing import Iterator, Optional, Tuple

from services.result_engine.errors import ValidationError

DEFAULT_CREDITS = 3.0


class CreditFallback(str, Enum):
    EXCLUDE = "exclude"   # drop the subject from numerator and denominator
    ZERO = "zero"         # count it with weight 0
    DEFAULT = "default"   # count it with the default credit weight


class CreditMap(Mapping):
    def __init__(
        self,
        credits: Optional[Mapping[str, float]] = None,
        *,
        fallback: CreditFallback = CreditFallback.EXCLUDE,
        default_credits: float = DEFAULT_CREDITS,
    ):
        table = {}
        for code, value in (credits or {}).items():
            subject = str(code).strip()
            if isinstance(value, bool) or not isinstance(value, Real):
                raise ValidationError(
                    f"Credits for {subject} must be numeric, got {value!r}",
                    subject=subject, field="credits", value=value,
                )
            if value < 0:
                raise ValidationError(
                    f"Credits for {subject} cannot be negative",
                    subject=subject, field="credits", value=value,
                )
            table[subject] = float(value)
        if default_credits < 0:
            raise ValidationError("Default credits cannot be negative", field="default_credits")

        self._credits = MappingProxyType(table)
        self.fallback = CreditFallback(fallback)
        self.default_credits = float(default_credits)

    def __getitem__(self, subject_code: str) -> float:
        return self._credits[subject_code]

    def __iter__(self) -> Iterator[str]:
        return iter(self._credits)

    def __len__(self) -> int:
        return len(self._credits)

    def __repr__(self) -> str:
        return f"CreditMap({dict(self._credits)!r}, fallback={self.fallback.value!r})"

    def resolve(self, subject_code: str) -> Tuple[Optional[float], bool]:
        """
        Returns (weight, missing)
        - weight None means the subject is excluded from the GPA
        - missing is True when the map has no entry for the subject
        """
        if subject_code in self._credits:
            return self._credits[subject_code], False
        if self.fallback is CreditFallback.ZERO:
            return 0.0, True
        if self.fallback is CreditFallback.DEFAULT:
            return self.default_credits, True
        return None, True

    def with_policy(self, fallback: CreditFallback, default_credits: Optional[float] = None) -> "CreditMap":
        return CreditMap(
            self._credits,
            fallback=fallback,
            default_credits=self.default_credits if default_credits is None else default_credits,
        )
