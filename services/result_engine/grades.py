"""
services/result_engine/grades.py

- Grade vocabulary (closed set) and the GradeTable lookup
- One GradeTable instance is passed into every calculator so the GPA math
  and the pass/fail classifier always read the same values.
"""

from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, model_validator

from services.result_engine.errors import ValidationError


class Grade(str, Enum):
    O = "O"
    A_PLUS = "A+"
    A = "A"
    B_PLUS = "B+"
    B = "B"
    C = "C"
    P = "P"
    U = "U"
    RA = "RA"
    UA = "UA"


# Grade.O first ... Grade.UA last; used to order distributions
GRADE_ORDER = {grade: idx for idx, grade in enumerate(Grade)}

_LOOKUP = {grade.value: grade for grade in Grade}


def round_half_up(value: float, places: int = 2) -> float:
    """Round like the portal's Math.round(x * 100) / 100 (0.125 → 0.13)."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def parse_grade(value: Any, subject: Optional[str] = None) -> Grade:
    """
    Strict grade parser
    - surrounding whitespace and case are normalised ("a+ " → A+)
    - anything outside the fixed set raises ValidationError naming the subject
    """
    if isinstance(value, Grade):
        return value
    token = str(value).strip().upper() if value is not None else ""
    grade = _LOOKUP.get(token)
    if grade is None:
        where = f" for subject {subject}" if subject else ""
        raise ValidationError(
            f"Unknown grade {value!r}{where}",
            subject=subject,
            field="grade",
            value=value,
        )
    return grade


def parse_optional_grade(value: Any, subject: Optional[str] = None) -> Optional[Grade]:
    """Empty cell → None (no recorded grade); otherwise strict parse."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_grade(value, subject)


class GradeTable(BaseModel):
    points: Dict[Grade, float]
    failing: FrozenSet[Grade]
    excellent: FrozenSet[Grade]

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_complete(self):
        missing = [g.value for g in Grade if g not in self.points]
        if missing:
            raise ValidationError(f"Grade table has no point value for {missing}", field="points")
        for grade, point in self.points.items():
            if not 0 <= point <= 10:
                raise ValidationError(f"Grade point for {grade.value} out of range: {point}", field="points")
            if grade in self.failing and point != 0:
                raise ValidationError(f"Failing grade {grade.value} must map to 0 points", field="points")
        if self.failing & self.excellent:
            raise ValidationError("A grade cannot be both failing and excellent", field="failing")
        return self

    def points_for(self, grade: Grade) -> float:
        return self.points[grade]

    def is_failing(self, grade: Grade) -> bool:
        return grade in self.failing

    def is_passing(self, grade: Grade) -> bool:
        return grade not in self.failing

    def is_excellent(self, grade: Grade) -> bool:
        return grade in self.excellent


# ✅ 10-point scale used across the portal (P carries no grade points)
DEFAULT_GRADE_TABLE = GradeTable(
    points={
        Grade.O: 10,
        Grade.A_PLUS: 9,
        Grade.A: 8,
        Grade.B_PLUS: 7,
        Grade.B: 6,
        Grade.C: 5,
        Grade.P: 0,
        Grade.U: 0,
        Grade.RA: 0,
        Grade.UA: 0,
    },
    failing=frozenset({Grade.U, Grade.RA, Grade.UA}),
    excellent=frozenset({Grade.O, Grade.A_PLUS, Grade.A}),
)
