"""
services/result_engine/errors.py

- Exceptions raised by the result analytics engine
  1) ValidationError  : unknown grade letter, missing reg no, bad numeric filter
  2) EmptyInputError  : no records for the requested cohort key
- DataGapWarning is not an exception. It is collected next to the result
  so the caller can see which subjects/semesters were left out.
"""

from typing import Any, Dict, Iterable, List, Literal, Optional

from pydantic import BaseModel, ConfigDict


class ResultEngineError(Exception):
    code = "RESULT_ENGINE_ERROR"
    status_code = 500

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = {k: v for k, v in context.items() if v is not None}

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, **self.context}


class ValidationError(ResultEngineError):
    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str, *, subject: Optional[str] = None,
                 field: Optional[str] = None, value: Any = None):
        super().__init__(message, subject=subject, field=field, value=value)
        self.subject = subject
        self.field = field


class EmptyInputError(ResultEngineError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, message: str = "No result records found", *,
                 key: Optional[Dict[str, Any]] = None):
        super().__init__(message, key=key)
        self.key = key or {}


class DataGapWarning(BaseModel):
    """Non-fatal gap: the affected subject/semester is excluded, not zero-filled."""
    kind: Literal["missing_credit", "no_gradable_subjects"]
    message: str
    registration_number: Optional[str] = None
    subject_code: Optional[str] = None
    semester_number: Optional[int] = None

    model_config = ConfigDict(frozen=True)


def dedupe_warnings(warnings: Iterable[DataGapWarning]) -> List[DataGapWarning]:
    """One missing_credit entry per (subject, semester); no_gradable_subjects kept per student."""
    seen = set()
    unique = []
    for w in warnings:
        if w.kind == "missing_credit":
            key = (w.kind, w.subject_code, w.semester_number)
        else:
            key = (w.kind, w.registration_number, w.semester_number)
        if key in seen:
            continue
        seen.add(key)
        unique.append(w)
    return unique
