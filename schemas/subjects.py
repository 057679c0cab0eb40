from pydantic import BaseModel, Field
from typing import Optional

# ✅ input: PUT /subject-credits/{code}
class SubjectCreditUpdate(BaseModel):
    credits: Optional[float] = Field(default=None, ge=0)   # credit hours (None → excluded from the credit map)
    name: Optional[str] = None                             # subject name
    batch: Optional[str] = None                            # curriculum batch (None → every batch)

# ✅ output: GET responses
class SubjectCredit(BaseModel):
    id: int                                  # subject ID
    code: str                                # subject code
    name: Optional[str] = None               # subject name
    credits: Optional[float] = None          # credit hours
    batch: Optional[str] = None              # curriculum batch

    class Config:
        from_attributes = True               # orm_mode → pydantic v2
