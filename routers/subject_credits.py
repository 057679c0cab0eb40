from typing import Optional

from fastapi import APIRouter, Depends

from dependencies.stores import get_credit_provider
from schemas.common import Pagination, make_meta
from schemas.subjects import SubjectCredit, SubjectCreditUpdate
from services.result_store import CreditTableProvider

router = APIRouter(prefix="/subject-credits", tags=["subject credits"])


# ✅ [READ] subject catalogue (paged)
@router.get("/")
def list_subject_credits(
    p: Pagination = Depends(),
    credit_provider: CreditTableProvider = Depends(get_credit_provider),
):
    total, items = credit_provider.list_subjects(offset=p.offset, limit=p.size)
    return {
        "success": True,
        "data": [SubjectCredit.model_validate(s).model_dump() for s in items],
        "meta": make_meta(total, p.page, p.size).model_dump(),
    }


# ✅ [READ] effective credit map for a batch (what the GPA calculator sees)
@router.get("/map")
def get_credit_map(
    batch: Optional[str] = None,
    credit_provider: CreditTableProvider = Depends(get_credit_provider),
):
    return {
        "success": True,
        "data": {"batch": batch, "credits": credit_provider.credit_table(batch)},
    }


# ✅ [UPDATE] create or update a subject's credits
@router.put("/{code}")
def upsert_subject_credit(
    code: str,
    updated: SubjectCreditUpdate,
    credit_provider: CreditTableProvider = Depends(get_credit_provider),
):
    subject = credit_provider.upsert_credit(code, updated.credits, name=updated.name, batch=updated.batch)
    return {
        "success": True,
        "data": SubjectCredit.model_validate(subject).model_dump(),
        "message": "Subject credits saved",
    }


# ✅ [DELETE] remove a subject row
@router.delete("/{code}")
def delete_subject_credit(
    code: str,
    batch: Optional[str] = None,
    credit_provider: CreditTableProvider = Depends(get_credit_provider),
):
    if not credit_provider.delete_subject(code, batch):
        return {"success": False, "error": {"code": 404, "message": "Subject not found"}}
    return {"success": True, "data": {"code": code, "message": "Subject deleted"}}
