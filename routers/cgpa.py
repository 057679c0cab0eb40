import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from config.settings import Settings
from dependencies.stores import (
    credit_policy,
    get_credit_provider,
    get_result_store,
    get_settings,
    require_text,
)
from schemas.results import CgpaExportRequest, CgpaRequest
from services.export_service import export_service
from services.result_engine.cgpa import (
    cgpa_summary,
    compute_cgpa_for_batch,
    group_by_student,
    semester_trend,
)
from services.result_engine.errors import EmptyInputError, dedupe_warnings
from services.result_engine.grades import DEFAULT_GRADE_TABLE
from services.result_engine.report import ReportFilters, ReportFormat, shape_report
from services.result_store import CreditTableProvider, ResultStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cgpa", tags=["cgpa"])


def _batch_aggregates(batch, department, store, credit_provider, cfg):
    batch = require_text(batch, "batch")
    department = department.strip() if department and department.strip() else None

    records = store.fetch_batch_records(batch, department)
    students = group_by_student(records)
    credits = credit_provider.credit_map(batch, **credit_policy(cfg))
    aggregates = compute_cgpa_for_batch(students, credits, DEFAULT_GRADE_TABLE)
    return batch, department, records, credits, aggregates


# ==========================================================
# [1] CGPA analysis
# ==========================================================

# ✅ [CGPA] per-student semester GPAs, CGPA, status and rank
@router.post("/analysis")
def get_cgpa_analysis(
    request: CgpaRequest,
    store: ResultStore = Depends(get_result_store),
    credit_provider: CreditTableProvider = Depends(get_credit_provider),
    cfg: Settings = Depends(get_settings),
):
    batch, department, records, _, aggregates = _batch_aggregates(
        request.batch, request.department, store, credit_provider, cfg
    )
    warnings = dedupe_warnings(w for a in aggregates for w in a.warnings)

    return {
        "success": True,
        "data": {
            "students": [a.model_dump(mode="json", exclude={"warnings"}) for a in aggregates],
            "summary": cgpa_summary(aggregates).model_dump(),
            "batch_info": {
                "batch": batch,
                "department": department,
                "total_semesters": max(r.semester_number for r in records),
            },
        },
        "warnings": [w.model_dump() for w in warnings],
    }


# ==========================================================
# [2] CGPA export
# ==========================================================

# ✅ [EXPORT] Student CGPA + Statistics + Semester Details
@router.post("/export")
def export_cgpa(
    request: CgpaExportRequest,
    store: ResultStore = Depends(get_result_store),
    credit_provider: CreditTableProvider = Depends(get_credit_provider),
    cfg: Settings = Depends(get_settings),
):
    batch, department, _, _, aggregates = _batch_aggregates(
        request.batch, request.department, store, credit_provider, cfg
    )
    report = shape_report(
        aggregates,
        fields=request.fields,
        filters=ReportFilters(students=request.selected_students, sort_by=request.sort_by),
        fmt=ReportFormat.WITH_STATS if request.include_stats else ReportFormat.ROW_TABLE,
        metadata={"batch": batch, "department": department or "All"},
    )
    exported = export_service.render(
        report,
        request.format,
        include_header=request.include_header,
        basename=f"CGPA_Analysis_{batch}_{department or 'All'}",
    )
    logger.info(f"CGPA export {exported.filename}: {len(report.rows)} students")

    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )


# ==========================================================
# [3] comprehensive analysis
# ==========================================================

# ✅ [COMPREHENSIVE] overview + per-student semesters + semester-wise trend
@router.get("/comprehensive")
def get_comprehensive_analysis(
    batch: str,
    department: str,
    register_number: Optional[str] = None,
    store: ResultStore = Depends(get_result_store),
    credit_provider: CreditTableProvider = Depends(get_credit_provider),
    cfg: Settings = Depends(get_settings),
):
    department = require_text(department, "department")
    batch, department, records, credits, aggregates = _batch_aggregates(
        batch, department, store, credit_provider, cfg
    )
    trend = semester_trend(records, credits, DEFAULT_GRADE_TABLE)
    summary = cgpa_summary(aggregates)

    students = aggregates
    if register_number and register_number.strip():
        reg_no = register_number.strip()
        students = [a for a in aggregates if a.registration_number == reg_no]
        if not students:
            raise EmptyInputError(
                "No results found for the register number",
                key={"batch": batch, "department": department, "register_number": reg_no},
            )

    with_arrears = [a for a in aggregates if a.total_arrears > 0]
    needs_attention = sorted(with_arrears, key=lambda a: (-a.total_arrears, a.registration_number))
    warnings = dedupe_warnings(w for a in students for w in a.warnings)
    logger.info(f"Comprehensive analysis for {batch}/{department}: {len(aggregates)} students, {len(trend)} semesters")

    return {
        "success": True,
        "data": {
            "overview": {
                "total_students": summary.total_students,
                "passed_students": summary.total_students - len(with_arrears),
                "students_with_arrears": len(with_arrears),
                "average_cgpa": summary.average_cgpa,
                "total_semesters": len(trend),
                "performance_distribution": summary.status_distribution,
            },
            "students": [a.model_dump(mode="json", exclude={"warnings"}) for a in students],
            "semester_analysis": [t.model_dump() for t in trend],
            "top_performers": [
                a.model_dump(mode="json", exclude={"warnings", "semesters"})
                for a in aggregates[:cfg.TOP_PERFORMERS_LIMIT]
            ],
            "needs_attention": [
                a.model_dump(mode="json", exclude={"warnings", "semesters"})
                for a in needs_attention[:cfg.NEEDS_ATTENTION_LIMIT]
            ],
        },
        "warnings": [w.model_dump() for w in warnings],
    }
