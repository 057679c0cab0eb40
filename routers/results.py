import logging

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from config.settings import Settings
from dependencies.stores import (
    credit_policy,
    get_credit_provider,
    get_result_store,
    get_settings,
    parse_int_param,
    require_text,
)
from schemas.results import ResultExportRequest
from services.export_service import export_service
from services.result_engine.cohort import SubjectUniverse, compute_semester_analysis
from services.result_engine.grades import DEFAULT_GRADE_TABLE
from services.result_engine.ranking import SortKey
from services.result_engine.report import ReportFilters, ReportFormat, shape_report
from services.result_store import CreditTableProvider, ResultStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/results", tags=["results"])


def _cohort_key(batch: str, department: str, year: str, semester: str):
    return (
        require_text(batch, "batch"),
        require_text(department, "department"),
        parse_int_param(year, "year"),
        parse_int_param(semester, "semester"),
    )


# ==========================================================
# [1] semester analysis
# ==========================================================

# ✅ [ANALYSIS] grade distribution, subject-wise pass/fail, top / attention lists
@router.get("/analysis")
def get_semester_analysis(
    batch: str,
    department: str,
    year: str,
    semester: str,
    store: ResultStore = Depends(get_result_store),
    credit_provider: CreditTableProvider = Depends(get_credit_provider),
    cfg: Settings = Depends(get_settings),
):
    batch, department, year_num, semester_num = _cohort_key(batch, department, year, semester)
    sheet = store.fetch_sheet(batch, department, year_num, semester_num)
    credits = credit_provider.credit_map(batch, **credit_policy(cfg))

    stats = compute_semester_analysis(
        sheet.records,
        grade_table=DEFAULT_GRADE_TABLE,
        credits=credits,
        subject_universe=SubjectUniverse(cfg.SUBJECT_UNIVERSE),
        top_limit=cfg.TOP_PERFORMERS_LIMIT,
        attention_limit=cfg.NEEDS_ATTENTION_LIMIT,
    )
    logger.info(f"Analysis served for {batch}/{department} Y{year_num} S{semester_num}")

    data = stats.model_dump(mode="json", exclude={"warnings"})
    data["sheet"] = sheet.metadata
    return {
        "success": True,
        "data": data,
        "warnings": [w.model_dump() for w in stats.warnings],
    }


# ==========================================================
# [2] sheet preview
# ==========================================================

# ✅ [PREVIEW] Reg_No / Student_Name / subject grid, reg no ascending
@router.get("/sheet")
def get_result_sheet(
    batch: str,
    department: str,
    year: str,
    semester: str,
    sort_by: SortKey = SortKey.REG_NO,
    store: ResultStore = Depends(get_result_store),
    cfg: Settings = Depends(get_settings),
):
    batch, department, year_num, semester_num = _cohort_key(batch, department, year, semester)
    sheet = store.fetch_sheet(batch, department, year_num, semester_num)
    report = shape_report(
        sheet.records,
        filters=ReportFilters(sort_by=sort_by),
        metadata=sheet.metadata,
        subject_universe=cfg.SUBJECT_UNIVERSE,
    )
    return {
        "success": True,
        "data": {
            "metadata": report.metadata,
            "subjects": report.subject_columns,
            "header": report.header,
            "rows": report.rows,
        },
    }


# ==========================================================
# [3] export
# ==========================================================

# ✅ [EXPORT] csv / excel / json with optional statistics sheet
@router.post("/export")
def export_results(
    request: ResultExportRequest,
    store: ResultStore = Depends(get_result_store),
    cfg: Settings = Depends(get_settings),
):
    batch, department, year_num, semester_num = _cohort_key(
        request.batch, request.department, request.year, request.semester
    )
    options = request.export_options
    sheet = store.fetch_sheet(batch, department, year_num, semester_num)

    report = shape_report(
        sheet.records,
        fields=options.fields,
        filters=ReportFilters(
            students=options.selected_students,
            subjects=options.selected_subjects,
            sort_by=options.sort_by,
        ),
        fmt=ReportFormat.WITH_STATS if options.include_stats else ReportFormat.ROW_TABLE,
        metadata=sheet.metadata,
        subject_universe=cfg.SUBJECT_UNIVERSE,
    )
    exported = export_service.render(
        report,
        options.format,
        include_header=options.include_header,
        basename=f"results_{batch}_{department}",
    )
    logger.info(f"Exported {len(report.rows)} rows as {exported.filename}")

    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )
