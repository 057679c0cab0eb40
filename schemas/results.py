from pydantic import BaseModel, Field
from typing import List, Optional, Union

from services.export_service import ExportFormat
from services.result_engine.ranking import SortKey


# ✅ export options (mirrors the export dialog on the portal)
class ExportOptions(BaseModel):
    format: ExportFormat = ExportFormat.EXCEL             # csv / excel / json
    selected_students: Optional[List[str]] = None         # registration numbers (None → all)
    selected_subjects: Optional[List[str]] = None         # subject codes (None → all)
    include_stats: bool = False                           # add Statistics sheet/block
    include_header: bool = True                           # department / batch banner
    sort_by: SortKey = SortKey.REG_NO                     # reg_no / name
    fields: List[str] = Field(default_factory=list)       # extra columns (Arrears, Result)


# ✅ semester result export request
class ResultExportRequest(BaseModel):
    batch: str
    department: str
    year: Union[int, str]                                 # parsed to int by the router
    semester: Union[int, str]                             # parsed to int by the router
    export_options: ExportOptions = Field(default_factory=ExportOptions)


# ✅ CGPA analysis request
class CgpaRequest(BaseModel):
    batch: str
    department: Optional[str] = None


# ✅ CGPA export request
class CgpaExportRequest(CgpaRequest):
    format: ExportFormat = ExportFormat.EXCEL
    fields: Optional[List[str]] = None                    # Rank, CGPA, Status, Total_Semesters, Arrears, Semester_GPAs
    selected_students: Optional[List[str]] = None
    sort_by: SortKey = SortKey.CGPA
    include_stats: bool = True
    include_header: bool = True
