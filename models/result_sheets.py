from sqlalchemy import Column, Integer, String, JSON, UniqueConstraint
from database.db import Base

class ResultSheet(Base):
    __tablename__ = "semester_result_sheets"  # one sheet per batch/department/year/semester
    __table_args__ = (
        UniqueConstraint("batch", "department", "year_num", "semester", name="uq_result_sheet_key"),
    )

    id = Column(Integer, primary_key=True, index=True)            # sheet ID (Primary Key)
    batch = Column(String(20), nullable=False, index=True)        # batch (e.g. 2023-2027)
    department = Column(String(100), nullable=False, index=True)  # department (e.g. CSE)
    year_num = Column(Integer, nullable=False)                    # year of study (1~4)
    year_label = Column(String(20))                               # display label (e.g. II Year)
    semester = Column(Integer, nullable=False)                    # semester number (1~8)
    exam_cycle = Column(String(50))                               # exam cycle (e.g. NOV/DEC 2024)
    result_data = Column(JSON, nullable=False, default=list)      # [{stu_reg_no, stu_name, res_data}]
