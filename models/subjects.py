from sqlalchemy import Column, Float, Integer, String, UniqueConstraint
from database.db import Base

class Subject(Base):
    __tablename__ = "subjects"  # subject catalogue with credit hours
    __table_args__ = (
        UniqueConstraint("code", "batch", name="uq_subject_code_batch"),
    )

    id = Column(Integer, primary_key=True, index=True)         # subject ID (Primary Key)
    code = Column(String(20), nullable=False, index=True)     # subject code (e.g. CS3401)
    name = Column(String(200))                                # subject name
    credits = Column(Float)                                   # credit hours (NULL → not in the credit map)
    batch = Column(String(20))                                # curriculum batch (NULL → applies to every batch)
