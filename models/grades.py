from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, UniqueConstraint, func
from sqlalchemy.orm import relationship
from database.db import Base


class Grade(Base):
    __tablename__ = "grades"  # 학생별 성적 항목 점수 테이블
    __table_args__ = (
        # 학생 한 명은 한 항목에 점수를 하나만 가짐 (upsert 키)
        UniqueConstraint("student_id", "grade_item_id", name="uq_grades_student_id_grade_item_id"),
    )

    id = Column(Integer, primary_key=True, index=True)     # 성적 고유 ID (PK)
    score = Column(Float, nullable=False)                  # 원점수 (0 ~ 항목 만점)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    grade_item_id = Column(Integer, ForeignKey("grade_items.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    student = relationship("Student", back_populates="grades")
    grade_item = relationship("GradeItem", back_populates="grades")
