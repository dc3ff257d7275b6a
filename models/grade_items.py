from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import relationship
from database.db import Base


class GradeItem(Base):
    __tablename__ = "grade_items"  # 성적 항목 (시험/과제 등) 테이블
    __table_args__ = (
        UniqueConstraint("name", "course_id", name="uq_grade_items_name_course_id"),
    )

    id = Column(Integer, primary_key=True, index=True)        # 성적 항목 고유 ID (PK)
    name = Column(String(100), nullable=False)                # 항목명 (예: 중간고사)
    weight = Column(Float, nullable=False, default=1.0)       # 가중치 (0~1)
    max_score = Column(Float, nullable=False, default=100.0)  # 만점 (> 0)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    course = relationship("Course", back_populates="grade_items")
    grades = relationship("Grade", back_populates="grade_item", cascade="all, delete-orphan")
