from sqlalchemy import Column, DateTime, Integer, String, Text, func
from sqlalchemy.orm import relationship
from database.db import Base


class Course(Base):
    __tablename__ = "courses"  # 과목 테이블 (모든 학생/분조/성적 항목의 루트)

    id = Column(Integer, primary_key=True, index=True)        # 과목 고유 ID (PK)
    name = Column(String(100), nullable=False, unique=True)   # 과목명 (전체에서 유일)
    code = Column(String(50))                                 # 과목 코드 (예: IC335)
    description = Column(Text)                                # 과목 설명
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # ==========================================================
    # [관계 설정] 과목 삭제 시 소속 데이터도 함께 삭제 (1:N)
    # ==========================================================
    students = relationship("Student", back_populates="course", cascade="all, delete-orphan")
    groups = relationship("Group", back_populates="course", cascade="all, delete-orphan")
    grade_items = relationship("GradeItem", back_populates="course", cascade="all, delete-orphan")
