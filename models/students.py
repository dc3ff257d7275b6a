from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import relationship
from database.db import Base


class Student(Base):
    __tablename__ = "students"  # 학생 기본 정보 테이블
    __table_args__ = (
        # 같은 학번이 다른 과목에는 있을 수 있지만, 한 과목 안에서는 유일
        UniqueConstraint("student_id", "course_id", name="uq_students_student_id_course_id"),
    )

    id = Column(Integer, primary_key=True, index=True)              # 내부 고유 ID (PK)
    name = Column(String(100), nullable=False)                     # 학생 이름
    student_id = Column(String(50), nullable=False, index=True)    # 학번 (엑셀 템플릿과 매칭되는 값)
    email = Column(String(200))                                    # 이메일
    class_name = Column("class", String(20), nullable=False, default="A")  # 반 구분 (A/B ...)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    course = relationship("Course", back_populates="students")
    grades = relationship("Grade", back_populates="student", cascade="all, delete-orphan")
    student_groups = relationship("StudentGroup", back_populates="student", cascade="all, delete-orphan")
