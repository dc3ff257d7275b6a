from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import relationship
from database.db import Base


class Group(Base):
    __tablename__ = "groups"  # 과목 내 분조(팀) 테이블
    __table_args__ = (
        UniqueConstraint("name", "course_id", name="uq_groups_name_course_id"),
    )

    id = Column(Integer, primary_key=True, index=True)       # 분조 고유 ID (PK)
    name = Column(String(100), nullable=False)               # 분조 이름 (예: Group 1)
    description = Column(Text)                               # 분조 설명
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    course = relationship("Course", back_populates="groups")
    student_groups = relationship("StudentGroup", back_populates="group", cascade="all, delete-orphan")


class StudentGroup(Base):
    __tablename__ = "student_groups"  # 학생-분조 연결 테이블 (역할 포함)
    __table_args__ = (
        UniqueConstraint("student_id", "group_id", name="uq_student_groups_student_id_group_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    group_id = Column(Integer, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False)
    role = Column(String(50))                                # 분조 내 역할 (예: director, animator)
    created_at = Column(DateTime, server_default=func.now())

    student = relationship("Student", back_populates="student_groups")
    group = relationship("Group", back_populates="student_groups")
