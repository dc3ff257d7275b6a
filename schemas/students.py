from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from schemas.common import CamelModel


class StudentBase(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)          # 학생 이름
    student_id: str = Field(..., min_length=1, max_length=50)     # 학번
    email: Optional[str] = Field(default=None, max_length=200)    # 이메일
    class_name: Optional[str] = Field(default=None, alias="class", max_length=20)  # 반 (A/B ...)

    @field_validator("email", "class_name", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


# ✅ 입력용 (POST)
class StudentCreate(StudentBase):
    course_id: int                                                # 소속 과목 ID


# ✅ 수정용 (PUT) - 과목 이동은 지원하지 않음, class 미지정 시 기존 값 유지
class StudentUpdate(StudentBase):
    pass


# ✅ 전체 출력용 (GET, 상세조회 등)
class Student(CamelModel):
    id: int
    name: str
    student_id: str
    email: Optional[str] = None
    class_name: str = Field(alias="class")
    course_id: int
    created_at: Optional[datetime] = None


class StudentMembership(CamelModel):
    group_id: int
    group_name: str
    role: Optional[str] = None


class StudentGrade(CamelModel):
    grade_item_id: int
    grade_item_name: str
    score: float
    max_score: float


class StudentDetail(Student):
    groups: List[StudentMembership] = []
    grades: List[StudentGrade] = []
