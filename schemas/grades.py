from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field

from schemas.common import CamelModel
from schemas.grade_items import GradeItem
from schemas.students import Student


# ✅ 입력용 - 단일 학생 점수 등록/수정 (upsert)
class GradeCreate(CamelModel):
    student_id: int                         # 학생 PK
    grade_item_id: int                      # 성적 항목 ID
    score: float = Field(..., ge=0)         # 점수 (0 이상, 만점 검사는 서비스에서)


# ✅ 입력용 - 분조 전체 일괄 점수
class GroupGradeCreate(CamelModel):
    group_id: int
    grade_item_id: int
    score: float = Field(..., ge=0)


# ✅ 출력용
class Grade(CamelModel):
    id: int
    score: float
    student_id: int
    grade_item_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class GradeDetail(Grade):
    student: Student
    grade_item: GradeItem


class StudentTotal(CamelModel):
    student: Student
    grades: Dict[int, float]     # {gradeItemId: score}
    total_score: float
    letter: str


class CourseGradeSummary(CamelModel):
    course_id: int
    grade_items: List[GradeItem]
    students: List[StudentTotal]
