from datetime import datetime
from typing import Optional

from pydantic import Field

from schemas.common import CamelModel


# ✅ 생성(Create) 요청용 스키마
class CourseCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)   # 과목명 (유일)
    code: Optional[str] = Field(default=None, max_length=50)
    description: Optional[str] = None


class CourseCounts(CamelModel):
    students: int = 0
    groups: int = 0
    grade_items: int = 0


# ✅ 응답(Response) / 조회(Read) 용 스키마
class Course(CamelModel):
    id: int
    name: str
    code: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class CourseWithCounts(Course):
    counts: CourseCounts
