from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field

from schemas.common import CamelModel
from schemas.students import Student


# ✅ 생성(Create) 요청용 스키마
class GradeItemCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)       # 항목명
    weight: Optional[float] = Field(default=None, ge=0, le=1)  # 가중치 0~1 (미지정 시 1.0)
    max_score: Optional[float] = Field(default=None, gt=0)     # 만점 > 0 (미지정 시 100)
    course_id: int


# ✅ 응답(Response) / 조회(Read) 용 스키마
class GradeItem(CamelModel):
    id: int
    name: str
    weight: float
    max_score: float
    course_id: int
    created_at: Optional[datetime] = None


class GradeItemGrade(CamelModel):
    id: int
    score: float
    student: Student


class GradeItemStatistics(CamelModel):
    count: int
    average: float
    maximum: float
    minimum: float


class GradeItemDetail(GradeItem):
    course_name: str
    grades: List[GradeItemGrade] = []
    statistics: GradeItemStatistics
    distribution: Dict[str, int]
