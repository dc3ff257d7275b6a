from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import BeforeValidator, Field

from config.settings import settings
from schemas.common import CamelModel
from schemas.students import Student


def _check_role(v):
    if v is None or (isinstance(v, str) and not v.strip()):
        return None
    if v not in settings.STUDENT_ROLES:
        raise ValueError(f"지원하지 않는 역할입니다: {v} (허용: {', '.join(settings.STUDENT_ROLES)})")
    return v


# 역할은 settings.STUDENT_ROLES 중 하나, 빈 값은 None
Role = Annotated[Optional[str], BeforeValidator(_check_role)]


# ✅ 분조 생성 시 구성원 (studentId = 학생 PK)
class GroupMemberCreate(CamelModel):
    student_id: int
    role: Role = None


# ✅ 구성원 전체 교체 시 항목 ({id, role?})
class GroupMemberAssign(CamelModel):
    id: int
    role: Role = None


class GroupCreate(CamelModel):
    course_id: int
    students: List[GroupMemberCreate] = Field(..., min_length=1)   # 최소 1명
    description: Optional[str] = None


class GroupUpdate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class GroupMembersReplace(CamelModel):
    students: List[GroupMemberAssign]


# ✅ 응답용
class GroupMember(CamelModel):
    id: int
    student_id: int
    role: Optional[str] = None
    student: Student


class Group(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    course_id: int
    created_at: Optional[datetime] = None
    student_groups: List[GroupMember] = []
