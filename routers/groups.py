import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, selectinload

from dependencies.database import get_db
from models.groups import Group as GroupModel
from models.groups import StudentGroup as StudentGroupModel
from schemas.common import ErrorResponse
from schemas.groups import Group, GroupCreate, GroupMembersReplace, GroupUpdate
from services import group_service
from services.grade_service import find_unfinished_groups
from utils.exceptions import NotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/groups",
    tags=["분조"],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)


def _get_group_or_404(db: Session, group_id: int) -> GroupModel:
    group = (
        db.query(GroupModel)
        .options(selectinload(GroupModel.student_groups).selectinload(StudentGroupModel.student))
        .filter(GroupModel.id == group_id)
        .first()
    )
    if group is None:
        raise NotFoundError("분조를 찾을 수 없습니다", details=f"id={group_id}")
    return group


# ==========================================================
# [1단계] CRUD 기본 라우터
# ==========================================================

# ✅ [READ] 분조 목록 조회 (과목 필터, 구성원 포함)
@router.get("/")
def read_groups(course_id: Optional[int] = Query(default=None, alias="courseId"), db: Session = Depends(get_db)):
    query = db.query(GroupModel).options(
        selectinload(GroupModel.student_groups).selectinload(StudentGroupModel.student)
    )
    if course_id is not None:
        query = query.filter(GroupModel.course_id == course_id)
    records = query.order_by(GroupModel.id.desc()).all()
    return {"success": True, "data": [Group.model_validate(g) for g in records]}


# ✅ [CREATE] 분조 추가
# - 이름은 "Group N" 중 비어 있는 가장 작은 번호로 자동 지정
# - 이미 같은 과목의 다른 분조에 속한 학생은 넣을 수 없음
@router.post("/", status_code=201)
def create_group(payload: GroupCreate, db: Session = Depends(get_db)):
    group = group_service.create_group(
        db,
        payload.course_id,
        [(m.student_id, m.role) for m in payload.students],
        description=payload.description,
    )
    return {
        "success": True,
        "data": Group.model_validate(_get_group_or_404(db, group.id)),
        "message": f"{group.name}이(가) 생성되었습니다",
    }


# ==========================================================
# [2단계] 정적 라우터
# ==========================================================

# ✅ [READ] 아직 채점이 끝나지 않은 분조
# - gradeItemId를 주면, 구성원 전원이 그 항목 점수를 가진 분조는 제외 (덮어쓰기 방지)
@router.get("/unfinished")
def read_unfinished_groups(
    course_id: int = Query(..., alias="courseId"),
    grade_item_id: Optional[int] = Query(default=None, alias="gradeItemId"),
    db: Session = Depends(get_db),
):
    groups = find_unfinished_groups(db, course_id, grade_item_id)
    return {"success": True, "data": [Group.model_validate(g) for g in groups]}


# ==========================================================
# [3단계] 동적 라우터
# ==========================================================

# ✅ [READ] 특정 분조 조회
@router.get("/{group_id}")
def read_group(group_id: int, db: Session = Depends(get_db)):
    return {"success": True, "data": Group.model_validate(_get_group_or_404(db, group_id))}


# ✅ [UPDATE] 분조 이름/설명 수정 (같은 과목 내 이름 중복 불가)
@router.put("/{group_id}")
def update_group(group_id: int, updated: GroupUpdate, db: Session = Depends(get_db)):
    group = _get_group_or_404(db, group_id)
    group = group_service.rename_group(db, group, updated.name, updated.description or None)
    return {
        "success": True,
        "data": Group.model_validate(group),
        "message": "분조 정보가 수정되었습니다",
    }


# ✅ [DELETE] 분조 삭제 (소속 관계만 삭제, 학생은 유지)
@router.delete("/{group_id}")
def delete_group(group_id: int, db: Session = Depends(get_db)):
    group = _get_group_or_404(db, group_id)
    deleted_memberships = len(group.student_groups)

    db.delete(group)
    db.commit()
    logger.info("Group deleted: id=%s memberships=%d", group_id, deleted_memberships)
    return {
        "success": True,
        "data": {"groupId": group_id, "deletedMembershipsCount": deleted_memberships},
        "message": "분조가 삭제되었습니다",
    }


# ✅ [UPDATE] 분조 구성원 전체 교체
# - 기존 구성원을 모두 지우고 요청 목록으로 다시 만듦 (한 트랜잭션)
@router.post("/{group_id}/students")
def replace_group_students(group_id: int, payload: GroupMembersReplace, db: Session = Depends(get_db)):
    group = _get_group_or_404(db, group_id)
    group_service.replace_members(db, group, [(m.id, m.role) for m in payload.students])
    db.expire_all()
    return {
        "success": True,
        "data": Group.model_validate(_get_group_or_404(db, group_id)),
        "message": "분조 구성원이 변경되었습니다",
    }
