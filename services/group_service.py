import logging
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.settings import settings
from models.groups import Group as GroupModel
from models.groups import StudentGroup as StudentGroupModel
from models.students import Student as StudentModel
from services.grade_calculator import next_group_name
from services.grade_service import get_course_or_404
from utils.exceptions import ConflictError, NotFoundError, UnexpectedError, ValidationError

logger = logging.getLogger(__name__)

# (학생 PK, 역할)
Member = Tuple[int, Optional[str]]


def load_course_students(db: Session, course_id: int, student_ids: List[int]) -> List[StudentModel]:
    """요청한 학생들이 모두 존재하고 같은 과목 소속인지 확인"""
    if len(set(student_ids)) != len(student_ids):
        raise ValidationError("같은 학생이 중복으로 포함되어 있습니다")

    students = db.query(StudentModel).filter(StudentModel.id.in_(student_ids)).all()
    found = {s.id for s in students}
    missing = [sid for sid in student_ids if sid not in found]
    if missing:
        raise NotFoundError("일부 학생이 존재하지 않습니다", details=f"studentIds={missing}")

    others = [s for s in students if s.course_id != course_id]
    if others:
        names = ", ".join(f"{s.name}({s.student_id})" for s in others)
        raise ValidationError("다른 과목의 학생은 분조에 넣을 수 없습니다", details=names)
    return students


def check_not_grouped(db: Session, course_id: int, student_ids: Iterable[int], exclude_group_id: Optional[int] = None):
    """한 과목 안에서 학생은 하나의 분조에만 속할 수 있음"""
    query = (
        db.query(StudentGroupModel)
        .join(GroupModel, StudentGroupModel.group_id == GroupModel.id)
        .filter(GroupModel.course_id == course_id, StudentGroupModel.student_id.in_(list(student_ids)))
    )
    if exclude_group_id is not None:
        query = query.filter(GroupModel.id != exclude_group_id)

    existing = query.all()
    if existing:
        lines = [f"{sg.student.name}({sg.student.student_id}) → {sg.group.name}" for sg in existing]
        raise ConflictError(
            "이미 다른 분조에 속한 학생이 있습니다:\n" + "\n".join(lines),
            field="students",
        )


def create_group(db: Session, course_id: int, members: List[Member], description: Optional[str] = None) -> GroupModel:
    course = get_course_or_404(db, course_id)
    student_ids = [student_id for student_id, _ in members]
    load_course_students(db, course.id, student_ids)
    check_not_grouped(db, course.id, student_ids)

    existing_names = [name for (name,) in db.query(GroupModel.name).filter(GroupModel.course_id == course.id).all()]
    group = GroupModel(
        name=next_group_name(existing_names, settings.GROUP_NAME_PREFIX),
        description=description,
        course_id=course.id,
    )
    group.student_groups = [StudentGroupModel(student_id=sid, role=role) for sid, role in members]
    db.add(group)
    db.commit()
    db.refresh(group)
    logger.info("Group created: course=%s name=%s members=%d", course.name, group.name, len(members))
    return group


def replace_members(db: Session, group: GroupModel, members: List[Member]) -> GroupModel:
    """기존 구성원을 모두 지우고 요청한 목록으로 다시 만듦 (한 트랜잭션)"""
    student_ids = [student_id for student_id, _ in members]
    if student_ids:
        load_course_students(db, group.course_id, student_ids)
        check_not_grouped(db, group.course_id, student_ids, exclude_group_id=group.id)

    group_id = group.id
    try:
        db.query(StudentGroupModel).filter(StudentGroupModel.group_id == group_id).delete(synchronize_session=False)
        for student_id, role in members:
            db.add(StudentGroupModel(student_id=student_id, group_id=group_id, role=role))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Member replace rolled back: group=%s", group_id)
        raise UnexpectedError("분조 구성원을 변경하지 못했습니다. 기존 구성원은 그대로입니다", details=str(e)) from e

    db.refresh(group)
    logger.info("Group members replaced: group=%s members=%d", group.name, len(members))
    return group


def rename_group(db: Session, group: GroupModel, name: str, description: Optional[str]) -> GroupModel:
    duplicate = (
        db.query(GroupModel)
        .filter(GroupModel.name == name, GroupModel.course_id == group.course_id, GroupModel.id != group.id)
        .first()
    )
    if duplicate:
        raise ConflictError("같은 과목에 이미 같은 이름의 분조가 있습니다", field="name")

    group.name = name
    group.description = description
    db.commit()
    db.refresh(group)
    return group
