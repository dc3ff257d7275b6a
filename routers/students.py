import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, selectinload

from config.settings import settings
from dependencies.database import get_db
from models.grades import Grade as GradeModel
from models.groups import StudentGroup as StudentGroupModel
from models.students import Student as StudentModel
from schemas.common import ErrorResponse
from schemas.students import Student, StudentCreate, StudentDetail, StudentGrade, StudentMembership, StudentUpdate
from services.grade_service import get_course_or_404
from utils.exceptions import ConflictError, NotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/students",
    tags=["학생 정보"],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)


def _get_student_or_404(db: Session, student_id: int) -> StudentModel:
    student = (
        db.query(StudentModel)
        .options(
            selectinload(StudentModel.student_groups).selectinload(StudentGroupModel.group),
            selectinload(StudentModel.grades).selectinload(GradeModel.grade_item),
        )
        .filter(StudentModel.id == student_id)
        .first()
    )
    if student is None:
        raise NotFoundError("학생 정보를 찾을 수 없습니다", details=f"id={student_id}")
    return student


def _to_detail(student: StudentModel) -> StudentDetail:
    return StudentDetail(
        **Student.model_validate(student).model_dump(),
        groups=[
            StudentMembership(group_id=sg.group_id, group_name=sg.group.name, role=sg.role)
            for sg in student.student_groups
        ],
        grades=[
            StudentGrade(
                grade_item_id=g.grade_item_id,
                grade_item_name=g.grade_item.name,
                score=g.score,
                max_score=g.grade_item.max_score,
            )
            for g in student.grades
        ],
    )


def _check_unique_student_id(db: Session, student_id: str, course_id: int, exclude_id: Optional[int] = None):
    query = db.query(StudentModel).filter(StudentModel.student_id == student_id, StudentModel.course_id == course_id)
    if exclude_id is not None:
        query = query.filter(StudentModel.id != exclude_id)
    if query.first():
        raise ConflictError("이 과목에 이미 같은 학번의 학생이 있습니다", field="studentId")


# ==========================================================
# [1단계] CRUD 기본 라우터
# ==========================================================

# ✅ [READ] 학생 목록 조회 (반/과목 필터)
@router.get("/")
def read_students(
    class_name: Optional[str] = Query(default=None, alias="class"),
    course_id: Optional[int] = Query(default=None, alias="courseId"),
    db: Session = Depends(get_db),
):
    query = db.query(StudentModel).options(
        selectinload(StudentModel.student_groups).selectinload(StudentGroupModel.group),
        selectinload(StudentModel.grades).selectinload(GradeModel.grade_item),
    )
    if class_name:
        query = query.filter(StudentModel.class_name == class_name)
    if course_id is not None:
        query = query.filter(StudentModel.course_id == course_id)

    records = query.order_by(StudentModel.student_id).all()
    return {"success": True, "data": [_to_detail(s) for s in records]}


# ✅ [CREATE] 학생 정보 추가
# - (학번, 과목) 조합이 유일해야 함. 같은 학번이라도 과목이 다르면 허용
@router.post("/", status_code=201)
def create_student(student: StudentCreate, db: Session = Depends(get_db)):
    course = get_course_or_404(db, student.course_id)
    _check_unique_student_id(db, student.student_id, course.id)

    db_student = StudentModel(
        name=student.name,
        student_id=student.student_id,
        email=student.email,
        class_name=student.class_name or settings.DEFAULT_STUDENT_CLASS,
        course_id=course.id,
    )
    db.add(db_student)
    db.commit()
    db.refresh(db_student)
    logger.info("Student created: %s (%s) in %s", db_student.name, db_student.student_id, course.name)
    return {
        "success": True,
        "data": Student.model_validate(db_student),
        "message": "학생 정보가 성공적으로 추가되었습니다",
    }


# ==========================================================
# [2단계] 동적 라우터 (개별 조회/수정/삭제)
# ==========================================================

# ✅ [READ] 특정 학생 상세 조회 (분조, 성적 포함)
@router.get("/{student_id}")
def read_student(student_id: int, db: Session = Depends(get_db)):
    student = _get_student_or_404(db, student_id)
    return {"success": True, "data": _to_detail(student)}


# ✅ [UPDATE] 특정 학생 정보 수정
@router.put("/{student_id}")
def update_student(student_id: int, updated: StudentUpdate, db: Session = Depends(get_db)):
    student = _get_student_or_404(db, student_id)
    _check_unique_student_id(db, updated.student_id, student.course_id, exclude_id=student.id)

    student.name = updated.name
    student.student_id = updated.student_id
    student.email = updated.email
    if updated.class_name:
        student.class_name = updated.class_name

    db.commit()
    db.refresh(student)
    return {
        "success": True,
        "data": Student.model_validate(student),
        "message": "학생 정보가 성공적으로 수정되었습니다",
    }


# ✅ [DELETE] 특정 학생 삭제
# - 성적, 분조 소속이 함께 삭제되며 삭제된 건수를 돌려줌
@router.delete("/{student_id}")
def delete_student(student_id: int, db: Session = Depends(get_db)):
    student = _get_student_or_404(db, student_id)
    deleted_grades = len(student.grades)
    deleted_memberships = len(student.student_groups)

    db.delete(student)
    db.commit()
    logger.info("Student deleted: id=%s grades=%d memberships=%d", student_id, deleted_grades, deleted_memberships)
    return {
        "success": True,
        "data": {
            "studentId": student_id,
            "deletedGradesCount": deleted_grades,
            "deletedMembershipsCount": deleted_memberships,
        },
        "message": "학생 정보가 성공적으로 삭제되었습니다",
    }
