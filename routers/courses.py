import logging

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from dependencies.database import get_db
from models.courses import Course as CourseModel
from models.grade_items import GradeItem as GradeItemModel
from models.groups import Group as GroupModel
from models.students import Student as StudentModel
from schemas.common import ErrorResponse
from schemas.courses import Course, CourseCounts, CourseCreate, CourseWithCounts
from services.grade_service import get_course_or_404
from utils.exceptions import ConflictError

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/courses",
    tags=["과목"],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)


def _count_by_course(db: Session, column):
    return dict(db.query(column, func.count()).group_by(column).all())


# ==========================================================
# [1단계] CRUD 기본 라우터
# ==========================================================

# ✅ [READ] 전체 과목 조회 (학생/분조/성적 항목 개수 포함)
@router.get("/")
def read_courses(db: Session = Depends(get_db)):
    courses = db.query(CourseModel).order_by(CourseModel.id.desc()).all()
    students = _count_by_course(db, StudentModel.course_id)
    groups = _count_by_course(db, GroupModel.course_id)
    items = _count_by_course(db, GradeItemModel.course_id)
    return {
        "success": True,
        "data": [
            CourseWithCounts(
                **Course.model_validate(c).model_dump(),
                counts=CourseCounts(
                    students=students.get(c.id, 0),
                    groups=groups.get(c.id, 0),
                    grade_items=items.get(c.id, 0),
                ),
            )
            for c in courses
        ],
    }


# ✅ [CREATE] 과목 추가
# - 과목명은 전체에서 유일
@router.post("/", status_code=201)
def create_course(course: CourseCreate, db: Session = Depends(get_db)):
    if db.query(CourseModel).filter(CourseModel.name == course.name).first():
        raise ConflictError("이미 존재하는 과목명입니다", field="name")

    db_course = CourseModel(
        name=course.name,
        code=course.code or None,
        description=course.description or None,
    )
    db.add(db_course)
    db.commit()
    db.refresh(db_course)
    logger.info("Course created: %s", db_course.name)
    return {
        "success": True,
        "data": Course.model_validate(db_course),
        "message": "과목이 추가되었습니다",
    }


# ==========================================================
# [2단계] 동적 라우터
# ==========================================================

# ✅ [READ] 특정 과목 조회
@router.get("/{course_id}")
def read_course(course_id: int, db: Session = Depends(get_db)):
    course = get_course_or_404(db, course_id)
    return {"success": True, "data": Course.model_validate(course)}
