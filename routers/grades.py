from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, selectinload

from dependencies.database import get_db
from models.grades import Grade as GradeModel
from models.students import Student as StudentModel
from schemas.common import ErrorResponse
from schemas.grade_items import GradeItem
from schemas.grades import CourseGradeSummary, GradeCreate, GradeDetail, GroupGradeCreate, StudentTotal
from schemas.students import Student
from services import grade_service

router = APIRouter(
    prefix="/grades",
    tags=["grades"],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)


# ==========================================================
# [1단계] 정적 분석/요약 라우터
# ==========================================================

# ✅ [SUMMARY] 과목 학생별 가중 총점
# - 점수가 입력된 항목만으로 가중 평균 (0~100), 입력된 점수가 없으면 0
@router.get("/summary")
def get_course_summary(course_id: int = Query(..., alias="courseId"), db: Session = Depends(get_db)):
    summary = grade_service.course_grade_summary(db, course_id)
    return {
        "success": True,
        "data": CourseGradeSummary(
            course_id=summary["course_id"],
            grade_items=[GradeItem.model_validate(i) for i in summary["grade_items"]],
            students=[
                StudentTotal(
                    student=Student.model_validate(row["student"]),
                    grades=row["grades"],
                    total_score=round(row["total_score"], 2),
                    letter=row["letter"],
                )
                for row in summary["students"]
            ],
        ),
    }


# ✅ [CREATE] 분조 일괄 성적 등록
# - 분조 구성원 전원에게 같은 점수를 한 트랜잭션으로 upsert (전부 성공 또는 전부 취소)
@router.post("/group", status_code=201)
def create_group_grade(payload: GroupGradeCreate, db: Session = Depends(get_db)):
    result = grade_service.score_group(db, payload.group_id, payload.grade_item_id, payload.score)
    group, item, grades = result["group"], result["grade_item"], result["grades"]
    return {
        "success": True,
        "data": {
            "affectedStudents": len(grades),
            "groupName": group.name,
            "gradeItemName": item.name,
            "score": payload.score,
        },
        "message": f"{group.name} 구성원 {len(grades)}명의 성적이 등록되었습니다",
    }


# ==========================================================
# [2단계] CRUD 기본 라우터
# ==========================================================

# ✅ [READ] 성적 목록 (courseId는 학생 소속 과목 기준 필터)
@router.get("/")
def read_grades(course_id: Optional[int] = Query(default=None, alias="courseId"), db: Session = Depends(get_db)):
    query = db.query(GradeModel).options(
        selectinload(GradeModel.student),
        selectinload(GradeModel.grade_item),
    )
    if course_id is not None:
        query = query.join(StudentModel, GradeModel.student_id == StudentModel.id).filter(
            StudentModel.course_id == course_id
        )
    records = query.order_by(GradeModel.id.desc()).all()
    return {"success": True, "data": [GradeDetail.model_validate(r) for r in records]}


# ✅ [CREATE] 성적 등록/수정
# - (학생, 성적 항목) 조합이 이미 있으면 덮어씀 (upsert)
@router.post("/", status_code=201)
def create_grade(grade: GradeCreate, db: Session = Depends(get_db)):
    db_grade = grade_service.record_grade(db, grade.student_id, grade.grade_item_id, grade.score)
    return {
        "success": True,
        "data": GradeDetail.model_validate(db_grade),
        "message": "성적이 등록되었습니다",
    }
