import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session, selectinload

from config.settings import settings
from dependencies.database import get_db
from models.grade_items import GradeItem as GradeItemModel
from models.grades import Grade as GradeModel
from models.students import Student as StudentModel
from schemas.common import ErrorResponse
from schemas.grade_items import GradeItem, GradeItemCreate, GradeItemDetail, GradeItemGrade, GradeItemStatistics
from services import spreadsheet_service
from services.grade_calculator import grade_distribution, item_statistics
from services.grade_service import get_course_or_404, get_grade_item_or_404
from utils.exceptions import ConflictError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/grade-items",
    tags=["성적 항목"],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)


# ==========================================================
# [1단계] CRUD 기본 라우터
# ==========================================================

# ✅ [READ] 과목별 성적 항목 목록
# - 성적 항목은 반드시 과목에 속하므로 courseId 필수
@router.get("/")
def read_grade_items(course_id: int = Query(..., alias="courseId"), db: Session = Depends(get_db)):
    records = (
        db.query(GradeItemModel)
        .filter(GradeItemModel.course_id == course_id)
        .order_by(GradeItemModel.id.desc())
        .all()
    )
    return {"success": True, "data": [GradeItem.model_validate(r) for r in records]}


# ✅ [CREATE] 성적 항목 추가
# - 가중치 0~1, 만점 > 0 (스키마에서 검사), (항목명, 과목) 유일
@router.post("/", status_code=201)
def create_grade_item(item: GradeItemCreate, db: Session = Depends(get_db)):
    course = get_course_or_404(db, item.course_id)

    existing = (
        db.query(GradeItemModel)
        .filter(GradeItemModel.name == item.name, GradeItemModel.course_id == course.id)
        .first()
    )
    if existing:
        raise ConflictError(f"과목 「{course.name}」에 이미 「{item.name}」 항목이 있습니다", field="name")

    db_item = GradeItemModel(
        name=item.name,
        weight=item.weight if item.weight is not None else settings.DEFAULT_WEIGHT,
        max_score=item.max_score if item.max_score is not None else settings.DEFAULT_MAX_SCORE,
        course_id=course.id,
    )
    db.add(db_item)
    db.commit()
    db.refresh(db_item)
    logger.info("Grade item created: %s / %s (weight=%s, max=%s)", course.name, db_item.name, db_item.weight, db_item.max_score)
    return {
        "success": True,
        "data": GradeItem.model_validate(db_item),
        "message": "성적 항목이 추가되었습니다",
    }


# ==========================================================
# [2단계] 동적 라우터
# ==========================================================

# ✅ [READ] 성적 항목 상세 (학번순 성적 목록 + 통계 + 등급 분포)
@router.get("/{item_id}")
def read_grade_item(item_id: int, db: Session = Depends(get_db)):
    item = get_grade_item_or_404(db, item_id)
    grades = (
        db.query(GradeModel)
        .options(selectinload(GradeModel.student))
        .join(StudentModel, GradeModel.student_id == StudentModel.id)
        .filter(GradeModel.grade_item_id == item.id)
        .order_by(StudentModel.student_id)
        .all()
    )
    scores = [g.score for g in grades]

    detail = GradeItemDetail(
        **GradeItem.model_validate(item).model_dump(),
        course_name=item.course.name,
        grades=[GradeItemGrade.model_validate(g) for g in grades],
        statistics=GradeItemStatistics(**item_statistics(scores)),
        distribution=grade_distribution(scores, item.max_score),
    )
    return {"success": True, "data": detail}


# ✅ [DELETE] 성적 항목 삭제 (등록된 성적도 함께 삭제, 삭제 건수 반환)
@router.delete("/{item_id}")
def delete_grade_item(item_id: int, db: Session = Depends(get_db)):
    item = get_grade_item_or_404(db, item_id)
    deleted_grades = db.query(GradeModel).filter(GradeModel.grade_item_id == item.id).count()
    item_name, course_name = item.name, item.course.name

    db.delete(item)
    db.commit()
    logger.info("Grade item deleted: %s / %s (grades=%d)", course_name, item_name, deleted_grades)
    return {
        "success": True,
        "data": {"gradeItemId": item_id, "deletedGradesCount": deleted_grades, "courseName": course_name},
        "message": f"성적 항목 「{item_name}」이(가) 삭제되었습니다",
    }


# ==========================================================
# [3단계] 엑셀 내보내기
# ==========================================================

# ✅ [EXPORT] 학교 성적 템플릿에 점수를 채워 xlsx로 반환
# - multipart 필드명: template
# - 응답 헤더: X-Updated-Count, X-Not-Found-Count, X-Not-Found-Students(base64)
@router.post("/{item_id}/export")
async def export_grade_item(item_id: int, template: UploadFile = File(None), db: Session = Depends(get_db)):
    if template is None:
        raise ValidationError("템플릿 파일을 업로드해 주세요")

    max_bytes = settings.MAX_UPLOAD_MB * 1024 * 1024
    # 크기를 알 수 있으면 읽기 전에 거름
    if template.size is not None and template.size > max_bytes:
        raise ValidationError(f"파일 크기는 {settings.MAX_UPLOAD_MB}MB를 넘을 수 없습니다")

    content = await template.read()
    if len(content) > max_bytes:
        raise ValidationError(f"파일 크기는 {settings.MAX_UPLOAD_MB}MB를 넘을 수 없습니다")

    rows, sheet_title = spreadsheet_service.read_table(content, template.filename)
    # 학번 열이 없으면 여기서 400 (앞 5행 포함)
    spreadsheet_service.find_header(rows, settings.HEADER_SCAN_ROWS)

    item = get_grade_item_or_404(db, item_id)
    score_map = {
        student_id: score
        for student_id, score in (
            db.query(StudentModel.student_id, GradeModel.score)
            .join(GradeModel, GradeModel.student_id == StudentModel.id)
            .filter(GradeModel.grade_item_id == item.id)
            .all()
        )
    }

    result = spreadsheet_service.merge_scores(rows, score_map, item.name, settings.HEADER_SCAN_ROWS)
    body = spreadsheet_service.write_workbook(result["rows"], sheet_title)
    filename = spreadsheet_service.export_filename(item.course.name, item.name)

    logger.info(
        "Grade export: %s / %s updated=%d not_found=%d",
        item.course.name, item.name, result["updated_count"], len(result["not_found"]),
    )
    quoted = quote(filename)
    return Response(
        content=body,
        media_type=spreadsheet_service.XLSX_MEDIA_TYPE,
        headers={
            "Content-Disposition": f"attachment; filename=\"{quoted}\"; filename*=UTF-8''{quoted}",
            "X-Updated-Count": str(result["updated_count"]),
            "X-Not-Found-Count": str(len(result["not_found"])),
            "X-Not-Found-Students": spreadsheet_service.encode_id_list(result["not_found"]),
        },
    )
