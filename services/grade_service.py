import logging
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from models.courses import Course as CourseModel
from models.grade_items import GradeItem as GradeItemModel
from models.grades import Grade as GradeModel
from models.groups import Group as GroupModel
from models.groups import StudentGroup as StudentGroupModel
from models.students import Student as StudentModel
from services.grade_calculator import letter_grade, unfinished_groups, weighted_total
from utils.exceptions import NotFoundError, UnexpectedError, ValidationError

logger = logging.getLogger(__name__)


def get_course_or_404(db: Session, course_id: int) -> CourseModel:
    course = db.get(CourseModel, course_id)
    if course is None:
        raise NotFoundError("과목을 찾을 수 없습니다", details=f"courseId={course_id}")
    return course


def get_grade_item_or_404(db: Session, grade_item_id: int) -> GradeItemModel:
    item = db.get(GradeItemModel, grade_item_id)
    if item is None:
        raise NotFoundError("성적 항목을 찾을 수 없습니다", details=f"gradeItemId={grade_item_id}")
    return item


def check_score(score: float, item: GradeItemModel):
    if score is None:
        raise ValidationError("점수는 필수 입력 항목입니다")
    if score < 0:
        raise ValidationError("점수는 음수일 수 없습니다")
    if score > item.max_score:
        raise ValidationError(f"점수는 만점 {item.max_score:g}점을 넘을 수 없습니다")


def _upsert_statement(dialect_name: str, values: Dict):
    # 유일키 (student_id, grade_item_id) 충돌 시 점수만 덮어씀 → 동시 요청은 나중 쓰기가 남음
    if dialect_name in ("mysql", "mariadb"):
        stmt = mysql_insert(GradeModel).values(**values)
        return stmt.on_duplicate_key_update(score=stmt.inserted.score, updated_at=func.now())

    if dialect_name in ("sqlite", "postgresql"):
        insert = sqlite_insert if dialect_name == "sqlite" else postgresql_insert
        stmt = insert(GradeModel).values(**values)
        return stmt.on_conflict_do_update(
            index_elements=["student_id", "grade_item_id"],
            set_={"score": stmt.excluded.score, "updated_at": func.now()},
        )

    raise UnexpectedError("지원하지 않는 데이터베이스입니다", details=f"dialect={dialect_name}")


def upsert_grade(db: Session, student_id: int, grade_item_id: int, score: float) -> GradeModel:
    """(학생, 성적 항목) 키로 점수를 새로 만들거나 덮어씀 (DB upsert 한 문장). commit은 호출한 쪽에서."""
    values = {"student_id": student_id, "grade_item_id": grade_item_id, "score": float(score)}
    db.execute(_upsert_statement(db.get_bind().dialect.name, values))
    return (
        db.query(GradeModel)
        .populate_existing()
        .filter(GradeModel.student_id == student_id, GradeModel.grade_item_id == grade_item_id)
        .one()
    )


def record_grade(db: Session, student_id: int, grade_item_id: int, score: float) -> GradeModel:
    student = db.get(StudentModel, student_id)
    if student is None:
        raise NotFoundError("학생을 찾을 수 없습니다", details=f"studentId={student_id}")
    item = get_grade_item_or_404(db, grade_item_id)

    check_score(score, item)
    if student.course_id != item.course_id:
        raise ValidationError("학생과 성적 항목의 과목이 다릅니다")

    student_number, item_name = student.student_id, item.name
    try:
        grade = upsert_grade(db, student.id, item.id, score)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Grade write failed: student=%s item=%s", student_number, item_name)
        raise UnexpectedError("성적을 저장하지 못했습니다", details=str(e)) from e
    db.refresh(grade)
    logger.info("Grade recorded: student=%s item=%s score=%s", student.student_id, item.name, score)
    return grade


def score_group(db: Session, group_id: int, grade_item_id: int, score: float) -> Dict:
    """
    분조 구성원 전원에게 같은 점수를 한 트랜잭션으로 upsert.
    존재/범위 검사는 쓰기 전에 모두 끝내고, 쓰기 도중 실패하면 전부 rollback.
    """
    group = (
        db.query(GroupModel)
        .options(selectinload(GroupModel.student_groups))
        .filter(GroupModel.id == group_id)
        .first()
    )
    if group is None:
        raise NotFoundError("분조를 찾을 수 없습니다", details=f"groupId={group_id}")
    item = get_grade_item_or_404(db, grade_item_id)

    check_score(score, item)
    if not group.student_groups:
        raise ValidationError("이 분조에는 구성원이 없습니다")
    if group.course_id != item.course_id:
        raise ValidationError("분조와 성적 항목의 과목이 다릅니다")

    group_name, item_name = group.name, item.name
    try:
        grades = [upsert_grade(db, sg.student_id, item.id, score) for sg in group.student_groups]
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Group scoring rolled back: group=%s item=%s", group_name, item_name)
        raise UnexpectedError("분조 성적을 저장하지 못했습니다. 변경 사항은 모두 취소되었습니다", details=str(e)) from e

    logger.info("Group scored: group=%s item=%s members=%d score=%s", group.name, item.name, len(grades), score)
    return {"group": group, "grade_item": item, "grades": grades}


def course_grade_summary(db: Session, course_id: int) -> Dict:
    """과목 학생 전원의 항목별 점수와 가중 총점 (조회할 때마다 새로 계산)"""
    get_course_or_404(db, course_id)

    items = (
        db.query(GradeItemModel)
        .filter(GradeItemModel.course_id == course_id)
        .order_by(GradeItemModel.id)
        .all()
    )
    students = (
        db.query(StudentModel)
        .filter(StudentModel.course_id == course_id)
        .order_by(StudentModel.student_id)
        .all()
    )
    grades = (
        db.query(GradeModel)
        .join(StudentModel, GradeModel.student_id == StudentModel.id)
        .filter(StudentModel.course_id == course_id)
        .all()
    )

    scores_by_student: Dict[int, Dict[int, float]] = {s.id: {} for s in students}
    for grade in grades:
        if grade.student_id in scores_by_student:
            scores_by_student[grade.student_id][grade.grade_item_id] = grade.score

    rows = []
    for student in students:
        scores = scores_by_student[student.id]
        total = weighted_total(scores, items)
        rows.append({
            "student": student,
            "grades": scores,
            "total_score": total,
            "letter": letter_grade(total, 100),
        })

    return {"course_id": course_id, "grade_items": items, "students": rows}


def find_unfinished_groups(db: Session, course_id: int, grade_item_id: Optional[int] = None) -> List[GroupModel]:
    get_course_or_404(db, course_id)
    groups = (
        db.query(GroupModel)
        .options(selectinload(GroupModel.student_groups).selectinload(StudentGroupModel.student))
        .filter(GroupModel.course_id == course_id)
        .order_by(GroupModel.id)
        .all()
    )

    graded_ids = None
    if grade_item_id is not None:
        item = get_grade_item_or_404(db, grade_item_id)
        graded_ids = {
            student_id
            for (student_id,) in db.query(GradeModel.student_id).filter(GradeModel.grade_item_id == item.id).all()
        }
    return unfinished_groups(groups, graded_ids)
