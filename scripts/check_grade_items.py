"""
과목별 성적 항목 현황 출력

    python -m scripts.check_grade_items
"""

from sqlalchemy.orm import Session, selectinload

from config.settings import settings
from database.db import Database
from models.courses import Course as CourseModel
from models.grade_items import GradeItem as GradeItemModel


def report_lines(db: Session):
    courses = (
        db.query(CourseModel)
        .options(selectinload(CourseModel.grade_items))
        .order_by(CourseModel.id)
        .all()
    )
    if not courses:
        return ["❌ 데이터베이스에 과목이 없습니다"]

    lines = ["=== 성적 항목 분포 확인 ===", ""]
    for course in courses:
        lines.append(f"📚 과목: {course.name} (ID: {course.id})")
        lines.append(f"   과목 코드: {course.code or '없음'}")
        lines.append(f"   성적 항목 수: {len(course.grade_items)}")
        if course.grade_items:
            lines.append("   항목 목록:")
            for index, item in enumerate(course.grade_items, start=1):
                lines.append(f"     {index}. {item.name} (가중치: {item.weight * 100:.0f}%, 만점: {item.max_score:g})")
        else:
            lines.append("   ⚠️  아직 성적 항목이 없습니다")
        lines.append("")

    total_items = db.query(GradeItemModel).count()
    lines.append(f"📊 합계: 과목 {len(courses)}개, 성적 항목 {total_items}개")
    return lines


def main():
    database = Database(settings.DB_URL, echo=settings.DB_ECHO)
    db = database.session()
    try:
        for line in report_lines(db):
            print(line)
    finally:
        db.close()
        database.dispose()


if __name__ == "__main__":
    main()
