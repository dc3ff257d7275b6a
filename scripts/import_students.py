"""
학생 명단(csv/xlsx) → 과목 학생 테이블 일괄 등록

    python -m scripts.import_students --course "3D電腦繪圖" --file data/students_a.xlsx --class A

- 학번 헤더 행은 성적 내보내기와 같은 규칙으로 찾음 (學號 / Student ID / Student No ...)
- 이름 열은 헤더 행에서 姓名 / name 으로 찾음
- 중간에 반복되는 헤더 행, 학번/이름이 빈 행은 건너뜀
- 이미 같은 과목에 있는 학번은 건너뛰고 결과에 표시
"""

import argparse
import re
import sys
from pathlib import Path

from sqlalchemy.orm import Session

from config.settings import settings
from database.db import Database
from models.courses import Course as CourseModel
from models.students import Student as StudentModel
from services.spreadsheet_service import REPEATED_HEADER, cell_text, find_header, read_table
from utils.exceptions import ValidationError

NAME_HEADER = re.compile(r"^(姓名|name|chinese\s*name|이름)$", re.IGNORECASE)
EMAIL_HEADER = re.compile(r"e-?mail|信箱", re.IGNORECASE)


def _find_column(header, pattern):
    for index, value in enumerate(header):
        if pattern.search(cell_text(value)):
            return index
    return None


def _cell(row, index):
    if index is None or index >= len(row):
        return ""
    return cell_text(row[index])


def parse_roster(rows):
    """명단 행 → [{"student_id", "name", "email"}]"""
    header_row, id_col = find_header(rows, settings.HEADER_SCAN_ROWS)
    header = rows[header_row]
    name_col = _find_column(header, NAME_HEADER)
    if name_col is None:
        raise ValidationError("명단에서 이름 열을 찾을 수 없습니다")
    email_col = _find_column(header, EMAIL_HEADER)

    roster = []
    for row in rows[header_row + 1:]:
        if not row:
            continue
        student_id, name = _cell(row, id_col), _cell(row, name_col)
        if not student_id or not name:
            continue
        if REPEATED_HEADER.match(student_id) or NAME_HEADER.match(name):
            continue
        roster.append({"student_id": student_id, "name": name, "email": _cell(row, email_col) or None})
    return roster


def import_students(db: Session, course_name: str, roster, class_name: str):
    course = db.query(CourseModel).filter(CourseModel.name == course_name).first()
    if course is None:
        raise ValidationError(f"과목을 찾을 수 없습니다: {course_name}")

    existing = {
        sid for (sid,) in db.query(StudentModel.student_id).filter(StudentModel.course_id == course.id).all()
    }
    created, skipped = 0, []
    for entry in roster:
        if entry["student_id"] in existing:
            skipped.append(entry["student_id"])
            continue
        db.add(StudentModel(course_id=course.id, class_name=class_name, **entry))
        existing.add(entry["student_id"])
        created += 1

    db.commit()
    return created, skipped


def main(argv=None):
    parser = argparse.ArgumentParser(description="학생 명단 일괄 등록")
    parser.add_argument("--course", required=True, help="과목명")
    parser.add_argument("--file", required=True, help="명단 파일 (.csv / .xlsx)")
    parser.add_argument("--class", dest="class_name", default=settings.DEFAULT_STUDENT_CLASS, help="반 (기본 A)")
    args = parser.parse_args(argv)

    path = Path(args.file)
    database = Database(settings.DB_URL, echo=settings.DB_ECHO)
    db = database.session()
    try:
        rows, _ = read_table(path.read_bytes(), path.name)
        roster = parse_roster(rows)
        print(f"명단 {len(roster)}명 확인")
        created, skipped = import_students(db, args.course, roster, args.class_name)
    except ValidationError as e:
        print(f"❌ 등록 실패: {e.message}" + (f" ({e.details})" if e.details else ""))
        return 1
    finally:
        db.close()
        database.dispose()

    print("\n=== 등록 결과 ===")
    print(f"성공: {created}명")
    print(f"중복으로 건너뜀: {len(skipped)}명")
    for sid in skipped:
        print(f"  - {sid}")
    print("✅ 학생 명단 → DB 등록 완료")
    return 0


if __name__ == "__main__":
    sys.exit(main())
