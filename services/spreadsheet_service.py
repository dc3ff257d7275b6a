"""
services/spreadsheet_service.py

학교에서 내려받은 성적 템플릿(xls/xlsx/csv)에 저장된 점수를 채워 다시 xlsx로 돌려주는 로직.

1) 앞쪽 몇 행(기본 10행)에서 학번 헤더(學號 / Student ID / Student No / No ...)가 있는 행을 찾음
2) 그 헤더 행에서 점수 열(成績 / score / 分數 / grade)을 찾고, 없으면 항목 이름으로 새 열 추가
3) 헤더 다음 행부터 학번을 읽어 점수를 채움. 점수가 없는 학번은 not_found에 모음
4) 단일 시트 xlsx로 직렬화
"""

import base64
import csv
import io
import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import xlrd
from openpyxl import Workbook, load_workbook

from utils.exceptions import ValidationError

# 학번 헤더: 정확히 일치하거나, 이 토큰들로 시작
STUDENT_ID_EXACT = re.compile(r"^(學號|学号|學生編號|studentid|student\s*id|student\s*no|studentno|stu\s*no|no)$", re.IGNORECASE)
STUDENT_ID_PREFIX = re.compile(r"^(學號|学号|student\s*no|student\s*id|studentid)", re.IGNORECASE)

# 데이터 중간에 반복되는 헤더 행 (페이지마다 헤더가 다시 찍힌 템플릿)
REPEATED_HEADER = re.compile(r"^(學號|学号|student\s*no|student\s*id|studentid|姓名|name|chinese\s*name)$", re.IGNORECASE)

SCORE_HEADER = re.compile(r"成績|score|分數|grade", re.IGNORECASE)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
DEFAULT_SHEET_TITLE = "Sheet1"

# 구형 엑셀(.xls, BIFF) 파일의 OLE2 시그니처
OLE2_SIGNATURE = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


def cell_text(value: Any) -> str:
    if value is None:
        return ""
    # 엑셀이 숫자 학번을 11012345.0 처럼 float로 주는 경우
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _normalize(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _read_xls(content: bytes) -> Tuple[List[List[Any]], str]:
    book = xlrd.open_workbook(file_contents=content)
    sheet = book.sheet_by_index(0)
    rows = []
    for row_index in range(sheet.nrows):
        row = []
        for cell in sheet.row(row_index):
            if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
                row.append(None)
            else:
                row.append(_normalize(cell.value))
        rows.append(row)
    return rows, sheet.name


def read_table(content: bytes, filename: Optional[str] = None) -> Tuple[List[List[Any]], str]:
    """업로드 파일 → (행 목록, 시트 이름). csv는 표준 csv 모듈, .xls는 xlrd, 나머지는 openpyxl."""
    if not content:
        raise ValidationError("템플릿 파일이 비어 있습니다")

    name = (filename or "").lower()
    try:
        if name.endswith(".csv"):
            text = content.decode("utf-8-sig")
            rows = [list(row) for row in csv.reader(io.StringIO(text))]
            title = DEFAULT_SHEET_TITLE
        elif name.endswith(".xls") or content.startswith(OLE2_SIGNATURE):
            rows, title = _read_xls(content)
        else:
            workbook = load_workbook(io.BytesIO(content), data_only=True)
            sheet = workbook.worksheets[0]
            title = sheet.title
            rows = [[_normalize(v) for v in row] for row in sheet.iter_rows(values_only=True)]
            workbook.close()
    except ValidationError:
        raise
    except Exception as e:
        raise ValidationError("템플릿 파일을 읽을 수 없습니다", details=str(e))

    # 뒤쪽의 완전히 빈 행은 버림
    while rows and all(cell_text(v) == "" for v in rows[-1]):
        rows.pop()
    if not rows:
        raise ValidationError("템플릿 파일이 비어 있습니다")
    return rows, title


def is_student_id_header(value: Any) -> bool:
    text = cell_text(value)
    return bool(STUDENT_ID_EXACT.match(text) or STUDENT_ID_PREFIX.match(text))


def find_header(rows: List[List[Any]], scan_rows: int = 10) -> Tuple[int, int]:
    """(헤더 행 index, 학번 열 index). 못 찾으면 앞 5행을 같이 돌려주며 ValidationError."""
    for row_index, row in enumerate(rows[:scan_rows]):
        if not row:
            continue
        for col_index, value in enumerate(row):
            if is_student_id_header(value):
                return row_index, col_index

    raise ValidationError(
        "템플릿에서 학번 열을 찾을 수 없습니다",
        details="템플릿에 「學號」, 「Student NO」 또는 「StudentID」 열이 있는지 확인해 주세요",
        extra={"foundRows": [[cell_text(v) for v in row] for row in rows[:5]]},
    )


def find_score_column(header: List[Any]) -> Optional[int]:
    for index, value in enumerate(header):
        if SCORE_HEADER.search(cell_text(value)):
            return index
    return None


def merge_scores(
    rows: List[List[Any]],
    score_map: Dict[str, float],
    column_title: str,
    scan_rows: int = 10,
) -> Dict[str, Any]:
    """
    score_map: {학번: 점수}. rows는 복사해서 다루므로 원본은 바뀌지 않음.
    반환: {"rows", "header_row", "id_column", "score_column", "updated_count", "not_found"}
    """
    rows = [list(row) if row else [] for row in rows]
    header_row, id_column = find_header(rows, scan_rows)

    header = rows[header_row]
    score_column = find_score_column(header)
    if score_column is None:
        score_column = len(header)
        header.append(column_title)

    updated_count = 0
    not_found: List[str] = []
    for row in rows[header_row + 1:]:
        if not row:
            continue
        student_id = cell_text(row[id_column]) if id_column < len(row) else ""
        if REPEATED_HEADER.match(student_id):
            continue

        if student_id and student_id in score_map:
            while len(row) <= score_column:
                row.append("")
            row[score_column] = score_map[student_id]
            updated_count += 1
        elif student_id:
            not_found.append(student_id)

    return {
        "rows": rows,
        "header_row": header_row,
        "id_column": id_column,
        "score_column": score_column,
        "updated_count": updated_count,
        "not_found": not_found,
    }


def write_workbook(rows: List[List[Any]], sheet_title: str = DEFAULT_SHEET_TITLE) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = (sheet_title or DEFAULT_SHEET_TITLE)[:31]
    for row in rows:
        sheet.append([None if v == "" else v for v in row])

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def export_filename(course_name: str, item_name: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    timestamp = re.sub(r"[:.]", "-", now.isoformat(timespec="milliseconds"))
    return f"{course_name}_{item_name}_{timestamp}.xlsx"


def encode_id_list(ids: List[str]) -> str:
    """헤더로 보낼 학번 목록 (비ASCII 학번이 있을 수 있어 base64)"""
    if not ids:
        return ""
    return base64.b64encode(",".join(ids).encode("utf-8")).decode("ascii")


def decode_id_list(value: str) -> List[str]:
    """X-Not-Found-Students 헤더를 받는 클라이언트(프론트엔드 등)에서 쓰는 encode_id_list의 역변환"""
    if not value:
        return []
    return base64.b64decode(value).decode("utf-8").split(",")
