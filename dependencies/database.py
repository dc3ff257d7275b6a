from typing import Iterator

from fastapi import Request
from sqlalchemy.orm import Session


# ==========================================================
# [공통] DB 세션 관리
# - app.state.db(Database 핸들)에서 요청마다 세션을 열고, 응답 후 닫음
# ==========================================================
def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.db.session()
    try:
        yield db
    finally:
        db.close()
