"""
utils/exceptions.py

- 라우터/서비스에서 raise 하면 middlewares/error_handler.py가
  {"error": ..., "details": ...} JSON으로 바꿔서 내려줍니다.
- 400: 입력값 누락/범위 오류, 중복(유일성 위반)
- 404: 참조 대상 없음
- 500: 저장소/파싱 등 예상하지 못한 오류
"""

from typing import Any, Dict, Optional


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None, extra: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details
        self.extra = extra or {}

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        body.update(self.extra)
        return body


class ValidationError(AppError):
    """필수값 누락, 숫자 범위 위반"""
    status_code = 400


class NotFoundError(AppError):
    """참조한 과목/학생/분조/성적 항목이 없음"""
    status_code = 404


class ConflictError(AppError):
    """복합 유일키 위반. field에 충돌한 필드명을 담습니다."""
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field
        if field:
            self.extra.setdefault("field", field)


class UnexpectedError(AppError):
    status_code = 500
