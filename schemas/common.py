"""
schemas/common.py

- 프로젝트 전반에서 재사용할 공용 스키마 모음
- Pydantic v2 기준
- 포함 내용:
  1) 요청/응답 공통 베이스: CamelModel (JSON은 camelCase, 파이썬은 snake_case)
  2) 에러 응답 표준: ErrorResponse
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# =========================================================
# 1) 공통 베이스
# =========================================================

class CamelModel(BaseModel):
    """
    프론트와 주고받는 JSON 키는 camelCase(courseId, maxScore ...)로 통일.
    - 요청: camelCase/snake_case 둘 다 허용 (populate_by_name)
    - 응답: FastAPI가 alias(camelCase)로 직렬화
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )


# =========================================================
# 2) 에러 응답 표준
# =========================================================

class ErrorResponse(BaseModel):
    """
    전역 에러 핸들러(middlewares/error_handler.py)가 내려주는 에러 응답
    - stack은 ENV=dev 일 때만 포함
    """
    error: str = Field(..., description="사람이 읽을 수 있는 에러 메시지")
    details: Optional[str] = Field(default=None, description="원인 상세")
    stack: Optional[str] = Field(default=None, description="스택 트레이스 (개발 환경 전용)")

    model_config = ConfigDict(extra="allow")
