import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.settings import Settings, settings as default_settings
from database.db import Database

# ✅ 미들웨어 임포트
from middlewares.timing import TimingMiddleware
from middlewares.error_handler import add_error_handlers

# ✅ 라우터 임포트
from routers import courses, students, groups, grade_items, grades

logger = logging.getLogger(__name__)


def configure_logging(level: str):
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    # HTTP/업로드 라이브러리 디버그 로그 비활성화
    for noisy in ("httpcore", "httpx", "multipart", "python_multipart"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_TITLE,
        description=settings.APP_DESCRIPTION,
        version=settings.APP_VERSION,
    )

    # ✅ 저장소 핸들: 앱마다 하나, 종료 시 dispose
    app.state.db = database or Database(settings.DB_URL, echo=settings.DB_ECHO)

    @app.on_event("startup")
    def _create_tables():
        app.state.db.create_all()
        logger.info("Database ready: %s", app.state.db.engine.url.render_as_string(hide_password=True))

    @app.on_event("shutdown")
    def _dispose_database():
        app.state.db.dispose()

    # ✅ CORS 설정 (프론트엔드 연동)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition", "X-Updated-Count", "X-Not-Found-Count", "X-Not-Found-Students"],
    )

    # ✅ 요청 지연 측정 미들웨어 (응답 헤더 X-Latency-Ms 추가)
    app.add_middleware(TimingMiddleware, log_requests=settings.REQUEST_LOG)

    # ✅ 전역 에러 핸들러 등록 ({"error", "details", "stack"} JSON 포맷)
    add_error_handlers(app, show_stack=settings.ENV == "dev")

    # ✅ API 프리픽스 라우터 등록
    app.include_router(courses.router,     prefix=settings.API_PREFIX)
    app.include_router(students.router,    prefix=settings.API_PREFIX)
    app.include_router(groups.router,      prefix=settings.API_PREFIX)
    app.include_router(grade_items.router, prefix=settings.API_PREFIX)
    app.include_router(grades.router,      prefix=settings.API_PREFIX)

    # ✅ 헬스체크 엔드포인트
    @app.get("/health")
    def health_check():
        return {"status": "ok", "message": "API is running"}

    # ✅ 루트 엔드포인트
    @app.get("/")
    def root():
        return {"message": f"{settings.APP_TITLE} - 과목별 학생/분조/성적 관리"}

    return app


app = create_app()
