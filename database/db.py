from sqlalchemy import create_engine, event         # SQLAlchemy 엔진 생성 도구
from sqlalchemy.orm import declarative_base          # 모델의 Base 클래스
from sqlalchemy.orm import Session, sessionmaker     # 세션 팩토리 함수
from sqlalchemy.pool import StaticPool

# ✅ 모델 정의 시 상속할 Base 클래스 (Declarative 방식 사용)
Base = declarative_base()


class Database:
    """
    엔진과 세션 팩토리를 함께 들고 있는 저장소 핸들.
    - 프로세스 시작 시 한 번 만들고(create_app / 스크립트 진입점), 종료 시 dispose() 합니다.
    - 요청마다 session()으로 새 세션을 열고, 사용한 쪽에서 닫습니다.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        kwargs = {"echo": echo}
        if url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            # 인메모리 SQLite는 커넥션마다 DB가 달라지므로 하나를 공유
            if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
                kwargs["poolclass"] = StaticPool
        self.engine = create_engine(url, **kwargs)

        if url.startswith("sqlite"):
            event.listen(self.engine, "connect", _enable_sqlite_fk)

        # ✅ 세션 팩토리: DB 연결에 사용할 세션 생성기 정의
        self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        load_models()

    def session(self) -> Session:
        return self._session_factory()

    def create_all(self):
        Base.metadata.create_all(bind=self.engine)

    def drop_all(self):
        Base.metadata.drop_all(bind=self.engine)

    def dispose(self):
        self.engine.dispose()


def load_models():
    # 관계(relationship) 문자열 참조가 풀리도록 모든 모델을 Base.metadata에 등록
    from models import courses, students, groups, grade_items, grades  # noqa: F401


def _enable_sqlite_fk(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
