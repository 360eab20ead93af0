from sqlalchemy import event
from sqlalchemy.engine import Engine

SQLITE_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def is_sqlite_url(url: str) -> bool:
    return url.startswith("sqlite://")


def sqlite_connect_args(url: str) -> dict:
    if not is_sqlite_url(url):
        return {}
    return {"check_same_thread": False, "timeout": 30}


def _pragmas_for(url: str) -> list[str]:
    # WAL is meaningless for in-memory databases
    pragmas = ["PRAGMA foreign_keys=ON", "PRAGMA busy_timeout=5000"]
    if url not in SQLITE_MEMORY_URLS:
        pragmas += ["PRAGMA journal_mode=WAL", "PRAGMA synchronous=NORMAL"]
    return pragmas


def register_sqlite_pragmas(engine: Engine) -> None:
    url = str(engine.url)
    if not is_sqlite_url(url):
        return
    pragmas = _pragmas_for(url)

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        for pragma in pragmas:
            cursor.execute(pragma)
        cursor.close()
