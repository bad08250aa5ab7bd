from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from config import settings


_IS_SQLITE = settings.DATABASE_URL.startswith("sqlite")

engine = create_engine(
    settings.DATABASE_URL,
    connect_args={"check_same_thread": False} if _IS_SQLITE else {},
    echo=False,
)


if _IS_SQLITE:
    # WAL lets the change-feed readers and the write-through worker overlap.
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


def run_startup_migrations() -> None:
    """Apply lightweight schema fixes for existing SQLite databases."""
    inspector = inspect(engine)

    def _table_columns(table_name: str) -> set[str]:
        try:
            return {col["name"] for col in inspector.get_columns(table_name)}
        except Exception:
            return set()

    smoking_date_columns = _table_columns("smoking_dates")
    if not smoking_date_columns:
        # Table may not exist yet on first boot.
        return

    with engine.begin() as conn:
        if "updated_at" not in smoking_date_columns:
            conn.execute(text("ALTER TABLE smoking_dates ADD COLUMN updated_at DATETIME"))
        # Rows written by older clients may carry NULL flags.
        conn.execute(
            text("UPDATE smoking_dates SET checked = :unchecked WHERE checked IS NULL"),
            {"unchecked": False},
        )
