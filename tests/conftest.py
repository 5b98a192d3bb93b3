import os
import tempfile

# Point the app at a throwaway SQLite file before anything imports app.db.base.
_DB_DIR = tempfile.mkdtemp(prefix="territory-run-tests-")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_DB_DIR, "test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest  # noqa: E402

from app.db.base import Base, SessionLocal, engine  # noqa: E402
from app.levels.models import LevelProgress, LevelMilestone  # noqa: E402

Base.metadata.create_all(bind=engine)


@pytest.fixture(autouse=True)
def _clean_tables():
    yield
    db = SessionLocal()
    try:
        db.query(LevelMilestone).delete()
        db.query(LevelProgress).delete()
        db.commit()
    finally:
        db.close()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
