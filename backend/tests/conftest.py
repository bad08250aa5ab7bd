from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Must run before anything imports config.settings.
_TEST_DATA_DIR = Path(tempfile.mkdtemp(prefix="smokefree-tests-"))
os.environ["ENVIRONMENT"] = "test"
os.environ["DATA_DIR"] = str(_TEST_DATA_DIR)
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DATA_DIR / 'smokefree-test.db'}"
os.environ["STORE_BACKEND"] = "remote"


@pytest.fixture
def clean_table():
    from db.database import SessionLocal
    from db.models import SmokingDate

    def _wipe():
        db = SessionLocal()
        try:
            db.query(SmokingDate).delete()
            db.commit()
        finally:
            db.close()

    _wipe()
    yield
    _wipe()
