import os
from pathlib import Path
import tempfile

# Isolated lightweight DB shared by the API tests; must be set before the app is imported.
DB_PATH = Path(tempfile.gettempdir()) / "servicehub_test_api.db"
if DB_PATH.exists():
    DB_PATH.unlink()

os.environ.setdefault("DATABASE_URL", f"sqlite+pysqlite:///{DB_PATH}")
os.environ.setdefault("AUTO_CREATE_DB", "true")
os.environ.setdefault("AUTO_RUN_MIGRATIONS", "false")
os.environ.setdefault("AUTO_SEED_ADMIN_USER", "false")
os.environ.setdefault("ALLOW_FIRST_ADMIN", "false")
os.environ.setdefault("SERVICEHUB_ENV", "dev")
os.environ.setdefault("SERVICEHUB_JWT_SECRET", "test-jwt-secret-strong-value-123456")
os.environ.setdefault("SERVICEHUB_PASSWORD_HASH_ROUNDS", "1000")
