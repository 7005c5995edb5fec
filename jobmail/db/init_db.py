from jobmail.db.session import engine
from jobmail.db.base import Base
import jobmail.db.models  # noqa: F401  registers every model on Base.metadata


def init_db():
    """Create any missing tables (used when migrations are not run)."""
    Base.metadata.create_all(bind=engine)
