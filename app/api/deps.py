from app.config import get_settings
from app.infrastructure.db.engine import build_engine, build_sessionmaker

settings = get_settings()

# Engine creation is lazy; in-memory mode never opens a connection
engine = build_engine(settings)
AsyncSessionLocal = build_sessionmaker(engine)
