from sqlalchemy import create_engine               # SQLAlchemy engine factory
from sqlalchemy.orm import declarative_base, sessionmaker

from config.settings import settings               # ✅ env-backed settings

# ✅ engine built from the configured DB URL (MySQL by default)
engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True)

# ✅ session factory used by the request dependencies and import scripts
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# ✅ declarative base for models/
Base = declarative_base()
