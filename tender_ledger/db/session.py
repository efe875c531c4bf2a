from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from tender_ledger.core.config import settings

engine = create_engine(settings.get_database_url(), pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
