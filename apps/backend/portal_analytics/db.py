# apps/backend/portal_analytics/db.py
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from portal_analytics.core.config import settings


def normalize_database_url(raw: str) -> str:
  url = (raw or "").strip()
  # Heroku / Supabase style URLs
  if url.startswith("postgres://"):
    url = url.replace("postgres://", "postgresql://", 1)
  if url.startswith("postgresql://"):
    url = url.replace("postgresql://", "postgresql+psycopg2://", 1)
  return url


DATABASE_URL = normalize_database_url(settings.database_url)

if not DATABASE_URL:
  # Fail fast: better to know immediately in logs
  raise RuntimeError("DATABASE_URL is not set")

engine_kwargs = {"pool_pre_ping": True, "echo": settings.sql_echo}

if DATABASE_URL.startswith("sqlite"):
  engine_kwargs["connect_args"] = {"check_same_thread": False}
else:
  engine_kwargs["pool_size"] = settings.db_pool_size
  engine_kwargs["max_overflow"] = settings.db_max_overflow

engine = create_engine(DATABASE_URL, **engine_kwargs)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
  db = SessionLocal()
  try:
    yield db
  finally:
    db.close()
