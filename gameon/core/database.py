from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from gameon.core.config import settings

connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(settings.DATABASE_URL, connect_args=connect_args)
# Objects stay readable after commit; responses are serialized from them.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

Base = declarative_base()
