from datetime import timezone

from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.types import TypeDecorator

from .database import Base


class UTCDateTime(TypeDecorator):
    """Timestamps stored as UTC and read back timezone-aware.

    SQLite drops the offset, so naive values coming out are UTC.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class User(Base):
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    username = Column(String, nullable=False, unique=True)
    password = Column(String, nullable=False)


class JobApplication(Base):
    __tablename__ = "job_applications"
    # Ids must never be reused after a delete.
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    company_name = Column(String, nullable=False)
    job_role = Column(String, nullable=False)
    date_applied = Column(String, nullable=False)
    source = Column(String, nullable=False)
    custom_source = Column(String, nullable=True)
    status = Column(String, nullable=False)
    interview_round = Column(String, nullable=True)
    result_date = Column(String, nullable=True)
    resume_file_name = Column(String, nullable=True)
    resume_file_path = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, nullable=False)
    updated_at = Column(UTCDateTime, nullable=False)

    @property
    def has_resume(self) -> bool:
        return self.resume_file_path is not None
