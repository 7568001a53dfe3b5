"""Record store for job applications and users."""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import StorageFault, ValidationError
from .models import JobApplication, User
from .schemas import Status

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

NULLABLE_FIELDS = (
    "custom_source",
    "interview_round",
    "result_date",
    "resume_file_name",
    "resume_file_path",
    "notes",
)
PROTECTED_FIELDS = ("id", "created_at", "updated_at")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class JobApplicationStore:
    """Authoritative mapping from id to job application record.

    Every mutation commits before returning. Database errors are rolled back
    and surface as StorageFault.
    """

    def __init__(self, db: Session, clock: Clock = utcnow):
        self.db = db
        self.clock = clock

    def _commit(self, message: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(message)
            raise StorageFault(message) from e

    def list(self, status: Optional[str] = None, search: Optional[str] = None) -> List[JobApplication]:
        try:
            query = self.db.query(JobApplication)
            if status:
                query = query.filter(JobApplication.status == status)
            if search:
                pattern = f"%{escape_like(search.lower())}%"
                query = query.filter(
                    or_(
                        func.lower(JobApplication.company_name).like(pattern, escape="\\"),
                        func.lower(JobApplication.job_role).like(pattern, escape="\\"),
                    )
                )
            return query.order_by(JobApplication.created_at.desc(), JobApplication.id.asc()).all()
        except SQLAlchemyError as e:
            logger.exception("Store list failed")
            raise StorageFault("Failed to fetch job applications") from e

    def get(self, app_id: int) -> Optional[JobApplication]:
        try:
            return self.db.get(JobApplication, app_id)
        except SQLAlchemyError as e:
            logger.exception("Store get failed: id=%s", app_id)
            raise StorageFault("Failed to fetch job application") from e

    def count(self) -> int:
        try:
            return self.db.query(JobApplication).count()
        except SQLAlchemyError as e:
            raise StorageFault("Failed to count job applications") from e

    def create(self, fields: Mapping[str, Any]) -> JobApplication:
        data = {name: None for name in NULLABLE_FIELDS}
        data.update({k: v for k, v in fields.items() if k not in PROTECTED_FIELDS})
        now = self.clock()
        record = JobApplication(**data, created_at=now, updated_at=now)
        self.db.add(record)
        self._commit("Failed to create job application")
        self.db.refresh(record)
        logger.info("Job application created: id=%s company=%s", record.id, record.company_name)
        return record

    def update(self, app_id: int, fields: Mapping[str, Any]) -> Optional[JobApplication]:
        record = self.get(app_id)
        if record is None:
            return None

        for key, value in fields.items():
            if key in PROTECTED_FIELDS:
                continue
            setattr(record, key, value)
        record.updated_at = self.clock()

        self._commit("Failed to update job application")
        self.db.refresh(record)
        logger.info("Job application updated: id=%s fields=%s", app_id, sorted(fields))
        return record

    def delete(self, app_id: int) -> bool:
        record = self.get(app_id)
        if record is None:
            return False
        self.db.delete(record)
        self._commit("Failed to delete job application")
        logger.info("Job application deleted: id=%s", app_id)
        return True

    def stats(self) -> Dict[str, int]:
        try:
            rows = (
                self.db.query(JobApplication.status, func.count(JobApplication.id))
                .group_by(JobApplication.status)
                .all()
            )
        except SQLAlchemyError as e:
            logger.exception("Store stats failed")
            raise StorageFault("Failed to fetch job applications") from e

        counts = dict(rows)
        return {
            "total_applied": sum(counts.values()),
            "interviews": counts.get(Status.INTERVIEW_SCHEDULED.value, 0),
            "offers": counts.get(Status.OFFERED.value, 0),
            "rejected": counts.get(Status.REJECTED.value, 0),
        }

    # ---------- Users ----------

    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username).first()

    def create_user(self, username: str, password: str) -> User:
        if self.get_user_by_username(username) is not None:
            raise ValidationError(["username"], "Username already exists")
        user = User(username=username, password=password)
        self.db.add(user)
        self._commit("Failed to create user")
        self.db.refresh(user)
        return user
