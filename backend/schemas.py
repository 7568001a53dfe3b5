from datetime import datetime
from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, StringConstraints, field_validator
from pydantic.alias_generators import to_camel


class Source(str, Enum):
    LINKEDIN = "linkedin"
    NAUKRI = "naukri"
    COMPANY_WEBSITE = "company-website"
    GOOGLE_JOBS = "google-jobs"
    OTHERS = "others"


class Status(str, Enum):
    APPLIED = "applied"
    INTERVIEW_SCHEDULED = "interview-scheduled"
    REJECTED = "rejected"
    OFFERED = "offered"


STATUS_LABELS = {
    Status.APPLIED.value: "Applied",
    Status.INTERVIEW_SCHEDULED.value: "Interview Scheduled",
    Status.OFFERED.value: "Offered",
    Status.REJECTED.value: "Rejected",
}

SOURCE_LABELS = {
    Source.LINKEDIN.value: "LinkedIn",
    Source.NAUKRI.value: "Naukri",
    Source.COMPANY_WEBSITE.value: "Company Website",
    Source.GOOGLE_JOBS.value: "Google Jobs",
    Source.OTHERS.value: "Others",
}

REQUIRED_FIELDS = ("company_name", "job_role", "date_applied", "source", "status")
OPTIONAL_TEXT_FIELDS = ("custom_source", "interview_round", "result_date", "notes")

RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# ---------- Pydantic Schemas ----------

class JobApplicationCreate(CamelModel):
    company_name: RequiredText
    job_role: RequiredText
    date_applied: RequiredText
    source: Source
    custom_source: Optional[str] = None
    status: Status
    interview_round: Optional[str] = None
    result_date: Optional[str] = None
    notes: Optional[str] = None

    @field_validator(*OPTIONAL_TEXT_FIELDS, mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class JobApplicationUpdate(CamelModel):
    company_name: Optional[RequiredText] = None
    job_role: Optional[RequiredText] = None
    date_applied: Optional[RequiredText] = None
    source: Optional[Source] = None
    custom_source: Optional[str] = None
    status: Optional[Status] = None
    interview_round: Optional[str] = None
    result_date: Optional[str] = None
    notes: Optional[str] = None

    @field_validator(*REQUIRED_FIELDS, mode="before")
    @classmethod
    def required_not_null(cls, value):
        # Only runs for supplied fields; omitted ones keep their stored value.
        if value is None:
            raise ValueError("Field cannot be cleared")
        return value

    @field_validator(*OPTIONAL_TEXT_FIELDS, mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class JobApplicationResponse(CamelModel):
    id: int
    company_name: str
    job_role: str
    date_applied: str
    source: str
    custom_source: Optional[str]
    status: str
    interview_round: Optional[str]
    result_date: Optional[str]
    resume_file_name: Optional[str]
    has_resume: bool
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StatsResponse(CamelModel):
    total_applied: int
    interviews: int
    offers: int
    rejected: int
