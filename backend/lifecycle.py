"""Rules applied around every job application mutation.

Payload validation, conditional fields and the resume attachment side
effects live here. A newly stored resume is released on every rejected
mutation, and a replaced or deleted record's resume is released only after
the record no longer points at it.
"""

import logging
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple, Type

import pydantic

from .attachments import DEFAULT_FILE_NAME, ResumeStore, StoredResume
from .errors import JobTrackerError, NotFound, StaleAttachmentReference, ValidationError
from .models import JobApplication
from .schemas import JobApplicationCreate, JobApplicationUpdate, Source
from .storage import JobApplicationStore

logger = logging.getLogger(__name__)


def _field_name(loc: tuple) -> str:
    return str(loc[0]) if loc else "payload"


def parse_payload(schema: Type[pydantic.BaseModel], payload: Mapping[str, Any]) -> dict:
    """Validate a payload and return only the supplied fields, by attribute name."""
    try:
        model = schema.model_validate(dict(payload))
    except pydantic.ValidationError as e:
        fields = [_field_name(err["loc"]) for err in e.errors()]
        raise ValidationError(fields) from e
    return model.model_dump(exclude_unset=True, mode="json")


def check_conditional_fields(source: Optional[str], custom_source: Optional[str]) -> None:
    if source == Source.OTHERS.value and not custom_source:
        raise ValidationError(["customSource"], "customSource is required when source is others")


def create_application(
    store: JobApplicationStore,
    resumes: ResumeStore,
    payload: Mapping[str, Any],
    upload: Optional[StoredResume] = None,
) -> JobApplication:
    try:
        fields = parse_payload(JobApplicationCreate, payload)
        check_conditional_fields(fields.get("source"), fields.get("custom_source"))
        if upload is not None:
            fields["resume_file_name"] = upload.file_name
            fields["resume_file_path"] = upload.key
        return store.create(fields)
    except JobTrackerError as e:
        if upload is not None:
            resumes.release(upload.key)
        logger.warning("Job application rejected: %s", e.message)
        raise


def update_application(
    store: JobApplicationStore,
    resumes: ResumeStore,
    app_id: int,
    payload: Mapping[str, Any],
    upload: Optional[StoredResume] = None,
) -> JobApplication:
    try:
        fields = parse_payload(JobApplicationUpdate, payload)
        existing = store.get(app_id)
        if existing is None:
            raise NotFound()

        check_conditional_fields(
            fields.get("source", existing.source),
            fields.get("custom_source", existing.custom_source),
        )

        previous_key = existing.resume_file_path
        if upload is not None:
            fields["resume_file_name"] = upload.file_name
            fields["resume_file_path"] = upload.key

        record = store.update(app_id, fields)
        if record is None:
            raise NotFound()
    except JobTrackerError as e:
        if upload is not None:
            resumes.release(upload.key)
        logger.warning("Job application update rejected: id=%s reason=%s", app_id, e.message)
        raise

    if upload is not None and previous_key and previous_key != upload.key:
        resumes.release(previous_key)
    return record


def delete_application(store: JobApplicationStore, resumes: ResumeStore, app_id: int) -> None:
    existing = store.get(app_id)
    if existing is None:
        raise NotFound()

    resume_key = existing.resume_file_path
    if not store.delete(app_id):
        raise NotFound()
    resumes.release(resume_key)


def resume_for_download(
    store: JobApplicationStore, resumes: ResumeStore, app_id: int
) -> Tuple[Path, str]:
    record = store.get(app_id)
    if record is None or not record.resume_file_path:
        raise NotFound("Resume file not found")

    if not resumes.exists(record.resume_file_path):
        logger.warning("Stale resume reference: id=%s key=%s", app_id, record.resume_file_path)
        raise StaleAttachmentReference()

    return resumes.path_for(record.resume_file_path), record.resume_file_name or DEFAULT_FILE_NAME
