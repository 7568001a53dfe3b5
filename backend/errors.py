"""Error taxonomy shared by the store, the lifecycle rules and the HTTP layer."""

from typing import Iterable, Optional


class JobTrackerError(Exception):
    """Base class for errors reported back to the caller."""

    status_code = 500
    default_message = "Unexpected error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"message": self.message}


class ValidationError(JobTrackerError):
    """One or more payload fields are missing or invalid."""

    status_code = 400
    default_message = "Invalid data"

    def __init__(self, fields: Iterable[str], message: Optional[str] = None):
        self.fields = sorted(set(fields))
        if message is None:
            message = "Invalid or missing fields: " + ", ".join(self.fields)
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"message": self.message, "fields": self.fields}


class NotFound(JobTrackerError):
    status_code = 404
    default_message = "Job application not found"


class StaleAttachmentReference(JobTrackerError):
    """A record points at resume content that is no longer stored."""

    status_code = 404
    default_message = "Resume file not found on disk"


class StorageFault(JobTrackerError):
    status_code = 500
    default_message = "Storage failure"


class InvalidAttachment(JobTrackerError):
    status_code = 400
    default_message = "Only PDF files are allowed"


class AttachmentTooLarge(JobTrackerError):
    status_code = 413
    default_message = "Resume file is too large"
