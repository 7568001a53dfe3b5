import io

import pytest

from backend.errors import NotFound, StaleAttachmentReference, ValidationError
from backend.lifecycle import (
    create_application,
    delete_application,
    resume_for_download,
    update_application,
)

from .conftest import PDF_BYTES, job_fields, stored_files


def save_pdf(resumes, name="cv.pdf", content=PDF_BYTES):
    return resumes.save(name, "application/pdf", io.BytesIO(content))


class TestCreateApplication:
    def test_creates_record_from_camel_case_payload(self, store, resumes):
        job = create_application(store, resumes, job_fields(notes="Referral"))

        assert job.id == 1
        assert job.company_name == "Acme"
        assert job.notes == "Referral"
        assert store.count() == 1

    def test_missing_company_name_is_rejected(self, store, resumes):
        payload = job_fields()
        del payload["companyName"]

        with pytest.raises(ValidationError) as excinfo:
            create_application(store, resumes, payload)

        assert "companyName" in excinfo.value.fields
        assert store.count() == 0

    def test_reports_every_offending_field(self, store, resumes):
        with pytest.raises(ValidationError) as excinfo:
            create_application(store, resumes, {"companyName": "  ", "source": "monster", "status": "ghosted"})

        assert excinfo.value.fields == ["companyName", "dateApplied", "jobRole", "source", "status"]

    def test_blank_optional_text_becomes_null(self, store, resumes):
        job = create_application(store, resumes, job_fields(interviewRound="", notes="   "))

        assert job.interview_round is None
        assert job.notes is None

    def test_others_source_requires_custom_source(self, store, resumes):
        with pytest.raises(ValidationError) as excinfo:
            create_application(store, resumes, job_fields(source="others"))

        assert excinfo.value.fields == ["customSource"]
        job = create_application(store, resumes, job_fields(source="others", customSource="Referral"))
        assert job.custom_source == "Referral"

    def test_resume_path_cannot_be_set_from_payload(self, store, resumes):
        job = create_application(
            store, resumes, job_fields(resumeFilePath="/etc/passwd", resumeFileName="x.pdf")
        )

        assert job.resume_file_path is None
        assert job.resume_file_name is None

    def test_associates_upload(self, store, resumes):
        upload = save_pdf(resumes, name="my resume.pdf")

        job = create_application(store, resumes, job_fields(), upload)

        assert job.resume_file_name == "my resume.pdf"
        assert job.resume_file_path == upload.key

    def test_rejected_create_releases_upload(self, store, resumes, upload_dir):
        upload = save_pdf(resumes)

        with pytest.raises(ValidationError):
            create_application(store, resumes, job_fields(status="unknown"), upload)

        assert stored_files(upload_dir) == []
        assert store.count() == 0


class TestUpdateApplication:
    def test_partial_update_validates_supplied_fields_only(self, store, resumes):
        job = create_application(store, resumes, job_fields())

        updated = update_application(
            store, resumes, job.id, {"status": "interview-scheduled", "interviewRound": "Technical"}
        )

        assert updated.status == "interview-scheduled"
        assert updated.interview_round == "Technical"
        assert updated.company_name == "Acme"

    def test_required_field_cannot_be_cleared(self, store, resumes):
        job = create_application(store, resumes, job_fields())

        with pytest.raises(ValidationError) as excinfo:
            update_application(store, resumes, job.id, {"companyName": None})

        assert excinfo.value.fields == ["companyName"]
        assert store.get(job.id).company_name == "Acme"

    def test_conditional_fields_checked_against_merged_record(self, store, resumes):
        job = create_application(store, resumes, job_fields(source="others", customSource="Meetup"))

        update_application(store, resumes, job.id, {"notes": "still fine"})
        with pytest.raises(ValidationError):
            update_application(store, resumes, job.id, {"customSource": ""})

    def test_missing_id_is_not_found_and_releases_upload(self, store, resumes, upload_dir):
        create_application(store, resumes, job_fields())
        upload = save_pdf(resumes)

        with pytest.raises(NotFound):
            update_application(store, resumes, 99, {"status": "offered"}, upload)

        assert store.count() == 1
        assert stored_files(upload_dir) == []

    def test_invalid_update_releases_upload_and_keeps_old_resume(self, store, resumes, upload_dir):
        old = save_pdf(resumes)
        job = create_application(store, resumes, job_fields(), old)
        new = save_pdf(resumes, name="new.pdf")

        with pytest.raises(ValidationError):
            update_application(store, resumes, job.id, {"status": "bogus"}, new)

        assert stored_files(upload_dir) == [old.key]
        assert store.get(job.id).resume_file_path == old.key

    def test_replacing_resume_releases_previous_file(self, store, resumes, upload_dir):
        old = save_pdf(resumes, content=PDF_BYTES + b"old")
        job = create_application(store, resumes, job_fields(), old)
        new = save_pdf(resumes, name="new.pdf", content=PDF_BYTES + b"new")

        updated = update_application(store, resumes, job.id, {}, new)

        assert updated.resume_file_path == new.key
        assert updated.resume_file_name == "new.pdf"
        assert stored_files(upload_dir) == [new.key]
        path, name = resume_for_download(store, resumes, job.id)
        assert path.read_bytes().endswith(b"new")
        assert name == "new.pdf"

    def test_update_without_upload_keeps_resume(self, store, resumes, upload_dir):
        upload = save_pdf(resumes)
        job = create_application(store, resumes, job_fields(), upload)

        update_application(store, resumes, job.id, {"notes": "called back"})

        assert store.get(job.id).resume_file_path == upload.key
        assert stored_files(upload_dir) == [upload.key]


class TestDeleteApplication:
    def test_removes_record_and_resume(self, store, resumes, upload_dir):
        upload = save_pdf(resumes)
        job = create_application(store, resumes, job_fields(), upload)

        delete_application(store, resumes, job.id)

        assert store.get(job.id) is None
        assert stored_files(upload_dir) == []
        with pytest.raises(NotFound):
            resume_for_download(store, resumes, job.id)

    def test_missing_id(self, store, resumes):
        with pytest.raises(NotFound):
            delete_application(store, resumes, 1)


class TestResumeForDownload:
    def test_no_attachment_is_not_found(self, store, resumes):
        job = create_application(store, resumes, job_fields())

        with pytest.raises(NotFound):
            resume_for_download(store, resumes, job.id)

    def test_missing_content_is_stale_reference(self, store, resumes):
        upload = save_pdf(resumes)
        job = create_application(store, resumes, job_fields(), upload)
        resumes.path_for(upload.key).unlink()

        with pytest.raises(StaleAttachmentReference):
            resume_for_download(store, resumes, job.id)
