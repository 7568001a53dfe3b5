import logging
from pathlib import Path
from typing import Optional, Tuple

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session

from .attachments import ResumeStore, StoredResume
from .calendar_links import next_upcoming_interview, result_reminder_url
from .config import Settings, setup_logging
from .database import Base, get_db, make_engine, make_session_factory
from .errors import JobTrackerError, NotFound, ValidationError
from .lifecycle import create_application, delete_application, resume_for_download, update_application
from .schemas import SOURCE_LABELS, STATUS_LABELS, JobApplicationResponse, Source, StatsResponse, Status
from .storage import Clock, JobApplicationStore, utcnow

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).parent
RESUME_FIELD = "resume"

templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))
templates.env.globals["calendar_url"] = result_reminder_url
templates.env.globals["status_labels"] = STATUS_LABELS
templates.env.globals["source_labels"] = SOURCE_LABELS

api = APIRouter(prefix="/api/job-applications")
pages = APIRouter()


# ---------- Dependencies ----------

def get_store(request: Request, db: Session = Depends(get_db)) -> JobApplicationStore:
    return JobApplicationStore(db, clock=request.app.state.clock)


def get_resumes(request: Request) -> ResumeStore:
    return request.app.state.resumes


async def read_payload(request: Request, resumes: ResumeStore) -> Tuple[dict, Optional[StoredResume]]:
    """Read a JSON or multipart body. A `resume` file part is stored right away."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise ValidationError([], "Request body is not valid JSON") from None
        if not isinstance(body, dict):
            raise ValidationError([], "Request body must be a JSON object")
        return body, None

    payload = {}
    upload = None
    async with request.form() as form:
        for key, value in form.multi_items():
            if isinstance(value, str):
                payload[key] = value
            elif key == RESUME_FIELD and value.filename:
                if upload is not None:
                    resumes.release(upload.key)
                upload = resumes.save(value.filename, value.content_type, value.file)
    return payload, upload


# ---------- API Endpoints ----------

@api.get("", response_model=list[JobApplicationResponse])
def list_job_applications(
    status: Optional[str] = None,
    q: Optional[str] = None,
    store: JobApplicationStore = Depends(get_store),
):
    return store.list(status=status, search=q)


@api.get("/stats", response_model=StatsResponse)
def job_application_stats(store: JobApplicationStore = Depends(get_store)):
    return store.stats()


@api.get("/{app_id}", response_model=JobApplicationResponse)
def get_job_application(app_id: int, store: JobApplicationStore = Depends(get_store)):
    job = store.get(app_id)
    if job is None:
        raise NotFound()
    return job


@api.post("", response_model=JobApplicationResponse, status_code=201)
async def create_job_application(
    request: Request,
    store: JobApplicationStore = Depends(get_store),
    resumes: ResumeStore = Depends(get_resumes),
):
    payload, upload = await read_payload(request, resumes)
    return create_application(store, resumes, payload, upload)


@api.patch("/{app_id}", response_model=JobApplicationResponse)
async def update_job_application(
    app_id: int,
    request: Request,
    store: JobApplicationStore = Depends(get_store),
    resumes: ResumeStore = Depends(get_resumes),
):
    payload, upload = await read_payload(request, resumes)
    return update_application(store, resumes, app_id, payload, upload)


@api.delete("/{app_id}", status_code=204)
def delete_job_application(
    app_id: int,
    store: JobApplicationStore = Depends(get_store),
    resumes: ResumeStore = Depends(get_resumes),
):
    delete_application(store, resumes, app_id)
    return Response(status_code=204)


@api.get("/{app_id}/resume")
def download_resume(
    app_id: int,
    store: JobApplicationStore = Depends(get_store),
    resumes: ResumeStore = Depends(get_resumes),
):
    path, file_name = resume_for_download(store, resumes, app_id)
    return FileResponse(path, media_type="application/pdf", filename=file_name)


# ---------- Dashboard HTML ----------

@pages.get("/", response_class=HTMLResponse)
def dashboard(
    request: Request,
    status: Optional[str] = None,
    q: Optional[str] = None,
    store: JobApplicationStore = Depends(get_store),
):
    all_jobs = store.list()
    jobs = store.list(status=status, search=q) if (status or q) else all_jobs
    upcoming = next_upcoming_interview(all_jobs, request.app.state.clock())

    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "jobs": jobs,
            "stats": store.stats(),
            "statuses": [s.value for s in Status],
            "active_status": status or "all",
            "search": q or "",
            "upcoming": upcoming,
            "total": len(all_jobs),
        },
    )


def render_job_form(request: Request, job=None):
    if job is None:
        context = {
            "heading": "Add Job Application",
            "submit_url": api.prefix,
            "submit_method": "POST",
            "submit_label": "Save Application",
        }
    else:
        context = {
            "heading": f"Edit {job.job_role} at {job.company_name}",
            "submit_url": f"{api.prefix}/{job.id}",
            "submit_method": "PATCH",
            "submit_label": "Update Application",
        }
    context.update(
        job=job,
        sources=[s.value for s in Source],
        statuses=[s.value for s in Status],
    )
    return templates.TemplateResponse(request, "job_form.html", context)


@pages.get("/add", response_class=HTMLResponse)
def add_job_page(request: Request):
    return render_job_form(request)


@pages.get("/edit/{app_id}", response_class=HTMLResponse)
def edit_job_page(request: Request, app_id: int, store: JobApplicationStore = Depends(get_store)):
    job = store.get(app_id)
    if job is None:
        raise NotFound()
    return render_job_form(request, job)

# ---------- App ----------

async def handle_tracker_error(request: Request, exc: JobTrackerError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception("Unhandled error: %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


def create_app(settings: Optional[Settings] = None, clock: Optional[Clock] = None) -> FastAPI:
    settings = settings or Settings.from_env()

    engine = make_engine(settings.database_url)
    Base.metadata.create_all(bind=engine)

    app = FastAPI(title="Job Application Tracker")
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.resumes = ResumeStore(settings.upload_dir, settings.max_resume_bytes)
    app.state.clock = clock or utcnow

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(JobTrackerError, handle_tracker_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")
    app.include_router(api)
    app.include_router(pages)
    return app


def run() -> None:
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    logger.info("Starting job tracker: database=%s uploads=%s", settings.database_url, settings.upload_dir)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
