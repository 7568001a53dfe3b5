"""Google Calendar deep links for interview result reminders."""

from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import urlencode

from .schemas import Status

CALENDAR_URL = "https://calendar.google.com/calendar/render"
DEFAULT_DURATION = timedelta(hours=1)


def _format(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def parse_result_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        moment = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def build_google_calendar_url(
    title: str,
    start: datetime,
    end: Optional[datetime] = None,
    description: str = "",
) -> str:
    end = end or start + DEFAULT_DURATION
    params = {
        "action": "TEMPLATE",
        "text": title,
        "dates": f"{_format(start)}/{_format(end)}",
        "details": description,
    }
    return f"{CALENDAR_URL}?{urlencode(params)}"


def result_reminder_url(job) -> Optional[str]:
    """Calendar link for the expected interview result, if the job has one."""
    if job.status != Status.INTERVIEW_SCHEDULED.value:
        return None
    start = parse_result_date(job.result_date)
    if start is None:
        return None
    return build_google_calendar_url(
        title=f"Interview Result - {job.company_name}",
        start=start,
        description=f"Expected result announcement for {job.interview_round or 'interview'} at {job.company_name}",
    )


def next_upcoming_interview(jobs, now: datetime):
    """The interview-scheduled job with the nearest future result date."""
    upcoming = []
    for job in jobs:
        if job.status != Status.INTERVIEW_SCHEDULED.value:
            continue
        moment = parse_result_date(job.result_date)
        if moment is not None and moment > now:
            upcoming.append((moment, job.id, job))
    if not upcoming:
        return None
    return min(upcoming, key=lambda item: (item[0], item[1]))[2]
