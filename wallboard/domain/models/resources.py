from __future__ import annotations

from enum import StrEnum


class WatchedResource(StrEnum):
    JOBS = "jobs"
    TOURS = "tours"
    JOB_ASSIGNMENTS = "job_assignments"
    JOB_DEPARTMENTS = "job_departments"
    JOB_DOCUMENTS = "job_documents"
    TIMESHEETS = "timesheets"
    ANNOUNCEMENTS = "announcements"
    LOGISTICS_EVENTS = "logistics_events"
    LOGISTICS_EVENT_DEPARTMENTS = "logistics_event_departments"
    PROFILES = "profiles"
    LOCATIONS = "locations"


WATCHED_RESOURCES: tuple[WatchedResource, ...] = tuple(WatchedResource)
