"""Data models for the sources module."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Project:
    """A tracked project owning zero or more sources.

    ``last_refresh_at`` is not a stored column: repositories fill it from the
    most recent successful scrape across the project's sources.
    """

    id: str
    name: str = ""
    is_active: bool = True
    refresh_interval_hours: int = 4
    signal_instructions: str | None = None
    created_at: datetime | None = None
    last_refresh_at: datetime | None = None


@dataclass
class Source:
    """A monitored URL belonging to one project.

    ``source_type`` is the declared platform label as entered by the user
    (e.g. "twitter", "reddit", "news"); extraction resolves it to a
    SourceKind.
    """

    id: str
    project_id: str
    url: str
    name: str = ""
    source_type: str = "article"
    is_active: bool = True
    last_scraped_at: datetime | None = None
    created_at: datetime | None = None
