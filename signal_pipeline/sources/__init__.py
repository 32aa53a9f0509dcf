"""Sources: monitored URLs and the projects that own them."""

from signal_pipeline.sources.repository import ProjectsRepository, SourcesRepository
from signal_pipeline.sources.schemas import Project, Source

__all__ = [
    "Project",
    "ProjectsRepository",
    "Source",
    "SourcesRepository",
]
