"""Services that orchestrate scraping and detection.

The Pipeline facade is imported from ``signal_pipeline.services.pipeline``.
"""

from signal_pipeline.services.scrape_service import (
    ScrapeService,
    ScrapeSummary,
    SourceScrapeResult,
)

__all__ = ["ScrapeService", "ScrapeSummary", "SourceScrapeResult"]
