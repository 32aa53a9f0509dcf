"""
FastAPI trigger service.

Provides REST endpoints for the pipeline entry points:
- POST /scrape - Run the source fetch orchestrator
- POST /refresh - Refresh every due project
- POST /projects/{id}/detect - Batch signal detection
- POST /projects/{id}/momentum - Momentum analysis
- GET /health, /health/pipeline - Service and pipeline health
- GET /ingestions/stuck - Pending ingestions past the stuck threshold
"""

from signal_pipeline.api.app import create_app

__all__ = ["create_app"]
