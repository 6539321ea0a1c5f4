"""API routes module for the advisory service.

This module exports all API routers for registration in main.py.
"""

from cement_ops.api.routes.health import router as health_router
from cement_ops.api.routes.insights import router as insights_router
from cement_ops.api.routes.proposals import router as proposals_router
from cement_ops.api.routes.telemetry import router as telemetry_router


__all__ = [
    "health_router",
    "insights_router",
    "proposals_router",
    "telemetry_router",
]
