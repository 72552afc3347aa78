"""
API Routes - FastAPI endpoints for background job dispatch and status.

This module only handles HTTP concerns - all job logic lives in the
dispatcher, resolver and lister owned by the JobSystem.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from jobdispatch.errors import DispatchFailed, InvalidJobType, ListingFailed
from jobdispatch.system import JobSystem

logger = logging.getLogger(__name__)

JOBS_PATH = "/api/admin/background-jobs"


class DispatchRequest(BaseModel):
    """Body of a dispatch call."""
    jobType: Any = None
    params: Dict[str, Any] = Field(default_factory=dict)


def create_app(system: JobSystem) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        system: The job subsystem the endpoints operate on

    Returns:
        Configured FastAPI app instance
    """
    app = FastAPI(
        title="Background Jobs API",
        description="Dispatch statistics and export jobs and poll their status",
        version="1.0.0"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.job_system = system

    _register_routes(app, system)

    return app


def _register_routes(app: FastAPI, system: JobSystem):
    """Register all API routes."""

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "service": "Background Jobs API",
            "version": "1.0.0",
            "status": "running",
            "endpoints": {
                "health": "/health",
                "dispatch": f"POST {JOBS_PATH}",
                "list_jobs": f"GET {JOBS_PATH}",
                "job_status": f"GET {JOBS_PATH}/{{request_id}}",
                "clear_finished": f"DELETE {JOBS_PATH}/finished",
            }
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "queues": system.health(),
        }

    @app.post(JOBS_PATH)
    async def dispatch_job(request: DispatchRequest):
        """
        Submit a background job.

        The job is queued and a request id is returned immediately.
        Poll the request id to see whether the job went through.

        Args:
            request: jobType ("calculate-stats" or "export-data") and params

        Returns:
            requestId, jobId and the initial status
        """
        try:
            correlation = system.dispatcher.dispatch(request.jobType, request.params)
        except InvalidJobType:
            return JSONResponse(status_code=400, content={"error": "Invalid job type"})
        except DispatchFailed as e:
            return JSONResponse(
                status_code=500,
                content={"error": "Failed to create background job", "cause": str(e.cause)},
            )

        system.notify(correlation.job_type)
        return correlation.to_response()

    @app.get(JOBS_PATH)
    async def list_jobs():
        """
        List jobs from every queue, newest first.

        If one queue cannot be read the response is marked partial and
        names the missing job type.
        """
        try:
            listing = await system.lister.list_all()
        except ListingFailed as e:
            logger.error(f"Error fetching background jobs: {e}")
            return JSONResponse(
                status_code=500,
                content={"error": "Failed to fetch background jobs"},
            )

        return listing.to_dict()

    @app.delete(f"{JOBS_PATH}/finished")
    async def clear_finished_jobs(older_than_seconds: Optional[float] = None):
        """
        Delete finished jobs (completed or failed) from both queues.

        Args:
            older_than_seconds: Only delete jobs finished at least this long ago

        Returns:
            Number of jobs deleted
        """
        deleted = system.clear_finished(older_than_seconds)
        return {
            "message": f"Deleted {sum(deleted.values())} finished jobs",
            "deleted": deleted,
        }

    @app.get(f"{JOBS_PATH}/{{request_id}}")
    async def get_job_status(request_id: str):
        """
        Get the status snapshot of a dispatched request.

        Args:
            request_id: Request id returned by dispatch

        Returns:
            Status snapshot, or 404 if unknown or expired
        """
        snapshot = system.resolver.resolve(request_id)

        if snapshot is None:
            return JSONResponse(status_code=404, content={"error": "Job not found or expired"})

        return snapshot.to_dict()
