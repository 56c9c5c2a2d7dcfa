"""FastAPI REST adapter for the compute marketplace.

Provides HTTP endpoints for job submission, status, cancellation and
host result reporting.

Usage:
    from compute_market.adapters.inbound.rest_api import create_app

    app = create_app(controller)
    # Or: python -m compute_market.adapters.inbound.rest_api
"""

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, Header, HTTPException, status
from pydantic import BaseModel, Field

from compute_market.domain.entities.job import JobRequirements, JobStatus, JobSubmission
from compute_market.domain.errors import JobStateError, UnauthorizedError, ValidationError
from compute_market.infrastructure.container import Container, get_container
from compute_market.infrastructure.metrics import setup_metrics
from compute_market.ports.inbound.api import JobLifecycleAPI


class RequirementsModel(BaseModel):
    """Hardware constraints for a job."""

    required_vram: int = Field(..., description="Minimum VRAM in GB")
    min_compute_rating: int = Field(..., description="Minimum compute rating")
    max_price_per_second: int = Field(..., description="Maximum price per second, smallest unit")
    timeout_seconds: int = Field(..., description="Execution timeout")
    is_high_priority: bool = Field(default=False)


class JobSubmitRequest(BaseModel):
    """Request to submit a new job."""

    client_key: str = Field(..., min_length=1, description="Client public key")
    requirements: RequirementsModel
    image_reference: str = Field(..., min_length=1, description="Container image")
    input_reference: str = Field(default="", description="Input data location")


class JobResultRequest(BaseModel):
    """Result reported by a host."""

    host: str = Field(..., min_length=1)
    result_hash: str = Field(..., min_length=1)


class JobFailureRequest(BaseModel):
    """Failure reported by a host."""

    host: str = Field(..., min_length=1)
    error: str = Field(..., min_length=1)


class JobStatusResponse(BaseModel):
    """Job status response."""

    job_id: str
    status: str
    host: Optional[str]
    submitted_at: float
    started_at: Optional[float]
    ended_at: Optional[float]
    result_hash: Optional[str]
    error: Optional[str]


def _to_response(job: JobStatus) -> JobStatusResponse:
    return JobStatusResponse(
        job_id=str(job.job_id),
        status=job.status.value,
        host=job.host,
        submitted_at=job.submitted_at,
        started_at=job.started_at,
        ended_at=job.ended_at,
        result_hash=job.result_hash,
        error=job.error,
    )


def create_app(controller: JobLifecycleAPI) -> FastAPI:
    """Create FastAPI application with marketplace endpoints.

    Args:
        controller: Job lifecycle controller.

    Returns:
        Configured FastAPI application.
    """
    app = FastAPI(
        title="Compute Marketplace API",
        description="Job matching, queueing and settlement for a compute marketplace",
        version="0.1.0",
    )

    def _lookup(job_id: str) -> JobStatus:
        job = controller.get_job_status(job_id)
        if job is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail=f"Job {job_id} not found"
            )
        return job

    @app.get("/health", tags=["System"])
    async def health_check():
        """Check service health."""
        return {"status": "healthy", "tracked_jobs": len(controller.get_active_jobs())}

    @app.get("/queue/stats", response_model=dict[str, int], tags=["Queue"])
    async def queue_stats():
        """Queue entry counts by state."""
        return controller.get_queue_stats()

    @app.post("/jobs", status_code=status.HTTP_201_CREATED, tags=["Jobs"])
    async def submit_job(request: JobSubmitRequest):
        """Submit a new compute job."""
        submission = JobSubmission(
            client_key=request.client_key,
            requirements=JobRequirements(**request.requirements.model_dump()),
            image_reference=request.image_reference,
            input_reference=request.input_reference,
        )
        try:
            job_id = controller.submit_job(submission)
        except ValidationError as e:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail={"field": e.field, "message": str(e)},
            )
        return {"job_id": str(job_id), "status": "pending"}

    @app.get("/jobs", response_model=list[JobStatusResponse], tags=["Jobs"])
    async def list_jobs():
        """List all tracked jobs."""
        return [_to_response(job) for job in controller.get_active_jobs()]

    @app.get("/jobs/{job_id}", response_model=JobStatusResponse, tags=["Jobs"])
    async def get_job_status(job_id: str):
        """Get status of a specific job."""
        return _to_response(_lookup(job_id))

    @app.delete("/jobs/{job_id}", tags=["Jobs"])
    async def cancel_job(job_id: str, x_client_key: str = Header(...)):
        """Cancel a pending job."""
        _lookup(job_id)
        if not controller.cancel_job(job_id, x_client_key):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Job {job_id} cannot be cancelled",
            )
        return {"job_id": job_id, "status": "cancelled"}

    @app.post("/jobs/{job_id}/result", response_model=JobStatusResponse, tags=["Hosts"])
    async def report_result(job_id: str, request: JobResultRequest):
        """Report a completed job."""
        _lookup(job_id)
        try:
            job = await controller.handle_job_result(job_id, request.host, request.result_hash)
        except UnauthorizedError as e:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
        except JobStateError as e:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
        return _to_response(job)

    @app.post("/jobs/{job_id}/failure", response_model=JobStatusResponse, tags=["Hosts"])
    async def report_failure(job_id: str, request: JobFailureRequest):
        """Report a failed job."""
        _lookup(job_id)
        try:
            job = await controller.handle_job_failure(job_id, request.host, request.error)
        except UnauthorizedError as e:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
        except JobStateError as e:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
        return _to_response(job)

    return app


def run_server(container: Optional[Container] = None) -> None:
    """Run the API server with Prometheus metrics exposed.

    Args:
        container: Wired components. Uses the process container if None.
    """
    import uvicorn

    container = container or get_container()
    server = container.config.server
    setup_metrics(server.metrics_port, exporter=container.metrics)
    uvicorn.run(create_app(container.controller), host=server.host, port=server.http_port)


if __name__ == "__main__":
    run_server()
