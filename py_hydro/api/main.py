"""FastAPI main application."""

import threading
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

import structlog
from fastapi import BackgroundTasks, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .. import __version__
from ..config import configure_logging, settings
from ..core.errors import GenerationCancelled, InvalidConfiguration
from ..core.pipeline import HydroOutputs, HydroParams, run_hydrology

configure_logging()

logger = structlog.get_logger()

app = FastAPI(
    title="Hydrology Generator API",
    description="Seeded fantasy-map terrain and river generation",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class JobResponse(BaseModel):
    """Response with job information."""

    job_id: str
    status: str
    message: str
    created_at: datetime
    finished_at: Optional[datetime] = None
    rivers_count: Optional[int] = None
    error_message: Optional[str] = None


class _Job:
    """In-memory record of a background generation."""

    def __init__(self, job_id: str, params: HydroParams):
        self.id = job_id
        self.params = params
        self.status = "pending"
        self.created_at = datetime.utcnow()
        self.finished_at: Optional[datetime] = None
        self.cancel_event = threading.Event()
        self.outputs: Optional[HydroOutputs] = None
        self.error_message: Optional[str] = None

    def to_response(self) -> JobResponse:
        return JobResponse(
            job_id=self.id,
            status=self.status,
            message=f"Job {self.status}",
            created_at=self.created_at,
            finished_at=self.finished_at,
            rivers_count=self.outputs.meta.rivers_count if self.outputs else None,
            error_message=self.error_message,
        )


_jobs: Dict[str, _Job] = {}
_jobs_lock = threading.Lock()


def _evict_finished_jobs(limit: int) -> None:
    """Drop the oldest finished jobs until there is room for one more."""
    with _jobs_lock:
        finished = [job_id for job_id, job in _jobs.items()
                    if job.status in ("completed", "cancelled", "failed")]
        evicted = 0
        while len(_jobs) >= limit and evicted < len(finished):
            del _jobs[finished[evicted]]
            evicted += 1
    if evicted:
        logger.info("Evicted finished jobs", evicted=evicted)


def _get_job(job_id: str) -> _Job:
    with _jobs_lock:
        job = _jobs.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@app.exception_handler(InvalidConfiguration)
async def invalid_configuration_handler(request: Request, exc: InvalidConfiguration):
    """Report degenerate generation parameters as unprocessable input."""
    logger.warning("Invalid configuration", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Hydrology Generator API",
        "version": __version__,
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    with _jobs_lock:
        running = sum(1 for job in _jobs.values() if job.status == "running")
    return {"status": "healthy", "running_jobs": running}


@app.post("/hydrology/generate")
def generate_hydrology(params: HydroParams, include_cells: bool = True) -> Dict[str, Any]:
    """
    Generate a hydrology map synchronously.

    Returns the full outputs; pass include_cells=false to omit the per-cell data.
    """
    logger.info("Hydrology generation requested", params=params.model_dump())
    outputs = run_hydrology(params)
    return outputs.to_dict(include_cells=include_cells)


@app.post("/hydrology/jobs", response_model=JobResponse)
async def start_generation_job(params: HydroParams, background_tasks: BackgroundTasks):
    """
    Start a background generation job.

    Returns immediately with job ID. Use /jobs/{job_id} to check status.
    """
    _evict_finished_jobs(settings.max_retained_jobs)
    job = _Job(str(uuid.uuid4()), params)
    with _jobs_lock:
        _jobs[job.id] = job

    background_tasks.add_task(run_generation_job, job.id)
    logger.info("Generation job queued", job_id=job.id)
    return job.to_response()


@app.get("/jobs/{job_id}", response_model=JobResponse)
async def get_job_status(job_id: str):
    """Get status of a generation job."""
    return _get_job(job_id).to_response()


@app.get("/jobs/{job_id}/result")
async def get_job_result(job_id: str, include_cells: bool = False):
    """Get the outputs of a completed job."""
    job = _get_job(job_id)
    if job.status != "completed" or job.outputs is None:
        raise HTTPException(status_code=409, detail=f"Job is {job.status}")
    return job.outputs.to_dict(include_cells=include_cells)


@app.delete("/jobs/{job_id}", response_model=JobResponse)
async def cancel_job(job_id: str):
    """Request cancellation of a pending or running job."""
    job = _get_job(job_id)
    if job.status in ("pending", "running"):
        job.cancel_event.set()
        logger.info("Cancellation requested", job_id=job_id)
    return job.to_response()


def run_generation_job(job_id: str) -> None:
    """
    Background task to generate a map.
    """
    job = _get_job(job_id)
    if job.cancel_event.is_set():
        job.status = "cancelled"
        job.finished_at = datetime.utcnow()
        return

    job.status = "running"
    logger.info("Starting generation job", job_id=job_id)

    try:
        job.outputs = run_hydrology(job.params, cancel_event=job.cancel_event)
        job.status = "completed"
        logger.info("Generation job completed", job_id=job_id,
                    rivers=job.outputs.meta.rivers_count)
    except GenerationCancelled:
        job.status = "cancelled"
    except InvalidConfiguration as e:
        job.status = "failed"
        job.error_message = str(e)
        logger.warning("Generation job rejected", job_id=job_id, error=str(e))
    except Exception as e:
        job.status = "failed"
        job.error_message = str(e)
        logger.error("Generation job failed", job_id=job_id, error=str(e))
    finally:
        job.finished_at = datetime.utcnow()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
