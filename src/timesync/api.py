"""
TimeSync API: FastAPI local server for per-project time tracking.

This server provides:
- Project add/delete and start/pause/stop transitions
- Initial time overrides and time budgets
- Day/week/month breakdowns
- The once-per-second tick, run by APScheduler for the app's lifetime
"""

import logging
from collections import deque
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import datetime
from typing import Deque, List, Optional, Union

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from .aggregation import Period
from .config import TimeSyncConfig, get_config
from .models import Project
from .scheduler import Ticker
from .store import TimeStore
from .timer import format_duration

logger = logging.getLogger("timesync")
logger.setLevel(logging.INFO)

# ============ Server-side Log Buffer ============

# Circular buffer to store recent log entries (max 100)
log_buffer: Deque[dict] = deque(maxlen=100)


class LogBufferHandler(logging.Handler):
    """Logging handler that captures records into the circular buffer."""

    def emit(self, record: logging.LogRecord):
        try:
            log_buffer.append({
                "timestamp": datetime.fromtimestamp(record.created).strftime("%H:%M:%S"),
                "level": record.levelname,
                "message": self.format(record),
            })
        except Exception:
            self.handleError(record)


buffer_handler = LogBufferHandler()
buffer_handler.setLevel(logging.DEBUG)
buffer_handler.setFormatter(logging.Formatter("%(message)s"))
logger.addHandler(buffer_handler)


# Pydantic Models
NumberInput = Optional[Union[float, str]]


class AddProjectRequest(BaseModel):
    name: str = ""


class InitialTimeRequest(BaseModel):
    hours: NumberInput = None
    minutes: NumberInput = None


class LimitRequest(BaseModel):
    minutes: NumberInput = None


class AdjustLimitRequest(BaseModel):
    hours: NumberInput = None


class BudgetResponse(BaseModel):
    limit: int
    percent: float
    ratio: float
    remaining_hours: float


class ProjectResponse(BaseModel):
    id: int
    name: str
    time: int
    displayed_time: int
    formatted: str
    is_running: bool
    last_start: Optional[int] = None
    entries: int
    budget: Optional[BudgetResponse] = None


class BreakdownRow(BaseModel):
    id: int
    name: str
    seconds: int
    hours: float


class BreakdownResponse(BaseModel):
    period: Period
    rows: List[BreakdownRow]


class LogEntry(BaseModel):
    timestamp: str
    level: str
    message: str


class LogsResponse(BaseModel):
    """Response for recent logs."""
    logs: List[LogEntry]
    count: int


def create_app(
    store: Optional[TimeStore] = None,
    config: Optional[TimeSyncConfig] = None,
    scheduler: Optional[AsyncIOScheduler] = None,
) -> FastAPI:
    """Build the app. Without arguments the store comes from the environment config."""
    config = config or get_config()
    if store is None:
        store = TimeStore(config.repository(), week_start=config.week_start)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await store.load()
        tick_scheduler = scheduler or AsyncIOScheduler()
        tick_scheduler.start()
        logger.info("Scheduler started")
        try:
            async with Ticker(store, tick_scheduler, config.tick_interval_ms):
                yield
        finally:
            tick_scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")

    app = FastAPI(
        title="TimeSync",
        description="Local time tracking server with per-project timers and budgets",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.store = store

    def _project_response(project: Project) -> ProjectResponse:
        status = store.budget(project.id)
        displayed = store.displayed_total(project)
        return ProjectResponse(
            id=project.id,
            name=project.name,
            time=project.time,
            displayed_time=displayed,
            formatted=format_duration(displayed),
            is_running=project.is_running,
            last_start=project.last_start,
            entries=len(project.time_entries),
            budget=BudgetResponse(**asdict(status)) if status else None,
        )

    def _found(project: Optional[Project], project_id: int) -> ProjectResponse:
        if project is None:
            raise HTTPException(status_code=404, detail=f"Project {project_id} not found")
        return _project_response(project)

    # Health check
    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "timestamp": datetime.now().isoformat()}

    # Project Endpoints
    @app.get("/api/projects", response_model=List[ProjectResponse])
    async def list_projects():
        return [_project_response(project) for project in store.projects]

    @app.post("/api/projects", response_model=Optional[ProjectResponse])
    async def add_project(request: AddProjectRequest):
        """Add a project. An empty name is ignored and returns null."""
        project = await store.add(request.name)
        return _project_response(project) if project else None

    @app.get("/api/projects/{project_id}", response_model=ProjectResponse)
    async def get_project(project_id: int):
        return _found(store.get(project_id), project_id)

    @app.delete("/api/projects/{project_id}")
    async def delete_project(project_id: int):
        project = await store.delete(project_id)
        if project is None:
            raise HTTPException(status_code=404, detail=f"Project {project_id} not found")
        return {"deleted": project_id}

    # Timer Endpoints
    @app.post("/api/projects/{project_id}/start", response_model=ProjectResponse)
    async def start_timer(project_id: int):
        return _found(await store.start(project_id), project_id)

    @app.post("/api/projects/{project_id}/pause", response_model=ProjectResponse)
    async def pause_timer(project_id: int):
        return _found(await store.pause(project_id), project_id)

    @app.post("/api/projects/{project_id}/stop", response_model=ProjectResponse)
    async def stop_timer(project_id: int):
        return _found(await store.stop(project_id), project_id)

    @app.put("/api/projects/{project_id}/initial-time", response_model=ProjectResponse)
    async def set_initial_time(project_id: int, request: InitialTimeRequest):
        return _found(await store.set_initial_time(project_id, request.hours, request.minutes), project_id)

    # Budget Endpoints
    @app.put("/api/projects/{project_id}/limit", response_model=ProjectResponse)
    async def set_limit(project_id: int, request: LimitRequest):
        await store.set_limit(project_id, request.minutes)
        return _found(store.get(project_id), project_id)

    @app.post("/api/projects/{project_id}/limit/adjust", response_model=ProjectResponse)
    async def adjust_limit(project_id: int, request: AdjustLimitRequest):
        await store.adjust_limit(project_id, request.hours)
        return _found(store.get(project_id), project_id)

    # Reporting
    @app.get("/api/breakdown", response_model=BreakdownResponse)
    async def get_breakdown(period: Period = Period.DAY):
        rows = [
            BreakdownRow(id=project.id, name=project.name, seconds=seconds, hours=round(seconds / 3600, 1))
            for project, seconds in store.breakdown(period)
        ]
        return BreakdownResponse(period=period, rows=rows)

    @app.get("/api/logs/recent", response_model=LogsResponse)
    async def get_recent_logs(limit: int = 50):
        """Recent server logs from the circular buffer (max 100)."""
        limit = max(0, min(limit, 100))
        recent_logs = list(log_buffer)[-limit:] if limit else []
        return {"logs": recent_logs, "count": len(recent_logs)}

    return app
