from __future__ import annotations

import logging
import math
from typing import Optional

import httpx
from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .analysis import AnalysisError, analyze_floor_plan
from .capacity import InvalidInput, build_input, calculate
from .config import Settings, load_settings
from .geometry import GeometryError, polygon_area_m2, polygon_centroid
from .monitor import MonitorRegistry
from .schemas import CalculateRequest, FloorAreaRequest, MonitorStart

settings = load_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

CALCULATION_FAILED = "An error occurred during calculation."

app = FastAPI(title="Venue Capacity API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

monitors = MonitorRegistry(max_sessions=settings.monitor_max_sessions)


@app.on_event("shutdown")
def _shutdown() -> None:
    monitors.stop_all()


def _settings() -> Settings:
    return settings


def _vision_transport() -> Optional[httpx.AsyncBaseTransport]:
    # None uses httpx's default network transport.
    return None


@app.exception_handler(RequestValidationError)
def _request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err['loc'] if p != 'body')}: {err['msg']}" for err in exc.errors()
    )
    return JSONResponse(status_code=422, content={"error": f"invalid request: {problems}"})


@app.exception_handler(InvalidInput)
def _invalid_input(request: Request, exc: InvalidInput) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(GeometryError)
def _geometry_error(request: Request, exc: GeometryError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(AnalysisError)
def _analysis_error(request: Request, exc: AnalysisError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.payload)


@app.exception_handler(HTTPException)
def _http_error(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.get("/health")
def health() -> dict:
    return {"ok": True}


@app.post("/api/calculate")
async def calculate_capacity(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        logger.exception("calculate: malformed request body")
        return JSONResponse(status_code=500, content={"error": CALCULATION_FAILED})
    if not isinstance(body, dict):
        raise InvalidInput("request body must be a JSON object")

    try:
        payload = CalculateRequest.model_validate(body)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise InvalidInput(f"invalid fields: {fields}") from e

    inp = build_input(payload.total_area, payload.venue_type, payload.entrance_count, payload.aisle_width)
    try:
        result = calculate(inp)
    except InvalidInput:
        raise
    except Exception:  # noqa: BLE001 - surface a generic failure, keep the traceback in logs
        logger.exception("calculate: unexpected failure for %s", inp)
        return JSONResponse(status_code=500, content={"error": CALCULATION_FAILED})
    return result.to_dict()


def _booth_size(raw: Optional[str], default: float) -> float:
    # Non-numeric, zero or missing values use the default.
    try:
        value = float(raw) if raw is not None else 0.0
    except ValueError:
        return default
    if not math.isfinite(value) or value == 0:
        return default
    return value


@app.post("/api/analyze")
async def analyze(
    image: Optional[UploadFile] = File(default=None),
    boothSize: Optional[str] = Form(default=None),
    cfg: Settings = Depends(_settings),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(_vision_transport),
) -> dict:
    booth_size = _booth_size(boothSize, cfg.default_booth_size_m2)
    if image is None:
        raise AnalysisError("An image is required.", status_code=400)
    try:
        data = await image.read()
        mime_type = (image.content_type or "image/jpeg").lower()
    finally:
        await image.close()

    try:
        return await analyze_floor_plan(data, mime_type, booth_size, cfg, transport=transport)
    except AnalysisError as e:
        if e.status_code >= 500:
            logger.error("analyze failed: %s", e)
        raise


@app.post("/api/floor-area")
def floor_area(payload: FloorAreaRequest) -> dict:
    pts = [(float(x), float(y)) for (x, y) in payload.polygon.points]
    area = polygon_area_m2(pts)
    cx, cy = polygon_centroid(pts)
    return {"area_m2": area, "centroid": [cx, cy]}


@app.post("/api/monitor/sessions")
def start_monitor(payload: MonitorStart) -> dict:
    s = monitors.create(payload.capacities.to_domain(), payload.interval)
    return s.snapshot()


@app.get("/api/monitor/sessions/{session_id}")
def get_monitor(session_id: str) -> dict:
    s = monitors.get(session_id)
    if not s:
        raise HTTPException(status_code=404, detail="monitor session not found")
    return s.snapshot()


@app.post("/api/monitor/sessions/{session_id}/dismiss-alert")
def dismiss_monitor_alert(session_id: str) -> dict:
    s = monitors.get(session_id)
    if not s:
        raise HTTPException(status_code=404, detail="monitor session not found")
    s.dismiss_alert()
    return s.snapshot()


@app.delete("/api/monitor/sessions/{session_id}")
def stop_monitor(session_id: str) -> dict:
    s = monitors.remove(session_id)
    if not s:
        raise HTTPException(status_code=404, detail="monitor session not found")
    return s.snapshot()
