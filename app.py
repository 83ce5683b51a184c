from __future__ import annotations
from typing import Optional, List
import logging
from fastapi import FastAPI, File, UploadFile, Form, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.concurrency import run_in_threadpool
from starlette.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from gaitlab.pipeline.io_utils import read_samples_bytes, to_json_safe
from gaitlab.pipeline.pipeline import prepare_recording, run_analysis
from gaitlab.pipeline.samples import LegSide, SensorSample
from gaitlab.config.settings import settings, configure_logging

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    docs_url=("/docs" if settings.docs_enabled else None),
    redoc_url=("/redoc" if settings.docs_enabled else None),
    openapi_url=("/openapi.json" if settings.openapi_enabled else None),
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.allowed_origins),
    allow_credentials=settings.allow_credentials,
    allow_methods=list(settings.allowed_methods),
    allow_headers=list(settings.allowed_headers),
)

# Raw series make responses large
app.add_middleware(GZipMiddleware, minimum_size=settings.gzip_min_size)

# Restrict Host headers when ALLOWED_HOSTS is set to specific values
if settings.allowed_hosts and tuple(settings.allowed_hosts) != ("*",):
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=list(settings.allowed_hosts))


async def _read_recording(upload: UploadFile, label: str) -> List[SensorSample]:
    data = await upload.read()
    max_bytes = int(settings.max_upload_mb) * 1024 * 1024
    if len(data) > max_bytes:
        raise HTTPException(status_code=413, detail=f"{label} file exceeds limit of {settings.max_upload_mb} MB")
    try:
        return read_samples_bytes(data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"{label} file: {exc}") from exc


def _parse_side(value: str, label: str) -> LegSide:
    try:
        return LegSide.parse(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"{label}: {exc}") from exc


@app.post("/api/analyze/")
async def analyze_data(
    local_file: UploadFile = File(...),
    leg_side: str = Form(settings.default_leg_side),
    remote_file: Optional[UploadFile] = File(None),
    remote_leg_side: Optional[str] = Form(None),
):
    """Analyse one thigh recording, or two for a left/right comparison."""
    side = _parse_side(leg_side, "leg_side")
    use_remote = bool(remote_file is not None and getattr(remote_file, "filename", ""))
    remote_side = None
    if use_remote:
        remote_side = _parse_side(remote_leg_side, "remote_leg_side") if remote_leg_side else side.opposite
        if remote_side is side:
            raise HTTPException(status_code=400, detail="local and remote recordings must be opposite legs")

    local_samples = await _read_recording(local_file, "local")
    remote_samples = await _read_recording(remote_file, "remote") if use_remote else None

    local = await run_in_threadpool(prepare_recording, local_samples, settings.min_walking_s)
    if local is None:
        raise HTTPException(status_code=422, detail="local recording has insufficient walking")
    remote = None
    if remote_samples is not None:
        remote = await run_in_threadpool(prepare_recording, remote_samples, settings.min_walking_s)
        if remote is None:
            raise HTTPException(status_code=422, detail="remote recording has insufficient walking")

    try:
        result = await run_in_threadpool(run_analysis, local, side, remote, remote_side)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    logger.info(
        "analysis %s: %d steps, score %.1f",
        result.summary.mode, result.summary.total_steps, result.summary.overall_score,
    )
    return JSONResponse(content=to_json_safe(result.to_dict()))


@app.get("/")
async def read_index():
    return JSONResponse({"status": "ok", "app": settings.app_name})


@app.get("/health")
async def health():
    return JSONResponse({"status": "ok"})
