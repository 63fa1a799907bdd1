"""
DitherCam Main Application
==========================

FastAPI entry point for the real-time dithering service.

Startup:
    1. Threshold matrix generated once from settings (fatal if invalid)
    2. Sources: capture device (optional) + static image holder
    3. FrameProcessor + DisplaySurface at the configured display size
    4. RenderLoop task ticking at the target FPS

Endpoints:
    GET   /          - Service information
    GET   /health    - Liveness probe
    GET   /ready     - Readiness probe (render loop running?)
    GET   /metrics   - Render, processor and source metrics
    GET   /config    - Current pipeline parameters
    PATCH /config    - Update resolution / saturation / contrast / brightness / hue / mode
    POST  /source    - Switch between live capture and static image
    POST  /upload    - Upload a still image (base64)
    GET   /frame.png - Current display surface as PNG
    WS    /ws/frames - Real-time rendered frame stream
"""

import asyncio
import base64
import logging
import os
import signal
import threading
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse, Response

from dither_cam.config import settings
from dither_cam.models.api import ConfigPatch, FramePayload, ImageUpload, SourceRequest
from dither_cam.models.params import PipelineConfig, SourceMode
from dither_cam.processing import FrameProcessor, generate_threshold_matrix
from dither_cam.render import DisplaySurface, RenderLoop
from dither_cam.source import (
    AcquisitionError,
    CaptureSource,
    DecodeError,
    SourceSelector,
    StaticImageSource,
    encode_png,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Global State
# =============================================================================

# Shutdown flag
_shutdown_flag: bool = False

_pipeline_config: Optional[PipelineConfig] = None
_selector: Optional[SourceSelector] = None
_processor: Optional[FrameProcessor] = None
_surface: Optional[DisplaySurface] = None
_render_loop: Optional[RenderLoop] = None
_render_task: Optional[asyncio.Task] = None
_startup_time: float = 0.0


# =============================================================================
# Getters
# =============================================================================

def get_pipeline_config() -> Optional[PipelineConfig]:
    return _pipeline_config

def get_selector() -> Optional[SourceSelector]:
    return _selector

def get_surface() -> Optional[DisplaySurface]:
    return _surface

def get_render_loop() -> Optional[RenderLoop]:
    return _render_loop

def is_ready() -> bool:
    return _render_task is not None and not _render_task.done()


# =============================================================================
# Signal Handlers
# =============================================================================

def _handle_sigterm(signum, frame):
    """Handle SIGTERM for graceful shutdown."""
    global _shutdown_flag
    logger.info("Received SIGTERM, initiating graceful shutdown...")
    _shutdown_flag = True
    if _render_loop is not None:
        _render_loop.request_stop()


# =============================================================================
# Component Factory
# =============================================================================

def create_capture_source() -> Optional[CaptureSource]:
    """Capture source from settings, or None when capture is disabled."""
    if not settings.capture.enabled:
        logger.info("Capture disabled, static image mode only")
        return None

    return CaptureSource(
        device=settings.capture.device,
        first_frame_timeout=settings.capture.first_frame_timeout_seconds,
    )


def _rerender(source_changed: bool) -> bool:
    """
    On-demand re-render after a control change.

    A source switch always clears the surface and renders at once, whatever
    the new mode. Parameter changes only need an explicit render for the
    static source; a live feed already re-renders every tick.
    """
    if _render_loop is None or _pipeline_config is None:
        return False
    if source_changed:
        return _render_loop.request_render(clear=True) is not None
    if _pipeline_config.source_mode != SourceMode.STATIC_IMAGE:
        return False
    return _render_loop.request_render() is not None


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager with graceful shutdown."""
    global _pipeline_config, _selector, _processor, _surface
    global _render_loop, _render_task, _startup_time, _shutdown_flag

    # Register signal handlers (only possible from the main thread)
    if threading.current_thread() is threading.main_thread():
        signal.signal(signal.SIGTERM, _handle_sigterm)

    # Startup
    _startup_time = time.time()
    _shutdown_flag = False
    logger.info(f"Starting {settings.app.name} {settings.app.version}")

    # Matrix size is fixed for the lifetime of the process
    matrix = generate_threshold_matrix(settings.pipeline.matrix_size)

    _pipeline_config = settings.initial_pipeline_config()
    _selector = SourceSelector(
        _pipeline_config,
        static=StaticImageSource(),
        capture=create_capture_source(),
    )
    await _selector.start()

    _processor = FrameProcessor(
        display_size=(settings.display.width, settings.display.height),
        matrix=matrix,
        levels=settings.pipeline.dither_levels,
    )
    _surface = DisplaySurface(settings.display.width, settings.display.height)
    _render_loop = RenderLoop(
        config=_pipeline_config,
        selector=_selector,
        processor=_processor,
        surface=_surface,
        target_fps=settings.display.target_fps,
    )
    _render_task = asyncio.create_task(_render_loop.run(), name="render_loop")

    logger.info(
        f"All components started: display={settings.display.width}x"
        f"{settings.display.height}, source={_pipeline_config.source_mode.value}"
    )

    yield

    # Shutdown
    logger.info("Shutting down gracefully...")
    _shutdown_flag = True

    if _render_loop:
        await _render_loop.stop()

    if _render_task:
        try:
            await asyncio.wait_for(_render_task, timeout=5.0)
        except asyncio.TimeoutError:
            _render_task.cancel()
            try:
                await _render_task
            except asyncio.CancelledError:
                pass

    if _selector:
        await _selector.close()

    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="DitherCam",
    description="Real-time ordered-dithering stylization pipeline",
    version=settings.app.version,
    lifespan=lifespan,
)


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": "DitherCam",
        "version": settings.app.version,
        "name": settings.app.name,
        "status": "running",
        "display": {
            "width": settings.display.width,
            "height": settings.display.height,
        },
        "matrix_size": settings.pipeline.matrix_size,
    })


@app.get("/health")
async def health() -> JSONResponse:
    """
    Liveness probe - is the process alive?

    Always returns 200 if the service is running.
    """
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
    })


@app.get("/ready")
async def ready() -> JSONResponse:
    """
    Readiness probe.

    Returns 200 once the render loop is running, 503 otherwise. A missing
    capture device does not make the service unready; it waits for an
    uploaded image instead.
    """
    selector = get_selector()
    surface = get_surface()

    body = {
        "render_loop_running": is_ready(),
        "source_mode": selector.mode.value if selector else None,
        "capture_available": selector.capture_available if selector else False,
        "has_frame": surface.has_content if surface else False,
    }

    if is_ready():
        return JSONResponse({"status": "ready", **body})
    return JSONResponse({"status": "not_ready", **body}, status_code=503)


@app.get("/metrics")
async def metrics() -> JSONResponse:
    """Detailed metrics for observability."""
    loop = get_render_loop()
    selector = get_selector()

    return JSONResponse({
        "uptime_seconds": round(time.time() - _startup_time, 1),
        "render": loop.metrics.to_dict() if loop else {},
        "subscribers": loop.subscriber_metrics() if loop else [],
        "processor": _processor.get_metrics() if _processor else {},
        "source": selector.get_metrics() if selector else {},
    })


@app.get("/config")
async def get_config() -> JSONResponse:
    """Current pipeline parameters."""
    config = get_pipeline_config()
    if config is None:
        return JSONResponse({"error": "Service not started"}, status_code=503)
    return JSONResponse(config.to_flat_dict())


@app.patch("/config")
async def patch_config(patch: ConfigPatch) -> JSONResponse:
    """
    Update pipeline parameters.

    The whole request is validated before anything is applied; a rejected
    source switch (409) leaves every parameter untouched. On success the
    surface is re-rendered immediately where needed.
    """
    config = get_pipeline_config()
    selector = get_selector()
    if config is None or selector is None:
        return JSONResponse({"error": "Service not started"}, status_code=503)

    changes = patch.changes()
    mode = changes.pop("source_mode", None)

    try:
        # Dry run on a copy so nothing is applied if any value is invalid
        config.model_copy(deep=True).update(**changes)
    except ValueError as e:
        return JSONResponse({"error": str(e)}, status_code=422)

    source_changed = False
    if mode is not None and mode != config.source_mode:
        try:
            await selector.switch(mode)
        except AcquisitionError as e:
            return JSONResponse(
                {"error": str(e), "config": config.to_flat_dict()},
                status_code=409,
            )
        source_changed = True

    changed = config.update(**changes)
    if source_changed:
        changed.append("source_mode")

    if changed:
        logger.info(f"Pipeline parameters changed: {changed}")

    rendered = _rerender(source_changed) if changed else False
    return JSONResponse({
        "config": config.to_flat_dict(),
        "changed": changed,
        "rendered": rendered,
    })


@app.post("/source")
async def switch_source(request: SourceRequest) -> JSONResponse:
    """Switch source mode, clearing the surface so no stale frame survives."""
    selector = get_selector()
    loop = get_render_loop()
    if selector is None or loop is None:
        return JSONResponse({"error": "Service not started"}, status_code=503)

    try:
        mode = await selector.switch(request.mode)
    except AcquisitionError as e:
        loop.request_render(clear=True)
        return JSONResponse(
            {"error": str(e), "source_mode": selector.mode.value},
            status_code=409,
        )

    rendered = loop.request_render(clear=True) is not None
    return JSONResponse({"source_mode": mode.value, "rendered": rendered})


@app.post("/upload")
async def upload_image(upload: ImageUpload) -> JSONResponse:
    """
    Upload a still image and switch to static mode.

    Invalid images return 400 and leave the current frame unchanged.
    """
    selector = get_selector()
    loop = get_render_loop()
    if selector is None or loop is None:
        return JSONResponse({"error": "Service not started"}, status_code=503)

    try:
        frame = selector.static.load_base64(upload.image)
    except DecodeError as e:
        return JSONResponse({"error": f"Invalid image: {e}"}, status_code=400)

    await selector.switch(SourceMode.STATIC_IMAGE)
    rendered = loop.request_render(clear=True) is not None

    return JSONResponse({
        "source_mode": selector.mode.value,
        "width": frame.width,
        "height": frame.height,
        "rendered": rendered,
    })


@app.get("/frame.png")
async def frame_png() -> Response:
    """Current display surface as PNG."""
    surface = get_surface()
    png = surface.encode_png() if surface else None

    if png is None:
        return JSONResponse(
            {"error": "No frame rendered yet"},
            status_code=503,
        )
    return Response(content=png, media_type="image/png")


# =============================================================================
# WebSocket Endpoints
# =============================================================================

@app.websocket("/ws/frames")
async def frame_stream(websocket: WebSocket) -> None:
    """WebSocket endpoint pushing every rendered frame."""
    loop = get_render_loop()
    await websocket.accept()

    if loop is None:
        await websocket.close(code=1013)
        return

    buffer = loop.subscribe(maxsize=settings.stream.subscriber_queue_size)
    logger.info("Client connected to /ws/frames")

    try:
        while not _shutdown_flag:
            frame = await buffer.get(timeout=1.0)
            if frame is None:
                continue
            payload = FramePayload(
                frame_id=frame.frame_id,
                timestamp=frame.timestamp,
                width=frame.width,
                height=frame.height,
                image=base64.b64encode(encode_png(frame)).decode("ascii"),
            )
            await websocket.send_json(payload.model_dump(mode="json"))

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.warning(f"WebSocket error: {e}")
    finally:
        loop.unsubscribe(buffer)
        logger.info("Client disconnected from /ws/frames")


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    # Cloud Run uses PORT env var
    port = int(os.environ.get("PORT", settings.server.port))

    uvicorn.run(
        "dither_cam.main:app",
        host=settings.server.host,
        port=port,
        reload=False,
    )
