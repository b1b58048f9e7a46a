"""
FastAPI application for Gemini Veo video generation.

Features:
- Video generation in references, frames and extend modes
- Long-running operation polling with retry on transient service errors
- Generated videos stored locally and served under /assets
- Handles returned for chaining "extend this clip" requests
"""
import json
import time
from typing import Any

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fastapi.responses import JSONResponse

from config import Config
from common.error_messages import get_error_response
from utils.logger import get_logger
from videos.routes import router as videos_router

logger = get_logger("main")

# Sensitive fields that should be masked in logs
SENSITIVE_FIELDS = {
    'api_key', 'key', 'token', 'secret', 'authorization', 'x-goog-api-key'
}
# Large binary payloads that would flood the log
BULKY_FIELDS = {'data', 'image_bytes', 'imageBytes', 'video_bytes'}
MAX_LOGGED_BODY = 2000


def mask_sensitive_data(data: Any, mask_value: str = "***MASKED***") -> Any:
    """
    Recursively mask sensitive fields and elide bulky binary fields.

    Args:
        data: Data to mask (dict, list, or JSON string)
        mask_value: Value to replace sensitive data with
    """
    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            if key.lower() in SENSITIVE_FIELDS:
                masked[key] = mask_value
            elif key in BULKY_FIELDS and isinstance(value, str):
                masked[key] = f"<{len(value)} chars>"
            else:
                masked[key] = mask_sensitive_data(value, mask_value)
        return masked
    elif isinstance(data, list):
        return [mask_sensitive_data(item, mask_value) for item in data]
    elif isinstance(data, str):
        try:
            parsed = json.loads(data)
        except (json.JSONDecodeError, ValueError):
            return data
        if isinstance(parsed, (dict, list)):
            return json.dumps(mask_sensitive_data(parsed, mask_value))
        return data
    return data


def _truncate(text: str) -> str:
    if len(text) > MAX_LOGGED_BODY:
        return text[:MAX_LOGGED_BODY] + "... [truncated]"
    return text


def create_app() -> FastAPI:
    app = FastAPI(
        title="Veo Video Generation API",
        description="Submit Veo video generation jobs, track them to completion and extend previously generated clips.",
        version="1.0.0"
    )

    # CORS middleware - MUST be added FIRST so it runs on all responses
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle all unhandled exceptions globally."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        message, status_code = get_error_response(None)
        return JSONResponse(status_code=status_code, content={"detail": message})

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all HTTP requests with timing and masked request/response bodies."""
        start_time = time.time()
        full_url = str(request.url)

        body_bytes = b""
        if request.method in ("POST", "PUT", "PATCH"):
            body_bytes = await request.body()

        log_msg = f"→ {request.method} {full_url} - Client: {request.client.host if request.client else 'unknown'}"
        if body_bytes:
            log_msg += f"\n  Request Body: {_truncate(mask_sensitive_data(body_bytes.decode('utf-8', errors='replace')))}"
        logger.info(log_msg)

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = (time.time() - start_time) * 1000
            logger.error(f"← {request.method} {full_url} - Error: {e} - Time: {process_time:.2f}ms")
            raise

        process_time = (time.time() - start_time) * 1000

        # Static files and downloads stream; don't buffer them
        if request.url.path.startswith("/assets/") or request.url.path.endswith("/download"):
            logger.info(f"← {request.method} {full_url} - Status: {response.status_code} - Time: {process_time:.2f}ms")
            return response

        response_body_bytes = b""
        async for chunk in response.body_iterator:
            response_body_bytes += chunk

        log_msg = f"← {request.method} {full_url} - Status: {response.status_code} - Time: {process_time:.2f}ms"
        if response_body_bytes:
            response_text = response_body_bytes.decode("utf-8", errors="replace")
            log_msg += f"\n  Response Body: {_truncate(mask_sensitive_data(response_text))}"
        logger.info(log_msg)

        return Response(
            content=response_body_bytes,
            status_code=response.status_code,
            headers=dict(response.headers),
            media_type=response.media_type
        )

    # Serve generated videos
    try:
        app.mount("/assets", StaticFiles(directory=Config.ASSETS_DIR), name="assets")
        logger.info(f"Static files mounted at /assets from {Config.ASSETS_DIR}")
    except RuntimeError as e:
        logger.error(f"Failed to mount static files: {e}")

    app.include_router(videos_router)
    logger.info("Videos router included")

    @app.on_event("startup")
    async def startup_event():
        try:
            Config.validate()
            logger.info("Configuration validated successfully")
        except ValueError as e:
            logger.error(f"Configuration error: {e}")
            logger.error("Please set required environment variables in .env file")
        logger.info(f"Video service starting on {Config.HOST}:{Config.PORT}")

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("Video service shutting down")

    @app.get("/healthz")
    def health():
        """Health check endpoint."""
        return {"status": "ok"}

    return app


app = create_app()


# Run server directly
if __name__ == "__main__":
    logger.info(f"Starting server on {Config.HOST}:{Config.PORT}")
    uvicorn.run(
        "app:app",
        host=Config.HOST,
        port=Config.PORT,
        reload=Config.RELOAD,
        log_level="info"
    )
