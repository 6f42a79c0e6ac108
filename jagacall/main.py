# jagacall/main.py

from __future__ import annotations

import json
import logging
import secrets
import time
from contextlib import asynccontextmanager
from typing import Optional

import sentry_sdk
from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from jagacall import envelope
from jagacall.ai.ilmu_client import IlmuClient
from jagacall.analysis.orchestrator import AnalysisOrchestrator, AnalysisOutcome, Provider
from jagacall.config import Settings
from jagacall.errors import INTERNAL_ERROR, INVALID_INPUT, NOT_FOUND
from jagacall.models import CallDetectBody, VoiceAnalyzeBody
from jagacall.ratelimit import RateLimiter, get_client_ip

logger = logging.getLogger("jagacall")

PROCESS_START = time.monotonic()


def _outcome_response(outcome: AnalysisOutcome) -> JSONResponse:
    return JSONResponse(outcome.envelope, status_code=outcome.status_code)


def create_app(
    settings: Optional[Settings] = None,
    provider: Optional[Provider] = None,
    rate_limiter: Optional[RateLimiter] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    logging.basicConfig(level=settings.log_level, format="%(message)s")

    if settings.sentry_dsn:
        sentry_sdk.init(dsn=settings.sentry_dsn, traces_sample_rate=0.2)

    orchestrator = AnalysisOrchestrator(settings, provider or IlmuClient(settings))
    limiter = rate_limiter or RateLimiter.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            json.dumps(
                {
                    "event": "startup",
                    "service": settings.service_name,
                    "port": settings.port,
                    "health_check": f"http://localhost:{settings.port}/api/health",
                    "ilmu_api": settings.ilmu_base_url,
                    "demo_mode": settings.demo_mode,
                    "rate_limit": limiter.enabled,
                }
            )
        )
        if not settings.ilmu_api_key:
            logger.warning("ILMU_API_KEY is not set; upstream calls will be rejected.")
        yield
        logger.info(json.dumps({"event": "shutdown", "service": settings.service_name}))

    app = FastAPI(title="JagaCall Backend API", version=settings.version, lifespan=lifespan)
    app.state.settings = settings
    app.state.orchestrator = orchestrator
    app.state.rate_limiter = limiter

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization"],
    )

    # ---------------------------------------------------------
    # Error handlers: every response is an envelope
    # ---------------------------------------------------------
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.info(
            json.dumps({"event": "invalid_request", "path": request.url.path, "errors": len(exc.errors())})
        )
        return JSONResponse(
            envelope.failure("Invalid request body", INVALID_INPUT), status_code=400
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (404, 405):
            return JSONResponse(
                envelope.failure("Endpoint not found", NOT_FOUND), status_code=404
            )
        code = INVALID_INPUT if 400 <= exc.status_code < 500 else INTERNAL_ERROR
        return JSONResponse(
            envelope.failure(str(exc.detail), code), status_code=exc.status_code
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.error(json.dumps({"event": "error", "path": str(request.url), "error": str(exc)}))
        return JSONResponse(
            envelope.failure("Internal server error", INTERNAL_ERROR), status_code=500
        )

    # ---------------------------------------------------------
    # Request log, security headers, rate limit
    # ---------------------------------------------------------
    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        request_id = secrets.token_hex(8)
        request.state.request_id = request_id
        start_time = time.time()
        ip = get_client_ip(request, settings.trust_proxy)

        limited = None
        if request.url.path.startswith("/api/"):
            limited = limiter.check(ip)

        if limited is not None:
            response = JSONResponse(
                envelope.failure(limited.public_message, limited.code),
                status_code=limited.status_code,
                headers={"Retry-After": str(limited.retry_after)},
            )
        else:
            response = await call_next(request)

        duration = round((time.time() - start_time) * 1000, 2)
        logger.info(
            json.dumps(
                {
                    "event": "request",
                    "request_id": request_id,
                    "path": request.url.path,
                    "method": request.method,
                    "status": response.status_code,
                    "duration_ms": duration,
                    "ip": ip,
                }
            )
        )
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Strict-Transport-Security"] = "max-age=63072000; includeSubDomains"
        return response

    # ---------------------------------------------------------
    # Routes
    # ---------------------------------------------------------
    @app.post("/api/call-detect")
    async def call_detect(body: CallDetectBody):
        """Analyze a call transcript for scam indicators."""
        return _outcome_response(await orchestrator.analyze_call(body))

    @app.post("/api/file-analyze")
    async def file_analyze(
        file: Optional[UploadFile] = File(None),
        file_name: Optional[str] = Form(None, alias="fileName"),
        file_type: Optional[str] = Form(None, alias="fileType"),
    ):
        """Analyze an uploaded file for malware and phishing indicators."""
        return _outcome_response(await orchestrator.analyze_file(file, file_name, file_type))

    @app.post("/api/voice-analyze")
    async def voice_analyze(body: VoiceAnalyzeBody):
        """Analyze a voice transcript for scam indicators."""
        return _outcome_response(await orchestrator.analyze_voice(body))

    @app.get("/api/health")
    async def health():
        return envelope.success(
            {
                "status": "healthy",
                "service": settings.service_name,
                "version": settings.version,
                "timestamp": envelope.timestamp(),
                "uptime": round(time.monotonic() - PROCESS_START, 3),
            }
        )

    return app


app = create_app()


def main() -> None:
    import uvicorn

    settings = app.state.settings
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
