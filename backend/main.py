from __future__ import annotations

import logging
import os
import time
import uuid
from pathlib import Path

from dotenv import load_dotenv

# Load .env from backend directory so CLERK_* / STRIPE_* etc. are available
load_dotenv(Path(__file__).resolve().parent / ".env")

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from errors import CallableError
from routes.league import router as league_router
from routes.webhooks import router as webhooks_router

# Version for /health and startup log (Render sets RENDER_GIT_COMMIT)
VERSION = (os.environ.get("RENDER_GIT_COMMIT") or "").strip() or "unknown"

# Same logger as uvicorn so request lines and app lines interleave
_LOG = logging.getLogger("uvicorn.error")

app = FastAPI(title="Muni League Backend", version="0.1.0")

# CORS: use ALLOWED_ORIGINS env (comma-separated) if set, else default
_origins_env = os.environ.get("ALLOWED_ORIGINS", "").strip()
if _origins_env:
    ALLOWED_ORIGINS = [o.strip() for o in _origins_env.split(",") if o.strip()]
else:
    ALLOWED_ORIGINS = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        _LOG.info(
            "request_id=%s method=%s path=%s status=%s duration_ms=%.0f",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        response.headers["X-Request-Id"] = request_id
        return response


app.add_middleware(RequestLogMiddleware)
app.include_router(league_router)
app.include_router(webhooks_router)


@app.exception_handler(CallableError)
async def callable_error_handler(request: Request, exc: CallableError) -> JSONResponse:
    _LOG.info(
        "CALLABLE_ERR path=%s status=%s message=%s",
        request.url.path,
        exc.code,
        exc.message,
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_payload())


@app.on_event("startup")
def startup_log() -> None:
    auth_configured = bool(os.getenv("CLERK_JWT_ISSUER") or os.getenv("AUTH_JWT_SECRET"))
    _LOG.info(
        "Backend starting (auth configured: %s) version=%s",
        auth_configured,
        VERSION,
    )
    if not auth_configured:
        _LOG.warning(
            "Neither CLERK_JWT_ISSUER nor AUTH_JWT_SECRET is set. Signed-in callers will be rejected."
        )


@app.get("/health")
def health():
    return {
        "status": "ok",
        "auth_configured": bool(os.getenv("CLERK_JWT_ISSUER") or os.getenv("AUTH_JWT_SECRET")),
        "version": VERSION,
    }


@app.get("/version")
def version():
    return {
        "version": VERSION,
        "render_service_name": os.getenv("RENDER_SERVICE_NAME", ""),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", "8010")),
        reload=True,
    )
