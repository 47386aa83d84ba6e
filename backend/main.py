from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
import logging
import os
import time

from routers import receipts

__version__ = "0.1.0"

# ── Logging setup ─────────────────────────────────────────────────────────────
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
# Quiet noisy libraries unless we're in DEBUG
if LOG_LEVEL != "DEBUG":
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

logger = logging.getLogger("receiptscan")

app = FastAPI(
    title="receiptscan",
    description="Receipt item extraction with Claude Vision and name verification",
    version=__version__,
)

_cors_origins = os.environ.get("CORS_ORIGINS", "").strip()
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins.split(",") if _cors_origins else ["*"],
    allow_credentials=bool(_cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(receipts.router, prefix="/api/receipts", tags=["receipts"])


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    elapsed = (time.time() - start) * 1000
    if LOG_LEVEL == "DEBUG" or response.status_code >= 400:
        logger.log(
            logging.WARNING if response.status_code >= 400 else logging.DEBUG,
            "%s %s → %s (%.0fms)",
            request.method, request.url.path, response.status_code, elapsed,
        )
    return response


@app.get("/api/health")
async def health():
    return {"status": "ok", "version": __version__}
