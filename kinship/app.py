"""kinship-engine: family relationship inference service."""

from __future__ import annotations

import logging
import os
import time
from collections import deque
from contextlib import asynccontextmanager
from threading import Lock

import psutil
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from kinship.db import close_pool, get_pool, get_stats, init_pool
from kinship.family.cache import store_cache

logger = logging.getLogger("kinship")

PORT = int(os.environ.get("KE_PORT", "9820"))


# ---------------------------------------------------------------------------
# RateCounter: thread-safe sliding-window request counter
# ---------------------------------------------------------------------------

SPARKLINE_BUCKETS = 60


class RateCounter:
    """Count events in a sliding window and expose per-second rate + history."""

    def __init__(self, window: float = 60.0) -> None:
        self._window = window
        self._lock = Lock()
        self._timestamps: deque[float] = deque()
        self._sparkline: deque[float] = deque(maxlen=SPARKLINE_BUCKETS)

    def record(self) -> None:
        now = time.monotonic()
        with self._lock:
            self._timestamps.append(now)

    def _prune(self, now: float) -> None:
        cutoff = now - self._window
        while self._timestamps and self._timestamps[0] < cutoff:
            self._timestamps.popleft()

    def rate(self) -> float:
        now = time.monotonic()
        with self._lock:
            self._prune(now)
            count = len(self._timestamps)
        return count / self._window if self._window else 0.0

    def snapshot_sparkline(self) -> None:
        self._sparkline.append(round(self.rate(), 2))

    def sparkline_history(self) -> list[float]:
        return list(self._sparkline)


request_counter = RateCounter(window=60.0)
_start_time: float = 0.0


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    global _start_time
    _start_time = time.time()

    await init_pool()
    logger.info("Database pool initialized")

    yield

    store_cache.clear()
    await close_pool()
    logger.info("Database pool closed")


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------

app = FastAPI(
    title="kinship-engine",
    version="0.1.0",
    description="Infers named family relationships from parent and spouse facts",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Request counting middleware
# ---------------------------------------------------------------------------

@app.middleware("http")
async def count_requests(request: Request, call_next):
    request_counter.record()
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

from kinship.family.routes import router as relationships_router  # noqa: E402

app.include_router(relationships_router)


# ---------------------------------------------------------------------------
# Core routes
# ---------------------------------------------------------------------------

@app.get("/health")
async def health():
    """Health check. Returns DB connectivity status."""
    result: dict = {"status": "ok"}
    try:
        p = get_pool()
        db_ok = await p.fetchval("SELECT 1")
        result["database"] = "connected" if db_ok == 1 else "unexpected"
    except RuntimeError:
        result["database"] = "pool_not_initialized"
    except Exception as exc:
        result["status"] = "degraded"
        result["database"] = f"error: {exc}"
    return result


@app.get("/metrics")
async def metrics():
    """Stats endpoint for server-monitor dashboard."""
    try:
        now = time.time()
        process = psutil.Process(os.getpid())
        mem = process.memory_info()

        request_counter.snapshot_sparkline()

        # -- System metrics ---------------------------------------------------

        uptime = now - _start_time if _start_time else 0.0
        rps = request_counter.rate()

        result: list[dict] = [
            {
                "key": "uptime",
                "label": "Uptime",
                "value": round(uptime),
                "unit": "seconds",
            },
            {
                "key": "rps",
                "label": "Requests / sec",
                "value": round(rps, 2),
                "unit": "req/s",
                "warn_above": 200,
                "sparkline_history": request_counter.sparkline_history(),
            },
            {
                "key": "memory_rss",
                "label": "Memory (RSS)",
                "value": round(mem.rss / 1_048_576, 1),
                "unit": "MB",
                "warn_above": 512,
            },
            {
                "key": "cpu_percent",
                "label": "CPU usage",
                "value": process.cpu_percent(interval=0),
                "unit": "%",
                "warn_above": 90,
            },
        ]

        # -- Store cache ------------------------------------------------------

        cache = store_cache.stats
        result.extend([
            {"key": "stores_cached", "label": "Cached stores", "value": cache["size"], "unit": "stores"},
            {"key": "store_hits", "label": "Store cache hits", "value": cache["hits"], "unit": "hits"},
            {"key": "store_builds", "label": "Store builds", "value": cache["misses"], "unit": "builds"},
        ])

        # -- Tree metrics -----------------------------------------------------

        stats = await get_stats()
        result.extend([
            {"key": "total_trees", "label": "Family trees", "value": stats["total_trees"], "unit": "trees"},
            {"key": "total_people", "label": "People", "value": stats["total_people"], "unit": "people"},
        ])
        for kind, count in stats["edges_by_kind"].items():
            result.append({
                "key": f"edges_{kind}",
                "label": f"Edges ({kind})",
                "value": count,
                "unit": "edges",
            })

        return {"metrics": result}

    except Exception as exc:
        logger.exception("Error fetching metrics")
        return JSONResponse(
            status_code=500,
            content={"metrics": [], "error": f"Database error: {exc}"},
        )


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------

def run() -> None:
    uvicorn.run("kinship.app:app", host="127.0.0.1", port=PORT, reload=False)


if __name__ == "__main__":
    run()
