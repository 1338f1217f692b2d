"""
FastAPI Application — activity log, manual trigger and polling endpoints.

Provides:
- Health check with consumer stats
- Activity log retrieval (last N lines / full dump) and live tail
- Manual trigger hook running a raw payload through the processor
- Per-job polling record and on-demand poll
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

import structlog

# Load .env before any config is read
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse, StreamingResponse

from config.settings import get_settings
from core.runtime import build_runtime

logger = structlog.get_logger()

# ──────────────────────────────────────────────────────────────
#  Bootstrap
# ──────────────────────────────────────────────────────────────

_settings_boot = get_settings()
runtime = build_runtime(_settings_boot)


@asynccontextmanager
async def lifespan(app: FastAPI):
    for profile in runtime.profiles:
        ok, message = profile.validate()
        if not ok:
            logger.warning("sqs_profile_validation_failed", queue=profile.sqs_queue)
        else:
            logger.info("sqs_profile_validated", detail=message)

    await runtime.start()
    logger.info("sqs_trigger_started",
                 app=_settings_boot.app_name,
                 queue_backend=_settings_boot.queue_backend,
                 jobs=len(runtime.registry))
    yield

    await runtime.stop()
    logger.info("sqs_trigger_stopped")


# ──────────────────────────────────────────────────────────────
#  App
# ──────────────────────────────────────────────────────────────

app = FastAPI(
    title="SQS Job Trigger API",
    description="Launches jobs from queue messages",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# ══════════════════════════════════════════════════════════════
#  HEALTH
# ══════════════════════════════════════════════════════════════

@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "jobs": len(runtime.registry),
        "consumers": [c.stats for c in runtime.consumers],
        "polling_jobs": sorted(runtime.polling_triggers),
    }


# ══════════════════════════════════════════════════════════════
#  ACTIVITY LOG
# ══════════════════════════════════════════════════════════════

@app.get("/api/v1/activity", response_class=PlainTextResponse)
async def get_activity(lines: Optional[int] = Query(None, ge=1, le=10000)):
    if lines is None:
        return runtime.activity_log.read_all()
    return "\n".join(runtime.activity_log.tail(lines))


@app.get("/api/v1/activity/stream")
async def stream_activity(from_start: bool = False):
    async def events():
        async for line in runtime.activity_log.follow(from_start=from_start):
            yield f"data: {line}\n\n"

    return StreamingResponse(events(), media_type="text/event-stream")


# ══════════════════════════════════════════════════════════════
#  TRIGGER
# ══════════════════════════════════════════════════════════════

@app.post("/api/v1/trigger")
async def manual_trigger(request: Request):
    """Run a raw message body through the trigger pipeline."""
    body = await request.body()
    outcome = await asyncio.to_thread(runtime.processor.trigger, body)
    return outcome.model_dump(mode="json")


# ══════════════════════════════════════════════════════════════
#  POLLING
# ══════════════════════════════════════════════════════════════

@app.get("/api/v1/jobs/{job_name}/polling-log", response_class=PlainTextResponse)
async def polling_log(job_name: str):
    activity = runtime.polling_activity(job_name)
    if activity is None:
        raise HTTPException(404, "No polling configured for this job")
    return activity.get_log()


@app.post("/api/v1/jobs/{job_name}/poll")
async def poll_job(job_name: str):
    trigger = runtime.polling_triggers.get(job_name)
    if trigger is None:
        raise HTTPException(404, "No polling configured for this job")
    return {"job": job_name, "status": trigger.on_post()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
