from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

try:
    from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
except Exception:  # pragma: no cover - optional dependency resolution
    FastAPIInstrumentor = None

from apps.api.observability import init_observability
from apps.api.reminders_scheduler import get_runtime, shutdown_runtime, start_runtime
from apps.api.routes.admin import router as admin_router
from apps.api.routes.reminders import router as reminders_router
from packages.core.logging_config import configure_logging
from packages.core.settings import load_settings


configure_logging()

init_observability()
app = FastAPI(title="Remind Ops API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
if FastAPIInstrumentor is not None:
    FastAPIInstrumentor.instrument_app(app)
else:
    logging.getLogger("remind_ops.api").warning(
        "OpenTelemetry instrumentation not available. "
        "Install observability dependencies to enable tracing."
    )
app.include_router(reminders_router)
app.include_router(admin_router)


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.on_event("startup")
def _start_reminder_scheduler() -> None:
    if not load_settings().scheduler_enabled:
        logging.getLogger("remind_ops.api").info("reminder_scheduler_disabled")
        return
    start_runtime(get_runtime())


@app.on_event("shutdown")
def _stop_reminder_scheduler() -> None:
    shutdown_runtime()
