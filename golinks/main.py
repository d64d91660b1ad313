"""FastAPI application entry point for the go-links service.

Application Lifecycle Diagram
===========================
::
    ┌─────────────┐
    │  uvicorn    │
    │  startup    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ startup:    │
    │ init_db()   │
    │ services    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Serve HTTP  │
    │ requests    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ shutdown:   │
    │ drain clicks│
    │ close_db()  │
    │ close_redis()│
    └─────────────┘

How to Use
===========
**Step 1 — Run with uvicorn**::
    uvicorn golinks.main:app --host 0.0.0.0 --port 8000

**Step 2 — Create a link**::
    curl -X POST http://localhost:8000/api/links \
         -H "Content-Type: application/json" \
         -d '{"code": "johnatlanta", "url": "https://taxgeniuspro.tax/start-filing/form?ref=TGP-123456"}'

**Step 3 — Follow it**::
    curl -i "http://localhost:8000/go/johnatlanta?utm_source=instagram"

Key Behaviours
===============
- Database tables are created automatically on startup.
- Pending click recordings are drained before the database is closed.
- Prometheus metrics are exposed at /metrics.
"""

__all__ = ["app"]

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from golinks.config import get_settings
from golinks.database import close_db, init_db
from golinks.dependencies import _service_manager
from golinks.redis import close_redis
from golinks.routes import router

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    await init_db()
    await _service_manager.initialize()
    yield
    # Shutdown
    await _service_manager.cleanup()
    await close_db()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="Short link redirects with click tracking",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=False,
    should_respect_env_var=False,
).instrument(app).expose(app)

app.include_router(router)
