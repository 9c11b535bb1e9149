import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from knockout.database import init_db
from knockout.routes import brackets, events, players, runtime

logger = logging.getLogger(__name__)

app = FastAPI(title="Knockout Desk API")

_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    _cors_origins.extend(o.strip() for o in _extra.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(events.router, prefix="/api", tags=["events"])
app.include_router(players.router, prefix="/api", tags=["players"])
app.include_router(brackets.router, prefix="/api", tags=["brackets"])
# Result entry (advancement / rollback)
app.include_router(runtime.router, prefix="/api", tags=["runtime"])


@app.on_event("startup")
def on_startup():
    init_db()
    route_count = sum(1 for r in app.routes if getattr(r, "path", None))
    logger.info("Knockout Desk API started with %d routes", route_count)


@app.get("/api/health")
def health_check():
    return {"app_name": "Knockout Desk API", "status": "healthy"}
