from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from schoolcal_api.config import settings
from schoolcal_api.db import engine
from schoolcal_api.error_handlers import register_exception_handlers
from schoolcal_api.models import Base
from schoolcal_api.routes import (
    auth_router,
    calendar_router,
    disciplines_router,
    events_router,
    invites_router,
    notifications_router,
    tasks_router,
    users_router,
    votes_router,
    workspaces_router,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables on startup
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield


app = FastAPI(
    title="School Calendar API",
    description="Shared class calendars: workspaces, tasks, events, votes and invites",
    version="0.1.0",
    lifespan=lifespan,
)

# Session cookies need credentials, so origins must be explicit
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(workspaces_router, prefix="/api")
app.include_router(invites_router, prefix="/api")
app.include_router(notifications_router, prefix="/api")
app.include_router(disciplines_router, prefix="/api")
app.include_router(tasks_router, prefix="/api")
app.include_router(events_router, prefix="/api")
app.include_router(votes_router, prefix="/api")
app.include_router(calendar_router, prefix="/api")


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
