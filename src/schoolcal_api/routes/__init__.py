from schoolcal_api.routes.auth import router as auth_router
from schoolcal_api.routes.calendar import router as calendar_router
from schoolcal_api.routes.disciplines import router as disciplines_router
from schoolcal_api.routes.events import router as events_router
from schoolcal_api.routes.invites import router as invites_router
from schoolcal_api.routes.notifications import router as notifications_router
from schoolcal_api.routes.tasks import router as tasks_router
from schoolcal_api.routes.users import router as users_router
from schoolcal_api.routes.votes import router as votes_router
from schoolcal_api.routes.workspaces import router as workspaces_router

__all__ = [
    "auth_router",
    "calendar_router",
    "disciplines_router",
    "events_router",
    "invites_router",
    "notifications_router",
    "tasks_router",
    "users_router",
    "votes_router",
    "workspaces_router",
]
