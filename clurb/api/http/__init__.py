from clurb.api.http.health import router as health_router
from clurb.api.http.users import router as users_router
from clurb.api.http.documents import router as documents_router
from clurb.api.http.invitations import router as invitations_router
from clurb.api.http.reading import router as reading_router
from clurb.api.http.annotations import router as annotations_router
from clurb.api.http.chat import router as chat_router
from clurb.api.http.agent import router as agent_router

__all__ = [
    "health_router",
    "users_router",
    "documents_router",
    "invitations_router",
    "reading_router",
    "annotations_router",
    "chat_router",
    "agent_router"
]
