from fastapi import APIRouter

from clurb.api.http.health import router as health_router
from clurb.api.http.users import router as users_router
from clurb.api.http.documents import router as documents_router
from clurb.api.http.invitations import router as invitations_router
from clurb.api.http.friends import router as friends_router
from clurb.api.http.reading import router as reading_router
from clurb.api.http.annotations import router as annotations_router
from clurb.api.http.chat import router as chat_router
from clurb.api.http.agent import router as agent_router
from clurb.api.ws.session import router as websocket_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(users_router)
api_router.include_router(documents_router)
api_router.include_router(invitations_router)
api_router.include_router(friends_router)
api_router.include_router(reading_router)
api_router.include_router(annotations_router)
api_router.include_router(chat_router)
api_router.include_router(agent_router)
api_router.include_router(websocket_router)
