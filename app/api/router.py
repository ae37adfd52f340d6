from fastapi import APIRouter

from app.api.v1.routes import auth, conversations, expert, health, messages

api_router = APIRouter()
api_router.include_router(health.router, prefix="/v1", tags=["health"])
api_router.include_router(auth.router, prefix="/v1/auth", tags=["auth"])
api_router.include_router(
    conversations.router, prefix="/v1/conversations", tags=["conversations"]
)
api_router.include_router(messages.router, prefix="/v1/messages", tags=["messages"])
api_router.include_router(expert.router, prefix="/v1/expert", tags=["expert"])
