# The module is to define the API router for the application.
# Date: 2025-10-07
# Version: 0.2.0

from fastapi import APIRouter

from toolchat.api.v1.endpoints import chat, session, tools

api_router = APIRouter()

api_router.include_router(session.router, prefix="/session", tags=["Session Management"])

api_router.include_router(chat.router, prefix="/chat", tags=["Conversation"])

api_router.include_router(tools.router, prefix="/tools", tags=["Tools"])
