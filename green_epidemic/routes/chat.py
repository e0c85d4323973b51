"""
chat.py — AI health assistant.

Route:
  POST /ai-health-chat — one conversation turn (rate limited per IP)

Pass the returned session_id back on the next request to continue the
same conversation.
"""

from fastapi import APIRouter, Request

from green_epidemic.core.database import DbDep
from green_epidemic.core.rate_limit import limiter
from green_epidemic.models.analysis import ChatRequest, ChatResponse
from green_epidemic.routes.auth import CurrentPrincipal
from green_epidemic.services.health_chat import chat_turn

router = APIRouter(prefix="/ai-health-chat", tags=["chat"])


@router.post("", response_model=ChatResponse)
@limiter.limit("20/minute")
async def health_chat(request: Request, payload: ChatRequest, principal: CurrentPrincipal, db: DbDep):
    return await chat_turn(db, principal.id, payload.message, payload.session_id)
