"""
health_chat.py — One turn of the AI health assistant conversation.

Each turn:
  1. loads (or starts) the caller's chat session,
  2. asks Gemini Flash for a structured JSON answer using the recent history,
  3. appends both messages to the session and stores the latest assessment.

If the model answers with prose instead of JSON, the prose becomes the reply
and the structured fields keep their defaults.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError

from green_epidemic.ai.gemini_client import GeminiClient, gemini_client
from green_epidemic.models.analysis import ChatResponse, ChatSessionOut
from green_epidemic.services.analysis_service import AnalysisFormatError, parse_analysis_response
from green_epidemic.services.queries import NEWEST_UPDATED_FIRST

logger = logging.getLogger(__name__)

COLLECTION = "ai_health_chats"
_HISTORY_TURNS = 10

_SYSTEM_PROMPT = """You are a careful health assistant for the Green Epidemic
platform in Thailand. You help people describe symptoms, flag danger signs
and decide whether to seek care. You never give a diagnosis.

Answer with ONE valid JSON object and nothing else:
{
  "response": "your reply to the user",
  "symptoms": ["symptoms mentioned so far"],
  "risk_level": "LOW|MEDIUM|HIGH|CRITICAL",
  "recommendation": "SELF_CARE|TELEHEALTH|CLINIC_VISIT|EMERGENCY",
  "should_consult_doctor": true,
  "needs_more_info": false,
  "missing_info": ["what you still need to know"]
}"""


def _format_history(messages: list[dict]) -> str:
    lines = [f"{m['role'].upper()}: {m['content']}" for m in messages[-_HISTORY_TURNS:]]
    return "\n".join(lines) if lines else "(new conversation)"


def _parse_reply(raw: str, session_id: str) -> ChatResponse:
    try:
        data = parse_analysis_response(raw)
    except AnalysisFormatError:
        logger.warning("Unstructured chat reply, returning raw text")
        return ChatResponse(session_id=session_id, response=raw.strip())

    data.pop("session_id", None)
    try:
        return ChatResponse(session_id=session_id, **data)
    except ValidationError as exc:
        logger.warning("Chat reply failed validation, keeping text only: %s", exc)
        text = data.get("response")
        return ChatResponse(session_id=session_id, response=text if isinstance(text, str) else raw.strip())


async def chat_turn(
    db: AsyncIOMotorDatabase,
    user_id: str,
    message: str,
    session_id: Optional[str] = None,
    *,
    client: GeminiClient = gemini_client,
) -> ChatResponse:
    now = datetime.now(tz=timezone.utc)
    session = None
    if session_id:
        session = await db[COLLECTION].find_one({"user_id": user_id, "session_id": session_id})
    if session is None:
        session_id = session_id or uuid.uuid4().hex

    history = list(session["messages"]) if session else []
    prompt = f"{_SYSTEM_PROMPT}\n\nCONVERSATION SO FAR:\n{_format_history(history)}\n\nUSER: {message}"

    raw = await client.generate_with_flash(prompt, response_key="health_chat")
    reply = _parse_reply(raw, session_id)

    history.append({"role": "user", "content": message, "timestamp": now})
    history.append({"role": "assistant", "content": reply.response, "timestamp": now})
    fields = {
        "messages": history,
        "risk_level": reply.risk_level,
        "recommendation": reply.recommendation,
        "suggested_symptoms": reply.symptoms,
        "should_consult_doctor": reply.should_consult_doctor,
        "updated_at": now,
    }

    if session is None:
        await db[COLLECTION].insert_one(
            {"user_id": user_id, "session_id": session_id, "created_at": now, **fields}
        )
        logger.info("Started health chat session %s for user %s", session_id, user_id)
    else:
        await db[COLLECTION].update_one({"_id": session["_id"]}, {"$set": fields})

    return reply


def doc_to_session(doc: dict) -> ChatSessionOut:
    return ChatSessionOut(
        id=str(doc["_id"]),
        user_id=doc["user_id"],
        session_id=doc["session_id"],
        message_count=len(doc.get("messages") or []),
        risk_level=doc.get("risk_level"),
        recommendation=doc.get("recommendation"),
        should_consult_doctor=doc.get("should_consult_doctor", False),
        updated_at=doc["updated_at"],
    )


async def recent_sessions(db: AsyncIOMotorDatabase, limit: int = 50) -> list[ChatSessionOut]:
    cursor = db[COLLECTION].find({}).sort(NEWEST_UPDATED_FIRST).limit(limit)
    return [doc_to_session(doc) async for doc in cursor]
