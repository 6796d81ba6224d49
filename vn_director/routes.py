"""FastAPI endpoints under /api.

Endpoint groups: cards (raw card documents), session (reload, reset), the
transcript log written by the scene runtime, and turn (one AI utterance →
command stream). Shared objects live on app.state: `storage`, `session` and
`llm_factory` (config → LLM).
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from vn_director.llm import LLMError
from vn_director.models import TranscriptEntry, TurnRequest
from vn_director.pipeline import run_turn

logger = logging.getLogger(__name__)

router = APIRouter()


class TurnBody(TurnRequest):
    current_scene: str = ""


class TranscriptBody(BaseModel):
    entries: list[TranscriptEntry]


# ── Cards ────────────────────────────────────────────────


@router.get("/cards")
async def list_cards(request: Request):
    """List stored card names."""
    return request.app.state.storage.list_cards()


@router.get("/cards/{name}")
async def get_card(name: str, request: Request):
    card = request.app.state.storage.get_card(name)
    if card is None:
        raise HTTPException(404, "Card not found")
    return card


@router.put("/cards/{name}")
async def save_card(name: str, body: dict[str, Any], request: Request):
    """Store a card document. Takes effect on the next reload."""
    request.app.state.storage.save_card(name, body)
    return {"name": name}


@router.delete("/cards/{name}")
async def delete_card(name: str, request: Request):
    if not request.app.state.storage.delete_card(name):
        raise HTTPException(404, "Card not found")
    return {"deleted": name}


# ── Session ──────────────────────────────────────────────


@router.post("/reload")
async def reload_cards(request: Request):
    """Rebuild the session's config, tables and catalog from stored cards."""
    session = request.app.state.session
    session.reload(request.app.state.storage.get_cards())
    return {
        "lore": len(session.catalog.lore),
        "characters": len(session.catalog.characters),
        "token": session.token,
    }


@router.post("/session/reset")
async def reset_session(request: Request):
    """Start a new timeline (e.g. after loading a save); pending turns are dropped."""
    return {"token": request.app.state.session.invalidate()}


# ── Transcript ───────────────────────────────────────────


@router.get("/transcript")
async def get_transcript(request: Request):
    return request.app.state.storage.get_transcript()


@router.post("/transcript", status_code=201)
async def append_transcript(body: TranscriptBody, request: Request):
    request.app.state.storage.append_transcript(body.entries)
    return {"appended": len(body.entries)}


# ── Turn ─────────────────────────────────────────────────


@router.post("/turn")
async def turn(body: TurnBody, request: Request):
    """Run one AI utterance and return its command stream."""
    state = request.app.state
    session = state.session
    async with session.lock:
        llm = state.llm_factory(session.config)
        try:
            result = await run_turn(
                session=session,
                request=TurnRequest.model_validate(body.model_dump(exclude={"current_scene"})),
                transcript=state.storage.get_transcript(),
                llm=llm,
                current_scene=body.current_scene,
            )
        except LLMError as e:
            logger.error("Turn %s failed: %s", body.id, e)
            raise HTTPException(502, str(e))
    if result is None:
        return {"discarded": True}
    return result
