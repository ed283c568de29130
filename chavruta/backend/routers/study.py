from __future__ import annotations

import logging

from fastapi import APIRouter, Request

from chavruta.backend.response import reply_response
from chavruta.backend.schemas import RespondRequest, RespondResponse, ResponderStatus
from chavruta.backend.services.responder_service import Responder
from chavruta.backend.types import mode_values


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chavruta", tags=["chavruta"])


def _responder(request: Request) -> Responder:
	return request.app.state.responder


@router.post("/respond", response_model=RespondResponse)
def respond(request: Request, payload: RespondRequest):
	outcome = _responder(request).respond_outcome(
		payload.message or "",
		payload.turns(),
		payload.source or "",
		payload.mode,
	)
	logger.info(
		"Replied via %s (mode=%s source=%s turns=%d) [%s]",
		outcome.path,
		outcome.mode.value,
		payload.source or "-",
		len(payload.conversation),
		getattr(request.state, "request_id", "-"),
	)
	return reply_response(outcome.reply)


@router.get("/status", response_model=ResponderStatus)
def status(request: Request):
	settings = request.app.state.settings
	return {
		"model": settings.openai_model,
		"model_available": _responder(request).model_available,
		"offline_forced": settings.force_offline,
		"history_turns": settings.history_turns,
		"modes": mode_values(),
	}
