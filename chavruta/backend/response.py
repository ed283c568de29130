from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Request

from chavruta.backend import constants


def _request_id(request: Optional[Request]) -> Optional[str]:
	if request is None:
		return None
	return getattr(request.state, "request_id", None)


def reply_response(reply: str) -> Dict[str, Any]:
	return {"reply": reply}


def error_response(
	*,
	code: str,
	request: Optional[Request] = None,
	reply: str = constants.GENERIC_APOLOGY_REPLY,
) -> Dict[str, Any]:
	"""Error body shaped like a normal reply so front ends can render it as-is."""
	payload: Dict[str, Any] = {
		"reply": reply,
		"error": {"code": code},
	}
	request_id = _request_id(request)
	if request_id:
		payload["error"]["request_id"] = request_id
	return payload
