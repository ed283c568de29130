from __future__ import annotations

import logging
from typing import Any, Optional, Protocol, Sequence

import httpx

from chavruta.backend.types import Mode, Turn
from chavruta.client import constants


logger = logging.getLogger(__name__)


class ResponderUnreachableError(Exception):
	"""The responder could not be reached or sent nothing renderable."""


class ResponderTransport(Protocol):
	def send(self, message: str, history: Sequence[Turn], source: str, mode: Mode) -> str:
		...


class HttpResponderTransport:
	def __init__(
		self,
		base_url: str = constants.DEFAULT_RESPONDER_URL,
		*,
		timeout_s: float = constants.DEFAULT_TRANSPORT_TIMEOUT_S,
		client: Optional[httpx.Client] = None,
	):
		self._client = client or httpx.Client(base_url=base_url, timeout=timeout_s)

	def close(self) -> None:
		self._client.close()

	def send(self, message: str, history: Sequence[Turn], source: str, mode: Mode) -> str:
		payload = {
			"message": message,
			"conversation": [turn.as_dict() for turn in history],
			"source": source,
			"mode": Mode.parse(mode).value,
		}
		try:
			response = self._client.post(constants.RESPOND_PATH, json=payload)
		except httpx.HTTPError as exc:
			raise ResponderUnreachableError(f"Responder request failed: {exc}") from exc

		data: Any
		try:
			data = response.json()
		except ValueError as exc:
			raise ResponderUnreachableError(
				f"Responder returned HTTP {response.status_code} without JSON."
			) from exc
		reply = data.get("reply") if isinstance(data, dict) else None
		if not isinstance(reply, str) or not reply.strip():
			raise ResponderUnreachableError(
				f"Responder returned HTTP {response.status_code} without a reply."
			)
		if response.status_code != 200:
			logger.warning("Responder answered HTTP %s; showing its reply", response.status_code)
		return reply.strip()


class LocalResponderTransport:
	"""Calls an in-process responder; used by tests and the offline terminal."""

	def __init__(self, responder: Any):
		self._responder = responder

	def send(self, message: str, history: Sequence[Turn], source: str, mode: Mode) -> str:
		try:
			return self._responder.respond(message, history, source, mode)
		except Exception as exc:
			raise ResponderUnreachableError(f"Local responder failed: {exc.__class__.__name__}") from exc
