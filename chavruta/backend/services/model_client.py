from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

from openai import APIConnectionError, APIStatusError, APITimeoutError, OpenAI

from chavruta.backend import constants
from chavruta.backend.types import Role, Turn


logger = logging.getLogger(__name__)


class ModelClientError(Exception):
	"""Base class for every failure the model adapter reports."""


class TransportError(ModelClientError):
	pass


class UpstreamError(ModelClientError):
	def __init__(self, *, status_code: int, body: str):
		super().__init__(f"Model provider returned HTTP {status_code}.")
		self.status_code = status_code
		self.body = body


class EmptyCompletionError(ModelClientError):
	pass


def _normalize(text: str) -> str:
	return " ".join((text or "").split()).strip()


def trim_history(history: Sequence[Turn], limit: int = constants.DEFAULT_HISTORY_TURNS) -> List[Turn]:
	"""Drop turns with no content, then keep the last ``limit`` turns in order."""
	kept: List[Turn] = []
	for turn in history:
		if not _normalize(turn.content):
			continue
		kept.append(turn)
	if limit <= 0:
		return []
	return kept[-limit:]


def _role_value(role: Role) -> str:
	if role is Role.USER:
		return "user"
	if role is Role.ASSISTANT:
		return "assistant"
	raise ValueError(f"Unsupported turn role: {role!r}")


def build_messages(
	*,
	system_prompt: str,
	history: Sequence[Turn],
	user_message: str,
	limit: int = constants.DEFAULT_HISTORY_TURNS,
) -> List[Dict[str, str]]:
	messages = [{"role": "system", "content": system_prompt}]
	for turn in trim_history(history, limit):
		messages.append({"role": _role_value(turn.role), "content": turn.content})
	messages.append({"role": "user", "content": user_message.strip()})
	return messages


def _get(item: Any, name: str) -> Any:
	value = getattr(item, name, None)
	if value is None and isinstance(item, dict):
		value = item.get(name)
	return value


def extract_completion_text(response: Any) -> str:
	choices = _get(response, "choices")
	if not isinstance(choices, (list, tuple)) or not choices:
		return ""
	message = _get(choices[0], "message")
	if message is None:
		return ""
	content = _get(message, "content")
	if isinstance(content, str):
		return content.strip()
	if not isinstance(content, list):
		return ""
	parts: List[str] = []
	for chunk in content:
		text = _get(chunk, "text")
		if isinstance(text, str) and text.strip():
			parts.append(text.strip())
	return "\n".join(parts).strip()


def _translate_error(exc: Exception) -> ModelClientError:
	# APITimeoutError subclasses APIConnectionError.
	if isinstance(exc, (APITimeoutError, APIConnectionError, TimeoutError)):
		return TransportError(f"Model provider unreachable: {exc.__class__.__name__}")
	if isinstance(exc, APIStatusError):
		response = getattr(exc, "response", None)
		body = response.text if response is not None else ""
		return UpstreamError(status_code=int(exc.status_code), body=body or str(exc))
	return TransportError(f"Model provider request failed: {exc.__class__.__name__}")


class ModelClient:
	"""One chat completion per call against the OpenAI API; no retries."""

	def __init__(
		self,
		*,
		api_key: str,
		model: str = constants.DEFAULT_OPENAI_MODEL,
		timeout_s: float = constants.DEFAULT_OPENAI_TIMEOUT_S,
		temperature: float = constants.DEFAULT_TEMPERATURE,
		history_turns: int = constants.DEFAULT_HISTORY_TURNS,
		client: Any = None,
	):
		self.model = model
		self.timeout_s = timeout_s
		self.temperature = temperature
		self.history_turns = history_turns
		self._api_key = api_key
		self._client = client

	def _build_openai_client(self):
		return OpenAI(api_key=self._api_key, timeout=self.timeout_s, max_retries=0)

	@property
	def client(self) -> Any:
		if self._client is None:
			self._client = self._build_openai_client()
		return self._client

	def complete(self, system_prompt: str, history: Sequence[Turn], user_message: str) -> str:
		messages = build_messages(
			system_prompt=system_prompt,
			history=history,
			user_message=user_message,
			limit=self.history_turns,
		)
		logger.debug("Sending %d messages to model %s", len(messages), self.model)
		try:
			response = self.client.chat.completions.create(
				model=self.model,
				messages=messages,
				temperature=self.temperature,
				timeout=self.timeout_s,
			)
		except ModelClientError:
			raise
		except Exception as exc:
			raise _translate_error(exc) from exc

		text = extract_completion_text(response)
		if not text:
			raise EmptyCompletionError("Model provider returned no usable completion.")
		return text
