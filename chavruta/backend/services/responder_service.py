from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Protocol, Sequence, Tuple, Union

from chavruta.backend import constants
from chavruta.backend.config import Settings
from chavruta.backend.services import offline_reply_service
from chavruta.backend.services.model_client import (
	ModelClient,
	ModelClientError,
	UpstreamError,
)
from chavruta.backend.types import Mode, Role, Turn


logger = logging.getLogger(__name__)

_BASE_PROMPT = (
	"You are Chavruta, a gentle, non-polemical Torah study partner. "
	"You help the user explore Jewish texts, Sefaria sources, and their own questions. "
	"You explain calmly, ask clarifying questions when helpful, and always stay respectful "
	"of halakhic and spiritual sensitivity."
)

SYSTEM_PROMPTS: Dict[Mode, str] = {
	Mode.QUESTIONS: _BASE_PROMPT
	+ " Study in the classic chavruta way: answer briefly, then return two or three open"
	" reflective questions that help the user find meaning in the text themselves.",
	Mode.PSHAT: _BASE_PROMPT
	+ " Focus on pshat, the plain and contextual meaning: who speaks, what the words mean,"
	" and how the surrounding verses and the classic commentators read it.",
	Mode.SOD: _BASE_PROMPT
	+ " Focus on sod, the mystical resonance: letters, names, and images as they are read"
	" in Kabbalah and Chassidut, offered humbly and without claiming certainty.",
	Mode.LIFE: _BASE_PROMPT
	+ " Focus on application: connect the teaching to the user's daily life and suggest one"
	" small concrete practice, without moralising.",
	Mode.MEDITATION: _BASE_PROMPT
	+ " Guide a short contemplative practice: a few slow breaths, a phrase from the text to"
	" hold, and a quiet closing reflection.",
}


class ResponderState(str, Enum):
	IDLE = "idle"
	VALIDATING = "validating"
	OFFLINE_ONLY = "offline_only"
	TRYING_MODEL = "trying_model"
	RESPONDING = "responding"


class CompletionClient(Protocol):
	def complete(self, system_prompt: str, history: Sequence[Turn], user_message: str) -> str:
		...


@dataclass(frozen=True)
class ModelSuccess:
	text: str


@dataclass(frozen=True)
class ModelFailure:
	error: ModelClientError


ModelAttempt = Union[ModelSuccess, ModelFailure]


@dataclass
class ResponderOutcome:
	reply: str
	path: str
	mode: Mode
	states: List[ResponderState] = field(default_factory=list)
	failure: Optional[ModelClientError] = None


def system_prompt_for(mode: Mode | str) -> str:
	return SYSTEM_PROMPTS[Mode.parse(mode)]


def select_reply(attempt: ModelAttempt, offline_reply: str) -> Tuple[str, str]:
	"""Choose between the model's text and the offline reply.

	This is the only place the fallback policy lives.
	"""
	if isinstance(attempt, ModelSuccess):
		text = attempt.text.strip()
		if text:
			return text, "model"
		return offline_reply, "fallback"
	if isinstance(attempt, ModelFailure):
		return offline_reply, "fallback"
	raise TypeError(f"Unknown model attempt: {attempt!r}")


def _failure_detail(error: ModelClientError) -> str:
	if isinstance(error, UpstreamError):
		body = offline_reply_service.truncate(error.body or "", constants.LOG_BODY_CHARS)
		return f"status={error.status_code} body={body!r}"
	return str(error)


def _history_for_model(conversation: Sequence[Turn], message: str) -> List[Turn]:
	history = list(conversation)
	if history:
		last = history[-1]
		if last.role is Role.USER and last.content.strip() == message:
			history.pop()
	return history


def attempt_model(
	client: CompletionClient,
	message: str,
	conversation: Sequence[Turn],
	mode: Mode,
) -> ModelAttempt:
	try:
		text = client.complete(
			system_prompt_for(mode),
			_history_for_model(conversation, message),
			message,
		)
	except ModelClientError as exc:
		return ModelFailure(error=exc)
	return ModelSuccess(text=text)


class Responder:
	"""Turns one user message into exactly one non-empty reply."""

	def __init__(self, settings: Settings, model_client: Optional[CompletionClient] = None):
		self._settings = settings
		self._model_client = model_client
		if self._model_client is None and settings.model_available:
			self._model_client = ModelClient(
				api_key=settings.openai_api_key,
				model=settings.openai_model,
				timeout_s=settings.openai_timeout_s,
				temperature=settings.temperature,
				history_turns=settings.history_turns,
			)

	@property
	def model_available(self) -> bool:
		return self._settings.model_available and self._model_client is not None

	def respond_outcome(
		self,
		message: str,
		conversation: Sequence[Turn] = (),
		source: str = "",
		mode: Mode | str = Mode.QUESTIONS,
	) -> ResponderOutcome:
		resolved = Mode.parse(mode)
		states = [ResponderState.IDLE, ResponderState.VALIDATING]
		cleaned = (message or "").strip()
		if not cleaned:
			states.append(ResponderState.RESPONDING)
			return ResponderOutcome(
				reply=constants.GREETING_REPLY,
				path="greeting",
				mode=resolved,
				states=states,
			)

		offline_reply = offline_reply_service.generate(message, conversation, resolved)

		client = self._model_client
		if client is None or not self._settings.model_available:
			logger.debug("Model credential unavailable; answering offline (source=%s)", source or "-")
			states.extend([ResponderState.OFFLINE_ONLY, ResponderState.RESPONDING])
			return ResponderOutcome(
				reply=offline_reply,
				path="offline_only",
				mode=resolved,
				states=states,
			)

		states.append(ResponderState.TRYING_MODEL)
		attempt = attempt_model(client, cleaned, conversation, resolved)
		reply, path = select_reply(attempt, offline_reply)
		failure = attempt.error if isinstance(attempt, ModelFailure) else None
		if failure is not None:
			logger.warning(
				"Model call failed with %s (%s); using offline reply (mode=%s source=%s)",
				failure.__class__.__name__,
				_failure_detail(failure),
				resolved.value,
				source or "-",
			)
		elif path == "fallback":
			logger.warning("Model returned blank text; using offline reply (mode=%s)", resolved.value)
		states.append(ResponderState.RESPONDING)
		return ResponderOutcome(
			reply=reply,
			path=path,
			mode=resolved,
			states=states,
			failure=failure,
		)

	def respond(
		self,
		message: str,
		conversation: Sequence[Turn] = (),
		source: str = "",
		mode: Mode | str = Mode.QUESTIONS,
	) -> str:
		return self.respond_outcome(message, conversation, source, mode).reply
