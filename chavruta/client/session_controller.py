from __future__ import annotations

import logging
from threading import Lock
from typing import List, Optional, Protocol, Tuple
from urllib.parse import quote

from chavruta.backend.types import Mode, Role, Turn
from chavruta.client import constants
from chavruta.client.conversation import APPENDED, CLEARED, Conversation
from chavruta.client.transport import ResponderTransport, ResponderUnreachableError


logger = logging.getLogger(__name__)


class SessionView(Protocol):
	def turn_added(self, turn: Turn) -> None:
		...

	def conversation_cleared(self) -> None:
		...

	def loading_changed(self, loading: bool) -> None:
		...

	def input_changed(self, text: str) -> None:
		...

	def insight_pinned(self, insight: str) -> None:
		...

	def notice(self, text: str) -> None:
		...


class NullView:
	def turn_added(self, turn: Turn) -> None:
		pass

	def conversation_cleared(self) -> None:
		pass

	def loading_changed(self, loading: bool) -> None:
		pass

	def input_changed(self, text: str) -> None:
		pass

	def insight_pinned(self, insight: str) -> None:
		pass

	def notice(self, text: str) -> None:
		pass


def speaker_label(role: Role) -> str:
	if role is Role.USER:
		return "You"
	if role is Role.ASSISTANT:
		return "Assistant"
	raise ValueError(f"Unsupported turn role: {role!r}")


def reference_link(ref: str, base_url: str = constants.SEFARIA_BASE_URL) -> str:
	"""Turn free text such as ``Bereishit 1:1`` into a Sefaria link, or ``""``."""
	normalized = "_".join(ref.split())
	if not normalized:
		return ""
	return base_url + quote(normalized, safe="_.:,-")


class SessionController:
	"""Command handlers for one chat session, independent of any front end."""

	def __init__(
		self,
		transport: ResponderTransport,
		*,
		mode: Mode | str = Mode.QUESTIONS,
		source: str = constants.DEFAULT_SOURCE,
		view: Optional[SessionView] = None,
		conversation: Optional[Conversation] = None,
		history_turns: int = constants.DEFAULT_HISTORY_TURNS,
		reference_base_url: str = constants.SEFARIA_BASE_URL,
	):
		self._transport = transport
		self._mode = Mode.parse(mode)
		self._source = source
		self._view: SessionView = view or NullView()
		self._conversation = conversation if conversation is not None else Conversation()
		self._history_turns = history_turns
		self._reference_base_url = reference_base_url
		self._pinned: List[str] = []
		self._pending_input = ""
		self._loading = False
		self._gate = Lock()
		self._conversation.subscribe(self._on_conversation_event)

	def _on_conversation_event(self, event: str, turn: Optional[Turn]) -> None:
		if event == APPENDED and turn is not None:
			self._view.turn_added(turn)
		elif event == CLEARED:
			self._view.conversation_cleared()

	@property
	def conversation(self) -> Tuple[Turn, ...]:
		return self._conversation.turns()

	@property
	def pinned_insights(self) -> Tuple[str, ...]:
		return tuple(self._pinned)

	@property
	def mode(self) -> Mode:
		return self._mode

	@property
	def loading(self) -> bool:
		return self._loading

	@property
	def pending_input(self) -> str:
		return self._pending_input

	def set_input(self, text: str) -> None:
		self._pending_input = text
		self._view.input_changed(text)

	def set_mode(self, mode: Mode | str) -> Mode:
		self._mode = Mode.parse(mode)
		return self._mode

	def _set_loading(self, loading: bool) -> None:
		self._loading = loading
		self._view.loading_changed(loading)

	def submit(self, text: Optional[str] = None) -> Optional[Turn]:
		"""Send one message and append the reply; returns the assistant turn."""
		cleaned = (self._pending_input if text is None else text).strip()
		if not cleaned:
			return None
		if not self._gate.acquire(blocking=False):
			self._view.notice(constants.BUSY_NOTICE)
			return None
		try:
			history = self._conversation.recent(self._history_turns)
			self._conversation.append(Turn.user(cleaned))
			self.set_input("")
			self._set_loading(True)
			try:
				reply = self._transport.send(cleaned, history, self._source, self._mode)
			except ResponderUnreachableError as exc:
				logger.warning("Could not reach the responder: %s", exc)
				reply = constants.UNREACHABLE_APOLOGY
			return self._conversation.append(Turn.assistant(reply))
		finally:
			if self._loading:
				self._set_loading(False)
			self._gate.release()

	def new_session(self) -> None:
		self._conversation.clear()
		self._pinned = []
		self._conversation.append(Turn.assistant(constants.SESSION_GREETING))

	def pin_last_insight(self) -> Optional[str]:
		turn = self._conversation.last(Role.ASSISTANT)
		if turn is None:
			self._view.notice(constants.NO_INSIGHT_NOTICE)
			return None
		self._pinned.append(turn.content)
		self._view.insight_pinned(turn.content)
		return turn.content

	def export_session(self) -> str:
		lines = [constants.EXPORT_TITLE, "-" * len(constants.EXPORT_TITLE)]
		for turn in self._conversation.turns():
			lines.append(f"{speaker_label(turn.role)}: {turn.content}")
			lines.append("")
		return "\n".join(lines)

	def insert_reference(self, ref: str) -> Optional[str]:
		"""Append a reference link to the pending input without sending it."""
		token = reference_link(ref, self._reference_base_url)
		if not token:
			self._view.notice(constants.EMPTY_REFERENCE_NOTICE)
			return None
		pending = self._pending_input.rstrip()
		self.set_input(f"{pending} {token}" if pending else token)
		return token
