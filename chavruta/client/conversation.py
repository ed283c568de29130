from __future__ import annotations

from typing import Callable, List, Optional, Tuple

from chavruta.backend.types import Role, Turn


ConversationListener = Callable[[str, Optional[Turn]], None]

APPENDED = "appended"
CLEARED = "cleared"


class Conversation:
	"""Append-only turn sequence for one session.

	Listeners are called with ``("appended", turn)`` or ``("cleared", None)``.
	"""

	def __init__(self) -> None:
		self._turns: List[Turn] = []
		self._listeners: List[ConversationListener] = []

	def __len__(self) -> int:
		return len(self._turns)

	def subscribe(self, listener: ConversationListener) -> Callable[[], None]:
		self._listeners.append(listener)

		def unsubscribe() -> None:
			if listener in self._listeners:
				self._listeners.remove(listener)

		return unsubscribe

	def _notify(self, event: str, turn: Optional[Turn]) -> None:
		for listener in list(self._listeners):
			listener(event, turn)

	def append(self, turn: Turn) -> Turn:
		if not isinstance(turn.role, Role):
			raise TypeError(f"Turn role must be a Role, got {turn.role!r}")
		self._turns.append(turn)
		self._notify(APPENDED, turn)
		return turn

	def clear(self) -> None:
		self._turns = []
		self._notify(CLEARED, None)

	def turns(self) -> Tuple[Turn, ...]:
		return tuple(self._turns)

	def recent(self, limit: int) -> List[Turn]:
		if limit <= 0:
			return []
		return list(self._turns[-limit:])

	def last(self, role: Role) -> Optional[Turn]:
		for turn in reversed(self._turns):
			if turn.role is role:
				return turn
		return None
