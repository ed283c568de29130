from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List


class Role(str, Enum):
	USER = "user"
	ASSISTANT = "assistant"


class Mode(str, Enum):
	QUESTIONS = "questions"
	PSHAT = "pshat"
	SOD = "sod"
	LIFE = "life"
	MEDITATION = "meditation"

	@classmethod
	def parse(cls, value: object) -> "Mode":
		"""Return the mode named by ``value``; anything unrecognised is ``questions``."""
		if isinstance(value, Mode):
			return value
		if isinstance(value, str):
			candidate = value.strip().lower()
			for mode in cls:
				if mode.value == candidate:
					return mode
		return cls.QUESTIONS


@dataclass(frozen=True)
class Turn:
	role: Role
	content: str

	@classmethod
	def user(cls, content: str) -> "Turn":
		return cls(role=Role.USER, content=content)

	@classmethod
	def assistant(cls, content: str) -> "Turn":
		return cls(role=Role.ASSISTANT, content=content)

	def as_dict(self) -> dict:
		return {"role": self.role.value, "content": self.content}


def mode_values() -> List[str]:
	return [mode.value for mode in Mode]
