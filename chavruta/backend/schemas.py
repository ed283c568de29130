from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from chavruta.backend.types import Role, Turn


class TurnPayload(BaseModel):
	model_config = ConfigDict(extra="ignore")

	role: Literal["user", "assistant"]
	content: str = ""

	def to_turn(self) -> Turn:
		return Turn(role=Role(self.role), content=self.content)


class RespondRequest(BaseModel):
	model_config = ConfigDict(extra="ignore")

	message: Optional[str] = Field(
		default="",
		description="The learner's new message.",
	)
	conversation: List[TurnPayload] = Field(default_factory=list, description="Prior turns, oldest first.")
	source: Optional[str] = Field(default=None, description="Identifier of the embedding page.")
	# Any value is accepted; unrecognised modes are read as questions.
	mode: Optional[Any] = Field(default=None, description="questions | pshat | sod | life | meditation")

	def turns(self) -> List[Turn]:
		return [item.to_turn() for item in self.conversation]


class RespondResponse(BaseModel):
	model_config = ConfigDict(extra="forbid")

	reply: str


class ResponderStatus(BaseModel):
	model_config = ConfigDict(extra="forbid")

	model: str
	model_available: bool
	offline_forced: bool
	history_turns: int
	modes: List[str] = Field(default_factory=list)
