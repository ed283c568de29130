from __future__ import annotations

from typing import Dict, List, Sequence

from chavruta.backend import constants
from chavruta.backend.types import Mode, Role, Turn


_ELLIPSIS = "…"

_MODE_HEADINGS: Dict[Mode, str] = {
	Mode.QUESTIONS: "Let's open it with a few questions:",
	Mode.PSHAT: "Let's start with the simple meaning (pshat):",
	Mode.SOD: "Let's listen for the inner resonance (sod):",
	Mode.LIFE: "Let's bring it into your life this week:",
	Mode.MEDITATION: "Let's hold it in a short guided meditation:",
}

_MODE_BODIES: Dict[Mode, List[str]] = {
	Mode.QUESTIONS: [
		"1. Which single word or image in it catches you first, and why that one?",
		"2. What question would you ask the speaker if you could sit beside them?",
		"3. Where do you feel resistance or surprise as you read it again slowly?",
	],
	Mode.PSHAT: [
		"1. Who is speaking, to whom, and at what moment in the story?",
		"2. Which words repeat or stand out, and what do they plainly mean here?",
		"3. Read the verses just before and after: what does the context add?",
	],
	Mode.SOD: [
		"1. Notice the letters and the names: which one seems to carry light?",
		"2. Ask which gate this opens: love, awe, beauty, or something hidden.",
		"3. Imagine the words as a vessel: what is it holding, and for whom?",
	],
	Mode.LIFE: [
		"1. Where in your own week does this teaching already show up?",
		"2. What is one small, concrete action it invites from you tomorrow?",
		"3. Who in your life would you want to learn this with, and why?",
	],
	Mode.MEDITATION: [
		"Breathe in slowly for four counts, letting the words settle.",
		"Hold the breath gently for four counts and repeat one word from it silently.",
		"Breathe out for six counts, releasing whatever is tight.",
		"Stay for three more breaths and notice what feeling remains.",
	],
}

_CLOSING = (
	"If you share the exact source (for example \"Bereishit 1:1\" or a Sefaria link), "
	"or choose a lens (questions, pshat, sod, life, or meditation), we can go deeper together. "
	"I'm in offline study mode right now, so these are prompts for your own reflection."
)


def truncate(text: str, limit: int) -> str:
	if len(text) <= limit:
		return text
	return text[:limit].rstrip() + _ELLIPSIS


def _previous_user_message(conversation: Sequence[Turn], message: str) -> str:
	for turn in reversed(conversation):
		if turn.role is not Role.USER:
			continue
		content = turn.content.strip()
		if content and content != message:
			return content
	return ""


def generate(message: str, conversation: Sequence[Turn], mode: Mode | str) -> str:
	"""Build a deterministic study reply without any external service.

	The caller is responsible for rejecting empty messages.
	"""
	cleaned = message.strip()
	resolved = Mode.parse(mode)
	blocks: List[str] = []

	opening = f"You brought: \"{truncate(cleaned, constants.MESSAGE_DISPLAY_CHARS)}\"."
	previous = _previous_user_message(conversation, cleaned)
	if previous:
		opening += f"\nEarlier you asked: \"{truncate(previous, constants.BACK_REFERENCE_CHARS)}\"."
	blocks.append(opening)

	body = [_MODE_HEADINGS[resolved], *_MODE_BODIES[resolved]]
	blocks.append("\n".join(body))
	blocks.append(_CLOSING)
	return "\n\n".join(blocks)
