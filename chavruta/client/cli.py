from __future__ import annotations

import argparse
import logging
import sys
from typing import Callable, Dict, List, Optional, TextIO

from chavruta.backend.config import load_settings
from chavruta.backend.services.responder_service import Responder
from chavruta.backend.types import Turn, mode_values
from chavruta.client import constants
from chavruta.client.session_controller import SessionController, speaker_label
from chavruta.client.transport import HttpResponderTransport, LocalResponderTransport


HELP_TEXT = """Commands:
  /new            start a new session
  /pin            pin the last reply
  /pins           list pinned insights
  /export         print the session transcript
  /ref <source>   add a Sefaria link to your next message
  /mode <lens>    questions | pshat | sod | life | meditation
  /help           show this help
  /quit           leave"""


class TerminalView:
	def __init__(self, out: TextIO = sys.stdout):
		self._out = out

	def _print(self, text: str) -> None:
		print(text, file=self._out)

	def turn_added(self, turn: Turn) -> None:
		self._print(f"\n{speaker_label(turn.role)}: {turn.content}")

	def conversation_cleared(self) -> None:
		self._print("\n--- new session ---")

	def loading_changed(self, loading: bool) -> None:
		if loading:
			self._print("Thinking…")

	def input_changed(self, text: str) -> None:
		if text:
			self._print(f"(draft) {text}")

	def insight_pinned(self, insight: str) -> None:
		self._print("Pinned.")

	def notice(self, text: str) -> None:
		self._print(f"* {text}")


def _build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(description="Study with Chavruta from the terminal.")
	parser.add_argument(
		"--url",
		default=constants.DEFAULT_RESPONDER_URL,
		help="Responder base URL.",
	)
	parser.add_argument(
		"--local",
		action="store_true",
		help="Answer in-process instead of calling a responder over HTTP.",
	)
	parser.add_argument("--mode", default="questions", choices=mode_values())
	parser.add_argument("--source", default=constants.DEFAULT_SOURCE)
	parser.add_argument("--timeout", type=float, default=constants.DEFAULT_TRANSPORT_TIMEOUT_S)
	return parser


def run_command(controller: SessionController, line: str, out: TextIO) -> bool:
	"""Handle one ``/command`` line; returns False when the user wants to quit."""
	name, _, arg = line[1:].partition(" ")
	name = name.strip().lower()
	arg = arg.strip()

	def _pins() -> None:
		for index, insight in enumerate(controller.pinned_insights, start=1):
			print(f"{index}. {insight}", file=out)
		if not controller.pinned_insights:
			print("* No pinned insights yet.", file=out)

	def _mode() -> None:
		mode = controller.set_mode(arg)
		print(f"* Lens: {mode.value}", file=out)

	handlers: Dict[str, Callable[[], object]] = {
		"new": controller.new_session,
		"pin": controller.pin_last_insight,
		"pins": _pins,
		"export": lambda: print(controller.export_session(), file=out),
		"ref": lambda: controller.insert_reference(arg),
		"mode": _mode,
		"help": lambda: print(HELP_TEXT, file=out),
	}
	if name in {"quit", "exit"}:
		return False
	handler = handlers.get(name)
	if handler is None:
		print(f"* Unknown command /{name}. Type /help.", file=out)
		return True
	handler()
	return True


def main(argv: Optional[List[str]] = None) -> int:
	args = _build_parser().parse_args(argv)
	logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

	if args.local:
		transport = LocalResponderTransport(Responder(load_settings()))
	else:
		transport = HttpResponderTransport(args.url, timeout_s=args.timeout)

	view = TerminalView()
	controller = SessionController(transport, mode=args.mode, source=args.source, view=view)
	controller.new_session()
	print(HELP_TEXT)

	while True:
		try:
			line = input("\nYou> ")
		except (EOFError, KeyboardInterrupt):
			print()
			break
		text = line.strip()
		if text.startswith("/"):
			if not run_command(controller, text, sys.stdout):
				break
			continue
		if controller.pending_input:
			text = f"{controller.pending_input} {text}".strip()
		controller.submit(text)

	if isinstance(transport, HttpResponderTransport):
		transport.close()
	return 0


if __name__ == "__main__":
	raise SystemExit(main())
