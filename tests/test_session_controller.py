from unittest import TestCase
from unittest.mock import patch

from chavruta.backend.config import Settings
from chavruta.backend.services import offline_reply_service
from chavruta.backend.services.responder_service import Responder
from chavruta.backend.types import Mode, Role, Turn
from chavruta.client import constants
from chavruta.client.conversation import Conversation
from chavruta.client.session_controller import SessionController, reference_link
from chavruta.client.transport import LocalResponderTransport, ResponderUnreachableError


class _RecordingTransport:
	def __init__(self, reply: str = "A reply.", error: Exception | None = None):
		self.reply = reply
		self.error = error
		self.calls = []

	def send(self, message, history, source, mode):
		self.calls.append({"message": message, "history": list(history), "source": source, "mode": mode})
		if self.error is not None:
			raise self.error
		return self.reply


class _RecordingView:
	def __init__(self):
		self.events = []

	def turn_added(self, turn):
		self.events.append(("turn", turn.role.value))

	def conversation_cleared(self):
		self.events.append(("cleared", None))

	def loading_changed(self, loading):
		self.events.append(("loading", loading))

	def input_changed(self, text):
		self.events.append(("input", text))

	def insight_pinned(self, insight):
		self.events.append(("pinned", insight))

	def notice(self, text):
		self.events.append(("notice", text))


class SessionControllerTests(TestCase):
	def test_submit_appends_user_and_assistant_turns(self) -> None:
		transport = _RecordingTransport(reply="Let's learn.")
		view = _RecordingView()
		controller = SessionController(transport, mode="sod", source="test-page", view=view)
		controller.set_input("draft")
		turn = controller.submit("  What is Bereishit?  ")
		self.assertEqual(turn, Turn.assistant("Let's learn."))
		self.assertEqual(controller.conversation, (Turn.user("What is Bereishit?"), Turn.assistant("Let's learn.")))
		self.assertEqual(controller.pending_input, "")
		self.assertFalse(controller.loading)
		call = transport.calls[0]
		self.assertEqual(call["message"], "What is Bereishit?")
		self.assertEqual(call["history"], [])
		self.assertEqual(call["source"], "test-page")
		self.assertEqual(call["mode"], Mode.SOD)
		self.assertIn(("loading", True), view.events)
		self.assertEqual(view.events[-1], ("loading", False))

	def test_submit_ignores_empty_input(self) -> None:
		transport = _RecordingTransport()
		controller = SessionController(transport)
		self.assertIsNone(controller.submit("   "))
		self.assertIsNone(controller.submit())
		self.assertEqual(controller.conversation, ())
		self.assertEqual(transport.calls, [])

	def test_submit_uses_pending_input_when_no_text_given(self) -> None:
		transport = _RecordingTransport()
		controller = SessionController(transport)
		controller.set_input("Pirkei Avot 1:2")
		controller.submit()
		self.assertEqual(transport.calls[0]["message"], "Pirkei Avot 1:2")

	def test_history_is_prior_turns_trimmed(self) -> None:
		transport = _RecordingTransport()
		controller = SessionController(transport, history_turns=12)
		for index in range(10):
			controller.submit(f"question {index}")
		history = transport.calls[-1]["history"]
		self.assertEqual(len(history), 12)
		self.assertEqual(history[-1], Turn.assistant("A reply."))
		self.assertEqual(history[-2], Turn.user("question 8"))

	def test_unreachable_responder_appends_apology(self) -> None:
		transport = _RecordingTransport(error=ResponderUnreachableError("offline"))
		controller = SessionController(transport)
		turn = controller.submit("Hello?")
		self.assertEqual(turn, Turn.assistant(constants.UNREACHABLE_APOLOGY))
		self.assertFalse(controller.loading)

	def test_second_submission_while_loading_is_rejected(self) -> None:
		view = _RecordingView()

		class _ReentrantTransport(_RecordingTransport):
			def send(inner, message, history, source, mode):
				inner.nested = controller.submit("interleaved")
				return super().send(message, history, source, mode)

		transport = _ReentrantTransport()
		controller = SessionController(transport, view=view)
		controller.submit("first")
		self.assertIsNone(transport.nested)
		self.assertEqual(len(transport.calls), 1)
		self.assertEqual([turn.content for turn in controller.conversation], ["first", "A reply."])
		self.assertIn(("notice", constants.BUSY_NOTICE), view.events)

	def test_new_session_leaves_only_greeting(self) -> None:
		controller = SessionController(_RecordingTransport())
		controller.submit("one")
		controller.pin_last_insight()
		controller.new_session()
		self.assertEqual(controller.conversation, (Turn.assistant(constants.SESSION_GREETING),))
		self.assertEqual(controller.pinned_insights, ())

	def test_pin_last_insight_pins_latest_assistant_turn(self) -> None:
		conversation = Conversation()
		for turn in (Turn.user("a"), Turn.assistant("b"), Turn.user("c")):
			conversation.append(turn)
		controller = SessionController(_RecordingTransport(), conversation=conversation)
		self.assertEqual(controller.pin_last_insight(), "b")
		self.assertEqual(controller.pinned_insights, ("b",))

	def test_pin_without_assistant_turn_is_noop_with_notice(self) -> None:
		conversation = Conversation()
		conversation.append(Turn.user("a"))
		view = _RecordingView()
		controller = SessionController(_RecordingTransport(), conversation=conversation, view=view)
		self.assertIsNone(controller.pin_last_insight())
		self.assertEqual(controller.pinned_insights, ())
		self.assertEqual(controller.conversation, (Turn.user("a"),))
		self.assertEqual(view.events[-1], ("notice", constants.NO_INSIGHT_NOTICE))

	def test_export_preserves_order_and_labels(self) -> None:
		transport = _RecordingTransport(reply="answer")
		controller = SessionController(transport)
		controller.submit("first")
		controller.submit("second")
		lines = [line for line in controller.export_session().splitlines() if line.startswith(("You:", "Assistant:"))]
		self.assertEqual(lines, ["You: first", "Assistant: answer", "You: second", "Assistant: answer"])
		self.assertTrue(controller.export_session().startswith(constants.EXPORT_TITLE))

	def test_insert_reference_appends_link_without_sending(self) -> None:
		transport = _RecordingTransport()
		controller = SessionController(transport)
		controller.set_input("Please explain")
		token = controller.insert_reference("  Bereishit   1:1 ")
		self.assertEqual(token, "https://www.sefaria.org/Bereishit_1:1")
		self.assertEqual(controller.pending_input, "Please explain https://www.sefaria.org/Bereishit_1:1")
		self.assertEqual(transport.calls, [])
		self.assertEqual(controller.conversation, ())

	def test_insert_empty_reference_is_noop(self) -> None:
		view = _RecordingView()
		controller = SessionController(_RecordingTransport(), view=view)
		self.assertIsNone(controller.insert_reference("   "))
		self.assertEqual(controller.pending_input, "")
		self.assertEqual(view.events[-1], ("notice", constants.EMPTY_REFERENCE_NOTICE))

	def test_reference_link_percent_encodes(self) -> None:
		self.assertEqual(reference_link("Shir HaShirim 2:3"), "https://www.sefaria.org/Shir_HaShirim_2:3")
		self.assertEqual(reference_link("בראשית א"), "https://www.sefaria.org/%D7%91%D7%A8%D7%90%D7%A9%D7%99%D7%AA_%D7%90")

	def test_set_mode_normalizes_unknown_values(self) -> None:
		controller = SessionController(_RecordingTransport())
		self.assertEqual(controller.set_mode("pshat"), Mode.PSHAT)
		self.assertEqual(controller.set_mode("drash"), Mode.QUESTIONS)

	def test_local_transport_drives_offline_responder(self) -> None:
		responder = Responder(Settings(openai_api_key=""))
		controller = SessionController(LocalResponderTransport(responder), mode="life")
		turn = controller.submit("Ahavat chesed")
		self.assertEqual(turn.role, Role.ASSISTANT)
		self.assertEqual(turn.content, offline_reply_service.generate("Ahavat chesed", [], "life"))

	def test_failing_local_responder_appends_apology(self) -> None:
		responder = Responder(Settings(openai_api_key=""))
		with patch.object(responder, "respond", side_effect=RuntimeError("boom")):
			controller = SessionController(LocalResponderTransport(responder))
			turn = controller.submit("hello")
		self.assertEqual(turn.content, constants.UNREACHABLE_APOLOGY)
		self.assertEqual(
			controller.conversation,
			(Turn.user("hello"), Turn.assistant(constants.UNREACHABLE_APOLOGY)),
		)
		self.assertFalse(controller.loading)
