from unittest import TestCase

from chavruta.backend import constants
from chavruta.backend.config import load_settings


class SettingsTests(TestCase):
	def test_defaults_without_environment(self) -> None:
		settings = load_settings({})
		self.assertEqual(settings.openai_api_key, "")
		self.assertFalse(settings.model_available)
		self.assertEqual(settings.openai_model, constants.DEFAULT_OPENAI_MODEL)
		self.assertEqual(settings.history_turns, 12)
		self.assertEqual(settings.cors_allow_origins, ["*"])

	def test_values_are_read_from_mapping(self) -> None:
		settings = load_settings(
			{
				"OPENAI_API_KEY": " sk-test ",
				"CHAVRUTA_OPENAI_MODEL": "gpt-4.1-mini",
				"CHAVRUTA_OPENAI_TIMEOUT_S": "15",
				"CHAVRUTA_TEMPERATURE": "0",
				"CHAVRUTA_HISTORY_TURNS": "8",
				"CHAVRUTA_CORS_ORIGINS": "https://luminanexus.org, https://example.org",
				"CHAVRUTA_LOG_LEVEL": "debug",
			}
		)
		self.assertEqual(settings.openai_api_key, "sk-test")
		self.assertTrue(settings.model_available)
		self.assertEqual(settings.openai_model, "gpt-4.1-mini")
		self.assertEqual(settings.openai_timeout_s, 15.0)
		self.assertEqual(settings.temperature, 0.0)
		self.assertEqual(settings.history_turns, 8)
		self.assertEqual(settings.cors_allow_origins, ["https://luminanexus.org", "https://example.org"])
		self.assertEqual(settings.log_level, "DEBUG")

	def test_invalid_numbers_fall_back_to_defaults(self) -> None:
		settings = load_settings(
			{
				"CHAVRUTA_OPENAI_TIMEOUT_S": "soon",
				"CHAVRUTA_HISTORY_TURNS": "0",
				"CHAVRUTA_TEMPERATURE": "-1",
			}
		)
		self.assertEqual(settings.openai_timeout_s, constants.DEFAULT_OPENAI_TIMEOUT_S)
		self.assertEqual(settings.history_turns, constants.DEFAULT_HISTORY_TURNS)
		self.assertEqual(settings.temperature, constants.DEFAULT_TEMPERATURE)

	def test_offline_flag_disables_model(self) -> None:
		settings = load_settings({"OPENAI_API_KEY": "sk-test", "CHAVRUTA_OFFLINE": "yes"})
		self.assertFalse(settings.model_available)
