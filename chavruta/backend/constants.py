APP_NAME = "Chavruta Study Companion"
APP_VERSION = "1.0.0"
DEFAULT_CORS_ALLOW_ORIGINS = ["*"]
DEFAULT_TRUSTED_HOSTS = [
	"127.0.0.1",
	"localhost",
	"testserver",
]

DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_OPENAI_TIMEOUT_S = 20.0
DEFAULT_TEMPERATURE = 0.7
DEFAULT_HISTORY_TURNS = 12
DEFAULT_LOG_LEVEL = "INFO"

MESSAGE_DISPLAY_CHARS = 160
BACK_REFERENCE_CHARS = 80
LOG_BODY_CHARS = 300

GREETING_REPLY = (
	"Shalom. Bring me a verse, a question, or a thought, and we'll begin learning together."
)
GENERIC_APOLOGY_REPLY = (
	"There was a problem on our side of the beit midrash. Please try again in a little while."
)
METHOD_NOT_ALLOWED_REPLY = "Please use POST to study with Chavruta."
