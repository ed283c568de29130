DEFAULT_RESPONDER_URL = "http://127.0.0.1:8000"
RESPOND_PATH = "/api/chavruta/respond"
DEFAULT_SOURCE = "chavruta-terminal"
DEFAULT_TRANSPORT_TIMEOUT_S = 30.0
DEFAULT_HISTORY_TURNS = 12
SEFARIA_BASE_URL = "https://www.sefaria.org/"

SESSION_GREETING = (
	"Shalom, and welcome to a new learning session. "
	"Share a verse, a source, or a question, and choose a lens if you like."
)
UNREACHABLE_APOLOGY = (
	"I'm sorry, I couldn't reach your study partner right now. Please try again in a moment."
)
NO_INSIGHT_NOTICE = "There is no reply to pin yet. Ask something first."
EMPTY_REFERENCE_NOTICE = "Type a source such as \"Bereishit 1:1\" to insert a reference."
BUSY_NOTICE = "Still thinking about your last message."
EXPORT_TITLE = "Chavruta Session"
