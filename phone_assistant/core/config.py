import os
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()

# Server Configuration
ORIGIN = os.getenv("ORIGIN", "http://localhost:8000")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Storage Configuration
CONFIG_FILE = os.getenv("CONFIG_FILE", os.path.join(os.getcwd(), "data", "assistant_config.json"))
EXPORT_DIR = os.getenv("EXPORT_DIR", os.path.join(os.getcwd(), "tmp", "exports"))

# Defaults for freshly created configurations and nodes
DEFAULT_PRAXIS_NAME = os.getenv("DEFAULT_PRAXIS_NAME", "Neue Praxis")
DEFAULT_NODE_TITLE = os.getenv("DEFAULT_NODE_TITLE", "Neuer Schritt")
DEFAULT_GREETING_TITLE = os.getenv("DEFAULT_GREETING_TITLE", "Begrüßung")
DEFAULT_GREETING_TEXT = os.getenv(
    "DEFAULT_GREETING_TEXT",
    "Herzlich Willkommen bei der Praxis. Gerne nehmen wir Ihr Anliegen jetzt über unsere Telefonassistenz auf.",
)

# PDF export; when unset the renderer is looked up on PATH
GHOSTSCRIPT_CMD = os.getenv("GHOSTSCRIPT_CMD")
