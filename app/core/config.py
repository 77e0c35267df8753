"""
Configuration
=============
Loads environment variables from .env file using python-dotenv.

Environment Variables:
    TEMPLATE_DIR        — Directory scanned for issue templates (default: bundled app/templates)
    LOG_LEVEL           — Root log level name (default: INFO)
    LOG_DIR             — Directory for the daily log file (default: logs)
    LOG_TO_FILE         — Also write a daily log file (default: false)
    API_HOST / API_PORT — uvicorn bind address (default: 127.0.0.1:8000)
    MAX_DOCUMENT_BYTES  — Largest inline template document the API accepts (default: 65536)
"""
import os
from dotenv import load_dotenv

load_dotenv()

BUNDLED_TEMPLATE_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "templates"
)

TEMPLATE_DIR = os.getenv("TEMPLATE_DIR", BUNDLED_TEMPLATE_DIR)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = os.getenv("LOG_DIR", "logs")
LOG_TO_FILE = os.getenv("LOG_TO_FILE", "false").lower() == "true"

API_HOST = os.getenv("API_HOST", "127.0.0.1")
API_PORT = int(os.getenv("API_PORT", 8000))

# Inline documents posted to the API; templates on disk are not capped
MAX_DOCUMENT_BYTES = int(os.getenv("MAX_DOCUMENT_BYTES", 65536))
