"""
ASGI entry point for the career guidance and interview API.

.env is loaded before configuration is read so GEMINI_API_KEY and the
interview settings are visible to AppConfig:

    uvicorn server.asgi:app --app-dir backend
"""

from dotenv import load_dotenv

load_dotenv()

from config import AppConfig  # pylint: disable=wrong-import-position
from server.app import create_app  # pylint: disable=wrong-import-position

app = create_app(AppConfig.load_from_env())
