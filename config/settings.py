"""
Loads configuration from environment variables.
"""

import os
import logging

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


load_dotenv()

SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY")
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_GENERATION_MODEL = os.getenv("OPENAI_GENERATION_MODEL", "gpt-4o-mini")
ALLOW_EXTERNAL_AI = os.getenv("ALLOW_EXTERNAL_AI", "false").lower() == "true"
OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "mistral:7b")
PRODUCTION = os.getenv("PRODUCTION", "false").lower() == "true"
LOGGING_LEVEL = os.getenv("LOGGING_LEVEL", "INFO").upper()

# Pool maintenance
POOL_MAINTENANCE_ENABLED = os.getenv("POOL_MAINTENANCE_ENABLED", "true").lower() == "true"
POOL_MAINTENANCE_INTERVAL_SECONDS = float(os.getenv("POOL_MAINTENANCE_INTERVAL_SECONDS", "60"))
GENERATION_CALL_TIMEOUT_SECONDS = float(os.getenv("GENERATION_CALL_TIMEOUT_SECONDS", "120"))
MAX_BATCHES_PER_RUN = int(os.getenv("MAX_BATCHES_PER_RUN", "10"))

ADMIN_USER_TYPE = os.getenv("ADMIN_USER_TYPE", "admin")
CORS_ORIGIN_REGEX = os.getenv("CORS_ORIGIN_REGEX", r"https://.*\.cyberquiz\.app")
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))

logger.info("Configuration loaded. Production mode: %s", PRODUCTION)
if not SUPABASE_URL:
    logger.warning("SUPABASE_URL is not set.")
if not SUPABASE_SERVICE_KEY:
    logger.warning("SUPABASE_SERVICE_KEY is not set.")
if not GEMINI_API_KEY:
    logger.warning("GEMINI_API_KEY is not set.")
if ALLOW_EXTERNAL_AI and not OPENAI_API_KEY:
    logger.warning("ALLOW_EXTERNAL_AI is set but OPENAI_API_KEY is not set.")
