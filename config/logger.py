"""
Sets up structured logging for the application.

Console output is colored in development and JSON in production. JSON file logs
under logs/ are opt-in (ENABLE_FILE_LOGS=true) and never written in production,
where container logs are collected from stdout.

Usage:
    from config.logger import setup_logging
    setup_logging()

    import logging
    logger = logging.getLogger(__name__)
    logger.info("Message", extra={"key": "value"})
"""

import logging
import os
from datetime import datetime, timezone
from pathlib import Path

from dotenv import load_dotenv
from pythonjsonlogger import jsonlogger

load_dotenv()
# ============================================================================
# CONFIGURATION
# ============================================================================

LOGGING_LEVEL = os.getenv("LOGGING_LEVEL", "INFO").upper()
PRODUCTION = os.getenv("PRODUCTION", "false").lower() == "true"
ENABLE_FILE_LOGS = os.getenv("ENABLE_FILE_LOGS", "false").lower() == "true" and not PRODUCTION

LOGS_DIR = Path(os.getenv("LOG_DIR", Path(__file__).parent.parent / "logs"))

_logging_configured = False

# LogRecord attributes that are never treated as structured extras
_STANDARD_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName", "levelname",
    "levelno", "lineno", "module", "msecs", "pathname", "process",
    "processName", "relativeCreated", "stack_info", "exc_info", "exc_text",
    "thread", "threadName", "taskName", "message",
}


# ============================================================================
# JSON FORMATTER
# ============================================================================


class StructuredJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter that adds timestamp, level, logger and source location
    to every entry. Extra fields passed via `extra=` are kept as top-level keys.
    """

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["function"] = record.funcName
        log_record["line"] = record.lineno

        if "message" not in log_record:
            log_record["message"] = record.getMessage()


# ============================================================================
# COLORED CONSOLE FORMATTER (for development)
# ============================================================================


class ColoredConsoleFormatter(logging.Formatter):
    """Adds ANSI colors per level and appends `extra=` fields as key=value pairs."""

    RESET = "\033[0m"
    LEVEL_COLORS = {
        logging.DEBUG: "\033[37m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, self.RESET)
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

        base_msg = f"{record.levelname}: {timestamp} | {record.name} | {record.getMessage()}"

        extra_fields = {
            k: v for k, v in record.__dict__.items()
            if k not in _STANDARD_ATTRS and not k.startswith("_")
        }
        if extra_fields:
            base_msg += " | " + " ".join(f"{k}={v}" for k, v in extra_fields.items())

        if record.exc_info:
            base_msg += "\n" + self.formatException(record.exc_info)

        return f"{color}{base_msg}{self.RESET}"


# ============================================================================
# SETUP FUNCTION
# ============================================================================


def setup_logging() -> None:
    """
    Initialize the global logging configuration. Idempotent.
    """
    global _logging_configured

    if _logging_configured:
        return

    level = getattr(logging, LOGGING_LEVEL, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(StructuredJsonFormatter() if PRODUCTION else ColoredConsoleFormatter())
    console_handler.setLevel(level)
    root_logger.addHandler(console_handler)

    log_filepath = None
    if ENABLE_FILE_LOGS:
        LOGS_DIR.mkdir(parents=True, exist_ok=True)
        log_filepath = LOGS_DIR / (datetime.now().strftime("%Y-%m-%d_%H-%M-%S") + ".json")
        file_handler = logging.FileHandler(log_filepath, mode="a", encoding="utf-8")
        file_handler.setFormatter(StructuredJsonFormatter())
        file_handler.setLevel(logging.DEBUG)
        root_logger.addHandler(file_handler)

    noisy_loggers = [
        "httpcore",
        "httpx",
        "hpack",
        "google_genai",
        "urllib3",
        "asyncio",
        "uvicorn.access",
        "openai",
        "openai._base_client",
        "postgrest",
        "supabase",
    ]
    for noisy_logger in noisy_loggers:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    _logging_configured = True

    logging.getLogger(__name__).info(
        "Logging initialized",
        extra={
            "log_file": str(log_filepath) if log_filepath else None,
            "log_level": LOGGING_LEVEL,
        },
    )
