"""
Logging setup: human-readable console output plus rotating JSON files.

Domain identifiers passed through ``extra=`` (agent, referral, month,
delta and so on) are lifted into the JSON payload so log lines can be
filtered per agent month.
"""

import logging
import logging.handlers
import json
from datetime import datetime, timezone
from pathlib import Path
from core.config import settings


EXTRA_FIELDS = ("agent_id", "referral_id", "clinic_id", "treatment_month", "delta", "confidence")

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

NOISY_LOGGERS = ("asyncio", "sqlalchemy", "sqlalchemy.engine", "redis")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, Cyrillic kept as is."""

    def format(self, record):
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        log_data.update(
            (field, getattr(record, field)) for field in EXTRA_FIELDS if hasattr(record, field)
        )
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


def _rotating_handler(path: Path, level: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter())
    return handler


def setup_logging(log_dir: str | None = None):
    """
    Configure the root logger.

    Console gets INFO and above; medreferral.log gets everything as JSON;
    errors.log gets ERROR and above. Existing root handlers are replaced.
    """
    log_path = Path(log_dir or settings.log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level.upper()))
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    root_logger.addHandler(console_handler)
    root_logger.addHandler(_rotating_handler(log_path / "medreferral.log", logging.DEBUG))
    root_logger.addHandler(_rotating_handler(log_path / "errors.log", logging.ERROR))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.info(f"Logging to {log_path.absolute()} at {settings.log_level}")
