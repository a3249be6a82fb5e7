"""Logging utilities for the AstroBot API.

Provides console logging setup and structured JSONL logging for LLM
interactions and other pipeline events.
"""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

from . import config

__all__ = ["log_interaction", "setup_logging", "get_log_file"]

logger = logging.getLogger(__name__)


def get_log_file() -> Path:
    """Today's interaction log file (rotates daily)."""
    log_dir = Path(config.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir / f"llm_interactions_{datetime.now().strftime('%Y%m%d')}.jsonl"


def log_interaction(event_type: str, data: Dict[str, Any]) -> None:
    """Log LLM interactions to a structured JSONL file.

    Args:
        event_type: Type of event (llm_call_selection, llm_response_selection,
            llm_parse_error, llm_error, catalog_fetch_error, performance, etc.)
        data: Event-specific data to log
    """
    log_entry = {"timestamp": datetime.now().isoformat(), "event_type": event_type, **data}
    try:
        with open(get_log_file(), "a", encoding="utf-8") as f:
            f.write(json.dumps(log_entry, ensure_ascii=False, default=str) + "\n")
    except OSError as e:
        logger.warning(f"Could not write interaction log ({event_type}): {e}")


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Set up console logging for the astrobot package.

    Args:
        level: Logging level (default: INFO)

    Returns:
        Configured package logger
    """
    package_logger = logging.getLogger("astrobot")
    package_logger.setLevel(level)
    package_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%H:%M:%S")
    )
    package_logger.addHandler(console_handler)
    return package_logger
