"""
Service Logging System
======================
Structured logging for the identity and quality-cache services.

This module provides:
- Structured JSON logging for machine-parseable outputs
- Named service loggers for cache decisions, learning updates and matching
- Optional JSONL log files organized by logger name

Usage:
    from voicelab.logging_config import get_service_logger, log_cache_decision

    logger = get_service_logger("cache")
    logger.info("Snapshot written", extra={"voices": 12})

    # Convenience functions
    log_cache_decision("miss", reason="expired", age_minutes=31.0)
    log_learning_update(iteration=7, trend_count=12, trend_direction="stable")
    log_match_summary(total_speakers=40, unique_voices=22, match_count=3)
"""

import sys
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any, Union

from .config import get_config


# Attributes every LogRecord carries; anything else came in through extra={}
_RESERVED_ATTRS = frozenset((
    'name', 'msg', 'args', 'created', 'filename',
    'funcName', 'levelname', 'levelno', 'lineno',
    'module', 'msecs', 'pathname', 'process',
    'processName', 'relativeCreated', 'stack_info',
    'exc_info', 'exc_text', 'thread', 'threadName',
    'taskName', 'message', 'context',
))


# =============================================================================
# CUSTOM FORMATTERS
# =============================================================================

class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs log records as JSON objects with consistent structure:
    {
        "timestamp": "2024-01-15T10:30:00.123456",
        "level": "INFO",
        "logger": "voicelab.cache",
        "message": "Cache hit",
        "context": {...}
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, 'context') and record.context:
            log_data['context'] = record.context

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS:
                continue
            try:
                json.dumps(value)
                log_data[key] = value
            except (TypeError, ValueError):
                log_data[key] = str(value)

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable formatter for console output.

    Format: [LEVEL] logger: message (key=value, ...)
    """

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.stdout.isatty()

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname
        if self.use_colors and level in self.COLORS:
            level = f"{self.COLORS[level]}{level}{self.RESET}"

        msg = f"[{level}] {record.name}: {record.getMessage()}"

        extras = []
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS:
                continue
            if isinstance(value, (str, int, float, bool)):
                extras.append(f"{key}={value}")
            elif isinstance(value, dict) and len(value) < 3:
                extras.append(f"{key}={value}")

        if extras:
            msg += f" ({', '.join(extras)})"

        if record.exc_info:
            msg += "\n" + self.formatException(record.exc_info)

        return msg


# =============================================================================
# LOGGER FACTORY
# =============================================================================

_loggers: Dict[str, logging.Logger] = {}


def get_service_logger(
    name: str,
    log_to_file: Optional[bool] = None,
) -> logging.Logger:
    """
    Get or create a service logger.

    Args:
        name: Logger name (e.g., "cache", "learning", "identity", "cli")
        log_to_file: Whether to also write JSONL logs under paths.logs/<name>/.
            Defaults to config.logging.log_to_file.

    Returns:
        Configured logger instance
    """
    full_name = f"voicelab.{name}"

    if full_name in _loggers:
        return _loggers[full_name]

    config = get_config()
    logger = logging.getLogger(full_name)
    logger.setLevel(getattr(logging, config.logging.log_level.upper(), logging.INFO))
    logger.propagate = False

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(ConsoleFormatter())
    logger.addHandler(console_handler)

    if log_to_file is None:
        log_to_file = config.logging.log_to_file

    if log_to_file:
        log_file = get_log_path(name)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setFormatter(StructuredFormatter())
        logger.addHandler(file_handler)

    _loggers[full_name] = logger
    return logger


def get_cache_logger() -> logging.Logger:
    """Get a logger for cache decisions."""
    return get_service_logger("cache")


def get_learning_logger() -> logging.Logger:
    """Get a logger for learning-state updates."""
    return get_service_logger("learning")


def get_identity_logger() -> logging.Logger:
    """Get a logger for cross-video voice matching."""
    return get_service_logger("identity")


def apply_log_level(level: Optional[str] = None) -> None:
    """
    Set the level of every service logger created so far.

    Service loggers are created at import time, before environment overrides
    are applied; the entry point calls this once the configuration is final.

    Args:
        level: Level name (defaults to config.logging.log_level)
    """
    name = (level or get_config().logging.log_level).upper()
    value = getattr(logging, name, logging.INFO)
    for logger in _loggers.values():
        logger.setLevel(value)


def reset_loggers() -> None:
    """Drop cached loggers and their handlers (used after config changes)."""
    for logger in _loggers.values():
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
    _loggers.clear()


# =============================================================================
# CONVENIENCE LOGGING FUNCTIONS
# =============================================================================

def log_cache_decision(
    decision: str,
    reason: str,
    age_minutes: Optional[float] = None,
    iteration_delta: Optional[int] = None,
    logger: Optional[logging.Logger] = None
) -> None:
    """
    Log whether a cached quality snapshot was served.

    Args:
        decision: "hit" or "miss"
        reason: Policy rule that decided (e.g. "valid", "expired", "learning_advanced")
        age_minutes: Snapshot age when evaluated
        iteration_delta: Learning iterations since the snapshot was written
        logger: Optional logger override
    """
    config = get_config()
    if not config.logging.log_decisions:
        return

    log = logger or get_cache_logger()
    extra: Dict[str, Any] = {'decision': decision, 'reason': reason}
    if age_minutes is not None:
        extra['age_minutes'] = round(age_minutes, 2)
    if iteration_delta is not None:
        extra['iteration_delta'] = iteration_delta

    log.info(f"Cache {decision}: {reason}", extra=extra)


def log_learning_update(
    iteration: int,
    trend_count: int,
    trend_direction: str,
    health_score: Optional[int] = None,
    logger: Optional[logging.Logger] = None
) -> None:
    """
    Log a committed learning-state update.

    Args:
        iteration: Learning iteration after the update
        trend_count: Number of entries in the trend history
        trend_direction: Derived quality trend direction
        health_score: Numeric system health score
        logger: Optional logger override
    """
    config = get_config()
    if not config.logging.log_learning:
        return

    log = logger or get_learning_logger()
    log.info(
        f"Learning state updated to iteration {iteration}",
        extra={
            'iteration': iteration,
            'trend_count': trend_count,
            'trend_direction': trend_direction,
            'health_score': health_score if health_score is not None else 0,
        }
    )


def log_match_summary(
    total_speakers: int,
    unique_voices: int,
    match_count: int,
    top_confidence: float = 0.0,
    logger: Optional[logging.Logger] = None
) -> None:
    """
    Log the outcome of a clustering pass.

    Args:
        total_speakers: Speaker records considered
        unique_voices: Distinct signatures found
        match_count: Groups spanning at least two videos
        top_confidence: Confidence of the best-ranked match
        logger: Optional logger override
    """
    config = get_config()
    if not config.logging.log_matches:
        return

    log = logger or get_identity_logger()
    log.info(
        f"Voice tracking: {match_count} cross-video matches",
        extra={
            'total_speakers': total_speakers,
            'unique_voices': unique_voices,
            'match_count': match_count,
            'top_confidence': top_confidence,
        }
    )


# =============================================================================
# LOG FILE UTILITIES
# =============================================================================

def get_log_path(name: str) -> Path:
    """Get today's JSONL log file path for a named logger."""
    config = get_config()
    timestamp = datetime.now().strftime("%Y%m%d")
    return config.paths.logs / name / f"{name}_{timestamp}.jsonl"


def read_log_file(log_path: Union[str, Path]) -> list:
    """
    Read a JSONL log file and return list of log entries.

    Args:
        log_path: Path to the log file

    Returns:
        List of parsed log entry dictionaries
    """
    entries = []
    with open(log_path, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if line:
                try:
                    entries.append(json.loads(line))
                except json.JSONDecodeError:
                    continue
    return entries
