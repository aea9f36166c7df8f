"""
Logging System Tests
====================
Verifies that the service logging system works correctly.
"""

import os
import sys
import json
import logging
import tempfile
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(__file__))))

from voicelab.logging_config import (
    get_service_logger,
    get_cache_logger,
    get_learning_logger,
    get_identity_logger,
    log_cache_decision,
    log_learning_update,
    log_match_summary,
    read_log_file,
    reset_loggers,
    apply_log_level,
    StructuredFormatter,
    ConsoleFormatter,
)
from voicelab.config import AppConfig, set_config, reset_config
from voicelab.app import create_app


class CollectingHandler(logging.Handler):
    """Keeps emitted records in memory."""

    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


def create_test_record(message: str = "Cache hit", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="voicelab.cache",
        level=logging.INFO,
        pathname="service.py",
        lineno=1,
        msg=message,
        args=(),
        exc_info=None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_get_service_logger():
    """Test creating service loggers."""
    logger = get_service_logger("test", log_to_file=False)

    assert logger is not None
    assert logger.name == "voicelab.test"
    assert logger.propagate is False

    # Same logger on second call, without duplicate handlers
    logger2 = get_service_logger("test", log_to_file=False)
    assert logger2 is logger
    assert len(logger2.handlers) == 1

    print("[PASS] get_service_logger test passed")


def test_specialized_loggers():
    """Test specialized logger functions."""
    assert get_cache_logger().name == "voicelab.cache"
    assert get_learning_logger().name == "voicelab.learning"
    assert get_identity_logger().name == "voicelab.identity"

    print("[PASS] Specialized loggers test passed")


def test_structured_formatter():
    """Test JSON formatter output."""
    formatter = StructuredFormatter()
    record = create_test_record(decision="hit", age_minutes=3.5, payload=object())

    data = json.loads(formatter.format(record))

    assert data['level'] == "INFO"
    assert data['logger'] == "voicelab.cache"
    assert data['message'] == "Cache hit"
    assert data['decision'] == "hit"
    assert data['age_minutes'] == 3.5
    assert isinstance(data['payload'], str)

    print("[PASS] Structured formatter test passed")


def test_console_formatter():
    """Test console formatter output."""
    formatter = ConsoleFormatter(use_colors=False)
    record = create_test_record(decision="miss", reason="expired")

    output = formatter.format(record)

    assert output.startswith("[INFO] voicelab.cache: Cache hit")
    assert "decision=miss" in output
    assert "reason=expired" in output

    print("[PASS] Console formatter test passed")


def test_convenience_functions():
    """Convenience helpers attach their fields as extras."""
    handler = CollectingHandler()
    logger = logging.getLogger("voicelab.test_convenience")
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    logger.addHandler(handler)

    try:
        log_cache_decision("miss", reason="learning_advanced", age_minutes=4.256,
                           iteration_delta=6, logger=logger)
        log_learning_update(iteration=7, trend_count=12, trend_direction="stable", logger=logger)
        log_match_summary(total_speakers=40, unique_voices=22, match_count=3,
                          top_confidence=94.0, logger=logger)
    finally:
        logger.removeHandler(handler)

    decision, learning, summary = handler.records
    assert decision.getMessage() == "Cache miss: learning_advanced"
    assert decision.age_minutes == 4.26
    assert decision.iteration_delta == 6
    assert learning.iteration == 7
    assert learning.health_score == 0
    assert summary.match_count == 3
    assert summary.top_confidence == 94.0

    print("[PASS] Convenience functions test passed")


def test_decision_logging_can_be_disabled():
    config = AppConfig()
    config.logging.log_decisions = False
    set_config(config)

    handler = CollectingHandler()
    logger = logging.getLogger("voicelab.test_disabled")
    logger.propagate = False
    logger.addHandler(handler)

    try:
        log_cache_decision("hit", reason="valid", logger=logger)
    finally:
        logger.removeHandler(handler)
        reset_config()

    assert handler.records == []
    print("[PASS] Disabled decision logging test passed")


def test_file_logging():
    """JSONL file logs can be read back."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config = AppConfig()
        config.paths.base_dir = Path(tmpdir)
        set_config(config)

        try:
            logger = get_service_logger("filetest", log_to_file=True)
            logger.info("Snapshot written", extra={'voices': 3})
            for handler in logger.handlers:
                handler.flush()

            log_files = list((Path(tmpdir) / "logs" / "filetest").glob("*.jsonl"))
            assert len(log_files) == 1

            entries = read_log_file(log_files[0])
            assert entries[0]['message'] == "Snapshot written"
            assert entries[0]['voices'] == 3
        finally:
            reset_loggers()
            reset_config()

    print("[PASS] File logging test passed")


def test_create_app_applies_log_level():
    """Loggers created at import time pick up the final configured level."""
    cache_logger = get_cache_logger()
    with tempfile.TemporaryDirectory() as tmpdir:
        config = AppConfig()
        config.paths.base_dir = Path(tmpdir)
        config.logging.log_level = "debug"

        try:
            create_app(config, load_env=False)
            assert cache_logger.level == logging.DEBUG
            assert get_identity_logger().level == logging.DEBUG

            apply_log_level("WARNING")
            assert cache_logger.level == logging.WARNING
        finally:
            apply_log_level("INFO")
            reset_config()

    print("[PASS] Log level application test passed")


def run_all_tests():
    """Run all logging tests."""
    print("\n" + "="*60)
    print("LOGGING SYSTEM TESTS")
    print("="*60 + "\n")

    test_get_service_logger()
    test_specialized_loggers()
    test_structured_formatter()
    test_console_formatter()
    test_convenience_functions()
    test_decision_logging_can_be_disabled()
    test_file_logging()
    test_create_app_applies_log_level()

    print("\n" + "="*60)
    print("ALL LOGGING TESTS PASSED")
    print("="*60 + "\n")


if __name__ == "__main__":
    run_all_tests()
