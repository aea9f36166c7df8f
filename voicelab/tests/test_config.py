"""
Configuration System Tests
==========================
Verifies that the configuration management system works correctly.
"""

import os
import sys
import tempfile
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(__file__))))

from voicelab.config import (
    AppConfig,
    get_config,
    set_config,
    reset_config,
    apply_environment_overrides,
    get_development_config,
    get_production_config,
)


def test_default_config():
    """Test that default configuration is created correctly."""
    reset_config()
    config = get_config()

    assert config is not None
    assert config.cache.max_age_minutes == 30.0
    assert config.cache.force_refresh_hours == 4.0
    assert config.cache.learning_update_threshold == 5
    assert config.cache.enable_learning_integration is True
    assert config.learning.trend_history_limit == 50
    weights = config.matching.name_weight + config.matching.accent_weight + config.matching.quality_weight
    assert abs(weights - 1.0) < 1e-9
    assert config.paths.cache.name == "quality-dashboard-cache.json"
    assert config.paths.learning.name == "enhanced_learning_data.json"

    print("[PASS] Default configuration test passed")


def test_config_singleton():
    """Test that get_config returns the same instance."""
    reset_config()
    config1 = get_config()
    config2 = get_config()

    assert config1 is config2

    custom = AppConfig()
    set_config(custom)
    assert get_config() is custom

    reset_config()
    print("[PASS] Singleton test passed")


def test_derived_durations():
    config = AppConfig()

    assert config.cache.max_age_seconds == 1800
    assert config.cache.force_refresh_minutes == 240
    print("[PASS] Derived durations test passed")


def test_config_serialization():
    """Test configuration save and load."""
    config = AppConfig()
    config.cache.max_age_minutes = 12.5
    config.signature.buckets["pitch"]["aliases"] = {"deep": "low"}
    config.paths.base_dir = Path("/var/lib/voicelab")

    with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
        temp_path = f.name

    try:
        config.save(temp_path)
        loaded_config = AppConfig.load(temp_path)

        assert loaded_config.cache.max_age_minutes == 12.5
        assert loaded_config.signature.buckets["pitch"]["aliases"] == {"deep": "low"}
        assert loaded_config.paths.base_dir == Path("/var/lib/voicelab")
        assert loaded_config.learning.default_best_settings["stability"] == 0.85
    finally:
        os.unlink(temp_path)

    print("[PASS] Serialization test passed")


def test_environment_overrides():
    """Test environment variable overrides."""
    saved_env = {key: os.environ.get(key) for key in (
        "VOICELAB_CACHE_MAX_AGE_MINUTES",
        "VOICELAB_CACHE_ENABLE_LEARNING_INTEGRATION",
        "VOICELAB_CACHE_LEARNING_UPDATE_THRESHOLD",
        "VOICELAB_DATA_DIR",
        "VOICELAB_MATCHING_TOP_N",
        "LOG_LEVEL",
    )}

    os.environ["VOICELAB_CACHE_MAX_AGE_MINUTES"] = "15"
    os.environ["VOICELAB_CACHE_ENABLE_LEARNING_INTEGRATION"] = "false"
    os.environ["VOICELAB_CACHE_LEARNING_UPDATE_THRESHOLD"] = "not-a-number"
    os.environ["VOICELAB_DATA_DIR"] = "/tmp/voicelab-data"
    os.environ["VOICELAB_MATCHING_TOP_N"] = "3"
    os.environ["LOG_LEVEL"] = "debug"

    try:
        config = apply_environment_overrides(AppConfig())

        assert config.cache.max_age_minutes == 15.0
        assert config.cache.enable_learning_integration is False
        assert config.cache.learning_update_threshold == 5
        assert config.paths.base_dir == Path("/tmp/voicelab-data")
        assert config.matching.top_n == 3
        assert config.logging.log_level == "DEBUG"
    finally:
        for key, value in saved_env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value

    print("[PASS] Environment overrides test passed")


def test_preset_configs():
    dev = get_development_config()
    prod = get_production_config()

    assert dev.cache.max_age_minutes == 5.0
    assert dev.logging.log_level == "DEBUG"
    assert prod.logging.log_to_file is True
    print("[PASS] Preset configs test passed")


def run_all_tests():
    """Run all configuration tests."""
    print("\n" + "="*60)
    print("CONFIGURATION SYSTEM TESTS")
    print("="*60 + "\n")

    test_default_config()
    test_config_singleton()
    test_derived_durations()
    test_config_serialization()
    test_environment_overrides()
    test_preset_configs()

    print("\n" + "="*60)
    print("ALL CONFIGURATION TESTS PASSED")
    print("="*60 + "\n")


if __name__ == "__main__":
    run_all_tests()
