"""
Data Model Tests
================
Verifies serialization of the identity and quality-cache models.
"""

import os
import sys
from datetime import datetime, timezone

# Add parent to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(__file__))))

from voicelab.models import (
    SpeakerRecord,
    VoiceSignature,
    MatchMember,
    MatchScore,
    CrossVideoMatch,
    QualityOverview,
    CachedQualitySnapshot,
    SystemHealth,
    TrendEntry,
    format_timestamp,
    parse_timestamp,
)
from voicelab.quality.learning import LearningState


def test_timestamp_format_and_parse():
    moment = datetime(2026, 1, 15, 12, 30, 5, 250000, tzinfo=timezone.utc)

    text = format_timestamp(moment)

    assert text == "2026-01-15T12:30:05.250000Z"
    assert parse_timestamp(text) == moment
    assert parse_timestamp("2026-01-15T12:30:05.250000") == moment
    assert parse_timestamp("2026-01-15T14:30:05.250000+02:00") == moment
    print("[PASS] Timestamp test passed")


def test_parse_timestamp_rejects_garbage():
    for value in ("soon", None, 42):
        try:
            parse_timestamp(value)
            assert False, f"Should have raised ValueError for {value!r}"
        except ValueError:
            pass
    print("[PASS] Timestamp validation test passed")


def test_speaker_record_from_detector_output():
    record = SpeakerRecord.from_dict({
        "speakerId": "spk_1",
        "videoId": "vid_9",
        "name": "Alex",
        "voiceCharacteristics": "not a map",
        "qualityScore": "7.5",
        "videoUri": "gs://bucket/vid_9.mp4",
    })

    assert record.speaker_id == "spk_1"
    assert record.video_id == "vid_9"
    assert record.accent is None
    assert record.voice_characteristics == {}
    assert record.quality_score == 7.5
    assert record.video_uri == "gs://bucket/vid_9.mp4"
    print("[PASS] Speaker record parsing test passed")


def test_speaker_record_defaults_unreadable_numbers():
    record = SpeakerRecord.from_dict({
        "speakerId": "spk_2",
        "videoId": "vid_3",
        "name": "Jordan",
        "qualityScore": "high",
        "segmentCount": "several",
    })

    assert record.quality_score == 0.0
    assert record.segment_count == 0
    assert record.name == "Jordan"
    print("[PASS] Speaker record number defaults test passed")


def test_voice_signature_key():
    signature = VoiceSignature("alex", "american", (("pitch", "low"), ("tone", "warm")))

    assert signature.key == "alex_american_low_warm"
    assert str(signature) == signature.key
    assert signature.bucket("tone") == "warm"
    assert signature == VoiceSignature("alex", "american", (("pitch", "low"), ("tone", "warm")))
    assert len({signature, VoiceSignature("alex", "american", (("pitch", "low"), ("tone", "warm")))}) == 1
    print("[PASS] Voice signature test passed")


def test_cross_video_match_serialization():
    match = CrossVideoMatch(
        signature="alex_american_medium_neutral",
        speaker_name="Alex",
        accent="american",
        video_count=2,
        speaker_count=3,
        average_quality=8.0,
        confidence=94.0,
        members=[MatchMember("s1", "Alex", "v1", 8.0), MatchMember("s2", "Alex", "v2", 8.0),
                 MatchMember("s3", "Alex", "v2", 8.0)],
        rank=1,
        score=MatchScore(94.0, 100.0, 100.0, 80.0, 0.4, 0.3, 0.3),
    )

    restored = CrossVideoMatch.from_dict(match.to_dict())

    assert restored == match
    assert match.significance == 94.0 * 2 * 8.0
    assert match.video_ids == ["v1", "v2"]
    print("[PASS] Cross-video match serialization test passed")


def test_overview_defaults_needs_improvement():
    overview = QualityOverview.from_dict({
        "totalVoices": 5,
        "averageQuality": 0.8,
        "productionReady": 3,
        "systemHealth": "good",
    })

    assert overview.needs_improvement == 2
    assert overview.system_health == SystemHealth.GOOD
    assert overview.production_ready_ratio == 0.6
    print("[PASS] Overview parsing test passed")


def test_snapshot_accepts_naive_timestamps():
    snapshot = CachedQualitySnapshot.from_dict({
        "overview": {"totalVoices": 0},
        "metrics": [],
        "timestamp": "2026-01-15T12:00:00",
        "expiresAt": "2026-01-15T12:30:00Z",
    })

    assert snapshot.created_at.tzinfo is not None
    assert snapshot.age_minutes(snapshot.expires_at) == 30.0
    assert snapshot.learning_iteration == 0
    assert snapshot.cache_version == "1.0.0"
    print("[PASS] Snapshot timestamp test passed")


def test_learning_state_keeps_unknown_keys():
    data = {
        "learningIterations": 3,
        "qualityTrends": [{"timestamp": "2026-01-15T12:00:00Z", "averageQuality": 0.8}],
        "customModel": {"version": 2},
    }

    state = LearningState.from_dict(data)
    written = state.to_dict()

    assert state.learning_iterations == 3
    assert state.quality_trends.entries == [TrendEntry("2026-01-15T12:00:00Z", 0.8, cache_sync=False)]
    assert written["customModel"] == {"version": 2}
    assert written["learningIterations"] == 3
    assert written["systemPerformance"] is None
    print("[PASS] Learning state passthrough test passed")


def test_learning_state_defaults_bad_fields_separately():
    """A key with the wrong shape falls back alone; readable keys survive."""
    state = LearningState.from_dict({
        "learningIterations": 40,
        "qualityTrends": [
            {"timestamp": "2026-01-15T12:00:00Z", "averageQuality": "high"},
            {"timestamp": "2026-01-15T12:05:00Z", "averageQuality": 0.7},
            "not an entry",
        ],
        "systemPerformance": {"lastQualitySync": "x", "cacheEfficiency": "n/a"},
        "voiceAnalytics": {"v9": {"qualityScore": 0.8}},
        "cloningAnalytics": ["wrong", "shape"],
        "bestSettings": {"stability": 0.5},
    })

    assert state.learning_iterations == 40
    assert [e.average_quality for e in state.quality_trends] == [0.7]
    assert state.system_performance is None
    assert state.voice_analytics == {"v9": {"qualityScore": 0.8}}
    assert state.cloning_analytics == {}
    assert state.best_settings == {"stability": 0.5}

    assert len(LearningState.from_dict({"qualityTrends": "lots"}).quality_trends) == 0
    assert LearningState.from_dict({"learningIterations": "many"}).learning_iterations == 0
    print("[PASS] Learning state field defaults test passed")


def run_all_tests():
    """Run all model tests."""
    print("\n" + "="*60)
    print("DATA MODEL TESTS")
    print("="*60 + "\n")

    test_timestamp_format_and_parse()
    test_parse_timestamp_rejects_garbage()
    test_speaker_record_from_detector_output()
    test_speaker_record_defaults_unreadable_numbers()
    test_voice_signature_key()
    test_cross_video_match_serialization()
    test_overview_defaults_needs_improvement()
    test_snapshot_accepts_naive_timestamps()
    test_learning_state_keeps_unknown_keys()
    test_learning_state_defaults_bad_fields_separately()

    print("\n" + "="*60)
    print("ALL MODEL TESTS PASSED")
    print("="*60 + "\n")


if __name__ == "__main__":
    run_all_tests()
