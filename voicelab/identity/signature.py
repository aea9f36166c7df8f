"""
Voice Signature Module
======================
Derives the coarse identity key used to group speaker records.

A signature combines:
- the speaker name, lowercased with everything but [a-z0-9] removed
- the accent, lowercased ("unknown" when missing)
- one bucket per configured voice characteristic (pitch, tone), taken from
  the record's characteristic map through the bucket table in SignatureConfig

Building a signature never fails: missing or malformed fields fall back to
their defaults.
"""

import re
import logging
from typing import Any, Optional

from ..models import SpeakerRecord, VoiceSignature
from ..config import SignatureConfig, get_config

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r'[^a-z0-9]')


def normalize_name(name: Any) -> str:
    """Lowercase a name and strip everything except ASCII letters and digits."""
    if name is None:
        return ""
    return _NON_ALNUM.sub('', str(name).lower())


def normalize_label(value: Any, default: str) -> str:
    """Lowercase and trim a label, falling back to default when blank."""
    if value is None:
        return default
    text = str(value).strip().lower()
    return text or default


class SignatureBuilder:
    """
    Builds VoiceSignatures from speaker records.

    Usage:
        builder = SignatureBuilder()
        signature = builder.build(record)
        signature.key  # 'alex_american_medium_neutral'
    """

    def __init__(self, config: Optional[SignatureConfig] = None):
        self.config = config or get_config().signature

    def bucket_for(self, characteristic: str, raw_value: Any) -> str:
        """
        Map a raw characteristic value to its bucket.

        Args:
            characteristic: Characteristic name (e.g. "pitch")
            raw_value: Value from the record's characteristic map

        Returns:
            Bucket name; the configured default when the value is missing
        """
        table = self.config.buckets.get(characteristic, {})
        default = table.get('default', 'unknown')

        if isinstance(raw_value, (dict, list, tuple, set)):
            return default

        value = normalize_label(raw_value, default)
        aliases = table.get('aliases') or {}
        return aliases.get(value, value)

    def build(self, record: SpeakerRecord) -> VoiceSignature:
        """Derive the signature of one speaker record."""
        characteristics = record.voice_characteristics
        if not isinstance(characteristics, dict):
            characteristics = {}

        buckets = tuple(
            (name, self.bucket_for(name, characteristics.get(name)))
            for name in self.config.characteristic_order
        )

        return VoiceSignature(
            name=normalize_name(record.name),
            accent=normalize_label(record.accent, self.config.default_accent),
            characteristics=buckets,
            separator=self.config.separator,
        )

    def key(self, record: SpeakerRecord) -> str:
        """String form of the record's signature."""
        return self.build(record).key


def create_voice_signature(record: SpeakerRecord) -> VoiceSignature:
    """Convenience function using the default signature configuration."""
    return SignatureBuilder().build(record)
