"""
VoiceLab core: cross-video voice identity resolution and the adaptive
voice-quality cache.
"""

__version__ = "1.0.0"
