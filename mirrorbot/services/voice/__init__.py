"""Voice anonymization pipeline (ffmpeg, Rubber Band).

Provides:
- VoiceAnonymizer: Fetch, normalize, pitch-shift, encode and upload a clip
- ProcessRunner: asyncio subprocess runner for the external tools
"""

from mirrorbot.services.voice.anonymizer import VoiceAnonymizer
from mirrorbot.services.voice.exceptions import (
    ExternalToolError,
    StageTimeoutError,
    ToolUnavailableError,
    VoiceAnonymizationError,
    VoiceServiceError,
)
from mirrorbot.services.voice.protocol import AnonymizedVoice, CommandRunner, VoiceTransport
from mirrorbot.services.voice.runner import ProcessRunner
from mirrorbot.services.voice.stages import (
    FALLBACK_RATIOS,
    FEMALE_PITCH_FACTORS,
    MALE_PITCH_FACTORS,
    ResamplePitchShift,
    RubberBandPitchShift,
    VoiceJob,
)

__all__ = [
    # Services
    "VoiceAnonymizer",
    "ProcessRunner",
    # Protocol
    "CommandRunner",
    "VoiceTransport",
    # Data types
    "AnonymizedVoice",
    "VoiceJob",
    # Strategies
    "RubberBandPitchShift",
    "ResamplePitchShift",
    "MALE_PITCH_FACTORS",
    "FEMALE_PITCH_FACTORS",
    "FALLBACK_RATIOS",
    # Exceptions
    "VoiceServiceError",
    "ExternalToolError",
    "ToolUnavailableError",
    "StageTimeoutError",
    "VoiceAnonymizationError",
]
