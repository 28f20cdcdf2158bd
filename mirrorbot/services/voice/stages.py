"""Voice pipeline stages and the pitch-shift strategy chain.

Every stage is one external command writing a new file inside the job's
work directory. Pitch shifting is an ordered list of strategies; the
anonymizer walks it until one succeeds.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from mirrorbot.db.models import Gender
from mirrorbot.services.voice.protocol import CommandRunner

SAMPLE_RATE = 48000
NORMALIZE_FILTER = "highpass=f=80, lowpass=f=14000"

# Rubber Band pitch factors with formant preservation
MALE_PITCH_FACTORS = (0.97, 0.99, 1.01, 1.03)
FEMALE_PITCH_FACTORS = (1.05, 1.07, 1.09)

# Resample ratios for the ffmpeg fallback
FALLBACK_RATIOS = {
    Gender.male: 0.85,
    Gender.female: 1.15,
}


@dataclass(slots=True)
class VoiceJob:
    """One pipeline invocation and its working files."""

    source_ref: str
    workdir: Path
    gender: Gender
    pitch_factor: float | None = None
    strategy: str | None = None

    @property
    def source_path(self) -> Path:
        return self.workdir / "source.oga"

    @property
    def normalized_path(self) -> Path:
        return self.workdir / "normalized.wav"

    @property
    def shifted_path(self) -> Path:
        return self.workdir / "shifted.wav"

    @property
    def output_path(self) -> Path:
        return self.workdir / "anonymized.ogg"


def pitch_factors_for(gender: Gender) -> tuple[float, ...]:
    return FEMALE_PITCH_FACTORS if gender is Gender.female else MALE_PITCH_FACTORS


# =============================================================================
# Fixed stages
# =============================================================================


def normalize_command(ffmpeg: str, job: VoiceJob) -> list[str]:
    """Mono, 48 kHz, band-limited."""
    return [
        ffmpeg,
        "-y",
        "-i",
        str(job.source_path),
        "-ac",
        "1",
        "-ar",
        str(SAMPLE_RATE),
        "-af",
        NORMALIZE_FILTER,
        str(job.normalized_path),
    ]


def encode_command(ffmpeg: str, job: VoiceJob, bitrate: str = "64k") -> list[str]:
    """Opus in an OGG container."""
    return [
        ffmpeg,
        "-y",
        "-i",
        str(job.shifted_path),
        "-c:a",
        "libopus",
        "-b:a",
        bitrate,
        str(job.output_path),
    ]


# =============================================================================
# Pitch-shift strategies
# =============================================================================


class PitchShiftStrategy(Protocol):
    name: str

    async def shift(self, job: VoiceJob, runner: CommandRunner, *, timeout: float) -> float:
        """Write job.shifted_path and return the pitch factor applied."""
        ...


class RubberBandPitchShift:
    """Formant-preserving pitch shift with a randomized factor."""

    name = "rubberband"

    def __init__(self, binary: str = "rubberband", rng: random.Random | None = None) -> None:
        self._binary = binary
        self._rng = rng or random.Random()

    def command(self, job: VoiceJob, factor: float) -> list[str]:
        return [
            self._binary,
            "--tempo",
            "1.0",
            "--frequency",
            f"{factor}",
            "--formant",
            str(job.normalized_path),
            str(job.shifted_path),
        ]

    async def shift(self, job: VoiceJob, runner: CommandRunner, *, timeout: float) -> float:
        factor = self._rng.choice(pitch_factors_for(job.gender))
        await runner.run(self.command(job, factor), stage="pitch_shift", timeout=timeout)
        return factor


class ResamplePitchShift:
    """ffmpeg resample trick: change the rate, resample back, restore tempo."""

    name = "resample"

    def __init__(self, ffmpeg: str = "ffmpeg") -> None:
        self._ffmpeg = ffmpeg

    def command(self, job: VoiceJob, ratio: float) -> list[str]:
        audio_filter = (
            f"asetrate={int(SAMPLE_RATE * ratio)},"
            f"aresample={SAMPLE_RATE},"
            f"atempo={1 / ratio:.6f}"
        )
        return [
            self._ffmpeg,
            "-y",
            "-i",
            str(job.normalized_path),
            "-af",
            audio_filter,
            str(job.shifted_path),
        ]

    async def shift(self, job: VoiceJob, runner: CommandRunner, *, timeout: float) -> float:
        ratio = FALLBACK_RATIOS[job.gender]
        await runner.run(self.command(job, ratio), stage="pitch_shift", timeout=timeout)
        return ratio
