"""Voice pipeline protocols and data types."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True, slots=True)
class AnonymizedVoice:
    """Result of a finished voice job."""

    file_ref: str  # Stable transport reference of the uploaded output
    pitch_factor: float
    strategy: str


class CommandRunner(Protocol):
    """Runs one external filter command."""

    async def run(self, args: Sequence[str], *, stage: str, timeout: float) -> None:
        """Run a command to completion.

        Args:
            args: Executable followed by its arguments. The output path is last.
            stage: Pipeline stage name used in errors
            timeout: Seconds before the process is killed

        Raises:
            ToolUnavailableError: Executable missing
            StageTimeoutError: Timeout exceeded
            ExternalToolError: Non-zero exit
        """
        ...


class VoiceTransport(Protocol):
    """The part of the chat transport the pipeline needs."""

    async def download_file(self, file_ref: str) -> bytes:
        ...

    async def upload_voice(self, chat_id: int, data: bytes, *, filename: str) -> str:
        ...
