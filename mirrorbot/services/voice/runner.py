"""Subprocess runner for external audio tools."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from mirrorbot.logging_config import get_logger
from mirrorbot.services.voice.exceptions import (
    ExternalToolError,
    StageTimeoutError,
    ToolUnavailableError,
)

logger: Any = get_logger(__name__)

STDERR_TAIL_CHARS = 300


class ProcessRunner:
    """Run ffmpeg / rubberband with asyncio subprocesses."""

    async def run(self, args: Sequence[str], *, stage: str, timeout: float) -> None:
        tool = Path(args[0]).name
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise ToolUnavailableError(tool, stage) from e

        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            raise StageTimeoutError(tool, stage, timeout) from None
        finally:
            # Also reached on cancellation: never leave the tool running
            if proc.returncode is None:
                proc.kill()
                await proc.wait()

        if proc.returncode != 0:
            detail = (stderr or b"").decode("utf-8", errors="replace").strip()
            logger.debug(f"{tool} stderr during {stage}: {detail}")
            raise ExternalToolError(
                tool, stage, f"exit code {proc.returncode}: {detail[-STDERR_TAIL_CHARS:]}"
            )
