"""Voice anonymizer: fetch, normalize, pitch-shift, encode, upload.

Each job runs in a fresh temporary directory with an independent timeout
per external stage. A bounded number of jobs run at once. On any
irrecoverable failure VoiceAnonymizationError is raised and nothing derived
from the source clip is returned.
"""

from __future__ import annotations

import asyncio
import random
import shutil
import tempfile
import time
from pathlib import Path
from typing import Any

from mirrorbot.config import Settings, get_settings
from mirrorbot.db.models import Gender
from mirrorbot.logging_config import get_logger
from mirrorbot.observability import record_voice_job
from mirrorbot.services.transport.protocol import TransportError
from mirrorbot.services.voice.exceptions import (
    ExternalToolError,
    VoiceAnonymizationError,
    VoiceServiceError,
)
from mirrorbot.services.voice.protocol import (
    AnonymizedVoice,
    CommandRunner,
    VoiceTransport,
)
from mirrorbot.services.voice.runner import ProcessRunner
from mirrorbot.services.voice.stages import (
    PitchShiftStrategy,
    ResamplePitchShift,
    RubberBandPitchShift,
    VoiceJob,
    encode_command,
    normalize_command,
)

logger: Any = get_logger(__name__)


class VoiceAnonymizer:
    """Runs voice jobs through the external filter chain.

    The pitch-shift stage walks an ordered strategy list: Rubber Band with
    formant preservation first, the ffmpeg resample trick second.
    """

    def __init__(
        self,
        transport: VoiceTransport,
        staging_chat_id: int,
        *,
        runner: CommandRunner | None = None,
        ffmpeg_path: str = "ffmpeg",
        rubberband_path: str = "rubberband",
        strategies: list[PitchShiftStrategy] | None = None,
        stage_timeout: float = 30.0,
        cleanup_grace: float = 2.0,
        max_concurrent_jobs: int = 2,
        bitrate: str = "64k",
        temp_dir: str | Path | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._transport = transport
        self._staging_chat_id = staging_chat_id
        self._runner = runner or ProcessRunner()
        self._ffmpeg = ffmpeg_path
        self._strategies = strategies or [
            RubberBandPitchShift(rubberband_path, rng=rng),
            ResamplePitchShift(ffmpeg_path),
        ]
        self._stage_timeout = stage_timeout
        self._cleanup_grace = cleanup_grace
        self._bitrate = bitrate
        self._temp_dir = str(temp_dir) if temp_dir else None
        self._semaphore = asyncio.Semaphore(max_concurrent_jobs)
        self._cleanup_tasks: set[asyncio.Task[None]] = set()
        self._pending_dirs: set[Path] = set()

    @classmethod
    def from_settings(
        cls,
        transport: VoiceTransport,
        settings: Settings | None = None,
        **overrides: Any,
    ) -> VoiceAnonymizer:
        settings = settings or get_settings()
        options: dict[str, Any] = {
            "ffmpeg_path": settings.ffmpeg_path,
            "rubberband_path": settings.rubberband_path,
            "stage_timeout": settings.voice_stage_timeout,
            "cleanup_grace": settings.voice_cleanup_grace,
            "max_concurrent_jobs": settings.voice_max_concurrent_jobs,
            "bitrate": settings.voice_bitrate,
            "temp_dir": settings.voice_temp_dir,
        }
        options.update(overrides)
        return cls(transport, settings.staging_chat_id, **options)

    async def anonymize(self, source_ref: str, gender: Gender) -> AnonymizedVoice:
        """Anonymize one voice clip.

        Args:
            source_ref: Transport file reference of the original clip
            gender: Sender's gender, selects the pitch direction

        Returns:
            AnonymizedVoice with the uploaded file reference

        Raises:
            VoiceAnonymizationError: Any stage failed irrecoverably
        """
        start = time.perf_counter()
        async with self._semaphore:
            try:
                workdir = await self._make_workdir()
            except VoiceAnonymizationError as e:
                record_voice_job(e.stage, None, time.perf_counter() - start)
                logger.warning(f"Voice job failed at {e.stage}: {e.reason}")
                raise
            job = VoiceJob(source_ref=source_ref, workdir=workdir, gender=gender)
            try:
                result = await self._run(job)
            except VoiceAnonymizationError as e:
                record_voice_job(e.stage, job.strategy, time.perf_counter() - start)
                logger.warning(f"Voice job failed at {e.stage}: {e.reason}")
                raise
            finally:
                self._schedule_cleanup(workdir)

        record_voice_job("success", result.strategy, time.perf_counter() - start)
        logger.info(
            f"Voice job done via {result.strategy} "
            f"(factor={result.pitch_factor}, {time.perf_counter() - start:.2f}s)"
        )
        return result

    async def _make_workdir(self) -> Path:
        try:
            path = await asyncio.to_thread(
                tempfile.mkdtemp, prefix="mirror-voice-", dir=self._temp_dir
            )
        except OSError as e:
            raise VoiceAnonymizationError("fetch", f"no work directory: {e}") from e
        return Path(path)

    async def _run(self, job: VoiceJob) -> AnonymizedVoice:
        stage = "fetch"
        try:
            data = await self._transport.download_file(job.source_ref)
            await asyncio.to_thread(job.source_path.write_bytes, data)

            stage = "normalize"
            await self._runner.run(
                normalize_command(self._ffmpeg, job),
                stage=stage,
                timeout=self._stage_timeout,
            )

            stage = "pitch_shift"
            await self._shift_pitch(job)

            stage = "encode"
            await self._runner.run(
                encode_command(self._ffmpeg, job, self._bitrate),
                stage=stage,
                timeout=self._stage_timeout,
            )

            stage = "upload"
            payload = await asyncio.to_thread(job.output_path.read_bytes)
            file_ref = await self._transport.upload_voice(
                self._staging_chat_id, payload, filename="voice.ogg"
            )
        except VoiceServiceError as e:
            raise VoiceAnonymizationError(stage, str(e)) from e
        except TransportError as e:
            raise VoiceAnonymizationError(stage, e.reason) from e
        except OSError as e:
            raise VoiceAnonymizationError(stage, str(e)) from e

        if file_ref == job.source_ref:
            raise VoiceAnonymizationError("upload", "upload returned the source reference")

        return AnonymizedVoice(
            file_ref=file_ref,
            pitch_factor=job.pitch_factor or 1.0,
            strategy=job.strategy or "none",
        )

    async def _shift_pitch(self, job: VoiceJob) -> None:
        last_error: ExternalToolError | None = None
        for strategy in self._strategies:
            try:
                job.pitch_factor = await strategy.shift(
                    job, self._runner, timeout=self._stage_timeout
                )
            except ExternalToolError as e:
                logger.warning(f"Pitch strategy {strategy.name} failed: {e}")
                last_error = e
                continue
            job.strategy = strategy.name
            return

        if last_error is not None:
            raise last_error
        raise VoiceAnonymizationError("pitch_shift", "no pitch strategies configured")

    # -------------------------------------------------------------------------
    # Temp directory cleanup
    # -------------------------------------------------------------------------

    def _schedule_cleanup(self, workdir: Path) -> None:
        self._pending_dirs.add(workdir)
        task = asyncio.create_task(self._cleanup_later(workdir))
        self._cleanup_tasks.add(task)
        task.add_done_callback(self._cleanup_tasks.discard)

    async def _cleanup_later(self, workdir: Path) -> None:
        await asyncio.sleep(self._cleanup_grace)
        await self._remove(workdir)

    async def _remove(self, workdir: Path) -> None:
        self._pending_dirs.discard(workdir)
        await asyncio.to_thread(shutil.rmtree, workdir, True)

    async def close(self) -> None:
        """Cancel pending grace delays and remove every remaining work directory."""
        tasks = list(self._cleanup_tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        for workdir in list(self._pending_dirs):
            await self._remove(workdir)
