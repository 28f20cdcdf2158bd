"""Custom exceptions for the voice anonymization pipeline."""


class VoiceServiceError(Exception):
    """Base exception for voice pipeline errors."""

    pass


class ExternalToolError(VoiceServiceError):
    """Raised when an external filter stage fails or exits non-zero."""

    def __init__(self, tool: str, stage: str, reason: str) -> None:
        super().__init__(f"{tool} failed during {stage}: {reason}")
        self.tool = tool
        self.stage = stage
        self.reason = reason


class ToolUnavailableError(ExternalToolError):
    """Raised when an external binary is not installed."""

    def __init__(self, tool: str, stage: str) -> None:
        super().__init__(tool, stage, "executable not found")


class StageTimeoutError(ExternalToolError):
    """Raised when a stage exceeds its timeout and is killed."""

    def __init__(self, tool: str, stage: str, timeout: float) -> None:
        super().__init__(tool, stage, f"timed out after {timeout:.0f}s")
        self.timeout = timeout


class VoiceAnonymizationError(VoiceServiceError):
    """Raised when a voice job is aborted. The source clip is never returned."""

    def __init__(self, stage: str, reason: str) -> None:
        super().__init__(f"Voice anonymization failed at {stage}: {reason}")
        self.stage = stage
        self.reason = reason
