"""Error hierarchy for the image archiver.

Error layers:
- ArchiverError: Base class for all archiver errors
- ArchiveError: Per-image failures (pull, save). Logged and skipped; the batch continues.
- Fatal errors (missing tools, no input, bad configuration) abort the run before
  any image is processed and map to exit status 1 in the CLI.
"""


class ArchiverError(Exception):
    """Base class for all archiver errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(message)


# =============================================================================
# Per-image errors (recoverable)
# =============================================================================


class ArchiveError(ArchiverError):
    """Base class for errors tied to a single image reference."""

    def __init__(self, reference: str, message: str) -> None:
        super().__init__(message)
        self.reference = reference


class PullError(ArchiveError):
    """The container engine failed to pull an image."""


class SaveError(ArchiveError):
    """Saving or compressing an image failed."""

    def __init__(
        self,
        reference: str,
        message: str,
        *,
        save_returncode: int | None = None,
        compress_returncode: int | None = None,
    ) -> None:
        super().__init__(reference, message)
        self.save_returncode = save_returncode
        self.compress_returncode = compress_returncode


# =============================================================================
# Fatal errors
# =============================================================================


class MissingDependencyError(ArchiverError):
    """A required external tool is not installed."""

    def __init__(self, tool: str) -> None:
        super().__init__(f"{tool} command not found", code="MISSING_DEPENDENCY")
        self.tool = tool


class NoInputError(ArchiverError):
    """No image references were supplied."""


class ConfigurationError(ArchiverError):
    """Settings failed validation."""

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message, code="CONFIGURATION_ERROR")
        self.details = details or []
