"""Pull container images and archive each one as a compressed tarball."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from archiver.engine import Compressor, ContainerEngine, run_pipeline
from archiver.error import ArchiveError, PullError
from archiver.reference import ARCHIVE_SUFFIX, archive_filename

logger = logging.getLogger(__name__)


class ArchiveStatus(Enum):
    """Outcome of archiving one image."""

    SAVED = "saved"
    PULL_FAILED = "pull_failed"
    SAVE_FAILED = "save_failed"


@dataclass
class ArchiveResult:
    """Result of archiving one image reference."""

    reference: str
    status: ArchiveStatus
    output: Path | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == ArchiveStatus.SAVED


@dataclass
class ArchiveReport:
    """Per-image results of one run, in input order."""

    results: list[ArchiveResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def saved(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return self.total - self.saved


class ImageArchiver:
    """Pulls images and saves them through a compressor, one at a time.

    Failures are per-image: a failed pull or save is logged and recorded, and
    the next image is processed regardless.
    """

    def __init__(
        self,
        engine: ContainerEngine,
        compressor: Compressor,
        *,
        output_dir: Path = Path("."),
        suffix: str = ARCHIVE_SUFFIX,
        keep_partial: bool = False,
    ) -> None:
        self._engine = engine
        self._compressor = compressor
        self._output_dir = output_dir
        self._suffix = suffix
        self._keep_partial = keep_partial

    def output_path(self, reference: str) -> Path:
        """Archive path for an image reference."""
        return self._output_dir / archive_filename(reference, self._suffix)

    def archive(self, reference: str) -> ArchiveResult:
        """Pull one image and write its compressed archive.

        Args:
            reference: Image reference (registry/name:tag).

        Returns:
            ArchiveResult describing the outcome. Never raises for
            pull or save failures.
        """
        logger.info("Processing image: %s", reference)

        try:
            logger.debug("Pulling %s", reference)
            self._engine.pull(reference)
        except PullError as e:
            logger.error("Failed to pull %s: %s", reference, e.message)
            return ArchiveResult(
                reference=reference,
                status=ArchiveStatus.PULL_FAILED,
                error=e.message,
            )

        output = self.output_path(reference)
        logger.info("Saving %s to %s", reference, output)
        try:
            self._output_dir.mkdir(parents=True, exist_ok=True)
            run_pipeline(
                reference,
                self._engine.save_command(reference),
                self._compressor.command(),
                output,
            )
        except (ArchiveError, OSError) as e:
            message = e.message if isinstance(e, ArchiveError) else str(e)
            logger.error("Failed to save %s: %s", reference, message)
            self._discard_partial(output)
            return ArchiveResult(
                reference=reference,
                status=ArchiveStatus.SAVE_FAILED,
                error=message,
            )

        logger.info("Successfully saved %s", reference)
        return ArchiveResult(
            reference=reference,
            status=ArchiveStatus.SAVED,
            output=output,
        )

    def archive_all(self, references: Iterable[str]) -> ArchiveReport:
        """Archive every reference in order.

        The iterable is consumed lazily, so references streamed from stdin are
        processed as they arrive.
        """
        report = ArchiveReport()
        for reference in references:
            report.results.append(self.archive(reference))
        logger.debug(
            "Archived %d of %d image(s), %d failed",
            report.saved,
            report.total,
            report.failed,
        )
        return report

    def _discard_partial(self, output: Path) -> None:
        if self._keep_partial:
            if output.exists():
                logger.debug("Keeping partial archive %s", output)
            return
        try:
            output.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove partial archive %s: %s", output, e)
