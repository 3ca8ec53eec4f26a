"""Adapters for the external tools the archiver delegates to.

Two binaries do the real work:
- a container engine (podman by default) that can ``pull <ref>`` and
  ``save <ref>`` a tar stream to stdout
- a compressor (xz by default) that reads stdin and writes stdout

`run_pipeline` wires ``save`` into the compressor and the compressor into the
output file, the way ``engine save ref | xz -T0 > file`` does in a shell.
"""

import logging
import shutil
import subprocess
from pathlib import Path

from archiver.error import MissingDependencyError, PullError, SaveError

logger = logging.getLogger(__name__)


def locate_tool(name: str) -> str:
    """Resolve an executable on PATH.

    Raises:
        MissingDependencyError: If the tool cannot be found.
    """
    path = shutil.which(name)
    if path is None:
        raise MissingDependencyError(name)
    logger.debug("Using %s at %s", name, path)
    return path


class ContainerEngine:
    """Pulls and saves images through a podman/docker compatible CLI."""

    def __init__(self, binary: str) -> None:
        self._binary = binary

    @classmethod
    def locate(cls, name: str = "podman") -> "ContainerEngine":
        return cls(locate_tool(name))

    @property
    def binary(self) -> str:
        return self._binary

    def pull(self, reference: str) -> None:
        """Pull an image into local storage.

        Raises:
            PullError: If the engine exits non-zero or cannot be started.
        """
        try:
            result = subprocess.run(
                [self._binary, "pull", reference],
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            raise PullError(reference, str(e)) from e

        if result.returncode != 0:
            detail = (result.stderr or result.stdout).strip()
            raise PullError(
                reference,
                detail or f"{self._binary} pull exited with code {result.returncode}",
            )
        if result.stdout:
            logger.debug("%s", result.stdout.strip())

    def save_command(self, reference: str) -> list[str]:
        """Command that writes the image as a tar stream to stdout."""
        return [self._binary, "save", reference]


class Compressor:
    """Stream compressor reading stdin and writing stdout."""

    def __init__(self, binary: str, args: list[str] | None = None) -> None:
        self._binary = binary
        self._args = list(args or [])

    @classmethod
    def locate(cls, name: str = "xz", args: list[str] | None = None) -> "Compressor":
        return cls(locate_tool(name), args)

    @property
    def binary(self) -> str:
        return self._binary

    def command(self) -> list[str]:
        return [self._binary, *self._args]


def run_pipeline(
    reference: str,
    producer: list[str],
    consumer: list[str],
    destination: Path,
) -> None:
    """Run ``producer | consumer > destination``.

    Both processes are waited on before returning. The pipeline fails if either
    side exits non-zero.

    Raises:
        SaveError: If a process cannot be started or exits non-zero.
    """
    logger.debug("Running %s | %s > %s", " ".join(producer), " ".join(consumer), destination)

    with destination.open("wb") as out:
        try:
            save = subprocess.Popen(producer, stdout=subprocess.PIPE)
        except OSError as e:
            raise SaveError(reference, str(e)) from e

        try:
            compress = subprocess.Popen(consumer, stdin=save.stdout, stdout=out)
        except OSError as e:
            save.kill()
            save.wait()
            raise SaveError(reference, str(e)) from e
        finally:
            # The compressor owns the read end from here on
            if save.stdout is not None:
                save.stdout.close()

        compress_returncode = compress.wait()
        save_returncode = save.wait()

    if save_returncode != 0 or compress_returncode != 0:
        raise SaveError(
            reference,
            f"{producer[0]} exited with code {save_returncode}, "
            f"{consumer[0]} exited with code {compress_returncode}",
            save_returncode=save_returncode,
            compress_returncode=compress_returncode,
        )
