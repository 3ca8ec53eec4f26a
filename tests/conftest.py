"""Shared fixtures: stand-in container engine and compressor executables.

The fake engine records every invocation as "<verb> <reference>" in a log file
and behaves as follows:
- ``pull missing*`` fails with an error on stderr
- ``pull garbled*`` fails with non-UTF-8 bytes on stderr
- ``save broken*`` writes a partial stream then fails
- ``save <ref>`` writes ``tar-stream:<ref>``

The fake compressor prefixes its input with ``xz:``.
"""

import logging
import stat
from dataclasses import dataclass
from pathlib import Path

import pytest

FAKE_ENGINE = """\
#!/bin/sh
echo "$1 $2" >> "{log}"
case "$1" in
  pull)
    case "$2" in
      missing*) echo "Error: $2: image not known" >&2; exit 125 ;;
      garbled*) printf '\\377\\376 oops' >&2; exit 1 ;;
    esac
    echo "Pulled $2"
    exit 0 ;;
  save)
    case "$2" in
      broken*) printf 'partial'; exit 2 ;;
    esac
    printf 'tar-stream:%s' "$2"
    exit 0 ;;
esac
exit 64
"""

FAKE_COMPRESSOR = """\
#!/bin/sh
printf 'xz:'
cat
"""

FAILING_COMPRESSOR = """\
#!/bin/sh
cat > /dev/null
exit 1
"""


def write_executable(path: Path, content: str) -> Path:
    path.write_text(content)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@dataclass
class FakeTools:
    """Paths to the fake executables."""

    bin_dir: Path
    engine: Path
    compressor: Path
    log: Path

    def calls(self) -> list[str]:
        """Engine invocations so far, in order."""
        if not self.log.exists():
            return []
        return self.log.read_text().splitlines()


@pytest.fixture
def fake_tools(tmp_path: Path) -> FakeTools:
    """Fake podman and xz executables in their own bin directory."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    log = tmp_path / "engine.log"
    engine = write_executable(bin_dir / "podman", FAKE_ENGINE.format(log=log))
    compressor = write_executable(bin_dir / "xz", FAKE_COMPRESSOR)
    return FakeTools(bin_dir=bin_dir, engine=engine, compressor=compressor, log=log)


@pytest.fixture
def restore_root_logger():
    """Put the root logger back the way it was after the test."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
def failing_compressor(fake_tools: FakeTools) -> Path:
    """A compressor that swallows its input and exits 1."""
    return write_executable(fake_tools.bin_dir / "xz-broken", FAILING_COMPRESSOR)
