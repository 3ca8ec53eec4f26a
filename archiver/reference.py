"""Image reference handling: filesystem-safe names and input parsing."""

import re
from collections.abc import Iterable, Iterator

ARCHIVE_SUFFIX = ".tar.xz"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def sanitize_reference(reference: str) -> str:
    """Replace every character outside ``[A-Za-z0-9._-]`` with ``_``.

    >>> sanitize_reference("registry.example.com/team/app:1.2")
    'registry.example.com_team_app_1.2'
    """
    return _UNSAFE_CHARS.sub("_", reference)


def archive_filename(reference: str, suffix: str = ARCHIVE_SUFFIX) -> str:
    """Output filename for an image reference."""
    return sanitize_reference(reference) + suffix


def parse_reference_lines(lines: Iterable[str]) -> Iterator[str]:
    """Yield image references from line-delimited text.

    Surrounding whitespace is stripped; blank lines and ``#`` comments are skipped.
    Lines are consumed lazily so a slow producer can feed the archiver.
    """
    for line in lines:
        reference = line.strip()
        if not reference or reference.startswith("#"):
            continue
        yield reference
