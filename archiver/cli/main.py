"""Main CLI application using Cyclopts.

    archiver [-h] [-d] [-o DIR] [-c FILE] [IMAGE...]
    cat images.txt | archiver
"""

import logging
import sys
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Annotated, TextIO

import cyclopts
from cyclopts import Parameter

from archiver.archiver import ImageArchiver
from archiver.cli.console import Console, get_console
from archiver.config import configure_logging, load_config
from archiver.engine import Compressor, ContainerEngine
from archiver.error import ConfigurationError, MissingDependencyError, NoInputError
from archiver.reference import parse_reference_lines

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1

app = cyclopts.App(
    name="archiver",
    help="Pull container images and save each as a compressed tar.xz file.",
    help_flags=[],
    version_flags=[],
)


def read_references(images: Sequence[str], stdin: TextIO | None) -> Iterable[str]:
    """Pick the image references for this run.

    Positional images win; standard input is only read when none are given.

    Raises:
        NoInputError: If there are no images and stdin is a terminal (or closed).
    """
    references = [image for image in images if image]
    if references:
        return references
    if images:
        raise NoInputError("No container images specified.")

    if stdin is None or stdin.isatty():
        raise NoInputError("No container images specified.")

    logger.debug("Reading image references from standard input")
    return parse_reference_lines(stdin)


def print_usage(console: Console) -> None:
    app.help_print(console=console.rich)


def run(
    images: Sequence[str],
    *,
    debug: bool = False,
    output_dir: Path | None = None,
    config_file: Path | None = None,
    stdin: TextIO | None = None,
    console: Console | None = None,
) -> int:
    """Archive images and return the process exit status.

    Per-image failures are reported but keep the exit status at 0; only a
    missing tool, bad configuration or missing input fail the run.
    """
    console = console or get_console()

    try:
        config = load_config(config_file)
    except ConfigurationError as e:
        console.error(e.message, details=e.details)
        return EXIT_FAILURE

    configure_logging(config.logging, debug=debug)

    try:
        engine = ContainerEngine.locate(config.engine.binary)
        compressor = Compressor.locate(config.compression.binary, config.compression.args)
    except MissingDependencyError as e:
        console.error(e.message, hint=f"Please install {e.tool} and make sure it is on PATH.")
        return EXIT_FAILURE

    try:
        references = read_references(images, stdin)
    except NoInputError as e:
        console.error(e.message)
        print_usage(console)
        return EXIT_FAILURE

    archiver = ImageArchiver(
        engine,
        compressor,
        output_dir=output_dir or config.output.directory,
        suffix=config.compression.suffix,
        keep_partial=config.output.keep_partial,
    )
    report = archiver.archive_all(references)

    if report.total == 0:
        console.error("No container images found on standard input.")
        print_usage(console)
        return EXIT_FAILURE

    console.report(report)
    return EXIT_OK


@app.default
def archive(
    *images: str,
    debug: Annotated[bool, Parameter(name=["-d", "--debug"], negative=())] = False,
    output_dir: Annotated[Path | None, Parameter(name=["-o", "--output-dir"])] = None,
    config: Annotated[Path | None, Parameter(name=["-c", "--config"])] = None,
    show_help: Annotated[bool, Parameter(name=["-h", "--help"], negative=())] = False,
) -> int:
    """Pull container images and save each as a compressed tar.xz file.

    Images are read from standard input (one per line, '#' comments and blank
    lines ignored) when none are given on the command line.

    Args:
        images: Image references, e.g. registry.example.com/app:1.0 alpine:3.14
        debug: Enable debug logging.
        output_dir: Directory to write archives to. Defaults to the current directory.
        config: YAML config file.
        show_help: Show this help message and exit.
    """
    if show_help:
        print_usage(get_console())
        return EXIT_FAILURE

    return run(
        images,
        debug=debug,
        output_dir=output_dir,
        config_file=config,
        stdin=sys.stdin,
    )


def main(argv: Sequence[str] | None = None) -> None:
    """Console script entry point.

    Unknown options and bad values print usage and exit 1.
    """
    try:
        command, bound, _ = app.parse_args(argv, print_error=False, exit_on_error=False)
    except cyclopts.CycloptsError as e:
        console = get_console()
        console.error(str(e))
        print_usage(console)
        sys.exit(EXIT_FAILURE)

    sys.exit(command(*bound.args, **bound.kwargs))
