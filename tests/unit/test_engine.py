"""Tests for the external tool adapters."""

from pathlib import Path

import pytest

from archiver.engine import Compressor, ContainerEngine, locate_tool, run_pipeline
from archiver.error import MissingDependencyError, PullError, SaveError


class TestLocateTool:
    def test_finds_tool_on_path(self, fake_tools, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PATH", str(fake_tools.bin_dir))

        assert locate_tool("podman") == str(fake_tools.engine)

    def test_missing_tool_raises(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PATH", str(tmp_path))

        with pytest.raises(MissingDependencyError) as exc_info:
            locate_tool("podman")

        assert exc_info.value.tool == "podman"
        assert exc_info.value.code == "MISSING_DEPENDENCY"
        assert "podman" in exc_info.value.message

    def test_engine_and_compressor_locate(
        self, fake_tools, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("PATH", str(fake_tools.bin_dir))

        engine = ContainerEngine.locate("podman")
        compressor = Compressor.locate("xz", ["-T0"])

        assert engine.binary == str(fake_tools.engine)
        assert compressor.command() == [str(fake_tools.compressor), "-T0"]


class TestContainerEnginePull:
    def test_pull_success(self, fake_tools) -> None:
        engine = ContainerEngine(str(fake_tools.engine))

        engine.pull("alpine:3.14")

        assert fake_tools.calls() == ["pull alpine:3.14"]

    def test_pull_failure_carries_stderr(self, fake_tools) -> None:
        engine = ContainerEngine(str(fake_tools.engine))

        with pytest.raises(PullError) as exc_info:
            engine.pull("missing/image:1")

        assert exc_info.value.reference == "missing/image:1"
        assert "image not known" in exc_info.value.message

    def test_pull_failure_with_undecodable_stderr(self, fake_tools) -> None:
        """Non-UTF-8 engine output still ends up as a PullError."""
        engine = ContainerEngine(str(fake_tools.engine))

        with pytest.raises(PullError) as exc_info:
            engine.pull("garbled:1")

        assert exc_info.value.message == "\ufffd\ufffd oops"

    def test_pull_with_unrunnable_binary(self, tmp_path: Path) -> None:
        engine = ContainerEngine(str(tmp_path / "does-not-exist"))

        with pytest.raises(PullError):
            engine.pull("alpine")

    def test_save_command(self) -> None:
        engine = ContainerEngine("/usr/bin/podman")

        assert engine.save_command("alpine:3.14") == ["/usr/bin/podman", "save", "alpine:3.14"]


class TestRunPipeline:
    def test_writes_compressed_stream(self, fake_tools, tmp_path: Path) -> None:
        destination = tmp_path / "alpine_3.14.tar.xz"

        run_pipeline(
            "alpine:3.14",
            [str(fake_tools.engine), "save", "alpine:3.14"],
            [str(fake_tools.compressor)],
            destination,
        )

        assert destination.read_bytes() == b"xz:tar-stream:alpine:3.14"

    def test_producer_failure(self, fake_tools, tmp_path: Path) -> None:
        """A failing save fails the pipeline even though the compressor succeeds."""
        with pytest.raises(SaveError) as exc_info:
            run_pipeline(
                "broken:1",
                [str(fake_tools.engine), "save", "broken:1"],
                [str(fake_tools.compressor)],
                tmp_path / "out.tar.xz",
            )

        assert exc_info.value.save_returncode == 2
        assert exc_info.value.compress_returncode == 0

    def test_consumer_failure(self, fake_tools, failing_compressor, tmp_path: Path) -> None:
        with pytest.raises(SaveError) as exc_info:
            run_pipeline(
                "alpine",
                [str(fake_tools.engine), "save", "alpine"],
                [str(failing_compressor)],
                tmp_path / "out.tar.xz",
            )

        assert exc_info.value.compress_returncode == 1

    def test_unrunnable_consumer(self, fake_tools, tmp_path: Path) -> None:
        with pytest.raises(SaveError):
            run_pipeline(
                "alpine",
                [str(fake_tools.engine), "save", "alpine"],
                [str(tmp_path / "no-such-xz")],
                tmp_path / "out.tar.xz",
            )

    def test_unrunnable_producer(self, fake_tools, tmp_path: Path) -> None:
        with pytest.raises(SaveError):
            run_pipeline(
                "alpine",
                [str(tmp_path / "no-such-podman"), "save", "alpine"],
                [str(fake_tools.compressor)],
                tmp_path / "out.tar.xz",
            )
