"""Tests for the convert command."""

from __future__ import annotations

import re
from pathlib import Path

from umd.cli import main
from umd.cli.convert import _to_base36, generate_job_id
from umd.jobs import ConversionStateStore, ConversionStatus


class TestJobId:
    """Tests for batch id generation."""

    def test_base36(self):
        assert _to_base36(0) == "0"
        assert _to_base36(35) == "z"
        assert _to_base36(36) == "10"

    def test_format(self):
        assert re.fullmatch(r"batch-[0-9a-z]+-[0-9a-z]{6}", generate_job_id())

    def test_unique(self):
        assert len({generate_job_id() for _ in range(50)}) == 50


class TestConvertCommand:
    """Tests for `umd convert`."""

    def test_dry_run(self, runner, config, doc_tree: Path):
        result = runner.invoke(
            main, ["convert", str(doc_tree), "--dry-run"], obj={"config": config}
        )

        assert result.exit_code == 0, result.output
        assert "Found 4 files (3 pending)" in result.output
        assert "Dry run - would convert these files:" in result.output
        assert str(doc_tree / "report.pdf") in result.output
        assert str(doc_tree / "slides.pptx") not in result.output
        assert "Total: 3 files" in result.output
        assert not (doc_tree / "report.pdf.md").exists()
        assert ConversionStateStore(config.state_path).get_all_batches() == []

    def test_dry_run_include_converted(self, runner, config, doc_tree: Path):
        result = runner.invoke(
            main,
            ["convert", str(doc_tree), "--dry-run", "--include-converted"],
            obj={"config": config},
        )
        assert "Total: 4 files" in result.output

    def test_nothing_to_convert(self, runner, config, tmp_path: Path):
        (tmp_path / "a.pdf").write_bytes(b"x")
        (tmp_path / "a.pdf.md").write_text("# a")

        result = runner.invoke(main, ["convert", str(tmp_path)], obj={"config": config})

        assert result.exit_code == 0
        assert "No files to convert. All files are already converted." in result.output

    def test_converts_pending_files(self, runner, config, doc_tree: Path):
        result = runner.invoke(
            main, ["convert", str(doc_tree), "-c", "2"], obj={"config": config}
        )

        assert result.exit_code == 0, result.output
        assert "Concurrency: 2" in result.output
        assert "Progress: 3/3 files converted..." in result.output
        assert "Succeeded: 3" in result.output
        assert "Failed:    0" in result.output
        assert (doc_tree / "report.pdf.md").read_text() == "# converted\n"
        assert (doc_tree / "scans" / "deep" / "page2.jpg.md").exists()

        batches = ConversionStateStore(config.state_path).get_all_batches()
        assert len(batches) == 1
        assert batches[0].root_path == str(doc_tree)
        assert f"State saved for job: {batches[0].job_id}" in result.output

    def test_failures_set_exit_code(self, runner, config, doc_tree: Path):
        (doc_tree / "fail.pdf").write_bytes(b"%PDF")

        result = runner.invoke(main, ["convert", str(doc_tree)], obj={"config": config})

        assert result.exit_code == 4
        assert "Failed:    1" in result.output
        assert f"  - {doc_tree / 'fail.pdf'}" in result.output
        assert "Error: could not read" in result.output

        batch = ConversionStateStore(config.state_path).get_all_batches()[0]
        failed = batch.records[str(doc_tree / "fail.pdf")]
        assert failed.status is ConversionStatus.FAILED

    def test_missing_directory(self, runner, config, tmp_path: Path):
        result = runner.invoke(
            main, ["convert", str(tmp_path / "absent")], obj={"config": config}
        )
        assert result.exit_code == 3

    def test_invalid_concurrency(self, runner, config, doc_tree: Path):
        result = runner.invoke(
            main, ["convert", str(doc_tree), "-c", "0"], obj={"config": config}
        )
        assert result.exit_code == 2
