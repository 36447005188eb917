"""Shared test fixtures for the markdown conversion orchestrator."""

from __future__ import annotations

import os
import shutil
import sys
import tempfile
import textwrap
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from umd.config import (
    ConversionConfig,
    LoggingConfig,
    ScanConfig,
    ServerConfig,
    UMDConfig,
    clear_config_cache,
)

# Stand-in for the single-file converter. Writes "<file>.md" and exits 0,
# except for names containing "fail" (exit 1 with a message on stderr),
# "slow" (sleeps 30s, so cancellation can catch it running) or "brief"
# (sleeps 1s, long enough to overlap another batch).
FAKE_CONVERTER = textwrap.dedent(
    """\
    import sys
    import time

    path = sys.argv[1]
    print("converting " + path)
    if "slow" in path:
        time.sleep(30)
    if "brief" in path:
        time.sleep(1)
    if "fail" in path:
        print("could not read " + path, file=sys.stderr)
        sys.exit(1)
    with open(path + ".md", "w") as f:
        f.write("# converted\\n")
    """
)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test isolation."""
    dir_path = tempfile.mkdtemp()
    yield Path(dir_path)
    shutil.rmtree(dir_path, ignore_errors=True)


@pytest.fixture(autouse=True)
def umd_data_dir(temp_dir: Path):
    """Point UMD_DATA_DIR at a private directory for every test.

    Keeps persisted rules, cache and job state out of the real home
    directory, and stops CLI invocations from reconfiguring root logging.
    """
    data_dir = temp_dir / ".umd"
    data_dir.mkdir(parents=True, exist_ok=True)
    clear_config_cache()
    with (
        patch.dict(os.environ, {"UMD_DATA_DIR": str(data_dir)}),
        patch("umd.cli._logging_configured", True),
    ):
        yield data_dir
    clear_config_cache()


@pytest.fixture
def fake_converter(temp_dir: Path) -> list[str]:
    """Command prefix that runs the fake single-file converter."""
    script = temp_dir / "fake_converter.py"
    script.write_text(FAKE_CONVERTER)
    return [sys.executable, str(script)]


@pytest.fixture
def config(umd_data_dir: Path, fake_converter: list[str]) -> UMDConfig:
    """Configuration rooted in the test data directory."""
    return UMDConfig(
        data_dir=umd_data_dir,
        logging=LoggingConfig(),
        server=ServerConfig(),
        scan=ScanConfig(),
        conversion=ConversionConfig(
            concurrency=2,
            cancel_grace_period=0.5,
            file_timeout=20.0,
            converter_command=fake_converter,
        ),
    )


@pytest.fixture
def doc_tree(temp_dir: Path) -> Path:
    """Create a directory of convertible and non-convertible files.

    Layout::

        docs/
          report.pdf          pending
          slides.pptx         converted (slides.pptx.md exists)
          notes.txt           unsupported
          ~$report.docx       office lock file
          scans/page1.png     pending
          scans/deep/page2.jpg  pending
          node_modules/pkg/readme.pdf  default-excluded directory
    """
    root = temp_dir / "docs"
    (root / "scans" / "deep").mkdir(parents=True)
    (root / "node_modules" / "pkg").mkdir(parents=True)

    (root / "report.pdf").write_bytes(b"%PDF-1.4 report")
    (root / "slides.pptx").write_bytes(b"pptx")
    (root / "slides.pptx.md").write_text("# slides\n")
    (root / "notes.txt").write_text("notes")
    (root / "~$report.docx").write_bytes(b"lock")
    (root / "scans" / "page1.png").write_bytes(b"png")
    (root / "scans" / "deep" / "page2.jpg").write_bytes(b"jpg")
    (root / "node_modules" / "pkg" / "readme.pdf").write_bytes(b"%PDF")
    return root


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()
