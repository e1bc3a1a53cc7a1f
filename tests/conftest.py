"""
Shared fixtures: stub runtime binaries written as small shell scripts.
"""

import stat
from pathlib import Path

import pytest


def write_stub_binary(
    path: Path,
    version_output: str = "deno 1.20.3 (release, x86_64-unknown-linux-gnu)",
    exit_code: int = 0,
    run_seconds: float = 0,
) -> Path:
    """Write an executable that prints ``version_output`` for ``--version``.

    Any other invocation echoes its arguments, after sleeping ``run_seconds``.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        "#!/bin/sh\n"
        'if [ "$1" = "--version" ]; then\n'
        f"  printf '%s\\n' '{version_output}'\n"
        f"  exit {exit_code}\n"
        "fi\n"
        f"sleep {run_seconds}\n"
        'echo "stub called with: $*"\n'
        "exit 0\n"
    )
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def stub_binary_factory():
    """Factory fixture returning write_stub_binary."""
    return write_stub_binary


@pytest.fixture
def isolated_path(tmp_path, monkeypatch):
    """Replace PATH with an empty directory so no global deno can be found."""
    empty_bin = tmp_path / "empty-bin"
    empty_bin.mkdir()
    monkeypatch.setenv("PATH", str(empty_bin))
    return empty_bin
