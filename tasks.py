"""Developer tasks powered by Invoke."""

from __future__ import annotations

import pathlib
import subprocess
from typing import Iterable

from invoke import task

ROOT = pathlib.Path(__file__).parent.resolve()
RESULTS_DIR = ROOT / "results"


def _run(command: Iterable[str] | str) -> None:
    cmd = command if isinstance(command, str) else " ".join(command)
    subprocess.run(cmd, shell=True, check=True, cwd=ROOT)


@task
def tests(_context, unit=False):
    """Run the test suite (``--unit`` for domain tests only)."""
    target = "tests/unit" if unit else "tests/"
    _run(["uv", "run", "pytest", target])


@task
def coverage(_context):
    """Run tests under coverage and write reports to results/."""
    RESULTS_DIR.mkdir(exist_ok=True)
    _run(["uv", "run", "coverage", "erase"])
    _run(["uv", "run", "coverage", "run", "-m", "pytest", "tests/",
          "--junitxml=results/pytest.xml"])
    _run(["uv", "run", "coverage", "report"])
    _run(["uv", "run", "coverage", "html", "-d", "results/htmlcov"])
    _run(["uv", "run", "coverage", "xml", "-o", "results/coverage.xml"])


@task
def lint(_context):
    """Run formatting and type checks."""
    _run(["uv", "run", "black", "--check", "src", "tests"])
    _run(["uv", "run", "mypy", "src/bddmcp"])


@task(iterable=["step_module"])
def serve(_context, step_module, transport="stdio"):
    """Start the MCP server with the given step modules."""
    modules = " ".join(f"--step-module {m}" for m in step_module)
    _run(f"uv run bddmcp --transport {transport} {modules}")


@task
def build(_context):
    """Build distribution artifacts."""
    _run(["uv", "build"])
