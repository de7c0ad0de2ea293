"""Converters that shell out to an external binary."""

import logging
import subprocess
from pathlib import Path
from typing import Callable

from ..errors import ProcessingFailed
from ..models import ProcessResult
from .base import Converter

logger = logging.getLogger(__name__)

Runner = Callable[[str, list[str], float], ProcessResult]


def run_process(executable: str, args: list[str], timeout: float) -> ProcessResult:
    """Run a binary with a wall-clock timeout and capture its output.

    Raises subprocess.TimeoutExpired or OSError when the process cannot finish.
    """
    result = subprocess.run(
        [executable, *args],
        capture_output=True,
        timeout=timeout,
        check=False,
    )
    return ProcessResult(
        stdout=result.stdout.decode("utf-8", errors="replace"),
        exit_code=result.returncode,
        stderr=result.stderr.decode("utf-8", errors="replace"),
    )


def parse_executables(text: str) -> dict[str, str]:
    """Parse ``ext1,ext2|/path/to/binary`` lines into an extension map.

    Blank lines, comments and malformed lines are ignored; the first line
    naming an extension wins.
    """
    mapping: dict[str, str] = {}
    for line in (text or "").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "|" not in line:
            continue
        exts, path = (part.strip() for part in line.split("|", 1))
        if not exts or not path:
            continue
        for ext in exts.split(","):
            ext = ext.strip().lower().lstrip(".")
            if ext:
                mapping.setdefault(ext, path)
    return mapping


class ExternalToolConverter(Converter):
    """Base for converters backed by a CLI tool."""

    version_args: list[str] = ["--version"]

    def __init__(
        self,
        executable: str,
        runner: Runner | None = None,
        timeout: float = 120,
        metadata_timeout: float = 30,
    ):
        self.executable = executable
        self.runner = runner or run_process
        self.timeout = timeout
        self.metadata_timeout = metadata_timeout
        self._available: bool | None = None

    def _probe(self) -> bool:
        try:
            result = self.runner(self.executable, self.version_args, 10)
        except (OSError, subprocess.SubprocessError):
            return False
        return result.exit_code == 0 and bool(result.stdout.strip() or result.stderr.strip())

    def check_requirements(self) -> bool:
        if self._available is None:
            self._available = self._probe()
            if not self._available:
                logger.debug(f"{self.id}: executable not usable: {self.executable}")
        return self._available

    def requirement_errors(self) -> list[str]:
        if self.check_requirements():
            return []
        return [f"{self.executable} is not installed or not executable"]

    def run(self, args: list[str], path: Path, timeout: float | None = None) -> str:
        timeout = timeout or self.timeout
        try:
            result = self.runner(self.executable, args, timeout)
        except subprocess.TimeoutExpired as e:
            raise ProcessingFailed(self.id, path.name, f"timed out after {timeout}s") from e
        except OSError as e:
            raise ProcessingFailed(self.id, path.name, str(e)) from e

        if result.exit_code != 0:
            detail = (result.stderr or result.stdout).strip()[:500]
            logger.error(f"{self.id} failed for {path.name} (exit {result.exit_code}): {detail}")
            raise ProcessingFailed(self.id, path.name, f"exit code {result.exit_code}: {detail}")
        return result.stdout
