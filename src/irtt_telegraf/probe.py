"""Run the irtt client and load its JSON result."""

from __future__ import annotations

import logging
import subprocess
from typing import List, Optional, Sequence

from .config import AppSettings
from .models import Result

logger = logging.getLogger(__name__)


class ProbeFailed(Exception):
    """irtt did not produce a usable result for the target."""

    def __init__(self, target: str, reason: str):
        self.target = target
        self.reason = reason
        super().__init__(f"irtt probe of {target} failed: {reason}")


def build_command(
    target: str, extra_args: Sequence[str] = (), binary: Optional[str] = None
) -> List[str]:
    # -Q silences the text report, -o - sends the JSON result to stdout
    return [binary or AppSettings.IRTT_BINARY, "client", "-Q", "-o", "-", *extra_args, target]


def run_probe(
    target: str,
    extra_args: Sequence[str] = (),
    *,
    binary: Optional[str] = None,
    timeout: Optional[float] = None,
) -> Result:
    """Run one irtt test against ``target`` and parse the result.

    Raises:
        ProbeFailed: irtt is missing, timed out, exited non-zero or wrote
            output that is not an irtt result.
    """
    command = build_command(target, extra_args, binary)
    limit = timeout if timeout is not None else AppSettings.IRTT_TIMEOUT
    logger.info("Running %s", " ".join(command))

    try:
        completed = subprocess.run(
            command,
            capture_output=True,
            text=True,
            timeout=limit,
            check=False,
        )
    except FileNotFoundError as e:
        raise ProbeFailed(target, f"irtt binary not found: {command[0]}") from e
    except subprocess.TimeoutExpired as e:
        raise ProbeFailed(target, f"timed out after {limit:g}s") from e

    if completed.returncode != 0:
        stderr = (completed.stderr or "").strip()
        raise ProbeFailed(target, stderr or f"exit status {completed.returncode}")

    try:
        return Result.from_json(completed.stdout)
    except ValueError as e:
        raise ProbeFailed(target, str(e)) from e
