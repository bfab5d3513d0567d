# SPDX-License-Identifier: Apache-2.0
"""Local subprocess execution for CLI-backed providers."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from site_translator.providers.base import TransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    """Exit status and captured output of a finished process."""

    returncode: int
    stdout: str
    stderr: str


async def run_cli(
    argv: Sequence[str],
    stdin: str | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float = 300.0,
) -> ProcessResult:
    """Run a command and collect its output.

    The child is killed if it does not finish within ``timeout`` seconds.

    Args:
        argv: Program and arguments.
        stdin: Text written to the child's stdin.
        env: Complete environment for the child (None inherits ours).
        timeout: Hard limit in seconds.

    Returns:
        Process exit status and decoded output.

    Raises:
        TransportError: If the program cannot be started or times out.
    """
    program = argv[0]
    logger.debug("Running: %s", " ".join(argv[:3]))
    started = time.monotonic()
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=dict(env) if env is not None else None,
        )
    except OSError as e:
        raise TransportError(f"Failed to run {program}: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(
            proc.communicate(stdin.encode("utf-8") if stdin is not None else None),
            timeout=timeout,
        )
    except asyncio.TimeoutError as e:
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        await proc.wait()
        raise TransportError(f"{program} request timeout ({timeout:g}s)") from e

    elapsed_ms = (time.monotonic() - started) * 1000
    logger.debug("%s exit code: %s (%.0fms)", program, proc.returncode, elapsed_ms)
    return ProcessResult(
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )
