"""Shared subprocess utilities for CLI-backed completion providers."""

import logging
import subprocess
import time
from collections.abc import Callable, Iterator
from pathlib import Path

from ..errors import ProviderError

logger = logging.getLogger(__name__)


def _terminate(process: subprocess.Popen[str]) -> None:
    if process.poll() is None:
        process.terminate()
        try:
            process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()


def run_subprocess(
    cmd: list[str],
    cwd: Path | None = None,
    timeout: float = 600,
    service_name: str = "Process",
) -> str:
    """Run a provider command to completion and return its stdout.

    Args:
        cmd: Command to execute as a list of strings
        cwd: Working directory for the subprocess
        timeout: Timeout in seconds
        service_name: Name of the service for error messages

    Returns:
        Captured stdout

    Raises:
        ProviderError: Classified failure (timeout, missing executable,
            non-zero exit)
    """
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise ProviderError.timeout(f"{service_name} timed out after {timeout} seconds") from e
    except FileNotFoundError:
        raise ProviderError.auth_failed(f"{service_name} executable not found: {cmd[0]}") from None
    except OSError as e:
        raise ProviderError.from_exception(e) from e

    if result.returncode != 0:
        detail = (result.stderr or result.stdout or "").strip()
        logger.debug("%s exited with %s: %s", service_name, result.returncode, detail)
        raise ProviderError.from_message(
            f"{service_name} failed (exit {result.returncode}): {detail}"
        )
    return result.stdout


def stream_subprocess(
    cmd: list[str],
    text_extractor: Callable[[str], str | None],
    cwd: Path | None = None,
    timeout: float = 600,
    service_name: str = "Process",
) -> Iterator[str]:
    """Run a provider command emitting JSONL and yield text chunks.

    The generator is finite and not restartable. The process is
    terminated if the consumer stops early or an error occurs.

    Args:
        cmd: Command to execute as a list of strings
        text_extractor: Function that extracts text from a JSONL line.
                       Returns str if line contains text, None otherwise.
        cwd: Working directory for the subprocess
        timeout: Timeout in seconds
        service_name: Name of the service for error messages

    Yields:
        Text chunks in the order the provider produced them

    Raises:
        ProviderError: If the process fails, times out, or cannot start
    """
    try:
        process = subprocess.Popen(
            cmd,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            bufsize=1,  # Line buffered
        )
    except FileNotFoundError:
        raise ProviderError.auth_failed(f"{service_name} executable not found: {cmd[0]}") from None

    assert process.stdout is not None
    start_time = time.monotonic()

    try:
        for raw_line in process.stdout:
            if time.monotonic() - start_time > timeout:
                raise ProviderError.timeout(f"{service_name} timed out after {timeout} seconds")

            line = raw_line.strip()
            if not line:
                continue

            text = text_extractor(line)
            if text:
                yield text

        process.wait(timeout=max(timeout - (time.monotonic() - start_time), 1))
        if process.returncode != 0:
            stderr = process.stderr.read() if process.stderr else ""
            raise ProviderError.from_message(
                f"{service_name} failed (exit {process.returncode}): {stderr.strip()}"
            )
    except subprocess.TimeoutExpired as e:
        raise ProviderError.timeout(f"{service_name} timed out after {timeout} seconds") from e
    finally:
        _terminate(process)
