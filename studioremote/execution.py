"""Async command execution utilities."""

import asyncio
import logging
from typing import Tuple

DEFAULT_TIMEOUT = 30
SERVICE_TIMEOUT = 120
INSTALL_TIMEOUT = 1800

_logging = logging.getLogger(__name__)


async def run_command_async(
    command: str,
    timeout: int = DEFAULT_TIMEOUT,
    input_text: str | None = None,
) -> Tuple[str, int]:
    """Run a shell command and return its combined output and return code.

    stdout and stderr are merged so failures surface the tool's own message.
    """
    process = None
    try:
        _logging.debug(f"Running command: {command}")
        process = await asyncio.create_subprocess_shell(
            command,
            stdin=asyncio.subprocess.PIPE if input_text is not None else None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
        try:
            data = input_text.encode() if input_text is not None else None
            stdout, _ = await asyncio.wait_for(
                process.communicate(input=data), timeout=timeout
            )
            output = stdout.decode(errors="replace").strip()
            return output, process.returncode if process.returncode is not None else 1
        except asyncio.TimeoutError:
            process.kill()
            _ = await process.wait()
            _logging.error(f"Command timed out after {timeout} seconds: {command}")
            return f"Command timed out after {timeout} seconds", 1
    except OSError as e:
        _logging.error(f"Command execution failed: {type(e).__name__}: {e} | Command: {command}")
        return f"Error: {str(e)}", 1
    finally:
        if process:
            transport = getattr(process, "_transport", None)
            if transport:
                transport.close()
