"""File writers for user-owned and system-owned paths.

System paths (``/etc``, ``/opt``) are written through ``sudo install`` when
the process is not root; everything under the operator's home is written
directly.
"""

import logging
import os
import shutil
import subprocess
import tempfile
from pathlib import Path

from .context import HostContext
from .errors import StudioRemoteError

SUBPROCESS_TIMEOUT = 30

_logging = logging.getLogger(__name__)


def _run_privileged(ctx: HostContext, args: list[str]) -> None:
    if ctx.use_sudo:
        args = ["sudo", *args]
    _logging.debug(f"Running: {' '.join(args)}")
    try:
        result = subprocess.run(
            args, capture_output=True, text=True, timeout=SUBPROCESS_TIMEOUT
        )
    except (subprocess.TimeoutExpired, OSError) as e:
        raise StudioRemoteError(f"{' '.join(args)} failed: {e}") from e
    if result.returncode != 0:
        raise StudioRemoteError(
            f"{' '.join(args)} failed: {result.stderr.strip() or result.stdout.strip()}"
        )


def write_file(
    ctx: HostContext,
    path: Path,
    content: str,
    mode: int = 0o644,
    privileged: bool = False,
) -> None:
    """Atomically write ``content`` to ``path`` with the given mode."""
    if privileged and ctx.use_sudo:
        with tempfile.NamedTemporaryFile("w", delete=False, suffix=".tmp") as f:
            f.write(content)
            temp_name = f.name
        try:
            _run_privileged(
                ctx, ["install", "-D", "-m", f"{mode:o}", temp_name, str(path)]
            )
        finally:
            os.unlink(temp_name)
        return

    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_name(f".{path.name}.tmp")
    with open(temp_path, "w") as f:
        f.write(content)
    os.chmod(temp_path, mode)
    temp_path.replace(path)


def remove_path(ctx: HostContext, path: Path, privileged: bool = False) -> None:
    """Remove a file, symlink or directory tree if it exists."""
    if not path.exists() and not path.is_symlink():
        return
    if privileged and ctx.use_sudo:
        _run_privileged(ctx, ["rm", "-rf", str(path)])
        return
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


__all__ = ["write_file", "remove_path"]
