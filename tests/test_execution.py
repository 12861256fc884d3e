"""Tests for async command execution."""

import pytest

from studioremote.execution import run_command_async


class TestRunCommandAsync:
    @pytest.mark.asyncio
    async def test_success(self):
        output, returncode = await run_command_async("echo 'test'")
        assert output == "test"
        assert returncode == 0

    @pytest.mark.asyncio
    async def test_failure(self):
        _, returncode = await run_command_async("false")
        assert returncode != 0

    @pytest.mark.asyncio
    async def test_stderr_is_merged(self):
        output, returncode = await run_command_async("echo oops >&2; exit 3")
        assert output == "oops"
        assert returncode == 3

    @pytest.mark.asyncio
    async def test_input_text(self):
        output, _ = await run_command_async("cat", input_text="hunter22\n")
        assert output == "hunter22"

    @pytest.mark.asyncio
    async def test_timeout(self):
        output, returncode = await run_command_async("sleep 100", timeout=1)
        assert returncode == 1
        assert "timed out" in output
