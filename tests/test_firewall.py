"""Tests for firewall rule handling."""

from unittest.mock import AsyncMock, patch

import pytest

from studioremote.errors import ActionError
from studioremote.firewall import FirewallBackend, allow_commands, detect_backend, open_port


def _which(*available):
    return lambda name: f"/usr/sbin/{name}" if name in available else None


class TestDetectBackend:
    def test_prefers_ufw(self):
        with patch("shutil.which", side_effect=_which("ufw", "firewall-cmd", "iptables")):
            assert detect_backend() == FirewallBackend.UFW

    def test_firewalld(self):
        with patch("shutil.which", side_effect=_which("firewall-cmd", "iptables")):
            assert detect_backend() == FirewallBackend.FIREWALLD

    def test_iptables(self):
        with patch("shutil.which", side_effect=_which("iptables")):
            assert detect_backend() == FirewallBackend.IPTABLES

    def test_none(self):
        with patch("shutil.which", side_effect=_which()):
            assert detect_backend() == FirewallBackend.NONE


def test_allow_commands():
    assert allow_commands(FirewallBackend.UFW, 23456, "noVNC") == [
        "ufw allow 23456/tcp comment 'noVNC'"
    ]
    assert allow_commands(FirewallBackend.FIREWALLD, 23456, "noVNC") == [
        "firewall-cmd --add-port=23456/tcp --permanent",
        "firewall-cmd --reload",
    ]
    assert allow_commands(FirewallBackend.IPTABLES, 23456, "noVNC") == [
        "iptables -I INPUT -p tcp --dport 23456 -j ACCEPT"
    ]
    assert allow_commands(FirewallBackend.NONE, 23456, "noVNC") == []


class TestOpenPort:
    @pytest.mark.asyncio
    async def test_no_backend(self, host_ctx):
        with patch("studioremote.firewall.detect_backend", return_value=FirewallBackend.NONE), \
                patch("studioremote.firewall.run_command_async", new=AsyncMock()) as mock_run:
            assert await open_port(host_ctx, 23456) == FirewallBackend.NONE
        mock_run.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ufw_with_sudo(self, host_ctx):
        host_ctx.use_sudo = True
        with patch("studioremote.firewall.detect_backend", return_value=FirewallBackend.UFW), \
                patch("studioremote.firewall.run_command_async", new=AsyncMock(return_value=("Rule added", 0))) as mock_run:
            await open_port(host_ctx, 23456)
        mock_run.assert_awaited_once()
        assert mock_run.await_args.args[0] == (
            "sudo ufw allow 23456/tcp comment 'noVNC for Android Studio'"
        )

    @pytest.mark.asyncio
    async def test_failure(self, host_ctx):
        with patch("studioremote.firewall.detect_backend", return_value=FirewallBackend.IPTABLES), \
                patch("studioremote.firewall.run_command_async", new=AsyncMock(return_value=("denied", 4))):
            with pytest.raises(ActionError, match="firewall"):
                await open_port(host_ctx, 23456)
