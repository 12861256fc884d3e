"""Tests for individual install actions."""

import os
import stat
from unittest.mock import AsyncMock, patch

import pytest

from studioremote.errors import ActionError
from studioremote.installer import Component
from studioremote.installer.actions import (
    ACTIONS,
    PACKAGES,
    XSTARTUP,
    binderfs_mounted,
    configure_vnc,
    generate_ssl_cert,
    get_action,
    purge_packages,
    redroid_run_command,
)

RUN = "studioremote.installer.actions.run_command_async"


def _mode(path):
    return stat.S_IMODE(os.stat(path).st_mode)


def test_every_component_has_an_action():
    assert set(ACTIONS) == set(Component)


@pytest.mark.asyncio
async def test_package_action_uses_apt(host_ctx, record):
    with patch(RUN, new=AsyncMock(return_value=("done", 0))) as mock_run:
        output = await get_action(Component.TIGERVNC)(host_ctx, record)

    assert output == "done"
    command = mock_run.await_args.args[0]
    assert command.startswith("env DEBIAN_FRONTEND=noninteractive apt-get install -y")
    for package in PACKAGES[Component.TIGERVNC]:
        assert package in command


@pytest.mark.asyncio
async def test_package_action_failure(host_ctx, record):
    with patch(RUN, new=AsyncMock(return_value=("E: Unable to locate package", 100))):
        with pytest.raises(ActionError) as exc_info:
            await get_action(Component.JAVA)(host_ctx, record)
    assert exc_info.value.component == "java"
    assert "Unable to locate" in exc_info.value.output


@pytest.mark.asyncio
async def test_package_action_uses_sudo_when_not_root(host_ctx, record):
    host_ctx.use_sudo = True
    with patch(RUN, new=AsyncMock(return_value=("", 0))) as mock_run:
        await get_action(Component.XFCE)(host_ctx, record)
    assert mock_run.await_args.args[0].startswith("sudo ")


class TestConfigureVnc:
    @pytest.mark.asyncio
    async def test_writes_credentials_and_startup(self, host_ctx, record):
        async def fake_vncpasswd(command, timeout=30, input_text=None):
            host_ctx.vnc_passwd_path.write_bytes(b"\x8f\x11")
            return "", 0

        with patch(RUN, side_effect=fake_vncpasswd) as mock_run:
            await configure_vnc(host_ctx, record)

        assert mock_run.call_args.kwargs["input_text"] == "s3cretpass\n"
        assert "vncpasswd -f" in mock_run.call_args.args[0]
        assert _mode(host_ctx.vnc_passwd_path) == 0o600
        assert host_ctx.xstartup_path.read_text() == XSTARTUP
        assert _mode(host_ctx.xstartup_path) == 0o755

    @pytest.mark.asyncio
    async def test_reapply_is_stable(self, host_ctx, record):
        async def fake_vncpasswd(command, timeout=30, input_text=None):
            host_ctx.vnc_passwd_path.write_text(input_text)
            return "", 0

        with patch(RUN, side_effect=fake_vncpasswd):
            await configure_vnc(host_ctx, record)
            first = host_ctx.vnc_passwd_path.read_bytes()
            await configure_vnc(host_ctx, record)

        assert host_ctx.vnc_passwd_path.read_bytes() == first

    @pytest.mark.asyncio
    async def test_failure(self, host_ctx, record):
        with patch(RUN, new=AsyncMock(return_value=("vncpasswd: not found", 127))):
            with pytest.raises(ActionError, match="vnc-config"):
                await configure_vnc(host_ctx, record)

    @pytest.mark.asyncio
    async def test_unwritable_credential_file(self, host_ctx, record):
        with patch(RUN, new=AsyncMock(return_value=("", 0))), patch(
            "studioremote.installer.actions.os.chmod",
            side_effect=PermissionError("Operation not permitted"),
        ):
            with pytest.raises(ActionError, match="failed to restrict") as excinfo:
                await configure_vnc(host_ctx, record)

        assert excinfo.value.component == "vnc-config"

    @pytest.mark.asyncio
    async def test_uncreatable_vnc_dir(self, host_ctx, record):
        host_ctx.vnc_dir.parent.mkdir(parents=True, exist_ok=True)
        host_ctx.vnc_dir.write_text("not a directory")

        with patch(RUN, new=AsyncMock(return_value=("", 0))) as mock_run:
            with pytest.raises(ActionError, match="failed to create"):
                await configure_vnc(host_ctx, record)

        mock_run.assert_not_awaited()


class TestGenerateSslCert:
    @pytest.mark.asyncio
    async def test_existing_bundle_untouched(self, host_ctx, record):
        host_ctx.ssl_dir.mkdir(parents=True)
        host_ctx.pem_path.write_text("ORIGINAL")
        with patch(RUN, new=AsyncMock(return_value=("", 0))) as mock_run:
            await generate_ssl_cert(host_ctx, record)
        mock_run.assert_not_awaited()
        assert host_ctx.pem_path.read_text() == "ORIGINAL"

    @pytest.mark.asyncio
    async def test_creates_bundle(self, host_ctx, record):
        async def fake_openssl(command, timeout=30, input_text=None):
            (host_ctx.ssl_dir / "novnc.key").write_text("KEY\n")
            (host_ctx.ssl_dir / "novnc.crt").write_text("CERT\n")
            return "", 0

        with patch(RUN, side_effect=fake_openssl) as mock_run:
            await generate_ssl_cert(host_ctx, record)

        assert "openssl req -x509" in mock_run.call_args.args[0]
        assert host_ctx.pem_path.read_text() == "KEY\nCERT\n"
        assert _mode(host_ctx.pem_path) == 0o600

    @pytest.mark.asyncio
    async def test_force_regenerates(self, host_ctx, record):
        host_ctx.ssl_dir.mkdir(parents=True)
        host_ctx.pem_path.write_text("ORIGINAL")

        async def fake_openssl(command, timeout=30, input_text=None):
            (host_ctx.ssl_dir / "novnc.key").write_text("NEWKEY\n")
            (host_ctx.ssl_dir / "novnc.crt").write_text("NEWCERT\n")
            return "", 0

        with patch(RUN, side_effect=fake_openssl):
            await generate_ssl_cert(host_ctx, record, force=True)
        assert host_ctx.pem_path.read_text() == "NEWKEY\nNEWCERT\n"

    @pytest.mark.asyncio
    async def test_uncreatable_ssl_dir(self, host_ctx, record):
        host_ctx.vnc_dir.write_text("not a directory")

        with patch(RUN, new=AsyncMock(return_value=("", 0))) as mock_run:
            with pytest.raises(ActionError, match="ssl: failed to create"):
                await generate_ssl_cert(host_ctx, record)

        mock_run.assert_not_awaited()


class TestRedroid:
    def test_run_command_with_binderfs(self):
        command = redroid_run_command(with_binderfs=True)
        assert "-v /dev/binderfs:/dev/binderfs" in command
        assert "--name redroid" in command
        assert "-p 5555:5555" in command

    def test_run_command_without_binderfs(self):
        assert "binderfs" not in redroid_run_command(with_binderfs=False)

    def test_binderfs_mounted(self, tmp_path):
        mounts = tmp_path / "mounts"
        mounts.write_text(
            "proc /proc proc rw 0 0\nbinder /dev/binderfs binder rw,relatime 0 0\n"
        )
        assert binderfs_mounted(mounts)

    def test_binderfs_not_mounted(self, tmp_path):
        mounts = tmp_path / "mounts"
        mounts.write_text("proc /proc proc rw 0 0\n")
        assert not binderfs_mounted(mounts)
        assert not binderfs_mounted(tmp_path / "missing")


@pytest.mark.asyncio
async def test_purge_packages(host_ctx, fake_host):
    fake_host.packages.update({"tigervnc-standalone-server", "xfce4", "novnc"})
    with patch(RUN, new=AsyncMock(return_value=("", 0))) as mock_run:
        await purge_packages(host_ctx)
    purge, autoremove = [call.args[0] for call in mock_run.await_args_list]
    assert "apt-get purge -y" in purge
    assert purge.split("purge -y ")[1].split() == [
        "xfce4",
        "tigervnc-standalone-server",
        "novnc",
    ]
    assert "autoremove --purge" in autoremove


@pytest.mark.asyncio
async def test_purge_skips_packages_never_installed(host_ctx, fake_host):
    fake_host.packages.add("openjdk-17-jdk")
    with patch(RUN, new=AsyncMock(return_value=("", 0))) as mock_run:
        await purge_packages(host_ctx)
    purge = mock_run.await_args_list[0].args[0]
    assert "openjdk-17-jdk" in purge
    assert "google-chrome-stable" not in purge
    assert "fcitx5" not in purge


@pytest.mark.asyncio
async def test_purge_nothing_installed(host_ctx, fake_host):
    with patch(RUN, new=AsyncMock(return_value=("", 0))) as mock_run:
        assert await purge_packages(host_ctx) == ""
    mock_run.assert_not_awaited()
