"""Pytest fixtures and utilities for studioremote tests."""

from pathlib import Path
from typing import Generator
from unittest.mock import patch

import pytest

from studioremote.config import ConfigRecord, save_config
from studioremote.context import HostContext
from studioremote.installer import Component
from studioremote.paths import LEGACY_CONFIG_NAME


@pytest.fixture
def host_ctx(tmp_path: Path) -> HostContext:
    """A host context rooted entirely inside a temporary directory."""
    home = tmp_path / "home" / "dev"
    home.mkdir(parents=True)
    return HostContext(
        user="dev",
        home=home,
        system_config_path=tmp_path / "etc" / "android-studio-remote" / "config.conf",
        legacy_config_paths=[home / LEGACY_CONFIG_NAME],
        systemd_dir=tmp_path / "systemd",
        android_studio_dir=tmp_path / "opt" / "android-studio",
        bin_dir=tmp_path / "bin",
        lock_path=tmp_path / "lock" / "studioremote.lock",
        use_sudo=False,
    )


@pytest.fixture
def record() -> ConfigRecord:
    return ConfigRecord(
        novnc_port=23456,
        vnc_password="s3cretpass",
        install_user="dev",
        created_at="2026-10-17T09:30:00+00:00",
    )


@pytest.fixture
def saved_record(host_ctx: HostContext, record: ConfigRecord) -> ConfigRecord:
    save_config(host_ctx, record)
    return record


class FakeHost:
    """In-memory stand-in for dpkg, PATH, systemd and docker lookups."""

    def __init__(self, ctx: HostContext):
        self.ctx = ctx
        self.packages: set[str] = set()
        self.binaries: set[str] = set()
        self.active_units: set[str] = set()
        self.containers: set[str] = set()

    def install(self, component: Component) -> None:
        """Make ``component`` look PRESENT to its probe."""
        ctx = self.ctx
        if component == Component.XFCE:
            self.packages.add("xfce4")
        elif component == Component.TIGERVNC:
            self.binaries.add("vncserver")
        elif component == Component.NOVNC:
            self.packages.add("novnc")
        elif component == Component.JAVA:
            self.binaries.add("java")
        elif component == Component.ANDROID_STUDIO:
            ctx.android_studio_dir.mkdir(parents=True, exist_ok=True)
        elif component == Component.CHROME:
            self.binaries.add("google-chrome-stable")
        elif component == Component.VNC_CONFIG:
            ctx.vnc_dir.mkdir(parents=True, exist_ok=True)
            ctx.vnc_passwd_path.write_bytes(b"\x01\x02")
        elif component == Component.SSL:
            ctx.ssl_dir.mkdir(parents=True, exist_ok=True)
            ctx.pem_path.write_text("KEY\nCERT\n")
        elif component == Component.VNC_SERVICE:
            self.active_units.add(ctx.vnc_unit)
        elif component == Component.NOVNC_SERVICE:
            self.active_units.add(ctx.novnc_unit)
        elif component == Component.CHINESE_INPUT:
            self.packages.add("fcitx5")
        elif component == Component.CLIPBOARD:
            self.binaries.add("autocutsel")
        elif component == Component.REDROID:
            self.containers.add("redroid")

    def install_all(self, components) -> None:
        for component in components:
            self.install(component)


@pytest.fixture
def fake_host(host_ctx: HostContext) -> Generator[FakeHost, None, None]:
    host = FakeHost(host_ctx)
    module = "studioremote.installer.components"
    with patch(f"{module}.package_installed", side_effect=lambda p: p in host.packages), \
            patch(f"{module}._binary_available", side_effect=lambda b: b in host.binaries), \
            patch(f"{module}._service_active", side_effect=lambda u: u in host.active_units), \
            patch(f"{module}._container_running", side_effect=lambda n: n in host.containers):
        yield host


class ScriptedPrompter:
    """Prompter replacement that replays canned answers."""

    def __init__(self, choices=(), texts=(), confirms=()):
        self.choices = list(choices)
        self.texts = list(texts)
        self.confirms = list(confirms)
        self.asked: list[str] = []

    def choose(self, message, choices):
        self.asked.append(message)
        return self.choices.pop(0) if self.choices else None

    def text(self, message, default=""):
        self.asked.append(message)
        return self.texts.pop(0) if self.texts else default

    def confirm(self, message, default=False):
        self.asked.append(message)
        return self.confirms.pop(0) if self.confirms else default

    def pause(self):
        pass


@pytest.fixture
def make_prompter():
    """Factory for ScriptedPrompter instances."""
    return ScriptedPrompter
