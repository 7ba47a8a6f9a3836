"""Shared fixtures: a scripted VBoxManage runner and a VBox bound to it."""

from __future__ import annotations

from pathlib import Path

import pytest

from _fakes import BRIDGED_LIST, HOSTONLY_LIST, NATNET_LIST, FakeRunner, ok
from vbm.config import VBoxConfig
from vbm.vbox import VBox


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def vb(tmp_path: Path, runner: FakeRunner) -> VBox:
    return VBox(config=VBoxConfig(base_path=str(tmp_path / 'vms')), runner=runner)


@pytest.fixture
def networked_runner(runner: FakeRunner) -> FakeRunner:
    runner.on(['list', 'hostonlyifs'], ok(HOSTONLY_LIST))
    runner.on(['list', 'bridgedifs'], ok(BRIDGED_LIST))
    runner.on(['list', 'natnets'], ok(NATNET_LIST))
    return runner
