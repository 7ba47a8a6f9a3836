"""Manager configuration and TOML loading of VM specs."""

from __future__ import annotations

import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import ubelt as ub

from .models import (
    NIC,
    BootDevice,
    Disk,
    DiskFormat,
    DiskType,
    NetProtocol,
    NetworkMode,
    NICType,
    OSType,
    PortForwarding,
    StorageController,
    StorageControllerAttachment,
    StorageControllerType,
    VirtualMachineSpec,
)
from .util import expand

DEFAULT_BASE_PATH = '~/VirtualBox VMs'


@dataclass
class VBoxConfig:
    base_path: str = DEFAULT_BASE_PATH
    vboxmanage: str = 'VBoxManage'
    # Per-command deadline in seconds; 0 disables it.
    timeout_s: int = 0
    groups: list[str] = field(default_factory=list)


@dataclass
class DefinePolicy:
    # registervm on an already registered VM reports "already exists".
    tolerate_registered: bool = True
    strict_boot_order: bool = False


@dataclass
class VBMConfig:
    vbox: VBoxConfig = field(default_factory=VBoxConfig)
    define: DefinePolicy = field(default_factory=DefinePolicy)
    verbosity: int = 1

    def expanded_paths(self) -> 'VBMConfig':
        self.vbox.base_path = expand(self.vbox.base_path)
        return self


def config_path() -> Path:
    return Path(ub.Path.appdir('vbm', type='config').ensuredir()) / 'config.toml'


def _toml_escape(s: str) -> str:
    return s.replace('\\', '\\\\').replace('"', '\\"')


def _toml_value(v) -> str:
    if isinstance(v, bool):
        return 'true' if v else 'false'
    if isinstance(v, (int, float)):
        return str(v)
    if isinstance(v, list):
        return '[' + ', '.join(_toml_value(item) for item in v) + ']'
    return f'"{_toml_escape(str(v))}"'


def dump_toml(cfg: VBMConfig) -> str:
    d = asdict(cfg)
    # Top-level keys must precede the first table header.
    lines = [
        f'{k} = {_toml_value(v)}' for k, v in d.items() if not isinstance(v, dict)
    ]
    if lines:
        lines.append('')
    for section, body in d.items():
        if not isinstance(body, dict):
            continue
        lines.append(f'[{section}]')
        lines.extend(f'{k} = {_toml_value(v)}' for k, v in body.items())
        lines.append('')
    return '\n'.join(lines).rstrip() + '\n'


def load(path: Path) -> VBMConfig:
    raw = tomllib.loads(path.read_text(encoding='utf-8'))
    cfg = VBMConfig()
    for section in ('vbox', 'define'):
        if section in raw and isinstance(raw[section], dict):
            obj = getattr(cfg, section)
            for k, v in raw[section].items():
                if hasattr(obj, k):
                    setattr(obj, k, v)
    if 'verbosity' in raw:
        cfg.verbosity = int(raw['verbosity'])
    return cfg


def save(path: Path, cfg: VBMConfig) -> None:
    path.write_text(dump_toml(cfg), encoding='utf-8')


def _enum_or_none(enum_cls, value):
    if value in (None, ''):
        return None
    return enum_cls(value)


def _disk_from_dict(raw: dict[str, Any]) -> Disk:
    ctl = raw.get('controller', {}) or {}
    return Disk(
        path=str(raw.get('path', '')),
        size_mb=int(raw.get('size_mb', 0)),
        format=_enum_or_none(DiskFormat, raw.get('format')),
        uuid=str(raw.get('uuid', '')),
        controller=StorageControllerAttachment(
            type=_enum_or_none(StorageControllerType, ctl.get('type')),
            name=str(ctl.get('name', '')),
        ),
        type=_enum_or_none(DiskType, raw.get('type')),
        non_rotational=bool(raw.get('non_rotational', False)),
        auto_discard=bool(raw.get('auto_discard', False)),
    )


def _controller_from_dict(raw: dict[str, Any]) -> StorageController:
    return StorageController(
        name=str(raw.get('name', '')),
        type=_enum_or_none(StorageControllerType, raw.get('type')),
        instance=int(raw.get('instance', 0)),
        port_count=int(raw.get('port_count', 0)),
        bootable=bool(raw.get('bootable', False)),
    )


def _nic_from_dict(raw: dict[str, Any]) -> NIC:
    rules = []
    for idx, item in enumerate(raw.get('port_forwarding', []), start=1):
        rules.append(
            PortForwarding(
                index=int(item.get('index', idx)),
                name=str(item.get('name', '')),
                protocol=NetProtocol(item.get('protocol', 'tcp')),
                host_ip=str(item.get('host_ip', '')),
                host_port=int(item.get('host_port', 0)),
                guest_ip=str(item.get('guest_ip', '')),
                guest_port=int(item.get('guest_port', 0)),
            )
        )
    return NIC(
        mode=_enum_or_none(NetworkMode, raw.get('mode')),
        network_name=str(raw.get('network_name', '')),
        type=_enum_or_none(NICType, raw.get('type')),
        cable_connected=bool(raw.get('cable_connected', True)),
        speed_kbps=int(raw.get('speed_kbps', 0)),
        boot_prio=int(raw.get('boot_prio', 0)),
        promiscuous_mode=str(raw.get('promiscuous_mode', '')),
        mac=str(raw.get('mac', '')),
        port_forwarding=rules,
    )


def spec_from_dict(raw: dict[str, Any]) -> VirtualMachineSpec:
    spec = VirtualMachineSpec(
        name=str(raw.get('name', '')).strip(),
        group=str(raw.get('group', '')).strip(),
        cpus=int(raw.get('cpus', 1)),
        memory_mb=int(raw.get('memory_mb', 512)),
        os_type=OSType(id=str(raw.get('os_type', ''))),
        drag_and_drop=str(raw.get('drag_and_drop', '')),
        clipboard=str(raw.get('clipboard', '')),
    )
    spec.disks = [_disk_from_dict(d) for d in raw.get('disks', [])]
    spec.storage_controllers = [
        _controller_from_dict(c) for c in raw.get('storage_controllers', [])
    ]
    spec.nics = [_nic_from_dict(n) for n in raw.get('nics', [])]
    spec.boot = [BootDevice(b) for b in raw.get('boot', [])]
    return spec


def load_spec(path: Path) -> VirtualMachineSpec:
    raw = tomllib.loads(path.read_text(encoding='utf-8'))
    # Accept either a bare spec or one nested under [vm].
    body = raw.get('vm', raw)
    return spec_from_dict(body)
