from __future__ import annotations

from pathlib import Path

import scriptconfig as scfg
from loguru import logger

from ..config import VBMConfig, config_path, load
from ..models import VirtualMachine, VirtualMachineSpec
from ..util import CommandRunner
from ..vbox import VBox

log = logger


class _BaseCommand(scfg.DataConfig):
    """Base options shared by all commands."""

    config = scfg.Value(
        None, help='Path to config TOML (default: user config dir).'
    )
    verbose = scfg.Value(
        0,
        short_alias=['v'],
        isflag='counter',
        help='Increase verbosity (-v, -vv).',
    )


def _cfg_path(p: str | None) -> Path:
    if p:
        return Path(p).expanduser().resolve()
    return config_path()


def _load_cfg(config_opt: str | None) -> VBMConfig:
    cfg, _ = _load_cfg_with_path(config_opt)
    return cfg


def _load_cfg_with_path(config_opt: str | None) -> tuple[VBMConfig, Path]:
    """Load the manager config; built-in defaults if the file is absent."""
    path = _cfg_path(config_opt)
    if not path.exists():
        if config_opt is not None:
            raise FileNotFoundError(
                f'Config not found: {path}. '
                f'Run: vbm config init --config {path}'
            )
        log.debug('No config at {}, using defaults', path)
        return VBMConfig().expanded_paths(), path
    return load(path).expanded_paths(), path


def _make_vbox(
    cfg: VBMConfig, runner: CommandRunner | None = None
) -> VBox:
    return VBox(config=cfg.vbox, runner=runner)


def _vm_ref(uuid_or_name: str) -> VirtualMachine:
    """A VM handle carrying only what VBoxManage needs to address it."""
    ref = str(uuid_or_name or '').strip()
    if not ref:
        raise RuntimeError('A VM name or UUID is required.')
    return VirtualMachine(spec=VirtualMachineSpec(name=ref))


def _render_vm(vm: VirtualMachine) -> str:
    spec = vm.spec
    lines = [f'VM: {spec.name} ({vm.uuid or "no uuid"})']
    lines.append(f'  state: {vm.state.value if vm.state else "(unknown)"}')
    lines.append(f'  group: {spec.group or "/"}')
    lines.append(f'  ostype: {spec.os_type.description or spec.os_type.id or "-"}')
    lines.append(f'  cpus: {spec.cpus} | memory_mb: {spec.memory_mb}')
    lines.append('  storage controllers:')
    if not spec.storage_controllers:
        lines.append('    (none)')
    for ctl in spec.storage_controllers:
        ctype = ctl.type.value if ctl.type else '?'
        lines.append(f'    - {ctl.name} | type={ctype}')
    lines.append('  disks:')
    if not spec.disks:
        lines.append('    (none)')
    for disk in spec.disks:
        att = disk.controller
        lines.append(
            f'    - {disk.path} | {att.name} port={att.port} '
            f'device={att.device} | uuid={disk.uuid or "-"}'
        )
    lines.append('  nics:')
    if not spec.nics:
        lines.append('    (none)')
    for nic in spec.nics:
        mode = nic.mode.value if nic.mode else '?'
        ntype = nic.type.value if nic.type else '-'
        lines.append(
            f'    - nic{nic.index} | mode={mode} '
            f'| network={nic.network_name or "-"} | type={ntype}'
        )
    if spec.boot:
        lines.append('  boot: ' + ', '.join(b.value for b in spec.boot))
    if spec.snapshots:
        current = spec.current_snapshot.name or '-'
        names = ', '.join(s.name for s in spec.snapshots)
        lines.append(f'  snapshots: {names} (current: {current})')
    return '\n'.join(lines)


__all__ = [name for name in globals() if not name.startswith('__')]
