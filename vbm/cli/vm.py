"""CLI commands for VM definition, read-back, power control, and snapshots."""

from __future__ import annotations

from pathlib import Path

import scriptconfig as scfg

from ..config import load_spec
from ..models import Snapshot, VirtualMachine
from ..vm import (
    control_vm,
    define,
    delete_snapshot,
    ensure_defaults,
    list_snapshots,
    restart,
    restore_snapshot,
    take_snapshot,
    vm_info,
)
from ._common import (
    _BaseCommand,
    _load_cfg,
    _make_vbox,
    _render_vm,
    _vm_ref,
    log,
)

CONTROL_ACTIONS = {
    'start': 'running',
    'stop': 'poweroff',
    'pause': 'pause',
    'resume': 'resume',
    'reset': 'reset',
    'save': 'save',
}


def _load_vm_spec(spec_path: str) -> VirtualMachine:
    path = Path(spec_path).expanduser()
    if not path.exists():
        raise FileNotFoundError(f'VM spec not found: {path}')
    return VirtualMachine(spec=load_spec(path))


class VMDefaultsCLI(_BaseCommand):
    """Resolve a VM spec file and print the result without applying it."""

    spec = scfg.Value('', position=1, help='Path to the VM spec TOML.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        cfg = _load_cfg(args.config)
        vb = _make_vbox(cfg)
        vm = ensure_defaults(vb, _load_vm_spec(args.spec))
        print(_render_vm(vm))
        return 0


class VMDefineCLI(_BaseCommand):
    """Create or update a VM from a spec file and print what VirtualBox reports."""

    spec = scfg.Value('', position=1, help='Path to the VM spec TOML.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        cfg = _load_cfg(args.config)
        vb = _make_vbox(cfg)
        vm = ensure_defaults(vb, _load_vm_spec(args.spec))
        found = define(vb, vm, cfg.define)
        print(_render_vm(found))
        return 0


class VMInfoCLI(_BaseCommand):
    """Show a registered VM as decoded from VirtualBox."""

    vm = scfg.Value('', position=1, help='VM name or UUID.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        vb = _make_vbox(_load_cfg(args.config))
        print(_render_vm(vm_info(vb, _vm_ref(args.vm).uuid_or_name())))
        return 0


class VMControlCLI(_BaseCommand):
    """Change the power state of a VM."""

    vm = scfg.Value('', position=1, help='VM name or UUID.')
    action = scfg.Value(
        'start',
        position=2,
        choices=[*CONTROL_ACTIONS, 'restart'],
        help='Power action to perform.',
    )

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        vb = _make_vbox(_load_cfg(args.config))
        vm = _vm_ref(args.vm)
        if args.action == 'restart':
            out = restart(vb, vm)
        else:
            out = control_vm(vb, vm, CONTROL_ACTIONS[args.action])
        if out.strip():
            print(out.strip())
        log.info('VM {}: {} done', vm.spec.name, args.action)
        return 0


class VMSnapshotCLI(_BaseCommand):
    """Take, restore, delete, or list snapshots of a VM."""

    vm = scfg.Value('', position=1, help='VM name.')
    action = scfg.Value(
        'list',
        position=2,
        choices=['list', 'take', 'restore', 'delete'],
        help='Snapshot action.',
    )
    snapshot = scfg.Value('', help='Snapshot name (required except for list).')
    description = scfg.Value('', help='Description for a new snapshot.')
    live = scfg.Value(
        False, isflag=True, help='Take the snapshot while the VM runs.'
    )

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        vb = _make_vbox(_load_cfg(args.config))
        vm = _vm_ref(args.vm)
        if args.action == 'list':
            print(list_snapshots(vb, vm), end='')
            return 0
        if not args.snapshot:
            raise RuntimeError(f'--snapshot is required for snapshot {args.action}')
        snap = Snapshot(name=args.snapshot, description=args.description)
        if args.action == 'take':
            take_snapshot(vb, vm, snap, live=bool(args.live))
        elif args.action == 'restore':
            restore_snapshot(vb, vm, snap)
        else:
            delete_snapshot(vb, vm, snap)
        return 0


class DefineCLI(VMDefineCLI):
    """Top-level shortcut for `vbm vm define`."""


class VMModalCLI(scfg.ModalCLI):
    """VM subcommands."""

    define = VMDefineCLI
    defaults = VMDefaultsCLI
    info = VMInfoCLI
    control = VMControlCLI
    snapshot = VMSnapshotCLI
