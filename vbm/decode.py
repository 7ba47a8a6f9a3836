"""Rebuild typed VM records from a decoded ``--machinereadable`` mapping.

The dump flattens repeated structures into keys with numeric suffixes:

* snapshots: ``SnapshotName``, ``SnapshotName-1``, ``SnapshotName-1-1``...
* controllers: ``storagecontrollername0`` .. ``storagecontrollername19``
* attachments: ``"<controller>-<port>-<device>"`` and
  ``"<controller>-ImageUUID-<port>-<device>"``
* NICs: ``nic1`` .. ``nic19`` and friends

Each record kind has its own pure function of the mapping.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

from loguru import logger

from .errors import DecodeError
from .models import (
    NIC,
    BootDevice,
    Disk,
    NetworkMode,
    NICType,
    OSType,
    Snapshot,
    StorageController,
    StorageControllerAttachment,
    StorageControllerType,
    VirtualMachine,
    VirtualMachineSpec,
    VMState,
)
from .parse import Value

log = logger

MAX_STORAGE_CONTROLLERS = 20
MAX_NICS = 20
EMPTY_SLOT = 'none'

# Chipset names printed as storagecontrollertype<i>.
CONTROLLER_CHIPSETS: dict[str, StorageControllerType] = {
    'PIIX3': StorageControllerType.IDE,
    'PIIX4': StorageControllerType.IDE,
    'ICH6': StorageControllerType.IDE,
    'IntelAhci': StorageControllerType.SATA,
    'LsiLogic': StorageControllerType.SCSI,
    'BusLogic': StorageControllerType.SCSI,
    'LsiLogicSas': StorageControllerType.SCSI,
    'NVMe': StorageControllerType.NVME,
}


def _required(values: Mapping[str, Value], key: str, kind: type) -> Value:
    if key not in values:
        raise DecodeError(f'required field {key!r} missing from VM info')
    val = values[key]
    if not isinstance(val, kind):
        raise DecodeError(
            f'field {key!r} has type {type(val).__name__}, expected {kind.__name__}'
        )
    return val


def _as_int(values: Mapping[str, Value], key: str, default: int = 0) -> int:
    # Some integer fields are printed quoted.
    if key not in values:
        return default
    val = values[key]
    try:
        return int(val)
    except ValueError as ex:
        raise DecodeError(f'field {key!r} is not an integer: {val!r}') from ex


def _as_str(values: Mapping[str, Value], key: str, default: str = '') -> str:
    val = values.get(key, default)
    return val if isinstance(val, str) else str(val)


def snapshot_suffix(depth: int) -> str:
    return '-1' * depth


def node_suffix(node: str) -> str:
    """Translate a ``CurrentSnapshotNode`` value into a key suffix."""
    return ''.join('-1' for ch in node if ch.isdigit())


def decode_snapshots(
    values: Mapping[str, Value],
) -> tuple[list[Snapshot], Snapshot]:
    snapshots: list[Snapshot] = []
    depth = 0
    while f'SnapshotName{snapshot_suffix(depth)}' in values:
        sfx = snapshot_suffix(depth)
        snapshots.append(
            Snapshot(
                name=_as_str(values, f'SnapshotName{sfx}'),
                description=_as_str(values, f'SnapshotDescription{sfx}'),
            )
        )
        depth += 1

    current = Snapshot(name=_as_str(values, 'CurrentSnapshotName'))
    if 'CurrentSnapshotNode' in values:
        sfx = node_suffix(_as_str(values, 'CurrentSnapshotNode'))
        current.description = _as_str(values, f'SnapshotDescription{sfx}')
    return snapshots, current


def controller_type_from_chipset(name: str) -> Optional[StorageControllerType]:
    if name in CONTROLLER_CHIPSETS:
        return CONTROLLER_CHIPSETS[name]
    try:
        return StorageControllerType(name)
    except ValueError:
        log.debug('unknown storage controller chipset {!r}', name)
        return None


def decode_storage(
    values: Mapping[str, Value],
) -> tuple[list[StorageController], list[Disk]]:
    controllers: list[StorageController] = []
    disks: list[Disk] = []
    for i in range(MAX_STORAGE_CONTROLLERS):
        name_key = f'storagecontrollername{i}'
        if name_key not in values:
            break
        ctl = StorageController(name=_as_str(values, name_key))
        ctl.type = controller_type_from_chipset(
            _as_str(values, f'storagecontrollertype{i}')
        )
        ctl.instance = _as_int(values, f'storagecontrollerinstance{i}')
        ctl.port_count = _as_int(values, f'storagecontrollerportcount{i}')
        ctl.bootable = _as_str(values, f'storagecontrollerbootable{i}') == 'on'
        controllers.append(ctl)
        disks.extend(_decode_attachments(values, ctl))
    return controllers, disks


def _decode_attachments(
    values: Mapping[str, Value], ctl: StorageController
) -> list[Disk]:
    devices = 2 if ctl.type == StorageControllerType.IDE else 1
    found: list[Disk] = []
    for port in range(ctl.port_count):
        for device in range(devices):
            medium = values.get(f'{ctl.name}-{port}-{device}')
            if medium is None or medium == EMPTY_SLOT:
                continue
            disk = Disk(
                path=str(medium),
                controller=StorageControllerAttachment(
                    type=ctl.type, port=port, device=device, name=ctl.name
                ),
            )
            disk.uuid = _as_str(values, f'{ctl.name}-ImageUUID-{port}-{device}')
            found.append(disk)
    return found


def decode_nics(values: Mapping[str, Value]) -> list[NIC]:
    nics: list[NIC] = []
    for i in range(1, MAX_NICS):
        key = f'nic{i}'
        if key not in values:
            break
        raw_mode = _as_str(values, key)
        if raw_mode == EMPTY_SLOT:
            continue
        try:
            mode = NetworkMode(raw_mode)
        except ValueError:
            log.debug('ignoring nic{} with unknown mode {!r}', i, raw_mode)
            continue
        nic = NIC(index=i, mode=mode)
        raw_type = values.get(f'nictype{i}')
        if raw_type is not None:
            try:
                nic.type = NICType(raw_type)
            except ValueError:
                log.debug('unknown nic type {!r} on nic{}', raw_type, i)
        nic.speed_kbps = _as_int(values, f'nicspeed{i}')
        nic.mac = _as_str(values, f'macaddress{i}')
        nic.cable_connected = _as_str(values, f'cableconnected{i}') == 'on'
        adapter_key = {
            NetworkMode.HOST_ONLY: f'hostonlyadapter{i}',
            NetworkMode.BRIDGED: f'bridgeadapter{i}',
            NetworkMode.INTERNAL: f'intnet{i}',
            NetworkMode.NAT_NETWORK: f'natnet{i}',
        }.get(mode)
        if adapter_key is not None:
            nic.network_name = _as_str(values, adapter_key)
        nics.append(nic)
    return nics


def decode_boot_order(values: Mapping[str, Value]) -> list[BootDevice]:
    order: list[BootDevice] = []
    i = 1
    while f'boot{i}' in values:
        raw = _as_str(values, f'boot{i}')
        i += 1
        if raw == BootDevice.NONE.value:
            continue
        try:
            order.append(BootDevice(raw))
        except ValueError:
            log.debug('ignoring unknown boot device {!r}', raw)
    return order


def group_from_settings_path(cfg_file: str, base_path: Path) -> str:
    """Recover ``/group`` from ``<base>/<group...>/<name>/<name>.vbox``."""
    try:
        rel = os.path.relpath(cfg_file, base_path)
    except ValueError:
        return ''
    if rel.startswith('..'):
        return ''
    elems = Path(rel).parts
    if len(elems) >= 3:
        return '/' + '/'.join(elems[:-2])
    return ''


def decode_vm(
    values: Mapping[str, Value], base_path: Optional[Path] = None
) -> VirtualMachine:
    """Build a :class:`VirtualMachine` from a machine-readable mapping.

    Raises DecodeError when the identity, name, settings path, CPU count or
    memory size are absent.
    """
    vm = VirtualMachine(spec=VirtualMachineSpec())
    vm.uuid = _required(values, 'UUID', str)
    spec = vm.spec
    spec.name = _required(values, 'name', str)
    cfg_file = _required(values, 'CfgFile', str)
    spec.cpus = _required(values, 'cpus', int)
    spec.memory_mb = _required(values, 'memory', int)
    if base_path is not None:
        spec.group = group_from_settings_path(cfg_file, base_path)

    raw_state = _as_str(values, 'VMState')
    if raw_state:
        try:
            vm.state = VMState(raw_state)
        except ValueError:
            log.debug('VM {} in untracked state {!r}', spec.name, raw_state)

    spec.os_type = OSType(description=_as_str(values, 'ostype'))
    spec.snapshots, spec.current_snapshot = decode_snapshots(values)
    spec.drag_and_drop = _as_str(values, 'draganddrop', 'disabled')
    spec.clipboard = _as_str(values, 'clipboard', 'disabled')
    spec.storage_controllers, spec.disks = decode_storage(values)
    spec.nics = decode_nics(values)
    spec.boot = decode_boot_order(values)
    return vm
