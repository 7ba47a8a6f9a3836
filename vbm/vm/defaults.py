"""Expand a partial VM spec into a fully resolved one.

Defaulting fills omitted disk and NIC fields, auto-creates implied storage
controllers, and allocates controller ports/devices. Allocation only depends
on the order of ``spec.disks``.
"""

from __future__ import annotations

import copy
import dataclasses
import os

from loguru import logger

from ..errors import ValidationErrors
from ..models import (
    DEFAULT_DISK_FORMAT,
    DiskType,
    StorageController,
    StorageControllerType,
    VirtualMachine,
)
from ..net import set_nic_defaults
from ..vbox import VBox

log = logger


def _resolve_controllers(
    vm: VirtualMachine, verr: ValidationErrors
) -> dict[str, StorageController]:
    controllers: dict[str, StorageController] = {}
    for i, ctl in enumerate(vm.spec.storage_controllers):
        if ctl.type is None:
            verr.add(f'storagecontroller/{i}', 'storage controller type missing')
            continue
        if not ctl.name:
            ctl.name = f'{ctl.type.value}{i + 1}'
        if ctl.name in controllers:
            verr.add(f'storagecontroller/{i}', f'duplicate name {ctl.name}')
            continue
        controllers[ctl.name] = ctl
    return controllers


def _default_disks(
    vb: VBox,
    vm: VirtualMachine,
    controllers: dict[str, StorageController],
    verr: ValidationErrors,
) -> None:
    base_dir = vb.vm_base_dir(vm)
    for i, disk in enumerate(vm.spec.disks):
        if disk.path and not os.path.isabs(disk.path):
            disk.path = str(base_dir / disk.path)
        if disk.type is None:
            disk.type = DiskType.HDD
        if disk.format is None:
            disk.format = DEFAULT_DISK_FORMAT

        att = disk.controller
        known = controllers.get(att.name) if att.name else None
        if att.type is None:
            att.type = known.type if known is not None else StorageControllerType.SATA
        elif known is not None and known.type != att.type:
            verr.add(
                f'disk/{i}',
                f'controller {att.name} is {known.type.value}, not {att.type.value}',
            )

        if not att.name:
            att.name = f'{att.type.value}1'
            if att.name not in controllers:
                log.debug('Auto-creating storage controller {}', att.name)
                controllers[att.name] = StorageController(
                    name=att.name, type=att.type
                )


def _allocate_slots(
    vm: VirtualMachine,
    counts: dict[str, int],
    verr: ValidationErrors,
) -> None:
    for i, disk in enumerate(vm.spec.disks):
        if not disk.path:
            verr.add(
                f'disk/{i}', 'disk path is empty, needs an absolute file path'
            )
            continue
        att = disk.controller
        if att.name not in counts:
            verr.add(
                f'disk/{i}', f'storagecontroller ref {att.name} did not resolve'
            )
            continue
        count = counts[att.name]
        counts[att.name] = count + 1
        if att.type == StorageControllerType.IDE:
            att.port, att.device = divmod(count, 2)
        elif att.type == StorageControllerType.SATA:
            att.port, att.device = count, 0
        else:
            att.port, att.device = count, 0
            log.warning(
                'Defaulting the port for controller type {}, this might not work',
                att.type.value,
            )


def _commit(dst, src) -> None:
    for f in dataclasses.fields(src):
        setattr(dst, f.name, getattr(src, f.name))


def ensure_defaults(vb: VBox, vm: VirtualMachine) -> VirtualMachine:
    """Resolve the spec of ``vm`` and return the same instance.

    The pass runs on a copy. Only when it succeeds are the resolved values
    written back into ``vm.spec`` and its disk and NIC records, so callers
    holding those objects see the defaults. Otherwise ValidationErrors
    carrying every problem found is raised and ``vm`` is left untouched.
    NIC defaulting depends on a live network inventory; its errors are
    raised directly and end the pass.
    """
    verr = ValidationErrors()
    work = VirtualMachine(
        uuid=vm.uuid, spec=copy.deepcopy(vm.spec), state=vm.state
    )
    if not work.spec.name:
        verr.add('name', 'VM name must not be empty')

    controllers = _resolve_controllers(work, verr)
    _default_disks(vb, work, controllers, verr)

    work.spec.storage_controllers = list(controllers.values())
    counts = {name: 0 for name in controllers}
    _allocate_slots(work, counts, verr)

    # NIC problems abort the pass on their own, they are not merged.
    set_nic_defaults(vb, work)

    if verr:
        raise verr
    for old, new in zip(vm.spec.disks, work.spec.disks):
        _commit(old, new)
    for old, new in zip(vm.spec.nics, work.spec.nics):
        _commit(old, new)
    work.spec.disks = vm.spec.disks
    work.spec.nics = vm.spec.nics
    _commit(vm.spec, work.spec)
    return vm
