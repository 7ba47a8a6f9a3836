"""Reconcile a resolved VM spec onto the hypervisor.

:func:`define` is idempotent. Objects that already exist are accepted as
they are, and every other failure stops the run with an
:class:`~vbm.errors.OperationError` whose ``path`` names the offending
element (``disk/0``, ``nic/1``, ``storagecontroller/0``, ``vm/cpu``...).
"""

from __future__ import annotations

from typing import Optional

from loguru import logger

from ..config import DefinePolicy
from ..disk import ensure_disk
from ..errors import (
    AlreadyAttachedError,
    AlreadyExistsError,
    OperationError,
    VBMError,
)
from ..models import VirtualMachine
from ..net import add_nic
from ..vbox import VBox
from .lifecycle import (
    create_vm,
    enable_ioapic,
    ensure_vm_host_path,
    modify_vm,
    register_vm,
    set_boot_order,
    set_cpu_count,
    set_memory,
    vm_info,
)
from .storage import add_storage_controller, attach_storage

log = logger


def _ensure_disks(vb: VBox, vm: VirtualMachine) -> None:
    for i, disk in enumerate(vm.spec.disks):
        try:
            found = ensure_disk(vb, disk)
        except (VBMError, OSError) as ex:
            raise OperationError(f'disk/{i}', 'ensure', ex) from ex
        disk.uuid = found.uuid


def _create_and_register(
    vb: VBox, vm: VirtualMachine, policy: DefinePolicy
) -> None:
    try:
        create_vm(vb, vm)
    except AlreadyExistsError:
        log.debug('VM {} settings file already present', vm.spec.name)
    except VBMError as ex:
        raise OperationError('vm', 'create', ex) from ex

    try:
        register_vm(vb, vm)
    except AlreadyExistsError as ex:
        if not policy.tolerate_registered:
            raise OperationError('vm', 'register', ex) from ex
        log.debug('VM {} already registered', vm.spec.name)
    except VBMError as ex:
        raise OperationError('vm', 'register', ex) from ex


def _apply_storage(vb: VBox, vm: VirtualMachine) -> None:
    for i, ctl in enumerate(vm.spec.storage_controllers):
        try:
            add_storage_controller(vb, vm, ctl)
        except AlreadyExistsError:
            log.debug('Storage controller {} already present', ctl.name)
        except VBMError as ex:
            raise OperationError(f'storagecontroller/{i}', 'add', ex) from ex

    for i, disk in enumerate(vm.spec.disks):
        try:
            attach_storage(vb, vm, disk)
        except (AlreadyExistsError, AlreadyAttachedError):
            log.debug('Disk {} already attached', disk.path)
        except VBMError as ex:
            raise OperationError(f'disk/{i}', 'attach', ex) from ex


def _apply_nics(vb: VBox, vm: VirtualMachine) -> None:
    for i, nic in enumerate(vm.spec.nics):
        try:
            add_nic(vb, vm, nic)
        except VBMError as ex:
            log.error('Failed to add NIC {}: {}', nic, ex)
            raise OperationError(f'nic/{i}', 'add', ex) from ex


def define(
    vb: VBox,
    vm: VirtualMachine,
    policy: Optional[DefinePolicy] = None,
) -> VirtualMachine:
    """Create or update the VM described by ``vm`` and read it back.

    ``vm`` should already have gone through
    :func:`vbm.vm.defaults.ensure_defaults`. Disk UUIDs and, when it was
    empty, ``vm.uuid`` are filled in place. The returned VM is the one
    decoded from VirtualBox after all changes were applied.
    """
    policy = policy or DefinePolicy()
    log.info('Defining VM {}', vm.spec.name)

    try:
        ensure_vm_host_path(vb, vm)
    except OSError as ex:
        raise OperationError('vm', 'ensure', ex) from ex

    _ensure_disks(vb, vm)
    _create_and_register(vb, vm, policy)

    try:
        set_cpu_count(vb, vm, vm.spec.cpus)
    except VBMError as ex:
        raise OperationError('vm/cpu', 'set', ex) from ex
    try:
        set_memory(vb, vm, vm.spec.memory_mb)
    except VBMError as ex:
        raise OperationError('vm/memory', 'set', ex) from ex

    _apply_storage(vb, vm)

    try:
        enable_ioapic(vb, vm)
    except VBMError as ex:
        raise OperationError('vm/ioapic', 'enable', ex) from ex

    _apply_nics(vb, vm)

    if vm.spec.boot:
        try:
            set_boot_order(vb, vm, vm.spec.boot)
        except VBMError as ex:
            if policy.strict_boot_order:
                raise OperationError('vm/boot', 'set', ex) from ex
            log.warning('Could not set boot order of {}: {}', vm.spec.name, ex)

    params = []
    if vm.spec.drag_and_drop:
        params.append('drag_and_drop')
    if vm.spec.clipboard:
        params.append('clipboard')
    if params:
        try:
            modify_vm(vb, vm, params)
        except VBMError as ex:
            raise OperationError('vm/dragdrop', 'set', ex) from ex

    try:
        found = vm_info(vb, vm.uuid_or_name())
    except VBMError as ex:
        raise OperationError('vm', 'discover', ex) from ex
    if not found.uuid:
        raise OperationError(
            'vm', 'discover', VBMError(f'no UUID reported for {vm.spec.name}')
        )
    if not vm.uuid:
        vm.uuid = found.uuid
    log.success('VM {} defined with UUID {}', vm.spec.name, found.uuid)
    return found
