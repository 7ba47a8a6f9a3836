"""VM lifecycle: create/register, modify, power control, snapshots, and read-back."""

from __future__ import annotations

from pathlib import Path

import ubelt as ub
from loguru import logger

from ..decode import decode_vm
from ..errors import (
    AlreadyExistsError,
    MachineNotFoundError,
    NotFoundError,
    VBoxError,
)
from ..models import BootDevice, Snapshot, VirtualMachine
from ..net import nic_args
from ..parse import decode_machine_readable
from ..util import ensure_dir
from ..vbox import VBox

log = logger


def create_vm(vb: VBox, vm: VirtualMachine) -> None:
    """Write the settings file of ``vm`` under the base path.

    Raises AlreadyExistsError when the settings file is already present.
    """
    args = ['createvm', '--name', vm.spec.name]
    if vm.spec.os_type.id:
        args += ['--ostype', vm.spec.os_type.id]
    args += ['--basefolder', str(vb.base_path)]
    if vm.spec.group:
        args += ['--groups', vm.spec.group]
    try:
        vb.manage(*args)
    except AlreadyExistsError as ex:
        raise AlreadyExistsError.for_item(str(vb.vm_settings_file(vm))) from ex
    log.info('VM created: {}', vm.spec.name)


def delete_vm(vb: VBox, vm: VirtualMachine) -> None:
    """Remove the settings file. The VM must be unregistered first."""
    ub.delete(vb.vm_settings_file(vm))


def register_vm(vb: VBox, vm: VirtualMachine) -> None:
    vb.manage('registervm', str(vb.vm_settings_file(vm)))


def unregister_vm(vb: VBox, vm: VirtualMachine) -> None:
    vb.manage('unregistervm', str(vb.vm_settings_file(vm)))


def is_registered(vb: VBox, vm: VirtualMachine) -> bool:
    """False only when VirtualBox reports the VM as unknown."""
    try:
        vb.manage('showvminfo', vm.uuid_or_name(), '--machinereadable')
    except NotFoundError:
        return False
    return True


def ensure_vm_host_path(vb: VBox, vm: VirtualMachine) -> Path:
    path = vb.vm_base_dir(vm)
    ensure_dir(path)
    return path


def vm_info(vb: VBox, uuid_or_name: str) -> VirtualMachine:
    """Read a VM back from ``showvminfo --machinereadable``.

    Raises MachineNotFoundError if VirtualBox reports the VM as unknown and
    DecodeError if the dump lacks required fields. Other failures propagate
    as classified.
    """
    try:
        out = vb.manage('showvminfo', uuid_or_name, '--machinereadable')
    except NotFoundError as ex:
        raise MachineNotFoundError(
            f'VM does not exist: {uuid_or_name}', ex.cmd, ex.result
        ) from ex
    values = decode_machine_readable(out)
    vm = decode_vm(values, vb.base_path)
    cfg_file = values.get('CfgFile')
    expected = vb.vm_settings_file(vm)
    if cfg_file != str(expected):
        log.warning(
            'VM {} settings file {} does not match expected {}',
            vm.spec.name,
            cfg_file,
            expected,
        )
    return vm


def modify_vm(vb: VBox, vm: VirtualMachine, parameters: list[str]) -> None:
    """Push the named parts of ``vm.spec`` with a single ``modifyvm`` call."""
    if not parameters:
        raise ValueError('No parameters to change')
    spec = vm.spec
    args: list[str] = []
    for param in parameters:
        if param == 'name':
            args += ['--name', spec.name]
        elif param == 'group':
            args += ['--groups', spec.group]
        elif param == 'ostype':
            args += ['--ostype', spec.os_type.id]
        elif param == 'memory':
            args += ['--memory', str(spec.memory_mb)]
        elif param == 'cpus':
            args += ['--cpus', str(spec.cpus)]
        elif param == 'boot_order':
            args += boot_order_args(spec.boot)
        elif param == 'network_adapter':
            for nic in spec.nics:
                args += nic_args(nic)
        elif param == 'drag_and_drop':
            args.append(f'--drag-and-drop={spec.drag_and_drop}')
        elif param == 'clipboard':
            args.append(f'--clipboard-mode={spec.clipboard}')
        else:
            raise ValueError(f'Invalid parameter in the arguments: {param!r}')
    vb.modify(vm, *args)


def control_vm(vb: VBox, vm: VirtualMachine, option: str) -> str:
    target = vm.uuid_or_name()
    if option == 'running':
        return vb.manage('startvm', target, '--type', 'headless')
    simple = {
        'poweroff': 'poweroff',
        'pause': 'pause',
        'resume': 'resume',
        'reset': 'reset',
        'save': 'savestate',
    }
    if option in simple:
        return vb.control(vm, simple[option])
    if option == 'draganddrop':
        return vb.control(vm, 'draganddrop', vm.spec.drag_and_drop)
    if option == 'clipboard mode':
        return vb.control(vm, 'clipboard', 'mode', vm.spec.clipboard)
    raise ValueError(f'Invalid option: {option!r}')


def start(vb: VBox, vm: VirtualMachine) -> str:
    return control_vm(vb, vm, 'running')


def stop(vb: VBox, vm: VirtualMachine) -> str:
    return control_vm(vb, vm, 'poweroff')


def restart(vb: VBox, vm: VirtualMachine) -> str:
    try:
        stop(vb, vm)
    except VBoxError as ex:
        log.debug('Ignoring stop failure before restart: {}', ex)
    return start(vb, vm)


def save(vb: VBox, vm: VirtualMachine) -> str:
    return control_vm(vb, vm, 'save')


def pause(vb: VBox, vm: VirtualMachine) -> str:
    return control_vm(vb, vm, 'pause')


def resume(vb: VBox, vm: VirtualMachine) -> str:
    return control_vm(vb, vm, 'resume')


def reset(vb: VBox, vm: VirtualMachine) -> str:
    return control_vm(vb, vm, 'reset')


def set_memory(vb: VBox, vm: VirtualMachine, size_mb: int) -> None:
    vb.modify(vm, '--memory', str(size_mb))


def set_cpu_count(vb: VBox, vm: VirtualMachine, cpus: int) -> None:
    vb.modify(vm, '--cpus', str(cpus))


def set_vram(vb: VBox, vm: VirtualMachine, vram_mb: int) -> None:
    vb.modify(vm, '--vram', str(vram_mb))


def set_page_fusion(vb: VBox, vm: VirtualMachine, enabled: bool = True) -> None:
    vb.modify(vm, '--pagefusion', 'on' if enabled else 'off')


def boot_order_args(order: list[BootDevice]) -> list[str]:
    args: list[str] = []
    for i, dev in enumerate(order, start=1):
        args += [f'--boot{i}', dev.value]
    return args


def set_boot_order(vb: VBox, vm: VirtualMachine, order: list[BootDevice]) -> None:
    vb.modify(vm, *boot_order_args(order))


def enable_ioapic(vb: VBox, vm: VirtualMachine) -> None:
    vb.modify(vm, '--ioapic', 'on')


def take_snapshot(
    vb: VBox, vm: VirtualMachine, snapshot: Snapshot, *, live: bool = False
) -> None:
    args = ['snapshot', vm.spec.name, 'take', snapshot.name]
    if snapshot.description:
        args.append(f'--description={snapshot.description}')
    if live:
        args.append('--live')
    vb.manage(*args)


def delete_snapshot(vb: VBox, vm: VirtualMachine, snapshot: Snapshot) -> None:
    vb.manage('snapshot', vm.spec.name, 'delete', snapshot.name)


def restore_snapshot(vb: VBox, vm: VirtualMachine, snapshot: Snapshot) -> None:
    vb.manage('snapshot', vm.spec.name, 'restore', snapshot.name)


def edit_snapshot(
    vb: VBox, vm: VirtualMachine, prev: Snapshot, new: Snapshot
) -> None:
    args = ['snapshot', vm.spec.name, 'edit', prev.name]
    if new.description and new.description != prev.description:
        args.append(f'--description={new.description}')
    if new.name and new.name != prev.name:
        args += ['--name', new.name]
    vb.manage(*args)


def list_snapshots(vb: VBox, vm: VirtualMachine) -> str:
    return vb.manage('snapshot', vm.spec.name, 'list')


def show_snapshot_info(vb: VBox, vm: VirtualMachine, snapshot: Snapshot) -> str:
    return vb.manage('snapshot', vm.spec.name, 'showvminfo', snapshot.name)
