"""Storage controllers and disk attachment on an existing VM."""

from __future__ import annotations

from loguru import logger

from ..errors import AlreadyExistsError
from ..models import DiskFormat, DiskType, Disk, StorageController, VirtualMachine
from ..vbox import VBox

log = logger


def add_storage_controller(
    vb: VBox, vm: VirtualMachine, ctl: StorageController
) -> None:
    """Add ``ctl`` to the VM; AlreadyExistsError if the name is taken."""
    try:
        vb.manage(
            'storagectl',
            vm.uuid_or_name(),
            '--name',
            ctl.name,
            '--add',
            ctl.type.bus,
        )
    except AlreadyExistsError as ex:
        raise AlreadyExistsError.for_item(
            f'storage controller {ctl.name} on {vm.spec.name}'
        ) from ex


def attach_args(disk: Disk) -> list[str]:
    ctl = disk.controller
    dtype = disk.type or DiskType.HDD
    args = [
        '--storagectl',
        ctl.name,
        '--port',
        str(ctl.port),
        '--device',
        str(ctl.device),
        '--type',
        dtype.value,
        '--medium',
        disk.path,
    ]
    # Both hints are only meaningful for hard disk images.
    if dtype == DiskType.HDD:
        if disk.non_rotational:
            args += ['--nonrotational', 'on']
        if disk.auto_discard and disk.format == DiskFormat.VDI:
            args += ['--discard', 'on']
    return args


def attach_storage(vb: VBox, vm: VirtualMachine, disk: Disk) -> None:
    vb.manage('storageattach', vm.uuid_or_name(), *attach_args(disk))
    log.debug(
        'Attached {} to {} port={} device={}',
        disk.path,
        disk.controller.name,
        disk.controller.port,
        disk.controller.device,
    )
