from __future__ import annotations

import pytest

from _fakes import fail, ok, render_showvminfo
from vbm.errors import (
    AlreadyExistsError,
    MachineNotFoundError,
    NotFoundError,
    VBoxError,
)
from vbm.models import (
    NIC,
    UBUNTU64,
    BootDevice,
    Disk,
    DiskFormat,
    DiskType,
    NetworkMode,
    NICType,
    Snapshot,
    StorageController,
    StorageControllerAttachment,
    StorageControllerType,
    VirtualMachine,
    VirtualMachineSpec,
)
from vbm.vm import lifecycle
from vbm.vm.storage import add_storage_controller, attach_args


def _vm(**kwargs) -> VirtualMachine:
    return VirtualMachine(spec=VirtualMachineSpec(name='web', **kwargs))


def test_settings_path_layout(vb) -> None:
    vm = _vm(group='/lab/east')
    assert vb.vm_base_dir(vm) == vb.base_path / 'lab' / 'east' / 'web'
    assert vb.vm_settings_file(vm).name == 'web.vbox'
    assert lifecycle.ensure_vm_host_path(vb, vm).is_dir()


def test_create_vm_args(vb, runner) -> None:
    lifecycle.create_vm(vb, _vm(group='/lab', os_type=UBUNTU64))
    assert runner.calls == [
        [
            'createvm', '--name', 'web',
            '--ostype', 'Ubuntu_64',
            '--basefolder', str(vb.base_path),
            '--groups', '/lab',
        ]
    ]


def test_create_vm_already_exists_names_settings_file(vb, runner) -> None:
    runner.on(
        ['createvm'],
        fail("VBoxManage: error: Machine settings file 'x' already exists"),
    )
    vm = _vm()
    with pytest.raises(AlreadyExistsError) as exc:
        lifecycle.create_vm(vb, vm)
    assert str(vb.vm_settings_file(vm)) in str(exc.value)
    assert isinstance(exc.value.__cause__, AlreadyExistsError)


def test_register_and_delete(vb, runner) -> None:
    vm = _vm()
    settings = vb.vm_settings_file(vm)
    lifecycle.register_vm(vb, vm)
    lifecycle.unregister_vm(vb, vm)
    assert runner.calls == [
        ['registervm', str(settings)],
        ['unregistervm', str(settings)],
    ]
    settings.parent.mkdir(parents=True)
    settings.write_text('<VirtualBox/>')
    lifecycle.delete_vm(vb, vm)
    assert not settings.exists()


MISSING_VM = (
    "VBoxManage: error: Could not find a registered machine named 'web'\n"
    'VBoxManage: error: Details: code VBOX_E_OBJECT_NOT_FOUND (0x80bb0001)'
)
ACCESS_DENIED = 'VBoxManage: error: Access denied (E_ACCESSDENIED)'


def test_is_registered(vb, runner) -> None:
    assert lifecycle.is_registered(vb, _vm())
    runner.on(['showvminfo'], fail(MISSING_VM))
    assert not lifecycle.is_registered(vb, _vm())


def test_is_registered_propagates_other_failures(vb, runner) -> None:
    runner.on(['showvminfo'], fail(ACCESS_DENIED))
    with pytest.raises(VBoxError) as exc:
        lifecycle.is_registered(vb, _vm())
    assert not isinstance(exc.value, NotFoundError)


def test_vm_info_not_found(vb, runner) -> None:
    runner.on(['showvminfo'], fail(MISSING_VM))
    with pytest.raises(MachineNotFoundError, match='web'):
        lifecycle.vm_info(vb, 'web')


def test_vm_info_keeps_unclassified_failures(vb, runner) -> None:
    runner.on(['showvminfo'], fail(ACCESS_DENIED))
    with pytest.raises(VBoxError, match='Access denied') as exc:
        lifecycle.vm_info(vb, 'web')
    assert type(exc.value) is VBoxError


def test_vm_info_recovers_group(vb, runner) -> None:
    vm = _vm(group='/lab', cpus=2, memory_mb=2048)
    dump = render_showvminfo(vm, str(vb.vm_settings_file(vm)), uuid='u-1')
    runner.on(['showvminfo'], ok(dump))
    found = lifecycle.vm_info(vb, 'web')
    assert found.uuid == 'u-1'
    assert found.spec.group == '/lab'
    assert (found.spec.cpus, found.spec.memory_mb) == (2, 2048)


def test_modify_vm_builds_one_call(vb, runner) -> None:
    vm = _vm(
        cpus=4,
        memory_mb=4096,
        boot=[BootDevice.DISK, BootDevice.NET],
        nics=[
            NIC(
                index=1,
                mode=NetworkMode.HOST_ONLY,
                network_name='vboxnet0',
                type=NICType.VIRTIO,
            )
        ],
        drag_and_drop='bidirectional',
    )
    lifecycle.modify_vm(
        vb, vm, ['cpus', 'memory', 'boot_order', 'network_adapter', 'drag_and_drop']
    )
    assert len(runner.calls) == 1
    call = runner.calls[0]
    assert call[:2] == ['modifyvm', 'web']
    assert call[2:8] == ['--cpus', '4', '--memory', '4096', '--boot1', 'disk']
    assert '--hostonlyadapter1' in call
    assert call[-1] == '--drag-and-drop=bidirectional'


def test_modify_vm_rejects_bad_parameters(vb, runner) -> None:
    with pytest.raises(ValueError, match='No parameters'):
        lifecycle.modify_vm(vb, _vm(), [])
    with pytest.raises(ValueError, match='vram'):
        lifecycle.modify_vm(vb, _vm(), ['vram'])
    assert runner.calls == []


def test_modify_uses_uuid_when_known(vb, runner) -> None:
    vm = _vm()
    vm.uuid = 'u-9'
    lifecycle.set_memory(vb, vm, 1024)
    lifecycle.set_page_fusion(vb, vm, False)
    lifecycle.enable_ioapic(vb, vm)
    assert runner.calls == [
        ['modifyvm', 'u-9', '--memory', '1024'],
        ['modifyvm', 'u-9', '--pagefusion', 'off'],
        ['modifyvm', 'u-9', '--ioapic', 'on'],
    ]


@pytest.mark.parametrize(
    'option, expected',
    [
        ('running', ['startvm', 'web', '--type', 'headless']),
        ('poweroff', ['controlvm', 'web', 'poweroff']),
        ('save', ['controlvm', 'web', 'savestate']),
        ('clipboard mode', ['controlvm', 'web', 'clipboard', 'mode', 'disabled']),
    ],
)
def test_control_vm(vb, runner, option, expected) -> None:
    lifecycle.control_vm(vb, _vm(clipboard='disabled'), option)
    assert runner.calls == [expected]


def test_control_vm_unknown_option(vb) -> None:
    with pytest.raises(ValueError, match='Invalid option'):
        lifecycle.control_vm(vb, _vm(), 'explode')


def test_restart_ignores_stop_failure(vb, runner) -> None:
    runner.on(['controlvm'], fail('VBoxManage: error: Machine is not running'))
    lifecycle.restart(vb, _vm())
    assert runner.commands() == ['controlvm', 'startvm']


def test_snapshots(vb, runner) -> None:
    vm = _vm()
    lifecycle.take_snapshot(vb, vm, Snapshot('base', 'clean'), live=True)
    lifecycle.edit_snapshot(vb, vm, Snapshot('base', 'clean'), Snapshot('base2', 'clean'))
    lifecycle.restore_snapshot(vb, vm, Snapshot('base2'))
    lifecycle.delete_snapshot(vb, vm, Snapshot('base2'))
    assert runner.calls == [
        ['snapshot', 'web', 'take', 'base', '--description=clean', '--live'],
        ['snapshot', 'web', 'edit', 'base', '--name', 'base2'],
        ['snapshot', 'web', 'restore', 'base2'],
        ['snapshot', 'web', 'delete', 'base2'],
    ]


def test_add_storage_controller(vb, runner) -> None:
    ctl = StorageController(name='NVMe1', type=StorageControllerType.NVME)
    add_storage_controller(vb, _vm(), ctl)
    assert runner.calls == [
        ['storagectl', 'web', '--name', 'NVMe1', '--add', 'pcie']
    ]
    runner.on(['storagectl'], fail('Storage controller named NVMe1 already exists'))
    with pytest.raises(AlreadyExistsError, match='NVMe1'):
        add_storage_controller(vb, _vm(), ctl)


def test_attach_args_hints_only_for_hdd() -> None:
    att = StorageControllerAttachment(
        type=StorageControllerType.SATA, port=1, device=0, name='SATA1'
    )
    hdd = Disk(
        path='/vms/a.vdi',
        format=DiskFormat.VDI,
        type=DiskType.HDD,
        controller=att,
        non_rotational=True,
        auto_discard=True,
    )
    args = attach_args(hdd)
    assert args[:10] == [
        '--storagectl', 'SATA1',
        '--port', '1',
        '--device', '0',
        '--type', 'hdd',
        '--medium', '/vms/a.vdi',
    ]
    assert args[10:] == ['--nonrotational', 'on', '--discard', 'on']

    vmdk = Disk(
        path='/vms/b.vmdk',
        format=DiskFormat.VMDK,
        type=DiskType.HDD,
        controller=att,
        auto_discard=True,
    )
    assert '--discard' not in attach_args(vmdk)

    dvd = Disk(
        path='/vms/c.iso', type=DiskType.DVD, controller=att, non_rotational=True
    )
    assert attach_args(dvd)[-2:] == ['--medium', '/vms/c.iso']
