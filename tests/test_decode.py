from __future__ import annotations

from pathlib import Path

import pytest

from vbm.decode import (
    decode_boot_order,
    decode_nics,
    decode_snapshots,
    decode_storage,
    decode_vm,
    group_from_settings_path,
    node_suffix,
)
from vbm.errors import DecodeError
from vbm.models import (
    BootDevice,
    NetworkMode,
    NICType,
    StorageControllerType,
    VMState,
)
from vbm.parse import decode_machine_readable

BASE = '/Users/tester/VirtualBox VMs'

SHOWVMINFO = f'''
name="testvm1"
groups="/tess,/tess2"
ostype="Other Linux (32-bit)"
UUID="6aa44e71-71c6-4e68-a61f-f69e133ecffa"
CfgFile="{BASE}/tess/testvm1/testvm1.vbox"
SnapFldr="{BASE}/tess/testvm1/Snapshots"
hardwareuuid="6aa44e71-71c6-4e68-a61f-f69e133ecffa"
memory=128
pagefusion="off"
vram=8
cpuexecutioncap=100
chipset="piix3"
firmware="BIOS"
cpus=1
cpuid-portability-level=0
bootmenu="messageandmenu"
boot1="floppy"
boot2="dvd"
boot3="disk"
boot4="none"
ioapic="off"
VMState="poweroff"
VMStateChangeTime="2017-12-10T01:18:02.000000000"
teleporteraddress=""
storagecontrollername0="SATA1"
storagecontrollertype0="IntelAhci"
storagecontrollerinstance0="0"
storagecontrollermaxportcount0="30"
storagecontrollerportcount0="30"
storagecontrollerbootable0="on"
"SATA1-0-0"="{BASE}/tess/testvm1/disk1.vdi"
"SATA1-ImageUUID-0-0"="38f0cf9d-6c60-4f59-ba0b-cd1dfb5329d6"
"SATA1-1-0"="none"
"SATA1-2-0"="none"
"SATA1-3-0"="none"
"SATA1-4-0"="none"
"SATA1-5-0"="none"
"SATA1-6-0"="none"
"SATA1-7-0"="none"
"SATA1-8-0"="none"
"SATA1-9-0"="none"
"SATA1-10-0"="none"
"SATA1-11-0"="none"
"SATA1-12-0"="none"
"SATA1-13-0"="none"
"SATA1-14-0"="none"
"SATA1-15-0"="none"
"SATA1-16-0"="none"
"SATA1-17-0"="none"
"SATA1-18-0"="none"
"SATA1-19-0"="none"
"SATA1-20-0"="none"
"SATA1-21-0"="none"
"SATA1-22-0"="none"
"SATA1-23-0"="none"
"SATA1-24-0"="none"
"SATA1-25-0"="none"
"SATA1-26-0"="none"
"SATA1-27-0"="none"
"SATA1-28-0"="none"
"SATA1-29-0"="none"
natnet1="nat"
macaddress1="080027220665"
cableconnected1="on"
nic1="nat"
nictype1="Am79C973"
nicspeed1="0"
mtu="0"
nic2="none"
nic3="none"
nic4="none"
nic5="none"
nic6="none"
nic7="none"
nic8="none"
hidpointing="ps2mouse"
clipboard="disabled"
draganddrop="disabled"
vcpwidth=1024
GuestMemoryBalloon=0
'''


def test_decode_vm_sample_dump() -> None:
    vm = decode_vm(decode_machine_readable(SHOWVMINFO), Path(BASE))
    assert vm.uuid == '6aa44e71-71c6-4e68-a61f-f69e133ecffa'
    assert vm.state == VMState.POWEROFF
    spec = vm.spec
    assert spec.name == 'testvm1'
    assert spec.group == '/tess'
    assert spec.cpus == 1
    assert spec.memory_mb == 128
    assert spec.os_type.description == 'Other Linux (32-bit)'
    assert spec.drag_and_drop == 'disabled'
    assert spec.clipboard == 'disabled'
    assert spec.boot == [BootDevice.FLOPPY, BootDevice.DVD, BootDevice.DISK]

    assert len(spec.storage_controllers) == 1
    ctl = spec.storage_controllers[0]
    assert ctl.name == 'SATA1'
    assert ctl.type == StorageControllerType.SATA
    assert ctl.port_count == 30
    assert ctl.bootable

    assert len(spec.disks) == 1
    disk = spec.disks[0]
    assert disk.path == f'{BASE}/tess/testvm1/disk1.vdi'
    assert disk.uuid == '38f0cf9d-6c60-4f59-ba0b-cd1dfb5329d6'
    assert disk.controller.name == 'SATA1'
    assert disk.controller.type == StorageControllerType.SATA
    assert (disk.controller.port, disk.controller.device) == (0, 0)

    assert len(spec.nics) == 1
    nic = spec.nics[0]
    assert nic.index == 1
    assert nic.mode == NetworkMode.NAT
    assert nic.type == NICType.AM79C973
    assert nic.mac == '080027220665'
    assert nic.cable_connected


def test_decode_vm_without_base_path_leaves_group_empty() -> None:
    vm = decode_vm(decode_machine_readable(SHOWVMINFO))
    assert vm.spec.group == ''


@pytest.mark.parametrize('missing', ['UUID', 'name', 'CfgFile', 'cpus', 'memory'])
def test_decode_vm_requires_fields(missing) -> None:
    values = dict(decode_machine_readable(SHOWVMINFO))
    del values[missing]
    with pytest.raises(DecodeError, match=missing):
        decode_vm(values)


def test_decode_vm_rejects_wrong_type() -> None:
    values = dict(decode_machine_readable(SHOWVMINFO))
    values['cpus'] = 'one'
    with pytest.raises(DecodeError, match='cpus'):
        decode_vm(values)


def test_decode_storage_ide_slave_and_multiple_controllers() -> None:
    values = {
        'storagecontrollername0': 'IDE1',
        'storagecontrollertype0': 'PIIX4',
        'storagecontrollerportcount0': '2',
        'IDE1-0-0': '/vms/a.vdi',
        'IDE1-ImageUUID-0-0': 'uuid-a',
        'IDE1-0-1': '/vms/b.vdi',
        'IDE1-ImageUUID-0-1': 'uuid-b',
        'IDE1-1-0': 'none',
        'IDE1-1-1': '/vms/c.iso',
        'storagecontrollername1': 'NVMe1',
        'storagecontrollertype1': 'NVMe',
        'storagecontrollerportcount1': '1',
        'NVMe1-0-0': '/vms/d.vdi',
        # A gap ends the controller scan.
        'storagecontrollername3': 'SCSI1',
    }
    controllers, disks = decode_storage(values)
    assert [c.name for c in controllers] == ['IDE1', 'NVMe1']
    assert [c.type for c in controllers] == [
        StorageControllerType.IDE,
        StorageControllerType.NVME,
    ]
    slots = [(d.path, d.controller.port, d.controller.device) for d in disks]
    assert slots == [
        ('/vms/a.vdi', 0, 0),
        ('/vms/b.vdi', 0, 1),
        ('/vms/c.iso', 1, 1),
        ('/vms/d.vdi', 0, 0),
    ]
    assert disks[1].uuid == 'uuid-b'
    assert disks[2].uuid == ''
    assert disks[3].controller.name == 'NVMe1'


def test_decode_nics_skips_empty_slots() -> None:
    values = {
        'nic1': 'hostonly',
        'hostonlyadapter1': 'vboxnet0',
        'nictype1': '82540EM',
        'cableconnected1': 'off',
        'nicspeed1': '1000000',
        'nic2': 'none',
        'nic3': 'intnet',
        'intnet3': 'lab',
        'nic5': 'bridged',
    }
    nics = decode_nics(values)
    assert [n.index for n in nics] == [1, 3]
    assert nics[0].network_name == 'vboxnet0'
    assert nics[0].type == NICType.I82540EM
    assert not nics[0].cable_connected
    assert nics[0].speed_kbps == 1000000
    assert nics[1].mode == NetworkMode.INTERNAL
    assert nics[1].network_name == 'lab'


def test_decode_snapshots_chain_and_current() -> None:
    values = {
        'SnapshotName': 'base',
        'SnapshotDescription': 'fresh install',
        'SnapshotName-1': 'patched',
        'SnapshotDescription-1': 'after updates',
        'SnapshotName-1-1': 'tuned',
        'CurrentSnapshotName': 'patched',
        'CurrentSnapshotNode': 'SnapshotName-1',
    }
    snaps, current = decode_snapshots(values)
    assert [s.name for s in snaps] == ['base', 'patched', 'tuned']
    assert snaps[2].description == ''
    assert current.name == 'patched'
    assert current.description == 'after updates'
    assert node_suffix('SnapshotName-1-1') == '-1-1'


def test_decode_boot_order_skips_none() -> None:
    values = {'boot1': 'none', 'boot2': 'net', 'boot3': 'disk'}
    assert decode_boot_order(values) == [BootDevice.NET, BootDevice.DISK]


def test_group_from_settings_path() -> None:
    base = Path('/vms')
    assert group_from_settings_path('/vms/a/b/vm1/vm1.vbox', base) == '/a/b'
    assert group_from_settings_path('/vms/vm1/vm1.vbox', base) == ''
    assert group_from_settings_path('/elsewhere/vm1/vm1.vbox', base) == ''
