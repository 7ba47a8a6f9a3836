"""Dataclasses and enumerations describing VMs as VirtualBox sees them.

Unset optional enum fields are ``None`` and unset strings are ``''``;
:func:`vbm.vm.defaults.ensure_defaults` fills them in.
"""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class StorageControllerType(str, Enum):
    IDE = 'IDE'
    SATA = 'SATA'
    SCSI = 'SCSI'
    NVME = 'NVMe'

    @property
    def bus(self) -> str:
        """Value accepted by ``storagectl --add``."""
        return _CONTROLLER_BUS[self]


_CONTROLLER_BUS = {
    StorageControllerType.IDE: 'ide',
    StorageControllerType.SATA: 'sata',
    StorageControllerType.SCSI: 'scsi',
    StorageControllerType.NVME: 'pcie',
}


class DiskType(str, Enum):
    DVD = 'dvddrive'
    HDD = 'hdd'
    FLOPPY = 'fdd'

    def for_show_medium(self) -> str:
        """Medium kind argument of ``showmediuminfo``."""
        return {'dvddrive': 'dvd', 'hdd': 'disk', 'fdd': 'floppy'}[self.value]


class DiskFormat(str, Enum):
    VDI = 'VDI'
    VMDK = 'VMDK'
    VHD = 'VHD'


DEFAULT_DISK_FORMAT = DiskFormat.VDI


class VMState(str, Enum):
    POWEROFF = 'poweroff'
    RUNNING = 'running'
    PAUSED = 'paused'
    SAVED = 'saved'
    ABORTED = 'aborted'


class NetworkMode(str, Enum):
    NONE = 'none'
    NULL = 'null'
    NAT = 'nat'
    NAT_NETWORK = 'natnetwork'
    BRIDGED = 'bridged'
    INTERNAL = 'intnet'
    HOST_ONLY = 'hostonly'
    GENERIC = 'generic'


class NICType(str, Enum):
    AM79C970A = 'Am79C970A'
    AM79C973 = 'Am79C973'
    I82540EM = '82540EM'
    I82543GC = '82543GC'
    I82545EM = '82545EM'
    VIRTIO = 'virtio'


DEFAULT_NIC_TYPE = NICType.I82540EM


class NetProtocol(str, Enum):
    TCP = 'tcp'
    UDP = 'udp'


class BootDevice(str, Enum):
    NONE = 'none'
    FLOPPY = 'floppy'
    DVD = 'dvd'
    DISK = 'disk'
    NET = 'net'


@dataclass
class StorageControllerAttachment:
    """Where a disk plugs in: controller name, port and device."""

    type: Optional[StorageControllerType] = None
    port: int = 0
    device: int = 0
    name: str = ''


@dataclass
class StorageController:
    name: str = ''
    type: Optional[StorageControllerType] = None
    instance: int = 0
    port_count: int = 0
    bootable: bool = False


@dataclass
class Disk:
    path: str = ''
    size_mb: int = 0
    format: Optional[DiskFormat] = None
    uuid: str = ''
    controller: StorageControllerAttachment = field(
        default_factory=StorageControllerAttachment
    )
    type: Optional[DiskType] = None
    non_rotational: bool = False
    auto_discard: bool = False

    def uuid_or_path(self) -> str:
        return self.uuid or self.path


@dataclass
class Snapshot:
    name: str = ''
    description: str = ''


@dataclass
class PortForwarding:
    index: int = 1
    name: str = ''
    protocol: NetProtocol = NetProtocol.TCP
    host_ip: str = ''
    host_port: int = 0
    guest_ip: str = ''
    guest_port: int = 0

    def rule(self) -> str:
        return ','.join(
            [
                self.name,
                self.protocol.value,
                self.host_ip,
                str(self.host_port),
                self.guest_ip,
                str(self.guest_port),
            ]
        )


@dataclass
class NIC:
    index: int = 0
    mode: Optional[NetworkMode] = None
    # For bridged and host-only modes this is the host device name.
    network_name: str = ''
    type: Optional[NICType] = None
    cable_connected: bool = True
    speed_kbps: int = 0
    boot_prio: int = 0
    promiscuous_mode: str = ''
    mac: str = ''
    port_forwarding: list[PortForwarding] = field(default_factory=list)


@dataclass(frozen=True)
class Network:
    name: str = ''
    guid: str = ''
    mode: Optional[NetworkMode] = None
    device_name: str = ''
    hw_address: str = ''
    ip_net: Optional[ipaddress.IPv4Network] = None


@dataclass(frozen=True)
class OSType:
    id: str = ''
    description: str = ''
    family_id: str = ''
    family_description: str = ''
    bit64: bool = False


LINUX32 = OSType(id='Linux', family_id='Linux', bit64=False)
LINUX64 = OSType(id='Linux_64', family_id='Linux', bit64=True)
UBUNTU32 = OSType(id='Ubuntu', family_id='Linux', bit64=False)
UBUNTU64 = OSType(id='Ubuntu_64', family_id='Linux', bit64=True)


@dataclass
class DHCPServer:
    network_name: str = ''
    ip_address: str = ''
    network_mask: str = ''
    lower_ip_address: str = ''
    upper_ip_address: str = ''
    enabled: bool = False


@dataclass
class VirtualMachineSpec:
    # Also forms the settings path, see VBox.vm_base_dir.
    name: str = ''
    group: str = ''
    cpus: int = 1
    memory_mb: int = 512
    os_type: OSType = field(default_factory=OSType)
    disks: list[Disk] = field(default_factory=list)
    storage_controllers: list[StorageController] = field(default_factory=list)
    nics: list[NIC] = field(default_factory=list)
    boot: list[BootDevice] = field(default_factory=list)
    snapshots: list[Snapshot] = field(default_factory=list)
    current_snapshot: Snapshot = field(default_factory=Snapshot)
    drag_and_drop: str = ''
    clipboard: str = ''


@dataclass
class VirtualMachine:
    uuid: str = ''
    spec: VirtualMachineSpec = field(default_factory=VirtualMachineSpec)
    state: Optional[VMState] = None

    def uuid_or_name(self) -> str:
        return self.uuid or self.spec.name
