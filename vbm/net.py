"""Host network inventory, NIC configuration, and NIC defaulting."""

from __future__ import annotations

import ipaddress
import re
from typing import Optional

from loguru import logger

from .errors import ValidationErrors, VBMError
from .models import (
    DEFAULT_NIC_TYPE,
    NIC,
    Network,
    NetworkMode,
    PortForwarding,
    VirtualMachine,
)
from .parse import RE_COLON_LINE, try_parse_key_values
from .vbox import VBox

log = logger

DEVICE_PREFIX = 'HostInterfaceNetworking-'
RE_CREATED_IF = re.compile(r"Interface '([^']+)' was successfully created")

# ``list`` sub-command and the record keys each one reports.
_LISTINGS: dict[NetworkMode, tuple[str, str]] = {
    NetworkMode.HOST_ONLY: ('hostonlyifs', 'Name'),
    NetworkMode.INTERNAL: ('intnets', 'Name'),
    NetworkMode.NAT_NETWORK: ('natnets', 'NetworkName'),
    NetworkMode.BRIDGED: ('bridgedifs', 'Name'),
}

# modifyvm flag carrying the network name, per mode.
_ADAPTER_FLAGS: dict[NetworkMode, str] = {
    NetworkMode.BRIDGED: '--bridgeadapter',
    NetworkMode.HOST_ONLY: '--hostonlyadapter',
    NetworkMode.INTERNAL: '--intnet',
    NetworkMode.NAT_NETWORK: '--nat-network',
}


def parse_network_list(text: str, mode: NetworkMode) -> list[Network]:
    """Decode a blank-line separated ``VBoxManage list`` output."""
    name_key = _LISTINGS[mode][1]
    networks: list[Network] = []
    rec: dict[str, str] = {}

    def _flush() -> None:
        if rec.get('name'):
            ip_net = None
            if rec.get('ip') and rec.get('mask'):
                try:
                    ip_net = ipaddress.ip_interface(
                        f"{rec['ip']}/{rec['mask']}"
                    ).network
                except ValueError:
                    log.debug('bad address for network {}', rec['name'])
            networks.append(
                Network(
                    name=rec['name'],
                    guid=rec.get('guid', ''),
                    mode=mode,
                    device_name=rec.get('device_name', ''),
                    hw_address=rec.get('hw_address', ''),
                    ip_net=ip_net,
                )
            )
        rec.clear()

    def _on_line(key: str, val: str, ok: bool) -> None:
        if not ok:
            if not val.strip():
                _flush()
            return
        if key == name_key:
            rec['name'] = val
        elif key == 'GUID':
            rec['guid'] = val
        elif key == 'HardwareAddress':
            rec['hw_address'] = val
        elif key == 'VBoxNetworkName':
            rec['device_name'] = val.removeprefix(DEVICE_PREFIX)
        elif key == 'IPAddress':
            rec['ip'] = val
        elif key == 'NetworkMask':
            rec['mask'] = val

    try_parse_key_values(text, RE_COLON_LINE, _on_line)
    # The last record is not always followed by a blank line.
    _flush()
    return networks


def list_networks(vb: VBox, mode: NetworkMode) -> list[Network]:
    return parse_network_list(vb.manage('list', _LISTINGS[mode][0]), mode)


def inventory(vb: VBox, mode: NetworkMode) -> Optional[dict[str, Network]]:
    return {
        NetworkMode.HOST_ONLY: vb.host_only_nws,
        NetworkMode.INTERNAL: vb.internal_nws,
        NetworkMode.NAT_NETWORK: vb.nat_nws,
        NetworkMode.BRIDGED: vb.bridged_nws,
    }.get(mode)


def sync_nics(vb: VBox) -> None:
    """Refresh the four network inventories of ``vb``."""
    for mode in _LISTINGS:
        found = list_networks(vb, mode)
        inv = inventory(vb, mode)
        inv.clear()
        for nw in found:
            inv[nw.name] = nw
        log.debug('Synced {} {} networks', len(found), mode.value)


def get_network(vb: VBox, name: str, mode: NetworkMode) -> Optional[Network]:
    inv = inventory(vb, mode)
    if inv is None:
        return None
    return inv.get(name)


def default_network(vb: VBox, mode: NetworkMode) -> Network:
    """Pick the lexicographically smallest known network of ``mode``."""
    inv = inventory(vb, mode) or {}
    if not inv:
        raise VBMError(f'no {mode.value} network available to default to')
    return inv[min(inv)]


def set_nic_defaults(vb: VBox, vm: VirtualMachine) -> None:
    """Fill NIC index, mode, type and network name in declaration order.

    Inventory sync failures propagate immediately; per-NIC problems are
    collected and raised together as ValidationErrors.
    """
    sync_nics(vb)
    verrs = ValidationErrors()
    for i, nic in enumerate(vm.spec.nics):
        nic.index = i + 1
        if nic.mode is None:
            nic.mode = NetworkMode.HOST_ONLY
        if nic.type is None:
            nic.type = DEFAULT_NIC_TYPE
        if nic.network_name or nic.mode not in _ADAPTER_FLAGS:
            continue
        if nic.mode == NetworkMode.INTERNAL:
            verrs.add(f'nic/{i}', 'networkname missing for internal net')
            continue
        try:
            nic.network_name = default_network(vb, nic.mode).name
        except VBMError as ex:
            verrs.add(f'nic/{i}', ex)
    if verrs:
        raise verrs


def create_net(vb: VBox) -> Network:
    """Create a host-only interface and return it."""
    out = vb.manage('hostonlyif', 'create')
    m = RE_CREATED_IF.search(out)
    if m is None:
        raise VBMError(
            f'could not determine the interface name from vbox output: {out}'
        )
    nw = Network(name=m.group(1), mode=NetworkMode.HOST_ONLY)
    log.info('Created host-only network {}', nw.name)
    return nw


def delete_net(vb: VBox, nw: Network) -> None:
    if nw.mode == NetworkMode.HOST_ONLY:
        vb.manage('hostonlyif', 'remove', nw.name)
    elif nw.mode == NetworkMode.NAT_NETWORK:
        vb.manage('natnetwork', 'remove', '--netname', nw.name)
    else:
        log.debug('delete_net is a no-op for {} networks', nw.mode)


def nic_args(nic: NIC) -> list[str]:
    i = nic.index
    args = [f'--nic{i}', nic.mode.value]
    flag = _ADAPTER_FLAGS.get(nic.mode)
    if flag is not None:
        args += [f'{flag}{i}', nic.network_name]
    if nic.type is not None:
        args += [f'--nictype{i}', nic.type.value]
    args += [f'--cableconnected{i}', 'on' if nic.cable_connected else 'off']
    if nic.mac:
        args += [f'--macaddress{i}', nic.mac]
    if nic.speed_kbps:
        args += [f'--nicspeed{i}', str(nic.speed_kbps)]
    if nic.boot_prio:
        args += [f'--nicbootprio{i}', str(nic.boot_prio)]
    if nic.promiscuous_mode:
        args += [f'--nicpromisc{i}', nic.promiscuous_mode]
    return args


def add_nic(vb: VBox, vm: VirtualMachine, nic: NIC) -> None:
    vb.modify(vm, *nic_args(nic))
    if nic.mode == NetworkMode.NAT:
        for rule in nic.port_forwarding:
            port_forwarding(vb, vm, rule, nic_index=nic.index)


def port_forwarding(
    vb: VBox,
    vm: VirtualMachine,
    rule: PortForwarding,
    *,
    nic_index: Optional[int] = None,
) -> None:
    idx = rule.index if nic_index is None else nic_index
    vb.modify(vm, f'--natpf{idx}', rule.rule())


def port_forwarding_delete(
    vb: VBox, vm: VirtualMachine, index: int, name: str
) -> None:
    vb.modify(vm, f'--natpf{index}', 'delete', name)
