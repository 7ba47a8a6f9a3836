"""The VBox manager object and host-level listings.

A :class:`VBox` bundles the manager configuration, the command runner that
executes VBoxManage, and the last synced network inventory. Operations in
the other modules take it as their first argument.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from loguru import logger

from .config import VBoxConfig
from .errors import classify_failure
from .models import DHCPServer, Network, OSType, VirtualMachine
from .parse import RE_COLON_LINE, parse_key_values
from .util import CommandRunner, SubprocessRunner, expand, shell_join

log = logger

SETTINGS_EXT = 'vbox'


@dataclass
class VBox:
    config: VBoxConfig = field(default_factory=VBoxConfig)
    runner: Optional[CommandRunner] = None
    # Discovered by sync_nics, including networks created out of band.
    host_only_nws: dict[str, Network] = field(default_factory=dict)
    bridged_nws: dict[str, Network] = field(default_factory=dict)
    internal_nws: dict[str, Network] = field(default_factory=dict)
    nat_nws: dict[str, Network] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.config.base_path = expand(self.config.base_path)
        if self.runner is None:
            self.runner = SubprocessRunner(
                executable=self.config.vboxmanage,
                timeout_s=self.config.timeout_s,
            )

    @property
    def base_path(self) -> Path:
        return Path(self.config.base_path)

    def manage(self, *args: str) -> str:
        """Run one VBoxManage command and return its stdout.

        Failures are raised as the error type chosen by
        :func:`vbm.errors.classify_failure`.
        """
        log.opt(depth=1).debug(
            'COMMAND: {} {}', self.config.vboxmanage, shell_join(args)
        )
        res = self.runner.run(list(args))
        if not res.ok:
            raise classify_failure(args, res)
        log.trace('STDOUT:\n{}', res.stdout)
        return res.stdout

    def modify(self, vm: VirtualMachine, *args: str) -> str:
        return self.manage('modifyvm', vm.uuid_or_name(), *args)

    def control(self, vm: VirtualMachine, *args: str) -> str:
        return self.manage('controlvm', vm.uuid_or_name(), *args)

    def vm_base_dir(self, vm: VirtualMachine) -> Path:
        group = vm.spec.group.strip('/')
        return self.base_path / group / vm.spec.name

    def vm_settings_file(self, vm: VirtualMachine) -> Path:
        return self.vm_base_dir(vm) / f'{vm.spec.name}.{SETTINGS_EXT}'


def list_dhcp_servers(vb: VBox) -> dict[str, DHCPServer]:
    out = vb.manage('list', 'dhcpservers')
    servers: dict[str, DHCPServer] = {}
    current: Optional[DHCPServer] = None

    def _on_pair(key: str, val: str) -> None:
        nonlocal current
        if key == 'NetworkName':
            current = DHCPServer(network_name=val)
            servers[val] = current
            return
        if current is None:
            return
        if key == 'IP':
            current.ip_address = val
        elif key == 'upperIPAddress':
            current.upper_ip_address = val
        elif key == 'lowerIPAddress':
            current.lower_ip_address = val
        elif key == 'NetworkMask':
            current.network_mask = val
        elif key == 'Enabled':
            current.enabled = val == 'Yes'

    parse_key_values(out, RE_COLON_LINE, _on_pair)
    return servers


def list_os_types(vb: VBox) -> dict[str, OSType]:
    out = vb.manage('list', 'ostypes')
    found: dict[str, dict[str, object]] = {}
    current: Optional[dict[str, object]] = None

    def _on_pair(key: str, val: str) -> None:
        nonlocal current
        if key == 'ID':
            current = {'id': val}
            found[val] = current
            return
        if current is None:
            return
        if key == 'Description':
            current['description'] = val
        elif key == 'Family ID':
            current['family_id'] = val
        elif key == 'Family Desc':
            current['family_description'] = val
        elif key == '64 bit':
            current['bit64'] = val == 'true'

    parse_key_values(out, RE_COLON_LINE, _on_pair)
    return {k: OSType(**v) for k, v in found.items()}
