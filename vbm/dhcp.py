"""DHCP server management for host-only and NAT networks."""

from __future__ import annotations

from loguru import logger

from .errors import NotFoundError
from .vbox import VBox, list_dhcp_servers

log = logger

__all__ = ['disable_dhcp_server', 'enable_dhcp_server', 'list_dhcp_servers']


def disable_dhcp_server(vb: VBox, net_name: str) -> bool:
    """Remove the DHCP server of ``net_name``; False if there was none."""
    try:
        vb.manage('dhcpserver', 'remove', '--netname', net_name)
    except NotFoundError:
        log.debug('No DHCP server on {}', net_name)
        return False
    log.info('Disabled DHCP server on {}', net_name)
    return True


def enable_dhcp_server(
    vb: VBox,
    net_name: str,
    ip: str,
    netmask: str,
    lower_ip: str,
    upper_ip: str,
) -> str:
    return vb.manage(
        'dhcpserver',
        'add',
        '--netname',
        net_name,
        f'--ip={ip}',
        f'--netmask={netmask}',
        f'--lowerip={lower_ip}',
        f'--upperip={upper_ip}',
        '--enable',
    )
