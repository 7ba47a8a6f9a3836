"""CLI commands for host network inventory, host-only interfaces, and DHCP."""

from __future__ import annotations

import scriptconfig as scfg

from ..dhcp import disable_dhcp_server, enable_dhcp_server, list_dhcp_servers
from ..models import Network, NetworkMode
from ..net import create_net, delete_net, list_networks
from ._common import _BaseCommand, _load_cfg, _make_vbox

LISTABLE = {
    'hostonly': NetworkMode.HOST_ONLY,
    'bridged': NetworkMode.BRIDGED,
    'intnet': NetworkMode.INTERNAL,
    'natnetwork': NetworkMode.NAT_NETWORK,
}


class NetListCLI(_BaseCommand):
    """List host networks known to VirtualBox."""

    mode = scfg.Value(
        'all',
        position=1,
        choices=['all', *LISTABLE],
        help='Network mode to list.',
    )

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        vb = _make_vbox(_load_cfg(args.config))
        if args.mode == 'all':
            wanted = LISTABLE
        else:
            wanted = {args.mode: LISTABLE[args.mode]}
        for label, mode in wanted.items():
            print(f'{label} networks')
            found = list_networks(vb, mode)
            if not found:
                print('  (none)')
            for nw in sorted(found, key=lambda n: n.name):
                print(
                    f'  - {nw.name} | device={nw.device_name or "-"} '
                    f'| ip_net={nw.ip_net or "-"}'
                )
        return 0


class NetCreateCLI(_BaseCommand):
    """Create a host-only interface."""

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        vb = _make_vbox(_load_cfg(args.config))
        print(create_net(vb).name)
        return 0


class NetDestroyCLI(_BaseCommand):
    """Remove a host-only interface or NAT network."""

    network = scfg.Value('', position=1, help='Network name.')
    mode = scfg.Value(
        'hostonly', choices=['hostonly', 'natnetwork'], help='Network mode.'
    )

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        if not args.network:
            raise RuntimeError('A network name is required.')
        vb = _make_vbox(_load_cfg(args.config))
        delete_net(vb, Network(name=args.network, mode=LISTABLE[args.mode]))
        return 0


class NetDhcpCLI(_BaseCommand):
    """List, enable, or disable DHCP servers."""

    action = scfg.Value(
        'list', position=1, choices=['list', 'enable', 'disable']
    )
    network = scfg.Value('', help='Network name for enable/disable.')
    ip = scfg.Value('', help='Server address.')
    netmask = scfg.Value('255.255.255.0', help='Network mask.')
    lower_ip = scfg.Value('', help='First leased address.')
    upper_ip = scfg.Value('', help='Last leased address.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        vb = _make_vbox(_load_cfg(args.config))
        if args.action == 'list':
            servers = list_dhcp_servers(vb)
            if not servers:
                print('(none)')
            for name, srv in sorted(servers.items()):
                print(
                    f'- {name} | ip={srv.ip_address} '
                    f'| range={srv.lower_ip_address}-{srv.upper_ip_address} '
                    f'| enabled={"yes" if srv.enabled else "no"}'
                )
            return 0
        if not args.network:
            raise RuntimeError(f'--network is required for dhcp {args.action}')
        if args.action == 'disable':
            if not disable_dhcp_server(vb, args.network):
                print(f'No DHCP server on {args.network}')
            return 0
        missing = [
            k for k in ('ip', 'lower_ip', 'upper_ip') if not getattr(args, k)
        ]
        if missing:
            raise RuntimeError(
                'Missing options for dhcp enable: '
                + ', '.join(f'--{k}' for k in missing)
            )
        enable_dhcp_server(
            vb, args.network, args.ip, args.netmask, args.lower_ip, args.upper_ip
        )
        return 0


class NetModalCLI(scfg.ModalCLI):
    """Network subcommands."""

    list = NetListCLI
    create = NetCreateCLI
    destroy = NetDestroyCLI
    dhcp = NetDhcpCLI
