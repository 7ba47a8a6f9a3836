from __future__ import annotations

import sys

import scriptconfig as scfg

from ..config import VBMConfig, dump_toml, save
from ..util import ensure_dir
from ._common import _BaseCommand, _cfg_path, _load_cfg_with_path


class InitCLI(_BaseCommand):
    """Write a config file with default manager settings."""

    base_path = scfg.Value('', help='Override the VirtualBox VM base folder.')
    force = scfg.Value(
        False, isflag=True, help='Overwrite an existing config file.'
    )

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        path = _cfg_path(args.config)
        if path.exists() and not args.force:
            print(f'Config already exists: {path}', file=sys.stderr)
            print('Use --force to overwrite it.', file=sys.stderr)
            return 2
        cfg = VBMConfig()
        if args.base_path:
            cfg.vbox.base_path = str(args.base_path)
        ensure_dir(path.parent)
        save(path, cfg)
        print(f'Wrote config: {path}')
        return 0


class ConfigShowCLI(_BaseCommand):
    """Show the resolved manager config."""

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        cfg, path = _load_cfg_with_path(args.config)
        print(f'# Config: {path}{"" if path.exists() else " (defaults)"}')
        print(dump_toml(cfg), end='')
        return 0


class ConfigModalCLI(scfg.ModalCLI):
    """Config subcommands."""

    init = InitCLI
    show = ConfigShowCLI
