"""Medium (disk image) lookup, creation, and removal."""

from __future__ import annotations

from loguru import logger

from .errors import DiskNotFoundError
from .models import DEFAULT_DISK_FORMAT, Disk, DiskFormat
from .parse import RE_COLON_LINE, parse_key_values
from .vbox import VBox

log = logger


def parse_medium_info(text: str) -> Disk:
    disk = Disk()

    def _on_pair(key: str, val: str) -> None:
        if key == 'UUID':
            disk.uuid = val
        elif key == 'Location':
            disk.path = val
        elif key == 'Storage format':
            try:
                disk.format = DiskFormat(val)
            except ValueError:
                log.debug('unrecognised storage format {!r}', val)

    parse_key_values(text, RE_COLON_LINE, _on_pair)
    return disk


def disk_info(vb: VBox, disk: Disk) -> Disk:
    """Read a medium back by UUID or path.

    Raises DiskNotFoundError when VirtualBox does not know the medium.
    """
    args = ['showmediuminfo']
    if disk.type is not None:
        args.append(disk.type.for_show_medium())
    args.append(disk.uuid_or_path())
    found = parse_medium_info(vb.manage(*args))
    if not found.uuid:
        raise DiskNotFoundError(disk.uuid_or_path())
    return found


def create_disk(vb: VBox, disk: Disk) -> None:
    if disk.format is None:
        disk.format = DEFAULT_DISK_FORMAT
    vb.manage(
        'createmedium',
        'disk',
        '--filename',
        disk.path,
        '--size',
        str(disk.size_mb),
        '--format',
        disk.format.value,
    )
    log.info('Created disk {} ({} MB)', disk.path, disk.size_mb)


def ensure_disk(vb: VBox, disk: Disk) -> Disk:
    """Return the registered medium for ``disk``, creating it if missing."""
    try:
        return disk_info(vb, disk)
    except DiskNotFoundError:
        log.debug('Disk {} not found, creating it', disk.uuid_or_path())
    create_disk(vb, disk)
    return disk_info(vb, Disk(path=disk.path, type=disk.type))


def delete_disk(vb: VBox, uuid_or_path: str) -> None:
    vb.manage('closemedium', uuid_or_path, '--delete')
    log.info('Deleted disk {}', uuid_or_path)


def mark_hd_immutable(vb: VBox, hd_path: str) -> None:
    vb.manage('modifymedium', hd_path, '--type', 'immutable')
