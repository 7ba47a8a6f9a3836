"""VM operation exports for defaulting, reconciliation, and lifecycle helpers."""

from __future__ import annotations

from .defaults import ensure_defaults
from .define import define
from .lifecycle import (
    boot_order_args,
    control_vm,
    create_vm,
    delete_snapshot,
    delete_vm,
    edit_snapshot,
    enable_ioapic,
    ensure_vm_host_path,
    is_registered,
    list_snapshots,
    modify_vm,
    pause,
    register_vm,
    reset,
    restart,
    restore_snapshot,
    resume,
    save,
    set_boot_order,
    set_cpu_count,
    set_memory,
    set_page_fusion,
    set_vram,
    show_snapshot_info,
    start,
    stop,
    take_snapshot,
    unregister_vm,
    vm_info,
)
from .storage import add_storage_controller, attach_args, attach_storage

__all__ = [
    'add_storage_controller',
    'attach_args',
    'attach_storage',
    'boot_order_args',
    'control_vm',
    'create_vm',
    'define',
    'delete_snapshot',
    'delete_vm',
    'edit_snapshot',
    'enable_ioapic',
    'ensure_defaults',
    'ensure_vm_host_path',
    'is_registered',
    'list_snapshots',
    'modify_vm',
    'pause',
    'register_vm',
    'reset',
    'restart',
    'restore_snapshot',
    'resume',
    'save',
    'set_boot_order',
    'set_cpu_count',
    'set_memory',
    'set_page_fusion',
    'set_vram',
    'show_snapshot_info',
    'start',
    'stop',
    'take_snapshot',
    'unregister_vm',
    'vm_info',
]
