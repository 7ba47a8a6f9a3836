"""Line oriented ``key: value`` / ``key=value`` decoding of VBoxManage output."""

from __future__ import annotations

import re
import shlex
from types import MappingProxyType
from typing import Callable, Mapping, Union

from loguru import logger

log = logger

# ``key:   value`` as printed by ``list`` and ``showmediuminfo``.
RE_COLON_LINE = re.compile(r'([^:]+):\s+(.*)')
# ``key="value"`` as printed by ``showvminfo --machinereadable``.
RE_KEY_EQ_VAL = re.compile(r'([^=]+)=\s*(.*)')

RE_INTEGER = re.compile(r'[+-]?\d+')

Value = Union[str, int]


def try_parse_key_values(
    text: str,
    pattern: re.Pattern,
    callback: Callable[[str, str, bool], None],
) -> None:
    """Feed every line of ``text`` to ``callback(key, val, ok)``.

    ``ok`` is True for a line matching ``pattern``. A blank line is reported
    as ``('', '', False)`` and any other line as ``('', line, False)``.
    """
    for line in text.splitlines():
        if not line.strip():
            callback('', '', False)
            continue
        m = pattern.search(line)
        if m is None:
            callback('', line, False)
            continue
        callback(m.group(1), m.group(2), True)


def parse_key_values(
    text: str,
    pattern: re.Pattern,
    callback: Callable[[str, str], None],
) -> None:
    """Like :func:`try_parse_key_values` but only reports matched pairs."""

    def _matched_only(key: str, val: str, ok: bool) -> None:
        if ok:
            callback(key, val)

    try_parse_key_values(text, pattern, _matched_only)


def unquote(text: str) -> str:
    """Undo shell style quoting of a single token.

    Raises ValueError when ``text`` is not exactly one token.
    """
    parts = shlex.split(text)
    if len(parts) != 1:
        raise ValueError(f'expected one quoted token, got {len(parts)}')
    return parts[0]


def decode_machine_readable(text: str) -> Mapping[str, Value]:
    """Decode a ``--machinereadable`` dump into an immutable mapping.

    Quoted values are kept as strings and unquoted base-10 integers become
    ints. Anything else is dropped with a debug message.

    Example:
        >>> m = decode_machine_readable('cpus=1\\nname="vm 1"\\nfoo=bar\\n')
        >>> dict(m)
        {'cpus': 1, 'name': 'vm 1'}
    """
    values: dict[str, Value] = {}

    def _on_pair(key: str, val: str) -> None:
        key = key.strip()
        if key.startswith('"'):
            try:
                key = unquote(key)
            except ValueError:
                log.debug('ignoring unparsable quoted key {!r}', key)
                return
        val = val.strip()
        if val.startswith('"'):
            try:
                values[key] = unquote(val)
            except ValueError as ex:
                log.debug('dropping value {!r} for key {}: {}', val, key, ex)
        elif RE_INTEGER.fullmatch(val):
            values[key] = int(val)
        else:
            log.debug('ignoring unquoted value {!r} for key {}', val, key)

    parse_key_values(text, RE_KEY_EQ_VAL, _on_pair)
    return MappingProxyType(values)
