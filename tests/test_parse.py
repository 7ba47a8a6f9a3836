from __future__ import annotations

import pytest

from vbm.parse import (
    RE_COLON_LINE,
    RE_KEY_EQ_VAL,
    decode_machine_readable,
    parse_key_values,
    try_parse_key_values,
    unquote,
)


def test_try_parse_reports_blank_and_unmatched_lines() -> None:
    text = 'Name:   vboxnet0\n\nnot a pair\nStatus:  Up\n'
    events = []
    try_parse_key_values(
        text, RE_COLON_LINE, lambda k, v, ok: events.append((k, v, ok))
    )
    assert events == [
        ('Name', 'vboxnet0', True),
        ('', '', False),
        ('', 'not a pair', False),
        ('Status', 'Up', True),
    ]


def test_parse_key_values_keeps_colons_in_value() -> None:
    pairs = {}
    parse_key_values(
        'HardwareAddress: 0a:00:27:00:00:00\n',
        RE_COLON_LINE,
        lambda k, v: pairs.__setitem__(k, v),
    )
    assert pairs == {'HardwareAddress': '0a:00:27:00:00:00'}


def test_parse_key_values_eq_grammar() -> None:
    pairs = []
    parse_key_values(
        'cpus=1\nmemory=128\n', RE_KEY_EQ_VAL, lambda k, v: pairs.append((k, v))
    )
    assert pairs == [('cpus', '1'), ('memory', '128')]


def test_unquote() -> None:
    assert unquote('"vm 1"') == 'vm 1'
    assert unquote('""') == ''
    with pytest.raises(ValueError):
        unquote('"a" "b"')


def test_decode_machine_readable_types() -> None:
    text = '\n'.join(
        [
            'name="testvm1"',
            'cpus=1',
            'memory=128',
            'storagecontrollerportcount0="30"',
            '"SATA1-0-0"="/VirtualBox VMs/tess/testvm1/disk1.vdi"',
            'teleporteraddress=""',
            'unquoted=word',
            'broken="unterminated',
        ]
    )
    values = decode_machine_readable(text)
    assert values['name'] == 'testvm1'
    assert values['cpus'] == 1
    assert values['memory'] == 128
    # Quoted numbers stay strings.
    assert values['storagecontrollerportcount0'] == '30'
    assert values['SATA1-0-0'] == '/VirtualBox VMs/tess/testvm1/disk1.vdi'
    assert values['teleporteraddress'] == ''
    assert 'unquoted' not in values
    assert 'broken' not in values


def test_decode_machine_readable_is_read_only() -> None:
    values = decode_machine_readable('cpus=2\n')
    with pytest.raises(TypeError):
        values['cpus'] = 3
