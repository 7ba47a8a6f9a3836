"""Shared helpers for subprocess execution, paths, and command formatting."""

from __future__ import annotations

import os
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Sequence

from loguru import logger

log = logger


@dataclass(frozen=True)
class CmdResult:
    code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.code == 0


class CommandRunner(Protocol):
    """Anything that can execute a VBoxManage argument list."""

    def run(self, args: Sequence[str]) -> CmdResult: ...


def shell_join(cmd: Sequence[str]) -> str:
    return ' '.join(shlex.quote(c) for c in cmd)


def run_cmd(
    cmd: Sequence[str],
    *,
    capture: bool = True,
    text: bool = True,
    input_text: Optional[str] = None,
    env: Optional[dict[str, str]] = None,
    timeout: Optional[float] = None,
) -> CmdResult:
    log.opt(depth=1).debug('RUN: {}', shell_join(cmd))
    p = subprocess.run(
        list(cmd),
        input=input_text,
        capture_output=capture,
        text=text,
        env=env,
        timeout=timeout,
    )
    res = CmdResult(p.returncode, p.stdout or '', p.stderr or '')
    if p.returncode == 0:
        log.opt(depth=1).debug('Command ok code=0 cmd={}', shell_join(cmd))
    else:
        log.opt(depth=1).debug(
            'Command failed code={} cmd={} stderr={}',
            p.returncode,
            shell_join(cmd),
            res.stderr.strip(),
        )
    return res


@dataclass
class SubprocessRunner:
    """Run VBoxManage as a local process."""

    executable: str = 'VBoxManage'
    timeout_s: float = 0

    def run(self, args: Sequence[str]) -> CmdResult:
        # Imported here: errors imports CmdResult from this module.
        from .errors import CommandTimeoutError, VBMError

        try:
            return run_cmd(
                [self.executable, *args],
                timeout=self.timeout_s or None,
            )
        except FileNotFoundError as ex:
            raise VBMError(
                f'unable to find {self.executable} command in path'
            ) from ex
        except subprocess.TimeoutExpired as ex:
            raise CommandTimeoutError(
                f'{shell_join(args)} timed out after {self.timeout_s}s',
                cmd=list(args),
            ) from ex


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def expand(path: str) -> str:
    return os.path.expandvars(os.path.expanduser(path))
