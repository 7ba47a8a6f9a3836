"""Project-specific exception types and VBoxManage failure classification.

VBoxManage reports the kind of a failure only through human readable text.
All substrings that are recognised live in :data:`ERROR_PATTERNS`; changing
one of them changes how callers see a failure.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional, Sequence

from .util import CmdResult


class VBMError(RuntimeError):
    """Base error for domain-level vbm failures."""


class VBoxError(VBMError):
    """A VBoxManage invocation failed."""

    def __init__(
        self,
        message: str,
        cmd: Optional[Sequence[str]] = None,
        result: Optional[CmdResult] = None,
    ):
        self.cmd = list(cmd) if cmd is not None else None
        self.result = result
        super().__init__(message)


class NotFoundError(VBoxError):
    """The referenced hypervisor object does not exist."""


class DiskNotFoundError(NotFoundError):
    """The referenced medium is not known to the hypervisor."""


class MachineNotFoundError(NotFoundError):
    """The VM could not be read back from the hypervisor."""


class CommandTimeoutError(VBoxError):
    """VBoxManage did not finish within the configured deadline."""


class AlreadyExistsError(VBoxError):
    """The object being created is already present."""

    @classmethod
    def for_item(cls, item: str, *hints: str) -> 'AlreadyExistsError':
        msg = f'{item} already exists.'
        if hints:
            msg += '\n'.join(['', 'Try the following:', *hints])
        return cls(msg)


class AlreadyAttachedError(VBoxError):
    """The medium is already attached to a controller slot."""


class DecodeError(VBMError):
    """Hypervisor output lacks a field required to build a record."""


@dataclass(frozen=True)
class ValidationError:
    path: str
    cause: Exception

    def __str__(self) -> str:
        return f'{self.path}: {self.cause}'


class ValidationErrors(VBMError):
    """Every problem found in one defaulting pass."""

    def __init__(self, errors: Optional[list[ValidationError]] = None):
        self.errors: list[ValidationError] = list(errors or [])
        super().__init__()

    def add(self, path: str, cause: Exception | str) -> None:
        if isinstance(cause, str):
            cause = ValueError(cause)
        self.errors.append(ValidationError(path, cause))

    def extend(self, other: 'ValidationErrors') -> None:
        self.errors.extend(other.errors)

    def paths(self) -> list[str]:
        return [e.path for e in self.errors]

    def __len__(self) -> int:
        return len(self.errors)

    def __bool__(self) -> bool:
        return bool(self.errors)

    def __iter__(self) -> Iterator[ValidationError]:
        return iter(self.errors)

    def __str__(self) -> str:
        return '\n'.join(str(e) for e in self.errors)


class OperationError(VBMError):
    """A reconcile step failed; ``path`` names the declarative element."""

    def __init__(self, path: str, op: str, cause: BaseException):
        self.path = path
        self.op = op
        self.cause = cause
        super().__init__(f'{path}: {op} failed: {cause}')


# Order matters: the first matching substring wins.
ERROR_PATTERNS: list[tuple[str, type[VBoxError]]] = [
    ('VERR_FILE_NOT_FOUND', DiskNotFoundError),
    ('already exists', AlreadyExistsError),
    ('is already attached', AlreadyAttachedError),
    ('could not be found', NotFoundError),
    ('does not exist', NotFoundError),
    ('VBOX_E_OBJECT_NOT_FOUND', NotFoundError),
]


def classify_failure(cmd: Sequence[str], result: CmdResult) -> VBoxError:
    """Map a failed VBoxManage result to the most specific error type."""
    text = f'{result.stderr}\n{result.stdout}'
    message = result.stderr.strip() or result.stdout.strip()
    if not message:
        message = f'VBoxManage exited with code {result.code}'
    for needle, err_cls in ERROR_PATTERNS:
        if needle in text:
            return err_cls(message, cmd, result)
    return VBoxError(message, cmd, result)
