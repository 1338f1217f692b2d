"""
Execution identity — who the current call stack is acting as.

Queue messages are not sent by an authenticated user, so the trigger
pipeline runs as the SYSTEM identity. ``run_as`` scopes the switch to a
``with`` block and always restores the previous identity.
"""
from __future__ import annotations

import contextvars
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator


@dataclass(frozen=True)
class Identity:
    name: str
    is_system: bool = False


SYSTEM = Identity(name="SYSTEM", is_system=True)
ANONYMOUS = Identity(name="anonymous")

_current: contextvars.ContextVar[Identity] = contextvars.ContextVar(
    "execution_identity", default=ANONYMOUS
)


def current_identity() -> Identity:
    return _current.get()


@contextmanager
def run_as(identity: Identity) -> Iterator[Identity]:
    token = _current.set(identity)
    try:
        yield identity
    finally:
        _current.reset(token)
