"""
Run context: a run id carried through contextvars.

Worker threads do not inherit contextvars, so pool submissions go through
submit_with_context() to keep the run id on every log line.
"""

import contextvars
import uuid
from collections.abc import Callable
from concurrent.futures import Executor, Future
from typing import Optional

_run_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "run_id", default=None
)
_org_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "organization_id", default=None
)


def get_run_id() -> Optional[str]:
    return _run_id_var.get()


def get_organization_id() -> Optional[str]:
    return _org_id_var.get()


def generate_run_id() -> str:
    return f"run-{uuid.uuid4().hex[:16]}"


class RunContext:
    """
    Scope a run id (and optionally an organization) for everything logged
    inside the block.

    Usage:
        with RunContext(organization_id="org-1") as ctx:
            logger.info("Detection started")   # carries ctx.run_id
    """

    def __init__(self, run_id: Optional[str] = None, organization_id: Optional[str] = None):
        self.run_id = run_id or generate_run_id()
        self.organization_id = organization_id
        self._tokens: list[tuple[contextvars.ContextVar, contextvars.Token]] = []

    def __enter__(self) -> "RunContext":
        self._tokens.append((_run_id_var, _run_id_var.set(self.run_id)))
        if self.organization_id is not None:
            self._tokens.append((_org_id_var, _org_id_var.set(self.organization_id)))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)


def submit_with_context(executor: Executor, fn: Callable, *args, **kwargs) -> Future:
    """Submit fn to executor running inside a copy of the caller's context."""
    ctx = contextvars.copy_context()
    return executor.submit(ctx.run, fn, *args, **kwargs)
