"""Typer subclass that runs async commands on a fresh event loop."""

import asyncio
import inspect
from functools import wraps
from typing import Any, Callable

import typer
from typer.core import TyperCommand, TyperGroup


def run_sync(f: Callable) -> Callable:
    """Wrap a coroutine function so click can call it synchronously."""
    if not inspect.iscoroutinefunction(f):
        return f

    @wraps(f)
    def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
        return asyncio.run(f(*args, **kwargs))

    return sync_wrapper


class AsyncTyperGroup(TyperGroup):
    """Group whose callback may be a coroutine function."""

    def invoke(self, ctx: Any) -> Any:
        if inspect.iscoroutinefunction(self.callback):
            self.callback = run_sync(self.callback)
        return super().invoke(ctx)


class ATyper(typer.Typer):
    """Typer with async command support."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("cls", AsyncTyperGroup)
        super().__init__(*args, **kwargs)

    def command(  # type: ignore[override]
        self,
        name: str | None = None,
        *,
        cls: type[TyperCommand] | None = None,
        **kwargs: Any,
    ) -> Any:
        """Register a command, running coroutine functions with asyncio.run."""

        def decorator(f: Callable) -> Callable:
            typer.Typer.command(self, name, cls=cls, **kwargs)(run_sync(f))
            return f

        return decorator
