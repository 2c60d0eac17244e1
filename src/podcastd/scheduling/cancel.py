"""Hierarchical cancellation scopes.

A scope is a node in a tree of cancellation flags. Cancelling a node marks
it and every descendant; siblings and ancestors are untouched. The runtime
owns one root scope for the life of the process and hands it to each
Worker, which derives a fresh child per tick-loop generation.
"""

from __future__ import annotations

import asyncio


class CancelScope:
    """A cancellation flag with a parent and children."""

    def __init__(self, parent: CancelScope | None = None, name: str | None = None):
        self._parent = parent
        self._name = name
        self._children: list[CancelScope] = []
        self._cancelled = False
        self._event = asyncio.Event()
        if parent is not None and parent.cancelled:
            self._mark()

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "active"
        return f"CancelScope(name={self._name!r}, {state})"

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def parent(self) -> CancelScope | None:
        return self._parent

    @property
    def children(self) -> tuple[CancelScope, ...]:
        return tuple(self._children)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def child(self, name: str | None = None) -> CancelScope:
        """Derive a child scope.

        The child starts active unless this scope is already cancelled;
        cancelled siblings have no effect on it.
        """
        scope = CancelScope(self, name)
        if not scope.cancelled:
            self._children.append(scope)
        return scope

    def cancel(self) -> None:
        """Cancel this scope and all descendants. Idempotent."""
        if self._cancelled:
            return
        self._mark()
        if self._parent is not None and self in self._parent._children:
            self._parent._children.remove(self)

    async def wait(self) -> None:
        """Block until this scope is cancelled."""
        await self._event.wait()

    def _mark(self) -> None:
        self._cancelled = True
        self._event.set()
        children, self._children = self._children, []
        for child in children:
            child._mark()
