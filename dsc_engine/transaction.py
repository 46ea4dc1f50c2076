"""Unit of work — all-or-nothing execution of composite engine operations.

Every tentative change (ledger write, collaborator call) registers an undo
callable. If the operation raises, the undo log is replayed newest-first and
the original exception propagates; on success the log is discarded.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator

logger = logging.getLogger(__name__)

UndoFn = Callable[[], None]


class UnitOfWork:
    """Undo log shared by the ledger and the engine.

    ``begin()`` may be nested; inner blocks join the outermost one, which
    alone decides between commit and rollback.
    """

    def __init__(self) -> None:
        self._undo: list[tuple[str, UndoFn]] = []
        self._depth = 0

    @property
    def active(self) -> bool:
        return self._depth > 0

    @property
    def pending(self) -> int:
        return len(self._undo)

    def record(self, undo: UndoFn, label: str = "") -> None:
        """Register ``undo``; ignored when no unit is open."""
        if self._depth:
            self._undo.append((label, undo))

    @contextmanager
    def begin(self) -> Iterator[UnitOfWork]:
        self._depth += 1
        try:
            yield self
        except BaseException:
            self._depth -= 1
            if not self._depth:
                self._rollback()
            raise
        self._depth -= 1
        if not self._depth:
            self._undo.clear()

    def _rollback(self) -> None:
        entries, self._undo = self._undo, []
        logger.debug("Rolling back %d tentative change(s)", len(entries))
        for label, undo in reversed(entries):
            try:
                undo()
            except Exception:
                logger.exception("Undo step %r failed during rollback", label)
