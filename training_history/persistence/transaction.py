"""All-or-nothing units of work against the relational store."""

import logging
from typing import Awaitable, Callable, TypeVar

import aiosqlite

from training_history.errors import TransactionError

logger = logging.getLogger(__name__)

T = TypeVar("T")

UnitOfWork = Callable[[aiosqlite.Connection], Awaitable[T]]


async def run_atomic(conn: aiosqlite.Connection, unit_of_work: UnitOfWork,
                     *, label: str = "unit of work") -> T:
    """Run *unit_of_work* inside BEGIN/COMMIT, rolling back on any failure.

    Whatever statement fails, the caller sees a single ``TransactionError``
    chained to the original exception. A failed rollback is logged and does
    not replace that error. Cancellation also rolls back, and the
    ``CancelledError`` is re-raised as is.
    """
    try:
        await conn.execute("BEGIN IMMEDIATE")
    except Exception as e:
        raise TransactionError(f"Could not begin {label}: {e}", original=e) from e

    try:
        result = await unit_of_work(conn)
        await conn.execute("COMMIT")
    except Exception as e:
        await _rollback(conn, label)
        raise TransactionError(f"{label} failed: {e}", original=e) from e
    except BaseException:
        await _rollback(conn, label)
        raise
    return result


async def _rollback(conn: aiosqlite.Connection, label: str) -> None:
    try:
        await conn.execute("ROLLBACK")
    except Exception:
        logger.exception("Rollback failed for %s", label)


__all__ = ["UnitOfWork", "run_atomic"]
