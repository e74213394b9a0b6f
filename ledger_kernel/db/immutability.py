"""
ORM-Level Immutability Enforcement for ledger transactions.

===============================================================================
WHY THIS EXISTS
===============================================================================

Invoices, payments and adjustments are derived from upstream business
documents. Their ledger rows must never be edited or deleted in place: a
mistake is corrected by recording a new entry. Only manual cash entries
(manual income / manual outgoing) may be edited or removed.

TransactionService already refuses these operations before touching the
session. This module is the second guard: it catches modifications that
reach the ORM through any other code path.

===============================================================================
HOW IT WORKS
===============================================================================

    session.flush()
         |
         v
    [before_update event] --> _check_transaction_update() --> ImmutableEntryError
         |
         v
    [before_delete event] --> _check_transaction_delete() --> ImmutableEntryError
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity                  | When Immutable              | Allowed changes
------------------------|-----------------------------|-----------------------
LedgerTransactionRecord | is_manual is False          | updated_at only
LedgerTransactionRecord | always                      | is_manual never flips

===============================================================================
USAGE
===============================================================================

Registered by create_tables(); may also be called directly at startup:

    from ledger_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from ledger_kernel.exceptions import ImmutableEntryError
from ledger_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_FIELDS = frozenset({"updated_at"})


def _was_manual(target) -> bool:
    history = get_history(target, "is_manual")
    if history.deleted:
        return bool(history.deleted[0])
    return bool(target.is_manual)


def _check_transaction_update(mapper, connection, target):
    """
    Prevent updates to system-derived ledger transactions.

    Manual rows may change any financial field, but never their manual flag.
    """
    from ledger_kernel.models.ledger_transaction import LedgerTransactionRecord

    if not isinstance(target, LedgerTransactionRecord):
        return

    manual_history = get_history(target, "is_manual")
    if manual_history.has_changes() and manual_history.deleted:
        logger.error(
            "immutability_violation_blocked",
            extra={
                "entity_type": "LedgerTransaction",
                "entity_id": target.transaction_id,
                "operation": "UPDATE",
                "field": "is_manual",
            },
        )
        raise ImmutableEntryError(target.transaction_id, "reclassify")

    if _was_manual(target):
        return

    insp = inspect(target)
    for attr in insp.attrs:
        if attr.key in _AUDIT_FIELDS:
            continue
        if attr.history.has_changes():
            logger.error(
                "immutability_violation_blocked",
                extra={
                    "entity_type": "LedgerTransaction",
                    "entity_id": target.transaction_id,
                    "operation": "UPDATE",
                    "field": attr.key,
                },
            )
            raise ImmutableEntryError(target.transaction_id, "edit")


def _check_transaction_delete(mapper, connection, target):
    """Prevent deletion of system-derived ledger transactions."""
    from ledger_kernel.models.ledger_transaction import LedgerTransactionRecord

    if not isinstance(target, LedgerTransactionRecord):
        return
    if _was_manual(target):
        return

    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "LedgerTransaction",
            "entity_id": target.transaction_id,
            "operation": "DELETE",
        },
    )
    raise ImmutableEntryError(target.transaction_id, "delete")


def register_immutability_listeners():
    """
    Register immutability enforcement event listeners.

    Idempotent: registering twice does not install duplicate listeners.
    """
    from ledger_kernel.models.ledger_transaction import LedgerTransactionRecord

    for event_name, listener_fn in _LISTENERS:
        if not event.contains(LedgerTransactionRecord, event_name, listener_fn):
            event.listen(LedgerTransactionRecord, event_name, listener_fn)

    logger.info("immutability_listeners_registered")


def _safe_remove_listener(target, event_name, listener_fn):
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    from ledger_kernel.models.ledger_transaction import LedgerTransactionRecord

    for event_name, listener_fn in _LISTENERS:
        _safe_remove_listener(LedgerTransactionRecord, event_name, listener_fn)


_LISTENERS = (
    ("before_update", _check_transaction_update),
    ("before_delete", _check_transaction_delete),
)
