"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Quantity strings and ledger amounts arrive from forms, imports and stored
rows. When one of them is malformed the caller has to know exactly what went
wrong, so every error here:
  1. Has its own class (catch by type, not by message)
  2. Carries a CODE class attribute (machine-readable, API-safe)
  3. Stores its context as attributes (not just a message string)

Malformed input is NEVER coerced to zero. A quantity that cannot be parsed
raises; it does not silently become "0kg".

Example - WRONG way to handle errors:
    try:
        engine.parse(text, UnitKind.KG_GRAMS)
    except Exception as e:
        if "grams" in str(e):  # FRAGILE - message might change
            ...

Example - RIGHT way:
    try:
        engine.parse(text, UnitKind.KG_GRAMS)
    except QuantityOutOfRangeError as e:
        form_error(field="quantity", value=e.value, code=e.code)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from LedgerKernelError:

    LedgerKernelError (base)
    |
    +-- QuantityError
    |   +-- QuantityParseError
    |   |   +-- QuantityOutOfRangeError
    |   |   +-- QuantityNotNumericError
    |   |   +-- NegativeQuantityError
    |   +-- UnitKindMismatchError
    |
    +-- ValidationError
    |   +-- QuantityValidationError
    |   +-- TransactionValidationError
    |
    +-- CurrencyError
    |   +-- CurrencyMismatchError
    |
    +-- LedgerError
    |   +-- DuplicateEntryError
    |   +-- TransactionNotFoundError
    |   +-- ImmutableEntryError
    |
    +-- ConcurrencyError
        +-- ConcurrentBalanceConflictError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|---------------------------------------
Quantity        | QUANTITY_OUT_OF_RANGE         | Grams outside 0-999
                | QUANTITY_NOT_NUMERIC          | Empty or malformed quantity string
                | QUANTITY_NEGATIVE             | Leading minus sign on a quantity
                | UNIT_KIND_MISMATCH            | Arithmetic across two unit kinds
----------------|-------------------------------|---------------------------------------
Validation      | QUANTITY_VALIDATION_FAILED    | validate() rejected a quantity string
                | TRANSACTION_VALIDATION_FAILED | Transaction rejected before persistence
----------------|-------------------------------|---------------------------------------
Currency        | CURRENCY_MISMATCH             | Money arithmetic across currency codes
----------------|-------------------------------|---------------------------------------
Ledger          | DUPLICATE_ENTRY               | Same transaction id seen twice
                | TRANSACTION_NOT_FOUND         | Unknown transaction id
                | IMMUTABLE_ENTRY               | Edit/delete of a system entry
----------------|-------------------------------|---------------------------------------
Concurrency     | CONCURRENT_BALANCE_CONFLICT   | Daily balance write lost a race

===============================================================================
HANDLING PATTERNS
===============================================================================

1. CONCURRENCY ERRORS ARE RETRYABLE:

    try:
        carrier.carry(day)
    except ConcurrentBalanceConflictError:
        session.rollback()
        carrier.carry(day)  # re-read and recompute

2. DUPLICATES ARE SURFACED, NEVER DEDUPLICATED:

    except DuplicateEntryError as e:
        alert(f"transaction {e.transaction_id} recorded twice")

===============================================================================
"""


class LedgerKernelError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_KERNEL_ERROR"


# Quantity-related exceptions


class QuantityError(LedgerKernelError):
    """Base exception for unit-of-measure errors."""

    code: str = "QUANTITY_ERROR"


class QuantityParseError(QuantityError):
    """A quantity string could not be parsed for the requested unit kind."""

    code: str = "QUANTITY_PARSE_ERROR"

    def __init__(self, value: str, unit_kind: str, reason: str):
        self.value = value
        self.unit_kind = unit_kind
        self.reason = reason
        super().__init__(f"Cannot parse {value!r} as {unit_kind}: {reason}")


class QuantityOutOfRangeError(QuantityParseError):
    """Grams component outside the 0-999 range."""

    code: str = "QUANTITY_OUT_OF_RANGE"


class QuantityNotNumericError(QuantityParseError):
    """Quantity string is empty or not a number in the expected format."""

    code: str = "QUANTITY_NOT_NUMERIC"


class NegativeQuantityError(QuantityParseError):
    """Quantities are never negative."""

    code: str = "QUANTITY_NEGATIVE"


class UnitKindMismatchError(QuantityError):
    """Arithmetic or comparison between quantities of different unit kinds."""

    code: str = "UNIT_KIND_MISMATCH"

    def __init__(self, left_kind: str, right_kind: str):
        self.left_kind = left_kind
        self.right_kind = right_kind
        super().__init__(
            f"Cannot combine quantities of kind {left_kind} and {right_kind}"
        )


# Validation exceptions


class ValidationError(LedgerKernelError):
    """Input rejected before persistence."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class QuantityValidationError(ValidationError):
    """A quantity string failed validation."""

    code: str = "QUANTITY_VALIDATION_FAILED"


class TransactionValidationError(ValidationError):
    """A ledger transaction failed validation."""

    code: str = "TRANSACTION_VALIDATION_FAILED"

    def __init__(self, transaction_id: str, field: str, reason: str):
        self.transaction_id = transaction_id
        super().__init__(field, f"{reason} (transaction {transaction_id})")


# Currency exceptions


class CurrencyError(LedgerKernelError):
    """Base exception for currency errors."""

    code: str = "CURRENCY_ERROR"


class CurrencyMismatchError(CurrencyError):
    """Money arithmetic mixed two currency codes."""

    code: str = "CURRENCY_MISMATCH"

    def __init__(self, left: str, right: str):
        self.left = left
        self.right = right
        super().__init__(f"Cannot combine Money in {left} with Money in {right}")


# Ledger exceptions


class LedgerError(LedgerKernelError):
    """Base exception for ledger statement and transaction store errors."""

    code: str = "LEDGER_ERROR"


class DuplicateEntryError(LedgerError):
    """
    The same transaction id appeared twice.

    Raised by the projector during accumulation and by the transaction store
    on insert. Duplicates point at an upstream defect and are never dropped
    silently.
    """

    code: str = "DUPLICATE_ENTRY"

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Duplicate ledger entry: {transaction_id}")


class TransactionNotFoundError(LedgerError):
    """Transaction with given id was not found."""

    code: str = "TRANSACTION_NOT_FOUND"

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction not found: {transaction_id}")


class ImmutableEntryError(LedgerError):
    """System-derived entries cannot be edited or deleted."""

    code: str = "IMMUTABLE_ENTRY"

    def __init__(self, transaction_id: str, operation: str):
        self.transaction_id = transaction_id
        self.operation = operation
        super().__init__(
            f"Cannot {operation} system entry {transaction_id}: "
            "only manual entries are mutable"
        )


# Concurrency exceptions


class ConcurrencyError(LedgerKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class ConcurrentBalanceConflictError(ConcurrencyError):
    """
    Optimistic write to a daily balance lost a race.

    Retryable: re-read the chain and recompute.
    """

    code: str = "CONCURRENT_BALANCE_CONFLICT"

    def __init__(self, ledger_date: str, expected_version: int | None = None):
        self.ledger_date = ledger_date
        self.expected_version = expected_version
        super().__init__(
            f"Daily balance for {ledger_date} was modified by another "
            "transaction; re-read and retry"
        )
