"""
Module: ledger_kernel.db.types
Responsibility: Annotated type aliases for ledger column types.  Centralizes
    the storage representation of amounts and quantities so that every model
    stores them identically.
Architecture position: Kernel > DB.  May be imported by models/ and selectors/.

Invariants enforced:
    - Amounts are stored as BigInteger cents, never as floating or decimal
      columns.  Conversion to the 2-place decimal form happens in Money.
    - Quantities are stored as their canonical text (e.g. "1600-60") next to
      the unit kind, preserving the existing stored-string contract.
"""

from typing import Annotated

from sqlalchemy import BigInteger, String

# Money in integer cents
Cents = Annotated[int, BigInteger]

# Canonical quantity string ("1600-60", "500.1", "12.5")
QuantityText = Annotated[str, String(40)]

# Unit kind value ("kg-grams", "bag", ...)
UnitKindCode = Annotated[str, String(20)]

# Three-letter currency code
CurrencyCode = Annotated[str, String(3)]

# Short identifier strings
ShortCode = Annotated[str, String(64)]

# Long text for descriptions
LongText = Annotated[str, String(1000)]
