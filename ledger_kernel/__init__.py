"""
Ledger Kernel

Domain values and persistence for the steel trading ledger:
- Mixed-radix quantities (kg + grams, decimal kg, counted units)
- Fixed-point Money in integer cents
- Ledger transactions, day balances and invalidation notices
- Typed exceptions and structured logging
"""

__version__ = "0.1.0"
