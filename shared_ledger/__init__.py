"""
Shared Ledger - Source Package

A household ledger for two co-owners: log income and expenses, track
category budgets, and work out who owes whom for shared spending.

DESIGN PRINCIPLES:
1. The engine is a pure function of an explicit snapshot
2. Fail visibly: bad records are reported, never silently summed
3. Settlement debt is cumulative across all time
4. Every change to the ledger is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Shared Ledger Team"
