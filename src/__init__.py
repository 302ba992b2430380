"""
BillSplit - Source Package

A local-first bill splitting assistant for small groups of friends,
flatmates and travel companions.

DESIGN PRINCIPLES:
1. Balances are always recomputed from the expense history
2. Fail early, fail visibly
3. No silent corrections
4. Every user action is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "BillSplit Team"
