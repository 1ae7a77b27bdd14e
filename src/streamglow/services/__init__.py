"""External collaborators"""

from .ledger import PRIZE_SLOTS, PrizeLedger

__all__ = ["PRIZE_SLOTS", "PrizeLedger"]
