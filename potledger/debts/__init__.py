"""Per-expense debt ledger package."""

from potledger.debts.manager import DebtLedgerManager

__all__ = ["DebtLedgerManager"]
