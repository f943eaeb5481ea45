"""Read-only access to a taxpayer's income and expense events.

LedgerSource is the data input of the tax calculation. It returns every
event attributed to a period; deciding which income is recognized is left to
the aggregators.
"""

from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List

from . import records as sdk_records
from .schemas import ExpenseEvent, IncomeEvent, is_recognized


class LedgerSource(ABC):
    """Income and expense events per taxpayer and month."""

    @abstractmethod
    def income_events(self, taxpayer_id: str, year: int, month: int) -> List[IncomeEvent]:
        """Invoices attributed to the period, recognized or not."""

    @abstractmethod
    def expense_events(self, taxpayer_id: str, year: int, month: int) -> List[ExpenseEvent]:
        """Expenses dated within the period."""


class InMemoryLedger(LedgerSource):
    """Events held in memory."""

    def __init__(self):
        self._income: Dict[str, List[IncomeEvent]] = defaultdict(list)
        self._expenses: Dict[str, List[ExpenseEvent]] = defaultdict(list)

    def add_income(self, taxpayer_id: str, *events: IncomeEvent) -> "InMemoryLedger":
        self._income[taxpayer_id].extend(events)
        return self

    def add_expenses(self, taxpayer_id: str, *events: ExpenseEvent) -> "InMemoryLedger":
        self._expenses[taxpayer_id].extend(events)
        return self

    def income_events(self, taxpayer_id: str, year: int, month: int) -> List[IncomeEvent]:
        return [e for e in self._income[taxpayer_id] if e.period == (year, month)]

    def expense_events(self, taxpayer_id: str, year: int, month: int) -> List[ExpenseEvent]:
        return [
            e for e in self._expenses[taxpayer_id]
            if (e.expense_date.year, e.expense_date.month) == (year, month)
        ]


def invoice_to_event(record: dict) -> IncomeEvent:
    """Build an IncomeEvent from a stored invoice record."""
    data = record["data"]
    return IncomeEvent(
        id=record["id"],
        amount=float(data["amount"]),
        currency=data.get("currency", "PLN"),
        transaction_date=date.fromisoformat(data["issue_date"]),
        recognized=is_recognized(data.get("status", ""), data.get("archived", False)),
        label=data.get("label") or data.get("client"),
        period_year=data.get("period_year"),
        period_month=data.get("period_month"),
    )


def expense_to_event(record: dict) -> ExpenseEvent:
    """Build an ExpenseEvent from a stored expense record."""
    data = record["data"]
    return ExpenseEvent(
        id=record["id"],
        net_amount=float(data["net_amount"]),
        deductible_percent=float(data.get("deductible_percent", 100)),
        is_deductible=bool(data.get("is_deductible", True)),
        local_amount=float(data["amount_pln"]),
        expense_date=date.fromisoformat(data["expense_date"]),
        label=data.get("name"),
    )


class RecordsLedger(LedgerSource):
    """Events read from the local records store (records.py)."""

    def _records(self, taxpayer_id: str, year: int, month: int, record_type: str) -> Iterable[dict]:
        return sdk_records.list_records(taxpayer_id, year=year, month=month, type_filter=record_type)

    def income_events(self, taxpayer_id: str, year: int, month: int) -> List[IncomeEvent]:
        return [invoice_to_event(r) for r in self._records(taxpayer_id, year, month, "invoice")]

    def expense_events(self, taxpayer_id: str, year: int, month: int) -> List[ExpenseEvent]:
        return [expense_to_event(r) for r in self._records(taxpayer_id, year, month, "expense")]
