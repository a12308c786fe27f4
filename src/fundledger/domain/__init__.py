"""Domain layer for fundledger application."""

_SERVICES = {
    "AccountService": "fundledger.domain.account",
    "ReferenceDataService": "fundledger.domain.reference",
    "JournalService": "fundledger.domain.journal",
    "BalanceService": "fundledger.domain.balance",
    "BudgetService": "fundledger.domain.budget",
    "ReportService": "fundledger.domain.reports",
}

__all__ = list(_SERVICES)


# Import services lazily so that entities and errors can be imported by the
# database layer without pulling the services (which import the database).
def __getattr__(name):
    if name in _SERVICES:
        import importlib

        return getattr(importlib.import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
