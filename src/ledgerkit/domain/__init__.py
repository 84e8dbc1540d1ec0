"""Domain layer for ledgerkit application."""

# Services import the database layer, which imports domain.entities;
# resolve them lazily so importing entities never pulls in the services.
_SERVICES = {
    "AccountService": "ledgerkit.domain.account",
    "BalanceService": "ledgerkit.domain.balance",
    "JournalService": "ledgerkit.domain.journal",
    "ReconciliationMatcher": "ledgerkit.domain.reconciliation",
    "match_transactions": "ledgerkit.domain.reconciliation",
    "ReconciliationWorkflow": "ledgerkit.domain.workflow",
    "load_statement": "ledgerkit.domain.statement",
    "statement_from_dicts": "ledgerkit.domain.statement",
}

__all__ = list(_SERVICES)


def __getattr__(name):
    if name in _SERVICES:
        from importlib import import_module

        return getattr(import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
