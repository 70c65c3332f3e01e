"""Domain layer for profitrack application."""

from importlib import import_module

_SERVICES = {
    "AllocationLedger": "profitrack.domain.allocation",
    "CostResolver": "profitrack.domain.cost_resolver",
    "ProfitabilityCalculator": "profitrack.domain.profitability",
    "TrendAnalyzer": "profitrack.domain.trends",
    "ReconciliationService": "profitrack.domain.reconciliation",
    "JobService": "profitrack.domain.job",
    "TransactionService": "profitrack.domain.transaction",
    "TemplateService": "profitrack.domain.template",
    "ExternalDataService": "profitrack.domain.external",
    "ReportService": "profitrack.domain.reports",
}

__all__ = list(_SERVICES)


# Services import the database layer, which imports domain entities, so they
# are loaded on first access rather than with the package.
def __getattr__(name):
    if name in _SERVICES:
        return getattr(import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
