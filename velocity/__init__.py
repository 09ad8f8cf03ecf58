"""Client velocity: per-client hour buckets, budgets and velocity from billing feeds."""

from .analysis import (
    AggregationResult,
    RunReport,
    build_portfolio,
    clients_frame,
    round1,
    run_pipeline,
    summarize_portfolio,
)
from .budget import build_budget_index, budget_figures, resolve_latest
from .config import Settings, configure_logging
from .names import UNKNOWN_CLIENT, normalize_client_name
from .periods import bucket_hours, monthly_periods, validate_periods, weekly_periods
from .records import (
    ClientAggregate,
    PeriodDescriptor,
    PortfolioAggregate,
    ProjectDetail,
    RawBudgetEntry,
    RawTimeEntry,
)

__version__ = "0.1.0"
