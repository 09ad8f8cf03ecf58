"""
Client Velocity: Hours per Client per Period
============================================

This module turns the two billing feeds into one record per real client.

Core definitions
----------------
1) CANONICAL CLIENT = normalised client name (see names.py). Time entries and
   budget records merge on it.

2) PERIOD HOURS = hours logged per period (week or month), oldest period first.
   - Every client has exactly one bucket per period in the run.

3) VELOCITY = Total Hours Used / Period Count, rounded half away from zero to
   one decimal.

4) PORTFOLIO VELOCITY = sum of the (already rounded) client velocities,
   rounded again. This is NOT total hours / period count; small rounding
   drift against that figure is expected.

5) HOURS PACK / REMAINING = budget figures of the client's latest project
   (see budget.py). Zero when the client has no budget record.

Outcome
-------
A run with no time entries at all is reported as status "no_data" rather than
raised, so a renderer can show an empty state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .budget import NO_BUDGET, BudgetFigures, budget_figures, build_budget_index, resolve_latest
from .config import DEFAULT_MIN_REQUEST_INTERVAL
from .enrichment import DetailEnricher, FetchDetail
from .names import entry_display_name, normalize_client_name
from .periods import bucket_hours, validate_periods
from .records import (
    ClientAggregate,
    PeriodDescriptor,
    PortfolioAggregate,
    ProjectDetail,
    RawBudgetEntry,
    RawTimeEntry,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIG
# =============================================================================

STATUS_OK = "ok"
STATUS_NO_DATA = "no_data"


# =============================================================================
# HELPERS
# =============================================================================

def round1(x) -> float:
    """Round half away from zero to one decimal place (3.125 -> 3.1, 0.25 -> 0.3)."""
    scaled = np.asarray(x, dtype="float64") * 10.0
    return float(np.sign(scaled) * np.floor(np.abs(scaled) + 0.5) / 10.0)


# =============================================================================
# VELOCITY
# =============================================================================

def client_velocity(total_hours_used: float, period_count: int) -> float:
    if period_count <= 0:
        return 0.0
    return round1(total_hours_used / period_count)


def summarize_portfolio(clients: Iterable[ClientAggregate]) -> PortfolioAggregate:
    """Sort clients by velocity (highest first, ties keep input order) and total the portfolio."""
    clients = list(clients)
    portfolio_velocity = round1(sum(c.avg_velocity for c in clients)) if clients else 0.0
    ranked = sorted(clients, key=lambda c: c.avg_velocity, reverse=True)
    return PortfolioAggregate(portfolio_velocity=portfolio_velocity, clients=tuple(ranked))


# =============================================================================
# LEDGER (one per run)
# =============================================================================

class ClientLedger:
    """
    Accumulates hours and budget figures per canonical client for a single run.
    finalize() freezes the result; the ledger refuses further writes after that.
    """

    def __init__(self, period_count: int):
        self.period_count = period_count
        self._hours: Dict[str, List[float]] = {}
        self._budgets: Dict[str, BudgetFigures] = {}
        self._finalized = False

    def __len__(self):
        return len(self._hours)

    def __contains__(self, name):
        return name in self._hours

    def _touch(self, name: str) -> List[float]:
        if self._finalized:
            raise RuntimeError("Ledger already finalized")
        if name not in self._hours:
            self._hours[name] = [0.0] * self.period_count
        return self._hours[name]

    def add_hours(self, name: str, period_hours: Sequence[float]) -> None:
        buckets = self._touch(name)
        for i, hours in enumerate(period_hours):
            buckets[i] += hours

    def set_budget(self, name: str, figures: BudgetFigures) -> None:
        self._touch(name)
        self._budgets[name] = figures

    def finalize(self) -> List[ClientAggregate]:
        if self._finalized:
            raise RuntimeError("Ledger already finalized")
        self._finalized = True

        out: List[ClientAggregate] = []
        for name, buckets in self._hours.items():
            total = float(sum(buckets))
            figures = self._budgets.get(name, NO_BUDGET)
            out.append(ClientAggregate(
                canonical_name=name,
                period_hours=tuple(buckets),
                total_hours_used=total,
                total_hours_pack=figures.total_hours_pack,
                total_hours_remaining=figures.total_hours_remaining,
                avg_velocity=client_velocity(total, self.period_count),
                latest_project=figures.latest_project,
            ))
        return out


# =============================================================================
# PIPELINE
# =============================================================================

@dataclass
class RunReport:
    time_entries: int = 0
    skipped_time_entries: int = 0
    budget_entries: int = 0
    clients: int = 0
    clients_with_budget: int = 0
    failed_detail_lookups: int = 0


@dataclass
class AggregationResult:
    status: str
    periods: Tuple[PeriodDescriptor, ...]
    portfolio: Optional[PortfolioAggregate] = None
    report: RunReport = field(default_factory=RunReport)
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def has_data(self) -> bool:
        return self.status == STATUS_OK

    def to_dict(self) -> Dict[str, object]:
        portfolio = self.portfolio.to_dict() if self.portfolio else {"portfolio_velocity": 0.0, "clients": []}
        return {
            "status": self.status,
            **portfolio,
            "periods": [p.to_dict() for p in self.periods],
            "generated_at": self.generated_at.isoformat(),
        }


def build_portfolio(
    periods: Sequence[PeriodDescriptor],
    time_entries: Iterable[RawTimeEntry],
    budget_entries: Iterable[RawBudgetEntry] = (),
    details: Optional[Mapping[int, Optional[ProjectDetail]]] = None,
) -> AggregationResult:
    """
    Fold both feeds into one aggregate per canonical client.

    periods:        contiguous descriptors, oldest first; their count fixes the
                    number of hour buckets.
    time_entries:   every period's time records, each tagged with its period.
    budget_entries: budget report records (optional).
    details:        project_id -> ProjectDetail (or None when the lookup failed).
    """
    validate_periods(periods)
    period_count = len(periods)
    time_entries = list(time_entries)
    budget_entries = list(budget_entries)

    report = RunReport(time_entries=len(time_entries), budget_entries=len(budget_entries))
    if details is not None:
        report.failed_detail_lookups = sum(1 for d in details.values() if d is None)

    if not time_entries:
        logger.info("No time entries across %d periods", period_count)
        return AggregationResult(status=STATUS_NO_DATA, periods=tuple(periods), report=report)

    named = [
        (e, normalize_client_name(entry_display_name(e.client_display_name, e.project_name)))
        for e in time_entries
    ]
    buckets, report.skipped_time_entries = bucket_hours(named, period_count)

    ledger = ClientLedger(period_count)
    for name, period_hours in buckets.items():
        ledger.add_hours(name, period_hours)

    for name, candidates in build_budget_index(budget_entries, details).items():
        ledger.set_budget(name, budget_figures(resolve_latest(candidates)))

    clients = ledger.finalize()
    report.clients = len(clients)
    report.clients_with_budget = sum(1 for c in clients if c.latest_project is not None)

    portfolio = summarize_portfolio(clients)
    logger.info(
        "Aggregated %d clients over %d periods (portfolio velocity %.1f)",
        report.clients, period_count, portfolio.portfolio_velocity,
    )
    return AggregationResult(status=STATUS_OK, periods=tuple(periods), portfolio=portfolio, report=report)


async def run_pipeline(
    periods: Sequence[PeriodDescriptor],
    time_entries: Iterable[RawTimeEntry],
    budget_entries: Iterable[RawBudgetEntry] = (),
    fetch_detail: Optional[FetchDetail] = None,
    min_request_interval: float = DEFAULT_MIN_REQUEST_INTERVAL,
) -> AggregationResult:
    """
    build_portfolio() preceded by throttled detail lookups for every
    budget-linked project (skipped when there is nothing to aggregate).
    """
    time_entries = list(time_entries)
    budget_entries = list(budget_entries)

    details = None
    if fetch_detail is not None and time_entries and budget_entries:
        enricher = DetailEnricher(fetch_detail, min_interval=min_request_interval)
        details = await enricher.fetch_all(e.project_id for e in budget_entries)

    return build_portfolio(periods, time_entries, budget_entries, details)


# =============================================================================
# TABULAR VIEW
# =============================================================================

def clients_frame(result: AggregationResult) -> pd.DataFrame:
    """One row per client, one hours column per period label, in velocity order."""
    labels = [p.label or f"P{p.period_index + 1}" for p in result.periods]
    columns = ["Client"] + labels + [
        "Total_Hours_Used", "Hours_Pack", "Hours_Remaining", "Avg_Velocity", "Latest_Project",
    ]
    if not result.portfolio:
        return pd.DataFrame(columns=columns)

    rows = []
    for c in result.portfolio.clients:
        rows.append({
            "Client": c.canonical_name,
            **dict(zip(labels, c.period_hours)),
            "Total_Hours_Used": c.total_hours_used,
            "Hours_Pack": c.total_hours_pack,
            "Hours_Remaining": c.total_hours_remaining,
            "Avg_Velocity": c.avg_velocity,
            "Latest_Project": c.latest_project.project_name if c.latest_project else None,
        })
    return pd.DataFrame(rows, columns=columns)
