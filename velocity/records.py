"""
Record types shared across the velocity engine.

Raw records come from the two billing feeds (time report, budget report) and
the optional project-detail lookups. Output records are frozen once built.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Dict, Optional, Tuple

import pandas as pd


# =============================================================================
# BUDGET KINDS
# =============================================================================

BUDGET_BY_PROJECT = "project"
BUDGET_BY_PROJECT_COST = "project_cost"
BUDGET_BY_OTHER = "other"

BUDGET_KINDS = (BUDGET_BY_PROJECT, BUDGET_BY_PROJECT_COST, BUDGET_BY_OTHER)


# =============================================================================
# INPUT RECORDS
# =============================================================================

@dataclass(frozen=True)
class RawTimeEntry:
    project_id: int
    project_name: str
    client_display_name: str
    total_hours: float
    period_index: int


@dataclass(frozen=True)
class RawBudgetEntry:
    project_id: int
    project_name: str
    client_display_name: str
    budget: Optional[float]
    budget_spent: float
    budget_remaining: float
    budget_by: str = BUDGET_BY_OTHER
    is_active: bool = True


@dataclass(frozen=True)
class ProjectDetail:
    project_id: int
    start_date: Optional[pd.Timestamp] = None
    created_at: Optional[pd.Timestamp] = None
    updated_at: Optional[pd.Timestamp] = None


@dataclass(frozen=True)
class ProjectCandidate:
    """A budget-linked project together with whatever dates are known for it."""
    entry: RawBudgetEntry
    detail: Optional[ProjectDetail] = None

    @property
    def project_id(self) -> int:
        return self.entry.project_id

    @property
    def project_name(self) -> str:
        return self.entry.project_name

    @property
    def start_date(self) -> Optional[pd.Timestamp]:
        return self.detail.start_date if self.detail else None

    @property
    def created_at(self) -> Optional[pd.Timestamp]:
        return self.detail.created_at if self.detail else None


@dataclass(frozen=True)
class PeriodDescriptor:
    period_index: int
    from_date: date
    to_date: date
    label: str = ""

    def to_dict(self) -> Dict[str, object]:
        return {
            "period_index": self.period_index,
            "from": self.from_date.isoformat(),
            "to": self.to_date.isoformat(),
            "label": self.label,
        }


# =============================================================================
# OUTPUT RECORDS
# =============================================================================

@dataclass(frozen=True)
class LatestProject:
    project_id: int
    project_name: str
    start_date: Optional[pd.Timestamp] = None
    created_at: Optional[pd.Timestamp] = None

    @classmethod
    def from_candidate(cls, candidate: ProjectCandidate) -> "LatestProject":
        return cls(
            project_id=candidate.project_id,
            project_name=candidate.project_name,
            start_date=candidate.start_date,
            created_at=candidate.created_at,
        )

    def to_dict(self) -> Dict[str, object]:
        return {
            "project_id": self.project_id,
            "project_name": self.project_name,
            "start_date": _iso_or_none(self.start_date, date_only=True),
            "created_at": _iso_or_none(self.created_at),
        }


@dataclass(frozen=True)
class ClientAggregate:
    canonical_name: str
    period_hours: Tuple[float, ...]
    total_hours_used: float
    total_hours_pack: float = 0.0
    total_hours_remaining: float = 0.0
    avg_velocity: float = 0.0
    latest_project: Optional[LatestProject] = None

    def to_dict(self) -> Dict[str, object]:
        out = asdict(self)
        out["period_hours"] = list(self.period_hours)
        out["latest_project"] = self.latest_project.to_dict() if self.latest_project else None
        return out


@dataclass(frozen=True)
class PortfolioAggregate:
    portfolio_velocity: float
    clients: Tuple[ClientAggregate, ...] = field(default_factory=tuple)

    def client(self, canonical_name: str) -> Optional[ClientAggregate]:
        for c in self.clients:
            if c.canonical_name == canonical_name:
                return c
        return None

    def to_dict(self) -> Dict[str, object]:
        return {
            "portfolio_velocity": self.portfolio_velocity,
            "clients": [c.to_dict() for c in self.clients],
        }


def _iso_or_none(ts: Optional[pd.Timestamp], date_only: bool = False) -> Optional[str]:
    if ts is None or pd.isna(ts):
        return None
    ts = pd.Timestamp(ts)
    return ts.date().isoformat() if date_only else ts.isoformat()
