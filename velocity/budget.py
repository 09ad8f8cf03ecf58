"""
Budget index and latest-project resolution.

A client can have several budget-linked projects (last year's pack, this
year's pack, a side project). One of them is picked to stand for the current
engagement and its budget figures are reported for the client.

Resolution rules, first decisive rule wins
------------------------------------------
1) start_date    later start date (both known and different)
2) created_at    later creation time (both known and different)
3) year_tag      name carrying the most recent year tag ('25 over '24 over none)
4) pack_number   higher first integer in the name ("Pack 3" beats "Pack 2")
5) otherwise the earlier candidate is kept

Dates come from project detail lookups. When a lookup failed the candidate
simply has no dates and rules 3-5 decide.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from .names import entry_display_name, normalize_client_name
from .records import (
    BUDGET_BY_PROJECT,
    BUDGET_BY_PROJECT_COST,
    LatestProject,
    ProjectCandidate,
    ProjectDetail,
    RawBudgetEntry,
)


# Most recent first.
YEAR_TAG_PRIORITY: Tuple[str, ...] = ("'25", "'24")

_FIRST_INTEGER = re.compile(r"\d+")


# =============================================================================
# BUDGET INDEX
# =============================================================================

def build_budget_index(
    entries: Iterable[RawBudgetEntry],
    details: Optional[Mapping[int, Optional[ProjectDetail]]] = None,
) -> Dict[str, List[ProjectCandidate]]:
    """Group budget records by canonical client, keeping every candidate in encounter order."""
    details = details or {}
    index: Dict[str, List[ProjectCandidate]] = {}
    for entry in entries:
        name = normalize_client_name(entry_display_name(entry.client_display_name, entry.project_name))
        index.setdefault(name, []).append(ProjectCandidate(entry=entry, detail=details.get(entry.project_id)))
    return index


# =============================================================================
# RESOLUTION RULES
# =============================================================================

def _known(ts) -> bool:
    return ts is not None and not pd.isna(ts)

def as_utc(ts) -> Optional[pd.Timestamp]:
    """Dates, naive and aware timestamps all become UTC timestamps; naive ones are read as UTC."""
    if not _known(ts):
        return None
    ts = pd.Timestamp(ts)
    return ts.tz_localize("UTC") if ts.tzinfo is None else ts.tz_convert("UTC")

def _compare_dates(a, b) -> int:
    a, b = as_utc(a), as_utc(b)
    if a is None or b is None or a == b:
        return 0
    return 1 if a > b else -1

def by_start_date(a: ProjectCandidate, b: ProjectCandidate) -> int:
    return _compare_dates(a.start_date, b.start_date)

def by_created_at(a: ProjectCandidate, b: ProjectCandidate) -> int:
    return _compare_dates(a.created_at, b.created_at)

def year_tag_rank(project_name: str) -> int:
    name = project_name or ""
    for i, tag in enumerate(YEAR_TAG_PRIORITY):
        if tag in name:
            return len(YEAR_TAG_PRIORITY) - i
    return 0

def by_year_tag(a: ProjectCandidate, b: ProjectCandidate) -> int:
    ra, rb = year_tag_rank(a.project_name), year_tag_rank(b.project_name)
    return (ra > rb) - (ra < rb)

def first_integer(project_name: str) -> Optional[int]:
    m = _FIRST_INTEGER.search(project_name or "")
    return int(m.group()) if m else None

def by_pack_number(a: ProjectCandidate, b: ProjectCandidate) -> int:
    """
    Decisive only when both names contain an integer. The first integer is
    taken as is, so a year tag counts ("Acme '25 Pack 1" reads as 25).
    """
    na, nb = first_integer(a.project_name), first_integer(b.project_name)
    if na is None or nb is None:
        return 0
    return (na > nb) - (na < nb)


Rule = Tuple[str, Callable[[ProjectCandidate, ProjectCandidate], int]]

RESOLUTION_RULES: List[Rule] = [
    ("start_date", by_start_date),
    ("created_at", by_created_at),
    ("year_tag", by_year_tag),
    ("pack_number", by_pack_number),
]


def compare_candidates(a: ProjectCandidate, b: ProjectCandidate, rules: Sequence[Rule] = RESOLUTION_RULES) -> int:
    """>0 if `a` is more current than `b`, <0 if less, 0 if no rule decides."""
    for _, rule in rules:
        result = rule(a, b)
        if result:
            return result
    return 0


def resolve_latest(candidates: Sequence[ProjectCandidate], rules: Sequence[Rule] = RESOLUTION_RULES) -> Optional[ProjectCandidate]:
    """Pick the candidate representing current engagement; ties keep the earlier one."""
    best: Optional[ProjectCandidate] = None
    for candidate in candidates:
        if best is None or compare_candidates(candidate, best, rules) > 0:
            best = candidate
    return best


# =============================================================================
# BUDGET FIGURES
# =============================================================================

@dataclass(frozen=True)
class BudgetFigures:
    total_hours_pack: float = 0.0
    total_hours_remaining: float = 0.0
    latest_project: Optional[LatestProject] = None


NO_BUDGET = BudgetFigures()


def _num(x) -> float:
    if x is None or pd.isna(x):
        return 0.0
    return float(x)


def budget_figures(candidate: Optional[ProjectCandidate]) -> BudgetFigures:
    """
    Hour budget and remaining hours reported for a client, taken from its
    resolved project according to how that project is budgeted.
    """
    if candidate is None:
        return NO_BUDGET

    entry = candidate.entry
    latest = LatestProject.from_candidate(candidate)

    if entry.budget_by == BUDGET_BY_PROJECT:
        pack, remaining = _num(entry.budget), _num(entry.budget_remaining)
    elif entry.budget_by == BUDGET_BY_PROJECT_COST:
        # Cost budgets have no hour ceiling; remaining is the closest proxy.
        proxy = _num(entry.budget_remaining)
        pack = remaining = proxy if proxy > 0 else 0.0
    else:
        pack, remaining = _num(entry.budget), _num(entry.budget_remaining)

    return BudgetFigures(total_hours_pack=pack, total_hours_remaining=remaining, latest_project=latest)
