"""
Tests for the budget index, latest-project resolution and budget figures.

Covers:
- Grouping budget records by canonical client
- Each resolution rule in isolation, and the rule priority
- Year-tag preference independent of input order
- Degradation when project details are missing
- Mixed date types (plain dates, naive and aware timestamps)
- Budget figures per budget_by kind
"""

from datetime import date

import pandas as pd
import pytest

from conftest import budget_entry, detail
from velocity.budget import (
    NO_BUDGET,
    RESOLUTION_RULES,
    budget_figures,
    build_budget_index,
    by_start_date,
    compare_candidates,
    first_integer,
    resolve_latest,
    year_tag_rank,
)
from velocity.records import LatestProject, ProjectCandidate, ProjectDetail


def candidate(name, project_id=1, start_date=None, created_at=None, **kwargs):
    d = detail(project_id, start_date, created_at) if (start_date or created_at) else None
    return ProjectCandidate(entry=budget_entry("Acme", name, project_id=project_id, **kwargs), detail=d)


# =============================================================================
# INDEX
# =============================================================================

class TestBuildBudgetIndex:

    def test_groups_by_canonical_name(self):
        entries = [
            budget_entry("Acme Hours '24", "Acme Hours '24", project_id=1),
            budget_entry("Acme Pack #2", "Acme Pack #2", project_id=2),
            budget_entry("Globex", "Globex Retainer", project_id=3),
        ]
        index = build_budget_index(entries)
        assert list(index) == ["Acme", "Globex"]
        assert [c.project_id for c in index["Acme"]] == [1, 2]

    def test_attaches_details(self):
        entries = [budget_entry("Acme", "Acme Pack 1", project_id=7)]
        index = build_budget_index(entries, {7: detail(7, start_date="2025-01-01")})
        assert index["Acme"][0].start_date is not None

    def test_missing_or_failed_details_leave_dates_empty(self):
        entries = [budget_entry("Acme", "Acme Pack 1", project_id=7), budget_entry("Acme", "Acme Pack 2", project_id=8)]
        index = build_budget_index(entries, {7: None})
        assert all(c.detail is None and c.start_date is None for c in index["Acme"])

    def test_uses_project_name_when_client_name_blank(self):
        index = build_budget_index([budget_entry("", "Initech Hours '25")])
        assert list(index) == ["Initech"]


# =============================================================================
# RESOLUTION
# =============================================================================

class TestResolveLatest:

    def test_rule_order(self):
        assert [name for name, _ in RESOLUTION_RULES] == ["start_date", "created_at", "year_tag", "pack_number"]

    def test_later_start_date_wins(self):
        old = candidate("Acme '25 Pack 9", 1, start_date="2024-01-01")
        new = candidate("Acme Pack 1", 2, start_date="2025-01-01")
        assert resolve_latest([old, new]) is new
        assert resolve_latest([new, old]) is new

    def test_created_at_breaks_equal_start_dates(self):
        a = candidate("Acme A", 1, start_date="2025-01-01", created_at="2024-12-01T10:00:00Z")
        b = candidate("Acme B", 2, start_date="2025-01-01", created_at="2024-12-15T10:00:00Z")
        assert resolve_latest([a, b]) is b
        assert resolve_latest([b, a]) is b

    def test_created_at_used_when_start_date_missing_on_one_side(self):
        a = candidate("Acme A", 1, start_date="2025-06-01", created_at="2024-01-01T00:00:00Z")
        b = candidate("Acme B", 2, created_at="2024-06-01T00:00:00Z")
        assert resolve_latest([a, b]) is b

    @pytest.mark.parametrize("other", ["Acme '24 Pack", "Acme Pack"])
    def test_year_25_beats_other_tags_in_any_order(self, other):
        current = candidate("Acme '25 Pack", 1)
        older = candidate(other, 2)
        assert resolve_latest([current, older]) is current
        assert resolve_latest([older, current]) is current

    def test_year_24_beats_untagged(self):
        tagged = candidate("Acme '24", 1)
        plain = candidate("Acme Retainer", 2)
        assert resolve_latest([plain, tagged]) is tagged

    def test_higher_pack_number_wins(self):
        p2 = candidate("Acme Pack 2", 1)
        p3 = candidate("Acme Pack 3", 2)
        assert resolve_latest([p3, p2]) is p3
        assert resolve_latest([p2, p3]) is p3

    def test_pack_number_ignored_when_one_side_has_none(self):
        numbered = candidate("Acme Pack 3", 1)
        plain = candidate("Acme Retainer", 2)
        assert compare_candidates(plain, numbered) == 0
        assert resolve_latest([plain, numbered]) is plain

    def test_full_tie_keeps_first(self):
        a = candidate("Acme Retainer", 1)
        b = candidate("Acme Support", 2)
        assert resolve_latest([a, b]) is a
        assert resolve_latest([b, a]) is b

    def test_naive_and_aware_dates_compare(self):
        aware = candidate("Acme A", 1, start_date="2024-01-01")
        naive = ProjectCandidate(
            entry=budget_entry("Acme", "Acme B", project_id=2),
            detail=ProjectDetail(2, start_date=pd.Timestamp("2025-01-01")),
        )
        assert resolve_latest([aware, naive]) is naive
        assert resolve_latest([naive, aware]) is naive

    def test_plain_dates_compare_with_timestamps(self):
        dated = ProjectCandidate(
            entry=budget_entry("Acme", "Acme B", project_id=2),
            detail=ProjectDetail(2, start_date=date(2023, 6, 1), created_at=date(2023, 5, 1)),
        )
        stamped = candidate("Acme A", 1, start_date="2024-01-01")
        assert resolve_latest([dated, stamped]) is stamped
        assert LatestProject.from_candidate(dated).to_dict()["start_date"] == "2023-06-01"

    def test_same_instant_in_other_zone_is_a_tie(self):
        utc = candidate("Acme Pack 1", 1, start_date="2025-01-01T10:00:00Z")
        local = ProjectCandidate(
            entry=budget_entry("Acme", "Acme Pack 2", project_id=2),
            detail=ProjectDetail(2, start_date=pd.Timestamp("2025-01-01 11:00", tz="Europe/Berlin")),
        )
        assert by_start_date(utc, local) == 0

    def test_missing_detail_falls_back_to_name(self):
        dated = candidate("Acme '24", 1, start_date="2025-01-01")
        undated = candidate("Acme '25", 2)
        assert resolve_latest([dated, undated]) is undated

    def test_empty(self):
        assert resolve_latest([]) is None


class TestNameHints:

    def test_year_tag_rank(self):
        assert year_tag_rank("Acme '25") > year_tag_rank("Acme '24") > year_tag_rank("Acme")
        assert year_tag_rank(None) == 0

    def test_first_integer(self):
        assert first_integer("Acme Pack 3 Pt 2") == 3
        assert first_integer("Acme '25 Pack 1") == 25
        assert first_integer("Acme") is None


# =============================================================================
# BUDGET FIGURES
# =============================================================================

class TestBudgetFigures:

    def test_project_budget_taken_verbatim(self):
        figures = budget_figures(candidate("Acme Pack 1", budget=40.0, remaining=12.0, budget_by="project"))
        assert figures.total_hours_pack == 40.0
        assert figures.total_hours_remaining == 12.0
        assert figures.latest_project.project_name == "Acme Pack 1"

    def test_project_budget_overage_stays_negative(self):
        figures = budget_figures(candidate("Acme Pack 1", budget=40.0, remaining=-6.5, budget_by="project"))
        assert figures.total_hours_remaining == -6.5

    def test_project_budget_without_budget_value(self):
        figures = budget_figures(candidate("Acme Pack 1", budget=None, remaining=0.0, budget_by="project"))
        assert figures.total_hours_pack == 0.0

    def test_cost_budget_uses_positive_remaining_as_proxy(self):
        figures = budget_figures(candidate("Acme", budget=5000.0, remaining=18.0, budget_by="project_cost"))
        assert (figures.total_hours_pack, figures.total_hours_remaining) == (18.0, 18.0)

    def test_cost_budget_without_remaining_is_zero(self):
        figures = budget_figures(candidate("Acme", budget=5000.0, remaining=-20.0, budget_by="project_cost"))
        assert (figures.total_hours_pack, figures.total_hours_remaining) == (0.0, 0.0)
        assert figures.latest_project is not None

    def test_other_kind_uses_budget_when_present(self):
        figures = budget_figures(candidate("Acme", budget=30.0, remaining=10.0, budget_by="other"))
        assert (figures.total_hours_pack, figures.total_hours_remaining) == (30.0, 10.0)
        figures = budget_figures(candidate("Acme", budget=None, remaining=None, budget_by="other"))
        assert (figures.total_hours_pack, figures.total_hours_remaining) == (0.0, 0.0)

    def test_no_candidate(self):
        assert budget_figures(None) is NO_BUDGET
        assert NO_BUDGET.latest_project is None
        assert NO_BUDGET.total_hours_pack == 0.0
