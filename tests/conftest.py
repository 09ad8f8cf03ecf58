from datetime import date

import pandas as pd
import pytest

from velocity.periods import weekly_periods
from velocity.records import ProjectDetail, RawBudgetEntry, RawTimeEntry


TODAY = date(2025, 3, 12)


def time_entry(client, hours, period_index, project_id=1, project_name=None):
    return RawTimeEntry(
        project_id=project_id,
        project_name=project_name or f"{client} Project",
        client_display_name=client,
        total_hours=hours,
        period_index=period_index,
    )


def budget_entry(client, project_name, project_id=1, budget=40.0, remaining=12.0,
                 spent=28.0, budget_by="project", is_active=True):
    return RawBudgetEntry(
        project_id=project_id,
        project_name=project_name,
        client_display_name=client,
        budget=budget,
        budget_spent=spent,
        budget_remaining=remaining,
        budget_by=budget_by,
        is_active=is_active,
    )


def detail(project_id, start_date=None, created_at=None):
    return ProjectDetail(
        project_id=project_id,
        start_date=pd.to_datetime(start_date, utc=True) if start_date else None,
        created_at=pd.to_datetime(created_at, utc=True) if created_at else None,
    )


@pytest.fixture
def weeks():
    return weekly_periods(8, today=TODAY)
