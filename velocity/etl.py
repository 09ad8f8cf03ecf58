import pandas as pd

from .records import (
    BUDGET_BY_OTHER,
    BUDGET_BY_PROJECT,
    BUDGET_BY_PROJECT_COST,
    ProjectDetail,
    RawBudgetEntry,
    RawTimeEntry,
)

# Harvest budget_by values that carry an hour / fee budget at project level.
BUDGET_BY_MAP = {
    "project": BUDGET_BY_PROJECT,
    "project_cost": BUDGET_BY_PROJECT_COST,
}


def _frame(results, columns):
    """Flatten report rows; nested {"project": {...}, "client": {...}} rows become dotted columns."""
    df = pd.json_normalize(list(results or []))
    fallbacks = {
        "project_id": "project.id",
        "project_name": "project.name",
        "client_name": "client.name",
    }
    for col, nested in fallbacks.items():
        if nested in df.columns:
            df[col] = df[col].fillna(df[nested]) if col in df.columns else df[nested]
    for col in columns:
        if col not in df.columns:
            df[col] = None
    return df


def _text(x):
    return "" if x is None or pd.isna(x) else str(x).strip()


def _id(x):
    if x is None or pd.isna(x):
        return None
    try:
        return int(x)
    except (TypeError, ValueError):
        return x


def time_entries_from_report(results, period_index):
    """
    Converts one period's time report rows (/v2/reports/time/projects) into
    RawTimeEntry records. Rows without logged hours are dropped.
    """
    df = _frame(results, ["project_id", "project_name", "client_name", "total_hours"])
    if df.empty:
        return []

    df["total_hours"] = pd.to_numeric(df["total_hours"], errors="coerce").fillna(0)
    df = df[df["total_hours"] > 0]

    return [
        RawTimeEntry(
            project_id=_id(row.project_id),
            project_name=_text(row.project_name),
            client_display_name=_text(row.client_name),
            total_hours=float(row.total_hours),
            period_index=period_index,
        )
        for row in df.itertuples(index=False)
    ]


def budget_entries_from_report(results):
    """
    Converts project budget report rows (/v2/reports/project_budget) into
    RawBudgetEntry records.

    Notes:
        - budget stays None when Harvest reports no budget.
        - spent / remaining coerce to 0 when missing or malformed.
        - budget_by values other than project / project_cost map to "other".
    """
    df = _frame(results, [
        "project_id", "project_name", "client_name",
        "budget", "budget_spent", "budget_remaining", "budget_by", "is_active",
    ])
    if df.empty:
        return []

    df["budget"] = pd.to_numeric(df["budget"], errors="coerce")
    for col in ["budget_spent", "budget_remaining"]:
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0)
    df["budget_by"] = df["budget_by"].map(lambda x: BUDGET_BY_MAP.get(_text(x).lower(), BUDGET_BY_OTHER))
    df["is_active"] = df["is_active"].map(lambda x: True if x is None or pd.isna(x) else bool(x))

    return [
        RawBudgetEntry(
            project_id=_id(row.project_id),
            project_name=_text(row.project_name),
            client_display_name=_text(row.client_name),
            budget=None if pd.isna(row.budget) else float(row.budget),
            budget_spent=float(row.budget_spent),
            budget_remaining=float(row.budget_remaining),
            budget_by=row.budget_by,
            is_active=bool(row.is_active),
        )
        for row in df.itertuples(index=False)
    ]


def _timestamp(x):
    ts = pd.to_datetime(x, errors="coerce", utc=True)
    return None if pd.isna(ts) else ts


def project_detail_from_payload(payload, project_id=None):
    """
    Reads the dates off a project resource (/v2/projects/{id}).
    Unparseable or missing dates become None.
    """
    payload = payload or {}
    return ProjectDetail(
        project_id=payload.get("id", project_id),
        start_date=_timestamp(payload.get("starts_on", payload.get("start_date"))),
        created_at=_timestamp(payload.get("created_at")),
        updated_at=_timestamp(payload.get("updated_at")),
    )
