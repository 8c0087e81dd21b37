"""
Row transforms shared by the dashboard pages: lead status breakdowns,
per-seller and per-channel tables, monthly series and CSV export.

All functions take row lists (as returned by the loaders) and return new
lists or dicts; input rows are never modified.
"""

import csv
import datetime as dt
import logging
from typing import Iterable, Sequence

import pandas as pd

from . import config as cfg
from .aggregations import MISSING_GROUP_KEY
from .kpis import (
    calc_average_ticket,
    calc_conversion_rate,
    calc_cpa,
    calc_ctr,
    calc_ltv,
    calc_roas,
)
from .loaders.utils import Row, display_str, is_missing, parse_number, to_number

logger = logging.getLogger(__name__)

# (label, lower bound inclusive, upper bound exclusive)
TICKET_BANDS = [
    ("Até R$ 10k", 0, 10_000),
    ("R$ 10k - R$ 15k", 10_000, 15_000),
    ("R$ 15k - R$ 20k", 15_000, 20_000),
    ("R$ 20k - R$ 25k", 20_000, 25_000),
    ("Acima de R$ 25k", 25_000, float("inf")),
]

# Estimated lead yield per click for channels that report no conversions
CLICK_TO_LEAD_ESTIMATE = 0.1

EXPORT_COLUMNS = [
    ("ID Lead", cfg.COL_LEAD_ID),
    ("Data Primeiro Contato", cfg.COL_FIRST_CONTACT),
    ("Canal de Origem", cfg.COL_CHANNEL),
    ("Campanha", cfg.COL_CAMPAIGN),
    ("Vendedor", cfg.COL_SELLER),
    ("Status", cfg.COL_LEAD_STATUS),
    ("Receita Gerada", cfg.COL_REVENUE_GENERATED),
    ("Tempo até Conversão (Dias)", cfg.COL_CONVERSION_DAYS),
]


def _label(row: Row, column: str, default: str) -> str:
    value = row.get(column)
    return display_str(value) if value else default


def seller_of(row: Row) -> str:
    return _label(row, cfg.COL_SELLER, cfg.UNASSIGNED_SELLER)


def channel_of(row: Row) -> str:
    return _label(row, cfg.COL_CHANNEL, cfg.UNKNOWN_CHANNEL)


def campaign_of(row: Row) -> str:
    return _label(row, cfg.COL_CAMPAIGN, cfg.UNKNOWN_CAMPAIGN)


def status_of(row: Row) -> str:
    status = row.get(cfg.COL_LEAD_STATUS)
    return MISSING_GROUP_KEY if status is None else display_str(status)


# ---------------------------------------------------------------------------
# Lead status
# ---------------------------------------------------------------------------
def valid_leads(leads: Iterable[Row]) -> list[Row]:
    """Leads carrying both an id and a status."""
    return [lead for lead in leads if lead.get(cfg.COL_LEAD_ID) and lead.get(cfg.COL_LEAD_STATUS)]


def converted_leads(leads: Iterable[Row]) -> list[Row]:
    """Converted leads that generated revenue."""
    return [
        lead
        for lead in leads
        if lead.get(cfg.COL_LEAD_STATUS) == cfg.STATUS_CONVERTED
        and to_number(lead.get(cfg.COL_REVENUE_GENERATED)) > 0
    ]


def _lead_frame(leads: Iterable[Row]) -> pd.DataFrame:
    """One row per lead: seller label, status, revenue and conversion days."""
    records = [
        {
            "seller": seller_of(lead),
            "status": lead.get(cfg.COL_LEAD_STATUS),
            "revenue": to_number(lead.get(cfg.COL_REVENUE_GENERATED)),
            "days": _conversion_days(lead),
        }
        for lead in leads
    ]
    frame = pd.DataFrame(records, columns=["seller", "status", "revenue", "days"])
    frame["revenue"] = frame["revenue"].astype(float)
    frame["days"] = pd.to_numeric(frame["days"])
    frame["converted"] = frame["status"] == cfg.STATUS_CONVERTED
    frame["lost"] = frame["status"] == cfg.STATUS_LOST
    return frame


def status_counts(leads: Sequence[Row]) -> dict[str, int]:
    """Counts of converted, lost and active leads plus the total."""
    statuses = to_frame(leads, [cfg.COL_LEAD_STATUS])[cfg.COL_LEAD_STATUS]
    counts = statuses.value_counts()
    return {
        "converted": int(counts.get(cfg.STATUS_CONVERTED, 0)),
        "lost": int(counts.get(cfg.STATUS_LOST, 0)),
        "active": int(statuses.isin(cfg.ACTIVE_STATUSES).sum()),
        "total": len(statuses),
    }


def _conversion_days(lead: Row) -> float | None:
    days = parse_number(lead.get(cfg.COL_CONVERSION_DAYS))
    if days is None or days < 0:
        return None
    return days


def average_conversion_days(leads: Iterable[Row]) -> float:
    """Mean days-to-conversion over converted leads with a non-negative value."""
    frame = _lead_frame(leads)
    days = frame.loc[frame["converted"], "days"].mean()
    return 0 if pd.isna(days) else float(days)


def loss_reasons(leads: Iterable[Row]) -> list[dict]:
    """Lost leads grouped by reason, most frequent first.

    Returns
    -------
    List of dicts: reason, count, pct (share of lost leads with a reason).
    """
    reasons = pd.Series(
        [
            display_str(lead[cfg.COL_LOSS_REASON])
            for lead in leads
            if lead.get(cfg.COL_LEAD_STATUS) == cfg.STATUS_LOST and lead.get(cfg.COL_LOSS_REASON)
        ],
        dtype=object,
    )
    counts = reasons.value_counts(sort=False).sort_values(ascending=False, kind="stable")
    return [
        {"reason": reason, "count": int(count), "pct": calc_conversion_rate(int(count), len(reasons))}
        for reason, count in counts.items()
    ]


# ---------------------------------------------------------------------------
# Per-seller tables
# ---------------------------------------------------------------------------
def seller_performance(leads: Sequence[Row]) -> list[dict]:
    """Funnel outcome per seller, best conversion rate first.

    Leads neither converted nor lost count as active.
    """
    frame = _lead_frame(leads)
    if frame.empty:
        return []

    frame["converted_days"] = frame["days"].where(frame["converted"])
    table = frame.groupby("seller", sort=False).agg(
        total=("status", "size"),
        converted=("converted", "sum"),
        lost=("lost", "sum"),
        avg_days=("converted_days", "mean"),
    ).reset_index()

    table["active"] = table["total"] - table["converted"] - table["lost"]
    table["conversion_rate"] = [
        calc_conversion_rate(converted, total)
        for converted, total in zip(table["converted"], table["total"])
    ]
    table["avg_days"] = table["avg_days"].fillna(0)

    table = table.sort_values("conversion_rate", ascending=False, kind="stable")
    columns = ["seller", "total", "converted", "lost", "active", "conversion_rate", "avg_days"]
    return table[columns].to_dict("records")


def seller_revenue_ranking(converted: Sequence[Row]) -> list[dict]:
    """Revenue, ticket and LTV per seller over converted leads, highest revenue first."""
    frame = _lead_frame(converted)
    if frame.empty:
        return []

    table = frame.groupby("seller", sort=False).agg(
        revenue=("revenue", "sum"),
        converted=("revenue", "size"),
    ).reset_index()
    table["average_ticket"] = [
        calc_average_ticket(revenue, count)
        for revenue, count in zip(table["revenue"], table["converted"])
    ]
    table["ltv"] = table["average_ticket"].map(calc_ltv)

    return table.sort_values("revenue", ascending=False, kind="stable").to_dict("records")


def ticket_bands(converted: Sequence[Row]) -> list[dict]:
    """Count and revenue of converted leads per ticket band."""
    frame = _lead_frame(converted)
    edges = [low for _, low, _ in TICKET_BANDS] + [TICKET_BANDS[-1][2]]
    labels = [label for label, _, _ in TICKET_BANDS]
    frame["band"] = pd.cut(frame["revenue"], bins=edges, labels=labels, right=False)

    table = frame.groupby("band", observed=False)["revenue"].agg(["size", "sum"])
    return [
        {"band": band, "count": int(row["size"]), "revenue": float(row["sum"])}
        for band, row in table.iterrows()
    ]


# ---------------------------------------------------------------------------
# Ads
# ---------------------------------------------------------------------------
_ADS_MEASURES = {
    "impressions": cfg.COL_ADS_IMPRESSIONS,
    "clicks": cfg.COL_ADS_CLICKS,
    "cost": cfg.COL_ADS_COST,
    "conversions": cfg.COL_ADS_CONVERSIONS,
    "revenue": cfg.COL_ADS_REVENUE,
}


def channel_breakdown(ads: Sequence[Row]) -> list[dict]:
    """Per-channel ad performance with CTR, CPA, ROAS and lead conversion,
    highest spend first.

    Channels reporting no conversions estimate leads as 10% of clicks.
    """
    frame = to_frame(ads, [cfg.COL_ADS_CHANNEL, *_ADS_MEASURES.values()])
    if frame.empty:
        return []

    frame["channel"] = [_label(row, cfg.COL_ADS_CHANNEL, cfg.UNKNOWN_ADS_CHANNEL) for row in ads]
    for name, column in _ADS_MEASURES.items():
        frame[name] = pd.to_numeric(frame[column].map(to_number))

    table = frame.groupby("channel", sort=False)[list(_ADS_MEASURES)].sum().reset_index()
    table["leads"] = table["conversions"].where(
        table["conversions"] > 0, table["clicks"] * CLICK_TO_LEAD_ESTIMATE
    )

    rows = []
    for record in table.to_dict("records"):
        clicks, cost, leads = record["clicks"], record["cost"], record["leads"]
        rows.append({
            "channel": record["channel"],
            "impressions": record["impressions"],
            "clicks": clicks,
            "cost": cost,
            "leads": leads,
            "revenue": record["revenue"],
            "ctr": calc_ctr(clicks, record["impressions"]),
            "cpa": calc_cpa(cost, leads),
            "roas": calc_roas(record["revenue"], cost),
            "conversion_rate": calc_conversion_rate(leads, clicks),
        })
    return sorted(rows, key=lambda r: r["cost"], reverse=True)


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------
def leads_per_month(leads: Iterable[Row]) -> list[dict]:
    """Lead counts per first-contact month ("MM/YYYY"), oldest first.

    Dates are DD/MM/YYYY; unparseable or missing dates are skipped.
    """
    raw = to_frame(list(leads), [cfg.COL_FIRST_CONTACT])[cfg.COL_FIRST_CONTACT]
    dates = pd.to_datetime(raw, format="%d/%m/%Y", errors="coerce").dropna()

    counts = dates.dt.to_period("M").value_counts().sort_index()
    return [
        {"month": period.strftime("%m/%Y"), "leads": int(count)}
        for period, count in counts.items()
    ]


def filter_options(leads: Sequence[Row]) -> dict[str, list[str]]:
    """Distinct channel, campaign, seller and status values, first-seen order."""
    def distinct(values):
        return list(dict.fromkeys(values))

    return {
        "channels": distinct(channel_of(lead) for lead in leads),
        "campaigns": distinct(campaign_of(lead) for lead in leads),
        "sellers": distinct(seller_of(lead) for lead in leads),
        "statuses": distinct(status_of(lead) for lead in leads),
    }


def filter_leads(
    leads: Iterable[Row],
    channel: str | None = None,
    campaign: str | None = None,
    seller: str | None = None,
    status: str | None = None,
) -> list[Row]:
    """Leads matching every given selection; None selects all."""
    selected = []
    for lead in leads:
        if channel is not None and channel_of(lead) != channel:
            continue
        if campaign is not None and campaign_of(lead) != campaign:
            continue
        if seller is not None and seller_of(lead) != seller:
            continue
        if status is not None and status_of(lead) != status:
            continue
        selected.append(lead)
    return selected


def lead_table(leads: Iterable[Row]) -> list[dict]:
    """Detail rows for the analytics table."""
    return [
        {
            "id": lead.get(cfg.COL_LEAD_ID),
            "date": lead.get(cfg.COL_FIRST_CONTACT),
            "channel": channel_of(lead),
            "campaign": campaign_of(lead),
            "seller": seller_of(lead),
            "status": lead.get(cfg.COL_LEAD_STATUS),
            "revenue": to_number(lead.get(cfg.COL_REVENUE_GENERATED)),
            "conversion_days": to_number(lead.get(cfg.COL_CONVERSION_DAYS)),
        }
        for lead in leads
    ]


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------
def to_frame(rows: Sequence[Row], columns: list[str] | None = None) -> pd.DataFrame:
    """Rows as a DataFrame; values keep their Python types."""
    return pd.DataFrame(list(rows), columns=columns, dtype=object)


_PLACEHOLDERS = {
    cfg.COL_CHANNEL: cfg.UNKNOWN_CHANNEL,
    cfg.COL_CAMPAIGN: cfg.UNKNOWN_CAMPAIGN,
    cfg.COL_SELLER: cfg.UNASSIGNED_SELLER,
}


def export_leads(leads: Iterable[Row]) -> list[dict]:
    """Project leads onto the export headings, filling the usual placeholders."""
    rows = []
    for lead in leads:
        row = {}
        for heading, column in EXPORT_COLUMNS:
            if column in _PLACEHOLDERS:
                row[heading] = _label(lead, column, _PLACEHOLDERS[column])
            else:
                row[heading] = lead.get(column)
        rows.append(row)
    return rows


def export_csv(rows: Sequence[Row], columns: list[str] | None = None) -> str:
    """CSV text with every field quoted and embedded quotes doubled.

    Missing values are written as empty strings.
    """
    rows = list(rows)
    if columns is None:
        columns = list(dict.fromkeys(key for row in rows for key in row))

    frame = to_frame(rows, columns)
    frame = frame.map(lambda v: None if is_missing(v) else display_str(v))
    logger.debug("Exporting %d rows x %d columns", len(rows), len(columns))
    return frame.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator="\n")


def export_filename(prefix: str = "analytics", day: dt.date | None = None) -> str:
    day = day or dt.date.today()
    return f"{prefix}_{day.isoformat()}.csv"
