"""
Dashboard-ready output functions.

One entry point per page. Each takes row lists straight from the loaders and
returns a plain dict of numbers, tables and narrative strings suitable for
rendering cards, charts and tables in any front end.
"""

import logging
from typing import Sequence

from . import config as cfg
from .aggregations import sum_field
from .config import DashboardConfig, get_config, revenue_goal
from .insights import (
    active_leads_insight,
    conversion_time_insight,
    generate_all_insights,
    goal_insight,
    roas_insight,
)
from .kpis import (
    calc_average_ticket,
    calc_cac,
    calc_conversion_rate,
    calc_cpa,
    calc_ctr,
    calc_ltv,
    calc_roas,
    calculate_kpis_complete,
)
from .loaders.utils import Row, parse_number, to_number
from .transforms import (
    EXPORT_COLUMNS,
    average_conversion_days,
    channel_breakdown,
    converted_leads,
    export_csv,
    export_filename,
    export_leads,
    filter_leads,
    filter_options,
    lead_table,
    leads_per_month,
    loss_reasons,
    seller_of,
    seller_performance,
    seller_revenue_ranking,
    status_counts,
    ticket_bands,
    to_frame,
    valid_leads,
)

logger = logging.getLogger(__name__)

PROJECTION_MONTHS = 18
ELAPSED_MONTHS = 12
TOP_LOSS_REASONS = 5
TOP_SELLERS = 10
REASON_LABEL_WIDTH = 20


def _summary_metric(calculations: Sequence[Row], metric: str) -> float | None:
    """Value of a "Resumo Geral" metric row, or None when absent or zero."""
    for row in calculations:
        if row.get(cfg.COL_CALC_BLOCK) == cfg.SUMMARY_BLOCK and row.get(cfg.COL_CALC_METRIC) == metric:
            value = parse_number(row.get(cfg.COL_CALC_VALUE))
            return value or None
    return None


def _goal_progress(current: float, goal: float) -> dict:
    pct = current / goal * 100 if goal else 0
    return {
        "target": goal,
        "current": current,
        "pct": pct,
        "bar_pct": min(pct, 100),
        "remaining": goal - current,
        "reached": pct >= 100,
    }


def get_overview(calculations: Sequence[Row], config: DashboardConfig | None = None) -> dict:
    """Consolidated financial and acquisition view.

    Parameters
    ----------
    calculations : Rows of the calculations sheet.
    config : Dashboard config; the active one when omitted.

    Returns
    -------
    Dict with revenue, profit, roas, cac, goal progress, KPI results,
    configured insights and narrative commentary.
    """
    config = config or get_config()
    if not calculations:
        logger.warning("No calculation rows; overview will be all zeros")

    revenue = sum_field(calculations, cfg.COL_CALC_REVENUE)
    sales_cost = sum_field(calculations, cfg.COL_CALC_SALES_COST)
    customers = sum_field(calculations, cfg.COL_CALC_CUSTOMERS)
    ads_cost = sum_field(calculations, cfg.COL_CALC_ADS_COST)
    profit = sum_field(calculations, cfg.COL_CALC_NET_PROFIT)

    roas = calc_roas(revenue, ads_cost)
    cac = calc_cac(ads_cost, sales_cost, customers)
    goal = revenue_goal(config)

    return {
        "revenue": revenue,
        "profit": profit,
        "roas": roas,
        "cac": cac,
        "goal": _goal_progress(revenue, goal),
        "kpis": calculate_kpis_complete(
            [("revenue", revenue), ("profit", profit), ("roas", roas), ("cac", cac)],
            config=config,
        ),
        "insights": generate_all_insights({"roas": roas}, config),
        "commentary": {
            "roas": roas_insight(roas),
            "goal": goal_insight(revenue, goal),
        },
    }


def get_acquisition(ads: Sequence[Row], calculations: Sequence[Row]) -> dict:
    """Ad funnel metrics and the per-channel breakdown.

    Leads come from the "Leads Captados via Tráfego Pago" summary metric and
    revenue from the first calculation row carrying "Receita Total".
    """
    clicks = sum_field(ads, cfg.COL_ADS_CLICKS)
    impressions = sum_field(ads, cfg.COL_ADS_IMPRESSIONS)
    investment = sum_field(ads, cfg.COL_ADS_COST)

    leads = _summary_metric(calculations, cfg.METRIC_PAID_LEADS) or 0
    revenue = next(
        (to_number(row[cfg.COL_CALC_TOTAL_REVENUE]) for row in calculations if row.get(cfg.COL_CALC_TOTAL_REVENUE)),
        0,
    )
    roas = calc_roas(revenue, investment)
    channels = channel_breakdown(ads)

    return {
        "ctr": calc_ctr(clicks, impressions),
        "cpa": calc_cpa(investment, leads),
        "roas": roas,
        "lead_conversion_rate": calc_conversion_rate(leads, clicks),
        "investment": investment,
        "commentary": roas_insight(roas),
        "channels": channels,
        "investment_share": [{"name": c["channel"], "value": c["cost"]} for c in channels],
        "clicks_by_channel": [{"channel": c["channel"], "clicks": c["clicks"]} for c in channels],
    }


def _short_label(text: str, width: int = REASON_LABEL_WIDTH) -> str:
    return text[:width] + ("..." if len(text) > width else "")


def get_retention(leads: Sequence[Row], calculations: Sequence[Row]) -> dict:
    """Lead journey: funnel rates, conversion time, loss reasons and sellers.

    Only leads carrying an id and a status are considered. The lead total
    falls back to the number of such leads when the summary metric is
    missing.
    """
    valid = valid_leads(leads)
    visitors = _summary_metric(calculations, cfg.METRIC_SITE_VISITORS) or 0
    total_leads = _summary_metric(calculations, cfg.METRIC_PAID_LEADS) or len(valid)

    counts = status_counts(valid)
    avg_days = average_conversion_days(valid)
    reasons = loss_reasons(valid)

    return {
        "visitor_to_lead_rate": calc_conversion_rate(total_leads, visitors),
        "lead_to_customer_rate": calc_conversion_rate(counts["converted"], counts["total"]),
        "avg_conversion_days": avg_days,
        "status_counts": counts,
        "status_distribution": [
            {"name": "Convertidos", "value": counts["converted"]},
            {"name": "Perdidos", "value": counts["lost"]},
            {"name": "Ativos", "value": counts["active"]},
        ],
        "loss_reasons": reasons,
        "top_loss_reasons": [
            {"reason": _short_label(r["reason"]), "count": r["count"]}
            for r in reasons[:TOP_LOSS_REASONS]
        ],
        "sellers": seller_performance(valid),
        "commentary": {
            "conversion_time": conversion_time_insight(avg_days),
            "active_leads": active_leads_insight(counts["active"]),
        },
    }


def _kpi_table_goal(kpi_table: Sequence[Row]) -> float | None:
    for row in kpi_table:
        if row.get(cfg.COL_KPI_NAME) == cfg.KPI_REVENUE_GOAL:
            return parse_number(row.get(cfg.COL_KPI_VALUE)) or None
    return None


def get_monetization(
    leads: Sequence[Row],
    kpi_table: Sequence[Row],
    config: DashboardConfig | None = None,
) -> dict:
    """Revenue, ticket, LTV, goal progress and seller ranking.

    The revenue goal is read from the KPI table's "Meta de Receita" row and
    falls back to the configured revenue goal.
    """
    converted = converted_leads(leads)
    revenue = sum_field(converted, cfg.COL_REVENUE_GENERATED)
    ticket = calc_average_ticket(revenue, len(converted))
    goal = _kpi_table_goal(kpi_table) or revenue_goal(config)
    ranking = seller_revenue_ranking(converted)

    return {
        "revenue": revenue,
        "customers": len(converted),
        "average_ticket": ticket,
        "ltv": calc_ltv(ticket),
        "goal": _goal_progress(revenue, goal),
        "commentary": goal_insight(revenue, goal),
        "sellers": ranking,
        "top_sellers": [{"seller": s["seller"], "revenue": s["revenue"]} for s in ranking[:TOP_SELLERS]],
        "ticket_bands": ticket_bands(converted),
    }


def get_projections(
    leads: Sequence[Row],
    new_sellers: int = 5,
    conversion_uplift_pct: float = 5,
    goal: float | None = None,
    config: DashboardConfig | None = None,
) -> dict:
    """Revenue projection towards the goal and two what-if simulators.

    Parameters
    ----------
    leads : CRM lead rows.
    new_sellers : Sellers to add in the hiring simulator.
    conversion_uplift_pct : Relative conversion improvement, in percent.
    goal : Revenue goal; the configured one when omitted.

    Returns
    -------
    Dict with current status, an 18-month series (actual revenue spread
    evenly over the last 12 months, then a linear projection), both
    simulators and their combined impact.
    """
    if new_sellers < 0 or conversion_uplift_pct < 0:
        raise ValueError("new_sellers and conversion_uplift_pct must be non-negative")

    goal = revenue_goal(config) if goal is None else goal
    converted = converted_leads(leads)
    revenue = sum_field(converted, cfg.COL_REVENUE_GENERATED)

    total_leads = len(leads)
    conversion = len(converted) / total_leads if total_leads else 0
    ticket = calc_average_ticket(revenue, len(converted))
    sellers = len({seller_of(lead) for lead in leads})
    leads_per_seller = total_leads / sellers if sellers else 0

    monthly_revenue = revenue / ELAPSED_MONTHS
    series = []
    for i in range(PROJECTION_MONTHS):
        month = i + 1
        point = {"month": f"Mês {month}", "goal": goal / 12 * month, "actual": None, "projected": None}
        if i < ELAPSED_MONTHS:
            point["actual"] = monthly_revenue * month
        else:
            point["projected"] = revenue + monthly_revenue * (i - ELAPSED_MONTHS + 1)
        series.append(point)

    # Hiring: each new seller brings the average lead volume at today's conversion
    hiring_revenue = leads_per_seller * new_sellers * conversion * ticket

    # Uplift: same lead base, conversion scaled by (1 + uplift)
    improved = conversion * (1 + conversion_uplift_pct / 100)
    uplift_revenue = (total_leads * improved - total_leads * conversion) * ticket

    combined = revenue + hiring_revenue + uplift_revenue
    return {
        "revenue": revenue,
        "goal": _goal_progress(revenue, goal),
        "conversion_rate": conversion * 100,
        "average_ticket": ticket,
        "leads_per_seller": leads_per_seller,
        "series": series,
        "new_sellers": {"count": new_sellers, "additional_revenue": hiring_revenue},
        "conversion_uplift": {"pct": conversion_uplift_pct, "additional_revenue": uplift_revenue},
        "combined": {
            "revenue": combined,
            "additional_revenue": hiring_revenue + uplift_revenue,
            "reaches_goal": combined >= goal,
            "shortfall": max(goal - combined, 0),
        },
    }


def get_analytics(
    leads: Sequence[Row],
    channel: str | None = None,
    campaign: str | None = None,
    seller: str | None = None,
    status: str | None = None,
) -> dict:
    """Filterable lead explorer.

    Selections match the placeholder-filled display values returned in
    "options"; None selects everything.

    Returns
    -------
    Dict with filter options, the filtered lead count, the leads-per-month
    series, the detail table as a DataFrame, and the CSV export text and
    file name.
    """
    filtered = filter_leads(leads, channel=channel, campaign=campaign, seller=seller, status=status)
    if leads and not filtered:
        logger.info("Selection matched no leads")

    headings = [heading for heading, _ in EXPORT_COLUMNS]
    return {
        "options": filter_options(leads),
        "count": len(filtered),
        "leads_per_month": leads_per_month(filtered),
        "table": to_frame(lead_table(filtered)),
        "csv": export_csv(export_leads(filtered), headings),
        "filename": export_filename(),
    }
