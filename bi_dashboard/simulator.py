"""
Simulated data generator for the BI dashboard.

Produces CRM leads, consolidated ad spend, the calculations sheet and the
KPI table with the same column names as the real exports. All values are
synthetic.
"""

from pathlib import Path

import numpy as np
import pandas as pd

from . import config as cfg

DEFAULT_SEED = 42

# ---------------------------------------------------------------------------
# Typical parameters
# ---------------------------------------------------------------------------
_CHANNELS = {
    # channel: (lead share, campaigns)
    "Google Ads": (0.40, ["Search Marca", "Search Genérico", "Performance Max"]),
    "Meta Ads": (0.35, ["Remarketing", "Lookalike", "Leads Form"]),
    "Orgânico": (0.15, [None]),
    "Indicação": (0.10, [None]),
}

_SELLERS = ["Ana Souza", "Bruno Lima", "Carla Mendes", "Diego Rocha", "Elisa Prado", "Fábio Nunes", None]

# status: probability
_STATUSES = {
    cfg.STATUS_CONVERTED: 0.22,
    cfg.STATUS_LOST: 0.38,
    "Em Atendimento": 0.25,
    "Não Contatado": 0.15,
}

_LOSS_REASONS = [
    "Preço acima do orçamento",
    "Escolheu concorrente",
    "Sem resposta após contato",
    "Projeto adiado",
    "Não era o decisor",
    None,
]

_ADS_PARAMS = {
    # channel: (daily impressions, ctr, cpc, conversion per click, revenue per conversion)
    "Google Ads": (42_000, 0.031, 2.40, 0.045, 3_800),
    "Meta Ads": (65_000, 0.012, 1.10, 0.020, 2_900),
}


def _rng(seed: int | None) -> np.random.Generator:
    return np.random.default_rng(DEFAULT_SEED if seed is None else seed)


def generate_crm_leads(
    n_leads: int = 600,
    start_date: str = "2025-01-01",
    n_days: int = 365,
    seed: int | None = None,
) -> pd.DataFrame:
    """Generate simulated CRM leads.

    Converted leads carry revenue and days-to-conversion, lost leads a loss
    reason (sometimes blank); contact dates are DD/MM/YYYY.
    """
    rng = _rng(seed)
    channels = list(_CHANNELS)
    shares = np.array([_CHANNELS[c][0] for c in channels])
    statuses = list(_STATUSES)
    status_p = np.array(list(_STATUSES.values()))
    start = pd.Timestamp(start_date)

    rows = []
    for i in range(n_leads):
        channel = channels[rng.choice(len(channels), p=shares)]
        campaigns = _CHANNELS[channel][1]
        status = statuses[rng.choice(len(statuses), p=status_p)]
        contact = start + pd.Timedelta(days=int(rng.integers(0, n_days)))

        revenue = None
        days = None
        reason = None
        if status == cfg.STATUS_CONVERTED:
            revenue = round(float(rng.lognormal(mean=9.6, sigma=0.35)), 2)
            days = int(rng.gamma(shape=2.0, scale=5.0))
        elif status == cfg.STATUS_LOST:
            reason = _LOSS_REASONS[rng.integers(0, len(_LOSS_REASONS))]

        rows.append({
            cfg.COL_LEAD_ID: f"L{i + 1:04d}",
            cfg.COL_FIRST_CONTACT: contact.strftime("%d/%m/%Y"),
            cfg.COL_CHANNEL: channel,
            cfg.COL_CAMPAIGN: campaigns[rng.integers(0, len(campaigns))],
            cfg.COL_SELLER: _SELLERS[rng.integers(0, len(_SELLERS))],
            cfg.COL_LEAD_STATUS: status,
            cfg.COL_REVENUE_GENERATED: revenue,
            cfg.COL_CONVERSION_DAYS: days,
            cfg.COL_LOSS_REASON: reason,
        })

    return pd.DataFrame(rows)


def generate_consolidated_ads(
    start_date: str = "2025-01-01",
    n_days: int = 90,
    seed: int | None = None,
) -> pd.DataFrame:
    """Generate simulated daily ad performance per paid channel."""
    rng = _rng(seed)
    dates = pd.date_range(start_date, periods=n_days, freq="D")

    rows = []
    for date in dates:
        for channel, (impressions, ctr, cpc, conv_rate, ticket) in _ADS_PARAMS.items():
            shown = max(int(rng.normal(impressions, impressions * 0.15)), 0)
            clicks = int(rng.binomial(shown, ctr))
            conversions = int(rng.binomial(clicks, conv_rate))
            cost = round(clicks * cpc * rng.uniform(0.85, 1.15), 2)

            rows.append({
                cfg.COL_ADS_DATE: date.strftime("%d/%m/%Y"),
                cfg.COL_ADS_CHANNEL: channel,
                cfg.COL_ADS_IMPRESSIONS: shown,
                cfg.COL_ADS_CLICKS: clicks,
                cfg.COL_ADS_COST: cost,
                cfg.COL_ADS_CONVERSIONS: conversions,
                cfg.COL_ADS_REVENUE: round(conversions * ticket * rng.uniform(0.7, 1.3), 2),
            })

    return pd.DataFrame(rows)


def generate_calculations(
    leads: pd.DataFrame,
    ads: pd.DataFrame,
    n_months: int = 12,
    seed: int | None = None,
) -> pd.DataFrame:
    """Generate the calculations sheet consistent with the leads and ads.

    Monthly rows split converted revenue, ad cost and customers evenly with
    some noise; a "Resumo Geral" block carries the funnel summary metrics and
    one row holds the consolidated total revenue.
    """
    rng = _rng(seed)
    converted = leads[leads[cfg.COL_LEAD_STATUS] == cfg.STATUS_CONVERTED]
    revenue = float(converted[cfg.COL_REVENUE_GENERATED].sum())
    ads_cost = float(ads[cfg.COL_ADS_COST].sum())
    customers = len(converted)

    weights = rng.dirichlet(np.full(n_months, 8.0))
    rows = []
    for month, w in enumerate(weights, start=1):
        month_revenue = round(revenue * w, 2)
        month_ads = round(ads_cost * w, 2)
        sales_cost = round(month_revenue * rng.uniform(0.18, 0.25), 2)
        rows.append({
            cfg.COL_CALC_BLOCK: "Mensal",
            "Mês": month,
            cfg.COL_CALC_REVENUE: month_revenue,
            cfg.COL_CALC_SALES_COST: sales_cost,
            cfg.COL_CALC_CUSTOMERS: int(round(customers * w)),
            cfg.COL_CALC_ADS_COST: month_ads,
            cfg.COL_CALC_NET_PROFIT: round(month_revenue - sales_cost - month_ads, 2),
        })

    paid = leads[leads[cfg.COL_CHANNEL].isin(list(_ADS_PARAMS))]
    visitors = int(ads[cfg.COL_ADS_CLICKS].sum() * rng.uniform(0.8, 0.9))
    rows.extend([
        {cfg.COL_CALC_BLOCK: cfg.SUMMARY_BLOCK, cfg.COL_CALC_METRIC: cfg.METRIC_SITE_VISITORS, cfg.COL_CALC_VALUE: visitors},
        {cfg.COL_CALC_BLOCK: cfg.SUMMARY_BLOCK, cfg.COL_CALC_METRIC: cfg.METRIC_PAID_LEADS, cfg.COL_CALC_VALUE: len(paid)},
        {cfg.COL_CALC_BLOCK: cfg.SUMMARY_BLOCK, cfg.COL_CALC_TOTAL_REVENUE: round(revenue, 2)},
    ])
    return pd.DataFrame(rows)


def generate_kpi_table(goal: float | None = None) -> pd.DataFrame:
    """KPI dictionary rows; only the revenue goal is read downstream."""
    goal = cfg.revenue_goal(cfg.DEFAULT_CONFIG) if goal is None else goal
    return pd.DataFrame([
        {cfg.COL_KPI_NAME: cfg.KPI_REVENUE_GOAL, cfg.COL_KPI_VALUE: goal},
        {cfg.COL_KPI_NAME: "Ticket Médio Alvo", cfg.COL_KPI_VALUE: 15_000},
        {cfg.COL_KPI_NAME: "CAC Máximo", cfg.COL_KPI_VALUE: 2_500},
    ])


def write_sample_data(directory: str | Path, seed: int | None = None) -> dict[str, Path]:
    """Write the sample CSVs under `directory` at the site-relative paths.

    Returns a mapping of file role to written path; pass `directory` as the
    loaders' base_dir to read them back.
    """
    directory = Path(directory)
    leads = generate_crm_leads(seed=seed)
    ads = generate_consolidated_ads(seed=seed)
    frames = {
        "crm": (cfg.CRM_PATH, leads),
        "ads": (cfg.CONSOLIDATED_ADS_PATH, ads),
        "calculations": (cfg.CALCULATIONS_PATH, generate_calculations(leads, ads, seed=seed)),
        "kpis": (cfg.KPI_TABLE_PATH, generate_kpi_table()),
    }

    written = {}
    for role, (site_path, frame) in frames.items():
        target = directory / site_path.lstrip("/")
        target.parent.mkdir(parents=True, exist_ok=True)
        frame.to_csv(target, index=False)
        written[role] = target
    return written
