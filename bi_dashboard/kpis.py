"""
KPI computation functions: pure formulas with no side effects.

Every formula guards its denominator: a zero denominator yields 0, never
inf or NaN.

CTR and conversion rate are expressed as percentages (0-100), the same
scale as the configured thresholds (e.g. conversionRate good=25), so
200 clicks over 10,000 impressions is a CTR of 2.0.

Provides the formula table, a name-keyed CalculatorRegistry, trend and
status classification, and the complete KPI result used for cards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

from .aggregations import avg_field, sum_field
from .config import DashboardConfig, Thresholds, get_config, get_kpi
from .formatting import format_number, format_value
from .loaders.utils import Row

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Formulas
# ---------------------------------------------------------------------------
def calc_cac(ads_cost: float, sales_cost: float, customers: float) -> float:
    """Customer acquisition cost: (ads cost + sales cost) / customers acquired."""
    if customers == 0:
        return 0
    return (ads_cost + sales_cost) / customers


def calc_roas(revenue: float, ads_cost: float) -> float:
    """Return on ad spend: revenue / ads cost."""
    if ads_cost == 0:
        return 0
    return revenue / ads_cost


def calc_cpa(total_cost: float, leads: float) -> float:
    """Cost per acquired lead."""
    if leads == 0:
        return 0
    return total_cost / leads


def calc_cpc(total_cost: float, clicks: float) -> float:
    if clicks == 0:
        return 0
    return total_cost / clicks


def calc_ctr(clicks: float, impressions: float) -> float:
    """Click-through rate in percent."""
    if impressions == 0:
        return 0
    return clicks / impressions * 100


def calc_conversion_rate(conversions: float, total: float) -> float:
    """Conversion rate in percent."""
    if total == 0:
        return 0
    return conversions / total * 100


def calc_average_ticket(revenue: float, sales: float) -> float:
    if sales == 0:
        return 0
    return revenue / sales


def calc_ltv(average_ticket: float, purchase_frequency: float = 1, lifetime_months: float = 12) -> float:
    """Lifetime value: ticket x monthly purchase frequency x lifetime in months."""
    return average_ticket * purchase_frequency * lifetime_months


def calc_profit_margin(revenue: float, cost: float) -> float:
    if revenue == 0:
        return 0
    return (revenue - cost) / revenue * 100


def calc_roi(gain: float, investment: float) -> float:
    if investment == 0:
        return 0
    return (gain - investment) / investment * 100


def calc_churn_rate(lost_customers: float, starting_customers: float) -> float:
    if starting_customers == 0:
        return 0
    return lost_customers / starting_customers * 100


def calc_mrr(customers: float, avg_monthly_value: float) -> float:
    return customers * avg_monthly_value


def calc_arr(mrr: float) -> float:
    return mrr * 12


def calc_nps(promoters: float, detractors: float, total: float) -> float:
    """Net promoter score: (promoters - detractors) / respondents x 100."""
    if total == 0:
        return 0
    return (promoters - detractors) / total * 100


def calc_gmv(transactions: Iterable[float]) -> float:
    return sum(transactions)


def calc_aov(gmv: float, orders: float) -> float:
    if orders == 0:
        return 0
    return gmv / orders


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------
Calculator = Callable[..., float]


class CalculatorRegistry:
    """Name-keyed formula registry.

    Names are case-insensitive. Build one with default_registry() and pass
    it to the code that needs it; register() extends that instance only.
    """

    def __init__(self, calculators: dict[str, Calculator] | None = None):
        self._calculators: dict[str, Calculator] = {}
        for name, fn in (calculators or {}).items():
            self.register(name, fn)

    def register(self, name: str, fn: Calculator) -> None:
        self._calculators[name.lower()] = fn

    def names(self) -> list[str]:
        return list(self._calculators)

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._calculators

    def calculate(self, name: str, *args: float) -> float:
        """Run a formula by name; unknown names log a warning and return 0."""
        fn = self._calculators.get(name.lower())
        if fn is None:
            logger.warning('Calculator for "%s" not found', name)
            return 0
        return fn(*args)

    def calculate_multiple(self, calculations: Iterable[tuple[str, Sequence[float]]]) -> dict[str, float]:
        return {name: self.calculate(name, *args) for name, args in calculations}


def default_registry() -> CalculatorRegistry:
    return CalculatorRegistry({
        "cac": calc_cac,
        "roas": calc_roas,
        "cpa": calc_cpa,
        "cpc": calc_cpc,
        "ctr": calc_ctr,
        "conversion_rate": calc_conversion_rate,
        "average_ticket": calc_average_ticket,
        "ltv": calc_ltv,
        "profit_margin": calc_profit_margin,
        "roi": calc_roi,
        "churn_rate": calc_churn_rate,
        "mrr": calc_mrr,
        "arr": calc_arr,
        "nps": calc_nps,
        "gmv": lambda *amounts: calc_gmv(amounts),
        "aov": calc_aov,
    })


def calculate_from_data(
    rows: Sequence[Row],
    calculations: Iterable[dict],
    registry: CalculatorRegistry | None = None,
) -> dict[str, float]:
    """Aggregate columns and feed them to named formulas.

    Each calculation is {"kpi": name, "fields": [...], "aggregation": "sum"|"avg"|"count"};
    the aggregated field values become the formula's positional arguments.
    """
    registry = registry or default_registry()
    results = {}

    for calc in calculations:
        aggregation = calc.get("aggregation", "sum")
        values = []
        for field in calc["fields"]:
            if aggregation == "sum":
                values.append(sum_field(rows, field))
            elif aggregation == "avg":
                values.append(avg_field(rows, field))
            elif aggregation == "count":
                values.append(sum(1 for row in rows if row.get(field) is not None))
            else:
                logger.warning("Unknown aggregation %r for KPI %s", aggregation, calc["kpi"])
                values.append(0)
        results[calc["kpi"]] = registry.calculate(calc["kpi"], *values)

    return results


# ---------------------------------------------------------------------------
# Trend and status
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Trend:
    value: float  # absolute percent change
    direction: str  # "up", "down" or "neutral"
    is_positive: bool


@dataclass(frozen=True)
class KPIResult:
    id: str
    name: str
    value: float
    formatted_value: str
    format: str
    trend: Trend | None = None
    status: str | None = None


def calc_trend(current: float, previous: float, good_direction: str = "up") -> Trend:
    """Percent change from `previous` to `current`, judged against the good direction.

    A previous value of 0 gives a neutral trend of magnitude 0.
    """
    if previous == 0:
        return Trend(value=0, direction="neutral", is_positive=True)

    change = (current - previous) / previous * 100
    if change > 0:
        direction = "up"
    elif change < 0:
        direction = "down"
    else:
        direction = "neutral"

    if good_direction == "neutral":
        is_positive = True
    elif good_direction == "up":
        is_positive = change >= 0
    else:
        is_positive = change <= 0

    return Trend(value=abs(change), direction=direction, is_positive=is_positive)


def determine_status(value: float, thresholds: Thresholds, good_direction: str = "up") -> str:
    """Return 'success', 'warning' or 'danger'.

    Logic
    -----
    - good_direction='up':   success if value >= good, warning if >= warning
    - otherwise (lower is better): success if value <= good, warning if <= warning
    - danger in every other case
    """
    if good_direction == "up":
        if value >= thresholds.good:
            return "success"
        if value >= thresholds.warning:
            return "warning"
        return "danger"

    if value <= thresholds.good:
        return "success"
    if value <= thresholds.warning:
        return "warning"
    return "danger"


def calculate_kpi_complete(
    kpi_id: str,
    value: float,
    previous: float | None = None,
    config: DashboardConfig | None = None,
) -> KPIResult:
    """Formatted, trend-annotated and status-classified KPI.

    Unknown KPI ids fall back to plain number formatting without trend or
    status.
    """
    config = config or get_config()
    kpi = get_kpi(kpi_id, config)

    if kpi is None:
        logger.warning("KPI %r is not configured; using plain formatting", kpi_id)
        return KPIResult(
            id=kpi_id,
            name=kpi_id,
            value=value,
            formatted_value=format_number(value, config.locale),
            format="number",
        )

    trend = None
    if previous is not None:
        trend = calc_trend(value, previous, kpi.good_direction)

    status = None
    if kpi.thresholds is not None:
        status = determine_status(value, kpi.thresholds, kpi.good_direction)

    return KPIResult(
        id=kpi_id,
        name=kpi.name,
        value=value,
        formatted_value=format_value(value, kpi.format, config.locale),
        format=kpi.format,
        trend=trend,
        status=status,
    )


def calculate_kpis_complete(
    items: Iterable[tuple[str, float] | tuple[str, float, float | None]],
    config: DashboardConfig | None = None,
) -> list[KPIResult]:
    """calculate_kpi_complete over (kpi_id, value[, previous]) tuples."""
    return [calculate_kpi_complete(*item, config=config) for item in items]
