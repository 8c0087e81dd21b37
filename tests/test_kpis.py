import pytest

from bi_dashboard.config import Thresholds
from bi_dashboard.kpis import (
    CalculatorRegistry,
    calc_aov,
    calc_arr,
    calc_average_ticket,
    calc_cac,
    calc_churn_rate,
    calc_conversion_rate,
    calc_cpa,
    calc_cpc,
    calc_ctr,
    calc_gmv,
    calc_ltv,
    calc_mrr,
    calc_nps,
    calc_profit_margin,
    calc_roas,
    calc_roi,
    calc_trend,
    calculate_from_data,
    calculate_kpi_complete,
    calculate_kpis_complete,
    default_registry,
    determine_status,
)


@pytest.mark.parametrize(
    "func, args",
    [
        (calc_cac, (100, 50, 0)),
        (calc_roas, (1000, 0)),
        (calc_cpa, (100, 0)),
        (calc_cpc, (100, 0)),
        (calc_ctr, (10, 0)),
        (calc_conversion_rate, (5, 0)),
        (calc_average_ticket, (100, 0)),
        (calc_profit_margin, (0, 50)),
        (calc_roi, (100, 0)),
        (calc_churn_rate, (3, 0)),
        (calc_nps, (10, 2, 0)),
        (calc_aov, (100, 0)),
    ],
)
def test_zero_denominator_returns_zero(func, args):
    assert func(*args) == 0


def test_rates_are_percentages():
    assert calc_ctr(200, 10_000) == pytest.approx(2.0)
    assert calc_conversion_rate(25, 100) == pytest.approx(25.0)
    assert calc_churn_rate(5, 200) == pytest.approx(2.5)


def test_formulas():
    assert calc_cac(6000, 4000, 10) == 1000
    assert calc_roas(5000, 1000) == 5
    assert calc_ltv(1000) == 12_000
    assert calc_ltv(1000, 2, 6) == 12_000
    assert calc_profit_margin(200, 150) == pytest.approx(25.0)
    assert calc_roi(150, 100) == pytest.approx(50.0)
    assert calc_nps(60, 10, 100) == pytest.approx(50.0)
    assert calc_arr(calc_mrr(10, 100)) == 12_000
    assert calc_gmv([10, 20, 30.5]) == pytest.approx(60.5)


def test_registry_is_case_insensitive_and_extensible():
    registry = default_registry()
    registry.register("Double", lambda x: x * 2)

    assert "ROAS" in registry
    assert registry.calculate("ROAS", 500, 100) == 5
    assert registry.calculate("double", 4) == 8
    assert registry.calculate("gmv", 1, 2, 3) == 6


def test_registry_unknown_calculator_returns_zero(caplog):
    assert CalculatorRegistry().calculate("nope", 1, 2) == 0
    assert "nope" in caplog.text


def test_registries_do_not_share_state():
    first = default_registry()
    first.register("custom", lambda: 1)

    assert "custom" not in default_registry()


def test_calculate_multiple():
    results = default_registry().calculate_multiple([("ctr", (50, 1000)), ("cpc", (100, 50))])
    assert results == {"ctr": pytest.approx(5.0), "cpc": 2}


def test_calculate_from_data_aggregates_fields():
    rows = [
        {"clicks": 100, "impressions": 4000, "cost": 50},
        {"clicks": "100", "impressions": 6000, "cost": None},
    ]

    results = calculate_from_data(
        rows,
        [
            {"kpi": "ctr", "fields": ["clicks", "impressions"], "aggregation": "sum"},
            {"kpi": "cpc", "fields": ["cost", "clicks"], "aggregation": "avg"},
        ],
    )

    assert results["ctr"] == pytest.approx(2.0)
    assert results["cpc"] == pytest.approx(0.25)


# ---------------------------------------------------------------------------
# Trend and status
# ---------------------------------------------------------------------------
def test_trend_up_is_positive_when_higher_is_better():
    trend = calc_trend(110, 100, "up")
    assert trend.value == pytest.approx(10.0)
    assert trend.direction == "up"
    assert trend.is_positive


def test_trend_up_is_negative_when_lower_is_better():
    trend = calc_trend(110, 100, "down")
    assert trend.direction == "up"
    assert not trend.is_positive


def test_trend_from_zero_is_neutral():
    trend = calc_trend(50, 0)
    assert trend.value == 0
    assert trend.direction == "neutral"
    assert trend.is_positive


def test_trend_neutral_direction_is_always_positive():
    assert calc_trend(50, 100, "neutral").is_positive


@pytest.mark.parametrize(
    "value, direction, expected",
    [
        (30, "up", "success"),
        (25, "up", "success"),
        (20, "up", "warning"),
        (10, "up", "danger"),
        (1, "down", "success"),
        (2, "down", "success"),
        (4, "down", "warning"),
        (8, "down", "danger"),
    ],
)
def test_determine_status(value, direction, expected):
    thresholds = Thresholds(good=25, warning=15, danger=5) if direction == "up" else Thresholds(good=2, warning=5, danger=10)
    assert determine_status(value, thresholds, direction) == expected


# ---------------------------------------------------------------------------
# Complete KPI results
# ---------------------------------------------------------------------------
def test_complete_kpi_formats_and_classifies():
    result = calculate_kpi_complete("revenue", 1_500_000, previous=1_000_000)

    assert result.name == "Receita Total"
    assert result.formatted_value == "R$ 1.500.000,00"
    assert result.status == "success"
    assert result.trend.value == pytest.approx(50.0)
    assert result.trend.is_positive


def test_complete_kpi_without_thresholds_has_no_status():
    result = calculate_kpi_complete("cac", 250.5)
    assert result.status is None
    assert result.trend is None
    assert result.formatted_value == "R$ 250,50"


def test_complete_kpi_for_unknown_id_uses_plain_number():
    result = calculate_kpi_complete("mystery", 1234.5)

    assert result.name == "mystery"
    assert result.format == "number"
    assert result.formatted_value == "1.234,5"
    assert result.status is None


def test_complete_kpis_in_order():
    results = calculate_kpis_complete([("roas", 4.2), ("churnRate", 7, 5)])

    assert [r.id for r in results] == ["roas", "churnRate"]
    assert results[0].formatted_value == "4,20"
    assert results[1].status == "danger"
    assert not results[1].trend.is_positive


def test_trend_twenty_percent():
    up = calc_trend(120, 100, "up")
    down = calc_trend(120, 100, "down")

    assert up.value == pytest.approx(20.0)
    assert up.direction == "up"
    assert up.is_positive
    assert not down.is_positive
