import pytest

from bi_dashboard.aggregations import (
    Aggregation,
    aggregate,
    avg_field,
    count_field,
    group_and_aggregate,
    group_by,
    max_field,
    min_field,
    sum_field,
)

SALES = [
    {"canal": "Google", "receita": 100, "cliques": "10"},
    {"canal": "Meta", "receita": 50.5, "cliques": 4},
    {"canal": "Google", "receita": None, "cliques": "abc"},
    {"canal": None, "receita": True},
    {"canal": 5.0, "receita": 20},
]


@pytest.mark.parametrize("func", [sum_field, avg_field, max_field, min_field])
def test_empty_input_returns_zero(func):
    assert func([], "receita") == 0


def test_sum_treats_missing_and_garbage_as_zero():
    assert sum_field(SALES, "receita") == pytest.approx(171.5)
    assert sum_field(SALES, "cliques") == 14


def test_avg_divides_by_row_count():
    assert avg_field(SALES, "receita") == pytest.approx(171.5 / 5)


def test_max_and_min():
    assert max_field(SALES, "receita") == 100
    assert min_field(SALES, "receita") == 0


def test_count_field_uses_typed_equality():
    rows = [{"v": 1}, {"v": 1.0}, {"v": "1"}, {"v": True}, {}]

    assert count_field(rows) == 5
    assert count_field(rows, "v", 1) == 2
    assert count_field(rows, "v", "1") == 1
    assert count_field(rows, "v", True) == 1
    assert count_field(rows, "v", None) == 1


def test_group_by_partitions_every_row_in_order():
    groups = group_by(SALES, "canal")

    assert list(groups) == ["Google", "Meta", "undefined", "5"]
    assert sum(len(members) for members in groups.values()) == len(SALES)
    assert [row["receita"] for row in groups["Google"]] == [100, None]


def test_group_and_aggregate_with_default_and_custom_aliases():
    result = group_and_aggregate(
        SALES,
        "canal",
        [
            Aggregation("receita", "sum"),
            {"field": "receita", "operation": "count", "alias": "n"},
        ],
    )

    assert result[0] == {"group": "Google", "sum_receita": 100, "n": 2}
    assert result[1] == {"group": "Meta", "sum_receita": 50.5, "n": 1}
    assert [row["group"] for row in result] == ["Google", "Meta", "undefined", "5"]


def test_group_totals_add_up_to_overall_sum():
    result = group_and_aggregate(SALES, "canal", [Aggregation("receita", "sum", "total")])

    assert sum(row["total"] for row in result) == pytest.approx(sum_field(SALES, "receita"))


def test_unknown_operation_yields_zero(caplog):
    assert aggregate(SALES, "receita", "median") == 0
    assert "median" in caplog.text
