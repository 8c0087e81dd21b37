import datetime as dt

import pandas as pd
import pytest

from bi_dashboard.transforms import (
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
    seller_performance,
    seller_revenue_ranking,
    status_counts,
    ticket_bands,
    to_frame,
    valid_leads,
)


def test_converted_leads_require_revenue(leads):
    extra = {"ID_Lead": "L9", "STATUS DO LEAD": "Convertido", "Receita Gerada": 0}
    assert [lead["ID_Lead"] for lead in converted_leads(leads + [extra])] == ["L1", "L3"]


def test_valid_leads_need_id_and_status(leads):
    assert len(valid_leads(leads + [{"ID_Lead": None, "STATUS DO LEAD": "Perdido"}])) == len(leads)


def test_status_counts(leads):
    assert status_counts(leads) == {"converted": 2, "lost": 3, "active": 1, "total": 6}


def test_average_conversion_days(leads):
    assert average_conversion_days(leads) == 7
    assert average_conversion_days([]) == 0


def test_loss_reasons_sorted_by_frequency(leads):
    reasons = loss_reasons(leads)

    assert [r["reason"] for r in reasons] == ["Preço", "Escolheu concorrente"]
    assert reasons[0]["count"] == 2
    assert reasons[0]["pct"] == pytest.approx(200 / 3)


def test_seller_performance(leads):
    rows = {row["seller"]: row for row in seller_performance(leads)}

    assert rows["Ana"]["conversion_rate"] == pytest.approx(50.0)
    assert rows["Bruno"]["total"] == 3
    assert rows["Bruno"]["lost"] == 2
    assert rows["Bruno"]["avg_days"] == 10
    assert rows["Não atribuído"]["active"] == 1
    assert seller_performance(leads)[0]["seller"] == "Ana"


def test_seller_revenue_ranking(leads):
    ranking = seller_revenue_ranking(converted_leads(leads))

    assert [r["seller"] for r in ranking] == ["Bruno", "Ana"]
    assert ranking[0]["average_ticket"] == 30_000
    assert ranking[0]["ltv"] == 360_000


def test_ticket_bands(leads):
    bands = ticket_bands(converted_leads(leads))

    assert [b["count"] for b in bands] == [0, 1, 0, 0, 1]
    assert bands[1]["revenue"] == 12_000
    assert bands[4]["band"] == "Acima de R$ 25k"


def test_channel_breakdown(ads):
    channels = {row["channel"]: row for row in channel_breakdown(ads)}

    google = channels["Google Ads"]
    assert google["clicks"] == 400
    assert google["leads"] == 20
    assert google["ctr"] == pytest.approx(2.0)
    assert google["cpa"] == pytest.approx(50.0)
    assert google["roas"] == pytest.approx(5.0)

    # no conversions: leads estimated from clicks
    assert channels["Meta Ads"]["leads"] == pytest.approx(20.0)
    assert "Desconhecido" in channels
    assert [row["channel"] for row in channel_breakdown(ads)][0] == "Google Ads"


def test_leads_per_month_sorted_chronologically(leads):
    series = leads_per_month(leads + [{"Data do Primeiro Contato": "bad date"}, {}])

    assert series == [
        {"month": "12/2024", "leads": 1},
        {"month": "01/2025", "leads": 2},
        {"month": "02/2025", "leads": 3},
    ]


def test_filter_options_fill_placeholders(leads):
    options = filter_options(leads)

    assert options["channels"] == ["Google Ads", "Meta Ads", "Não informado", "Indicação"]
    assert options["campaigns"] == ["Search Marca", "Remarketing", "Não informada"]
    assert options["sellers"] == ["Ana", "Bruno", "Não atribuído"]
    assert options["statuses"] == ["Convertido", "Perdido", "Em Atendimento"]


def test_filter_leads_combines_selections(leads):
    assert [l["ID_Lead"] for l in filter_leads(leads, channel="Meta Ads")] == ["L2", "L5"]
    assert [l["ID_Lead"] for l in filter_leads(leads, channel="Meta Ads", seller="Bruno")] == ["L5"]
    assert [l["ID_Lead"] for l in filter_leads(leads, seller="Não atribuído")] == ["L4"]
    assert len(filter_leads(leads)) == len(leads)


def test_lead_table_rows(leads):
    row = lead_table(leads)[3]
    assert row == {
        "id": "L4",
        "date": "10/12/2024",
        "channel": "Não informado",
        "campaign": "Não informada",
        "seller": "Não atribuído",
        "status": "Em Atendimento",
        "revenue": 0,
        "conversion_days": 0,
    }


def test_to_frame_keeps_python_values(leads):
    frame = to_frame(lead_table(leads))

    assert isinstance(frame, pd.DataFrame)
    assert len(frame) == len(leads)
    assert frame.loc[0, "id"] == "L1"


def test_export_csv_quotes_every_field():
    text = export_csv([{"a": 'say "hi"', "b": 1}, {"a": None, "b": 2.5}], ["a", "b"])

    assert text.splitlines() == [
        '"a","b"',
        '"say ""hi""","1"',
        '"","2.5"',
    ]


def test_export_leads_uses_export_headings(leads):
    rows = export_leads(leads)

    assert list(rows[0]) == [
        "ID Lead",
        "Data Primeiro Contato",
        "Canal de Origem",
        "Campanha",
        "Vendedor",
        "Status",
        "Receita Gerada",
        "Tempo até Conversão (Dias)",
    ]
    assert rows[3]["Vendedor"] == "Não atribuído"
    assert rows[0]["Receita Gerada"] == 12000


def test_export_filename():
    assert export_filename(day=dt.date(2025, 3, 9)) == "analytics_2025-03-09.csv"
    assert export_filename("leads", dt.date(2025, 12, 31)) == "leads_2025-12-31.csv"


def test_leads_per_month_across_years_and_unpadded_dates():
    leads = [
        {"Data do Primeiro Contato": "5/1/2025"},
        {"Data do Primeiro Contato": "31/12/2024"},
        {"Data do Primeiro Contato": "02/01/2025"},
        {"Data do Primeiro Contato": "31/02/2025"},
        {"Data do Primeiro Contato": None},
    ]

    assert leads_per_month(leads) == [
        {"month": "12/2024", "leads": 1},
        {"month": "01/2025", "leads": 2},
    ]


@pytest.mark.parametrize(
    "func, expected",
    [
        (leads_per_month, []),
        (seller_performance, []),
        (seller_revenue_ranking, []),
        (channel_breakdown, []),
        (loss_reasons, []),
        (status_counts, {"converted": 0, "lost": 0, "active": 0, "total": 0}),
    ],
)
def test_empty_inputs(func, expected):
    assert func([]) == expected


def test_ticket_bands_without_leads_lists_every_band():
    bands = ticket_bands([])

    assert [b["band"] for b in bands][0] == "Até R$ 10k"
    assert len(bands) == 5
    assert all(b["count"] == 0 and b["revenue"] == 0 for b in bands)


def test_seller_tables_hold_plain_python_values(leads):
    row = seller_performance(leads)[0]

    assert isinstance(row["total"], int)
    assert isinstance(row["conversion_rate"], float)
    assert isinstance(seller_revenue_ranking(converted_leads(leads))[0]["revenue"], float)


def test_seller_performance_keeps_first_seen_order_on_ties():
    leads = [
        {"Vendedor que atendeu": "Zé", "STATUS DO LEAD": "Convertido"},
        {"Vendedor que atendeu": "Ana", "STATUS DO LEAD": "Convertido"},
    ]

    assert [row["seller"] for row in seller_performance(leads)] == ["Zé", "Ana"]
