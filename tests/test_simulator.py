from bi_dashboard import config
from bi_dashboard.dashboard import get_acquisition, get_monetization, get_overview, get_retention
from bi_dashboard.loaders import load_calculations, load_consolidated_ads, load_crm_leads, load_kpi_table
from bi_dashboard.simulator import (
    generate_consolidated_ads,
    generate_crm_leads,
    write_sample_data,
)


def test_generated_leads_have_crm_columns():
    leads = generate_crm_leads(n_leads=50)

    assert len(leads) == 50
    for column in (config.COL_LEAD_ID, config.COL_LEAD_STATUS, config.COL_REVENUE_GENERATED, config.COL_FIRST_CONTACT):
        assert column in leads.columns
    converted = leads[leads[config.COL_LEAD_STATUS] == config.STATUS_CONVERTED]
    assert (converted[config.COL_REVENUE_GENERATED] > 0).all()


def test_generation_is_seeded():
    first = generate_consolidated_ads(n_days=5, seed=7)
    second = generate_consolidated_ads(n_days=5, seed=7)
    assert first.equals(second)


def test_sample_data_feeds_the_pages(tmp_path):
    written = write_sample_data(tmp_path)

    assert written["crm"] == tmp_path / "data" / "crm.csv"
    assert all(path.is_file() for path in written.values())

    leads = load_crm_leads(base_dir=tmp_path)
    ads = load_consolidated_ads(base_dir=tmp_path)
    calculations = load_calculations(base_dir=tmp_path)
    kpi_table = load_kpi_table(base_dir=tmp_path)

    assert len(leads) == 600
    assert get_overview(calculations)["revenue"] > 0
    assert get_acquisition(ads, calculations)["ctr"] > 0
    assert get_retention(leads, calculations)["visitor_to_lead_rate"] > 0
    assert get_monetization(leads, kpi_table)["goal"]["target"] == 30_000_000
