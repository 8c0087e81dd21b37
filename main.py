"""
BI Dashboard: end-to-end analytics pipeline.

Loads the dashboard CSVs, builds every page payload and prints smoke-test
summaries. When no data exists under DATA_ROOT, sample data is generated
into a temporary directory first.

Usage:
    python main.py
"""

import logging
import tempfile
from functools import partial
from pathlib import Path

from bi_dashboard import config
from bi_dashboard.dashboard import (
    get_acquisition,
    get_analytics,
    get_monetization,
    get_overview,
    get_projections,
    get_retention,
)
from bi_dashboard.formatting import format_currency, format_percentage
from bi_dashboard.kpis import calculate_kpi_complete
from bi_dashboard.loaders import (
    load_calculations,
    load_consolidated_ads,
    load_crm_leads,
    load_kpi_table,
    load_many,
)
from bi_dashboard.simulator import write_sample_data

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def run(base_dir: Path) -> bool:
    """Run the pipeline against `base_dir`; returns True when every check passes."""

    # ------------------------------------------------------------------
    # 1. Load source data
    # ------------------------------------------------------------------
    print("[ 1 ] LOADING SOURCE DATA")
    print("-" * 40)

    leads, ads, calculations, kpi_table = load_many(
        partial(load_crm_leads, base_dir=base_dir),
        partial(load_consolidated_ads, base_dir=base_dir),
        partial(load_calculations, base_dir=base_dir),
        partial(load_kpi_table, base_dir=base_dir),
    )
    print(f"\nCRM leads:       {len(leads)} rows")
    print(f"Ads:             {len(ads)} rows")
    print(f"Calculations:    {len(calculations)} rows")
    print(f"KPI table:       {len(kpi_table)} rows")

    # ------------------------------------------------------------------
    # 2. Page payloads
    # ------------------------------------------------------------------
    print("\n")
    print("[ 2 ] DASHBOARD OUTPUTS")
    print("-" * 40)

    overview = get_overview(calculations)
    print("\nOverview:")
    for kpi in overview["kpis"]:
        print(f"  {kpi.name:22s} | {kpi.formatted_value:>22s} | {kpi.status}")
    print(f"  {overview['commentary']['goal']}")
    for insight in overview["insights"]:
        prefix = "" if not insight.icon or insight.message.startswith(insight.icon) else f"{insight.icon} "
        print(f"  {prefix}{insight.message}")

    acquisition = get_acquisition(ads, calculations)
    print("\nAcquisition:")
    print(f"  CTR {format_percentage(acquisition['ctr'])} | CPA {format_currency(acquisition['cpa'])} "
          f"| ROAS {acquisition['roas']:.2f}x")
    for channel in acquisition["channels"]:
        print(f"  {channel['channel']:12s} | cost {format_currency(channel['cost']):>16s} | ROAS {channel['roas']:.2f}x")

    retention = get_retention(leads, calculations)
    print("\nRetention:")
    print(f"  Status counts: {retention['status_counts']}")
    print(f"  {retention['commentary']['conversion_time']}")
    print(f"  {retention['commentary']['active_leads']}")

    monetization = get_monetization(leads, kpi_table)
    print("\nMonetization:")
    print(f"  Revenue {format_currency(monetization['revenue'])} | "
          f"ticket {format_currency(monetization['average_ticket'])}")
    for seller in monetization["top_sellers"][:3]:
        print(f"  {seller['seller']:16s} | {format_currency(seller['revenue'])}")

    projections = get_projections(leads)
    print("\nProjections:")
    print(f"  +{projections['new_sellers']['count']} sellers -> "
          f"{format_currency(projections['new_sellers']['additional_revenue'])}")
    print(f"  Combined reaches goal: {projections['combined']['reaches_goal']}")

    analytics = get_analytics(leads)
    print("\nAnalytics:")
    print(f"  {analytics['count']} leads over {len(analytics['leads_per_month'])} months")
    print(f"  Export file: {analytics['filename']}")

    # ------------------------------------------------------------------
    # 3. Acceptance checks
    # ------------------------------------------------------------------
    print("\n")
    print("[ 3 ] ACCEPTANCE CRITERIA CHECKS")
    print("-" * 40)

    checks = [
        (len(leads) > 0, f"CRM loaded {len(leads)} leads"),
        (len(overview["kpis"]) == 4, "Overview has 4 KPI cards"),
        (len(projections["series"]) == 18, "Projection series covers 18 months"),
        (analytics["csv"].count("\n") == analytics["count"] + 1, "CSV export has one line per lead plus header"),
        (calculate_kpi_complete("roas", 4.5).status == "success", "ROAS 4.5 classifies as success"),
    ]
    for passed, label in checks:
        print(f"  [{'PASS' if passed else 'FAIL'}] {label}")

    return all(passed for passed, _ in checks)


def main() -> None:
    """Run the full analytics pipeline and print smoke-test outputs."""

    print("=" * 70)
    print("  BI DASHBOARD: Marketing, Sales & CRM Analytics")
    print("  Analytics Pipeline Smoke Test")
    print("=" * 70)
    print()

    if (config.DATA_ROOT / config.CRM_PATH.lstrip("/")).exists():
        ok = run(config.DATA_ROOT)
    else:
        logger.warning("No data under %s; generating sample data", config.DATA_ROOT)
        with tempfile.TemporaryDirectory() as tmp:
            write_sample_data(tmp)
            ok = run(Path(tmp))

    print("\n" + "=" * 70)
    print(f"  Pipeline complete{'.' if ok else ' with failures.'}")
    print("=" * 70)


if __name__ == "__main__":
    main()
