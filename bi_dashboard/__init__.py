"""
BI Dashboard: marketing, sales and CRM analytics backend

Loads CSV/JSON/API sources into plain row lists, computes business KPIs and
turns them into formatted, status-classified results with narrative
insights.

To point at another dataset:
    Set BI_DASHBOARD_DATA_ROOT to the directory holding data/crm.csv and the
    other exports, or register extra sources in a JSON file named by
    BI_DASHBOARD_CONFIG and read them with loaders.load_data(source_id).

To connect a front end:
    Call the dashboard.get_* functions (get_overview, get_acquisition, ...)
    and render the returned dicts as cards, charts and tables.

To add new KPIs:
    Add a KPIDefinition through the config overrides (or a preset), and
    register its formula on a kpis.CalculatorRegistry.
"""
