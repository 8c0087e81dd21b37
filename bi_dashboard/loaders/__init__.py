"""Data ingestion loaders: generic CSV/JSON/API loading and the named dashboard files."""

from .tabular import LoadOptions, LoadResult, DataLoadError
from .tabular import load_csv, load_json, load_api, load_data, load_from_path, load_many
from .tabular import apply_filters, select_fields, sort_rows, paginate, run_pipeline
from .legacy import load_crm_leads, load_consolidated_ads, load_calculations
from .legacy import load_google_analytics, load_kpi_table, load_converted_leads

__all__ = [
    "LoadOptions",
    "LoadResult",
    "DataLoadError",
    "load_csv",
    "load_json",
    "load_api",
    "load_data",
    "load_from_path",
    "load_many",
    "apply_filters",
    "select_fields",
    "sort_rows",
    "paginate",
    "run_pipeline",
    "load_crm_leads",
    "load_consolidated_ads",
    "load_calculations",
    "load_google_analytics",
    "load_kpi_table",
    "load_converted_leads",
]
