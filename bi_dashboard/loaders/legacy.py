"""
Named loaders for the dashboard's fixed CSV files.

These predate the LoadResult envelope and return the bare row list; a
failed load yields an empty list (the error is logged by the generic
loader).
"""

from .. import config
from .tabular import load_from_path
from .utils import Row


def _rows(path: str, **kwargs) -> list[Row]:
    return load_from_path(path, "csv", **kwargs).data


def load_crm_leads(**kwargs) -> list[Row]:
    """CRM leads: ID_Lead, "STATUS DO LEAD", "Vendedor que atendeu", "Receita Gerada", ..."""
    return _rows(config.CRM_PATH, **kwargs)


def load_consolidated_ads(**kwargs) -> list[Row]:
    """Consolidated ad spend per day/campaign/channel."""
    return _rows(config.CONSOLIDATED_ADS_PATH, **kwargs)


def load_calculations(**kwargs) -> list[Row]:
    return _rows(config.CALCULATIONS_PATH, **kwargs)


def load_google_analytics(**kwargs) -> list[Row]:
    return _rows(config.GOOGLE_ANALYTICS_PATH, **kwargs)


def load_kpi_table(**kwargs) -> list[Row]:
    return _rows(config.KPI_TABLE_PATH, **kwargs)


def load_converted_leads(**kwargs) -> list[Row]:
    return _rows(config.CONVERTED_LEADS_PATH, **kwargs)
