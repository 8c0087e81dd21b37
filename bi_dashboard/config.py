"""
Configuration: theme, navigation, KPI registry, goals, data sources,
insight rules and locale.

DEFAULT_CONFIG is the single read-only configuration object. Use
merge_config() or apply_preset() to derive a customised copy; nothing in
this module mutates the active configuration.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# File paths
# ---------------------------------------------------------------------------
PROJECT_DIR = Path(__file__).resolve().parent.parent

# Site-relative paths such as "/data/crm.csv" resolve against this directory
DATA_ROOT = Path(os.getenv("BI_DASHBOARD_DATA_ROOT", str(PROJECT_DIR / "public")))

CONFIG_ENV_VAR = "BI_DASHBOARD_CONFIG"

CRM_PATH = "/data/crm.csv"
CONSOLIDATED_ADS_PATH = "/data/dados_consolidados.csv"
CALCULATIONS_PATH = "/data/calculos.csv"
GOOGLE_ANALYTICS_PATH = "/data/google_analytics.csv"
KPI_TABLE_PATH = "/data/kpis_e_metricas_.csv"
CONVERTED_LEADS_PATH = "/data/leads_convertidos_trafego_pago_.csv"

# ---------------------------------------------------------------------------
# Source column names: exact literals, matched byte-for-byte
# ---------------------------------------------------------------------------
# CRM leads
COL_LEAD_ID = "ID_Lead"
COL_LEAD_STATUS = "STATUS DO LEAD"
COL_SELLER = "Vendedor que atendeu"
COL_REVENUE_GENERATED = "Receita Gerada"
COL_CONVERSION_DAYS = "Tempo até Conversão (Dias)"
COL_LOSS_REASON = "Motivo da Perda"
COL_CHANNEL = "Canal de Origem"
COL_CAMPAIGN = "Campanha"
COL_FIRST_CONTACT = "Data do Primeiro Contato"

STATUS_CONVERTED = "Convertido"
STATUS_LOST = "Perdido"
ACTIVE_STATUSES = ("Em Atendimento", "Não Contatado")

UNASSIGNED_SELLER = "Não atribuído"
UNKNOWN_CHANNEL = "Não informado"
UNKNOWN_CAMPAIGN = "Não informada"

# Consolidated ads
COL_ADS_DATE = "Data"
COL_ADS_CHANNEL = "CANAL_ORIGEM"
COL_ADS_CLICKS = "Cliques"
COL_ADS_IMPRESSIONS = "Impressões do anúncio"
COL_ADS_COST = "Custo"
COL_ADS_CONVERSIONS = "Conversões"
COL_ADS_REVENUE = "Receita"
UNKNOWN_ADS_CHANNEL = "Desconhecido"

# Calculations sheet
COL_CALC_REVENUE = "Receita"
COL_CALC_SALES_COST = "Custo Total Vendas"
COL_CALC_CUSTOMERS = "Clientes Adquiridos"
COL_CALC_ADS_COST = "Custo Ads"
COL_CALC_NET_PROFIT = "Lucro Líquido"
COL_CALC_TOTAL_REVENUE = "Receita Total"
COL_CALC_BLOCK = "Bloco"
COL_CALC_METRIC = "Métrica"
COL_CALC_VALUE = "Valor"
SUMMARY_BLOCK = "Resumo Geral"
METRIC_PAID_LEADS = "Leads Captados via Tráfego Pago"
METRIC_SITE_VISITORS = "Visitantes no site"

# KPI table
COL_KPI_NAME = "KPI"
COL_KPI_VALUE = "Valor"
KPI_REVENUE_GOAL = "Meta de Receita"

FORMATS = ("currency", "percentage", "number", "decimal")
DIRECTIONS = ("up", "down", "neutral")


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class SidebarTheme:
    background: str = "#1F2937"
    text: str = "#9CA3AF"
    active_background: str = "#374151"
    active_text: str = "#FFFFFF"
    hover_background: str = "#374151"


@dataclass(frozen=True)
class ThemeConfig:
    primary: str = "#3B82F6"
    secondary: str = "#6366F1"
    success: str = "#10B981"
    danger: str = "#EF4444"
    warning: str = "#F59E0B"
    info: str = "#06B6D4"
    neutral: str = "#6B7280"
    background: str = "#F9FAFB"
    foreground: str = "#111827"
    sidebar: SidebarTheme = field(default_factory=SidebarTheme)


@dataclass(frozen=True)
class NavigationItem:
    name: str
    href: str
    icon: str
    description: str | None = None
    badge: str | None = None


@dataclass(frozen=True)
class Thresholds:
    good: float
    warning: float
    danger: float


@dataclass(frozen=True)
class KPIDefinition:
    id: str
    name: str
    format: str
    category: str
    good_direction: str = "up"
    description: str = ""
    thresholds: Thresholds | None = None
    icon: str | None = None
    formula: str | None = None

    def __post_init__(self):
        if self.format not in FORMATS:
            raise ValueError(f"KPI {self.id!r}: format must be one of {FORMATS}, got {self.format!r}")
        if self.good_direction not in DIRECTIONS:
            raise ValueError(
                f"KPI {self.id!r}: good_direction must be one of {DIRECTIONS}, got {self.good_direction!r}"
            )


@dataclass(frozen=True)
class GoalConfig:
    id: str
    name: str
    target: float
    format: str
    period: str
    icon: str | None = None


@dataclass(frozen=True)
class DataSourceDescriptor:
    id: str
    name: str
    type: str
    path: str
    refresh_interval: int | None = None  # seconds


@dataclass(frozen=True)
class InsightCondition:
    operator: str  # ">", "<", ">=", "<=", "==", "between"
    value: float | tuple[float, float]
    message: str
    severity: str
    icon: str | None = None


@dataclass(frozen=True)
class InsightConfig:
    id: str
    kpi_id: str
    conditions: tuple[InsightCondition, ...]
    type: str = "threshold"


@dataclass(frozen=True)
class NumberFormat:
    decimal: str = ","
    thousand: str = "."


@dataclass(frozen=True)
class LocaleConfig:
    language: str = "pt-BR"
    currency: str = "BRL"
    date_format: str = "DD/MM/YYYY"
    number_format: NumberFormat = field(default_factory=NumberFormat)


@dataclass(frozen=True)
class FooterConfig:
    company: str = "Sua Empresa"
    year: int = 2026
    team: str | None = "Analytics Team"
    version: str | None = "1.0.0"


@dataclass(frozen=True)
class DashboardConfig:
    name: str
    short_name: str
    description: str
    theme: ThemeConfig
    navigation: tuple[NavigationItem, ...]
    kpis: tuple[KPIDefinition, ...]
    goals: tuple[GoalConfig, ...]
    data_sources: tuple[DataSourceDescriptor, ...]
    insights: tuple[InsightConfig, ...]
    locale: LocaleConfig
    user_profiles: tuple[str, ...]
    footer: FooterConfig
    logo: str | None = None
    favicon: str | None = None


# ---------------------------------------------------------------------------
# Default configuration
# ---------------------------------------------------------------------------
DEFAULT_CONFIG = DashboardConfig(
    name="Dashboard Analytics",
    short_name="Analytics",
    description="Dashboard para monitoramento e análise de métricas de negócio",
    logo="/logo.svg",
    favicon="/favicon.ico",
    theme=ThemeConfig(),
    navigation=(
        NavigationItem("Home", "/", "layout-dashboard", "Página inicial"),
        NavigationItem("Visão Geral", "/overview", "bar-chart-3", "KPIs principais e resumo executivo"),
        NavigationItem("Aquisição", "/acquisition", "trending-up", "Métricas de aquisição e campanhas"),
        NavigationItem("Retenção", "/retention", "users", "Análise de retenção e churn"),
        NavigationItem("Monetização", "/monetization", "dollar-sign", "Receita e análise financeira"),
        NavigationItem("Projeções", "/projections", "target", "Projeções e simulações"),
        NavigationItem("Analytics", "/analytics", "zap", "Análise detalhada de dados"),
        NavigationItem("Configurações", "/accessibility", "settings", "Acessibilidade e preferências"),
    ),
    kpis=(
        KPIDefinition(
            id="revenue",
            name="Receita Total",
            description="Receita total no período",
            format="currency",
            icon="💰",
            category="financial",
            good_direction="up",
            thresholds=Thresholds(good=1_000_000, warning=500_000, danger=100_000),
        ),
        KPIDefinition(
            id="profit",
            name="Lucro Líquido",
            description="Lucro após custos",
            format="currency",
            icon="📈",
            category="financial",
            good_direction="up",
        ),
        KPIDefinition(
            id="roas",
            name="ROAS",
            description="Retorno sobre investimento em ads",
            format="decimal",
            icon="🎯",
            category="marketing",
            formula="receita / custoAds",
            good_direction="up",
            thresholds=Thresholds(good=3, warning=2, danger=1),
        ),
        KPIDefinition(
            id="cac",
            name="CAC",
            description="Custo de aquisição de cliente",
            format="currency",
            icon="👥",
            category="marketing",
            formula="(custoAds + custoVendas) / clientesAdquiridos",
            good_direction="down",
        ),
        KPIDefinition(
            id="conversionRate",
            name="Taxa de Conversão",
            description="Percentual de conversão",
            format="percentage",
            icon="🔄",
            category="sales",
            good_direction="up",
            thresholds=Thresholds(good=25, warning=15, danger=5),
        ),
        KPIDefinition(
            id="ltv",
            name="LTV",
            description="Valor do cliente no tempo",
            format="currency",
            icon="💎",
            category="sales",
            good_direction="up",
        ),
        KPIDefinition(
            id="churnRate",
            name="Churn Rate",
            description="Taxa de cancelamento",
            format="percentage",
            icon="📉",
            category="retention",
            good_direction="down",
            thresholds=Thresholds(good=2, warning=5, danger=10),
        ),
        KPIDefinition(
            id="nps",
            name="NPS",
            description="Net Promoter Score",
            format="number",
            icon="⭐",
            category="satisfaction",
            good_direction="up",
            thresholds=Thresholds(good=50, warning=30, danger=0),
        ),
    ),
    goals=(
        GoalConfig("revenueGoal", "Meta de Receita", 30_000_000, "currency", "yearly", "🎯"),
        GoalConfig("customersGoal", "Meta de Clientes", 1_000, "number", "monthly", "👥"),
        GoalConfig("conversionGoal", "Meta de Conversão", 25, "percentage", "monthly", "📈"),
    ),
    data_sources=(
        DataSourceDescriptor("main", "Dados Principais", "csv", "/data/data.csv"),
        DataSourceDescriptor("kpis", "KPIs Calculados", "csv", "/data/kpis.csv"),
        DataSourceDescriptor("analytics", "Analytics", "csv", "/data/analytics.csv"),
        DataSourceDescriptor("crm", "CRM Leads", "csv", CRM_PATH),
        DataSourceDescriptor("ads", "Dados Consolidados de Ads", "csv", CONSOLIDATED_ADS_PATH),
        DataSourceDescriptor("calculations", "Cálculos", "csv", CALCULATIONS_PATH),
    ),
    insights=(
        InsightConfig(
            id="roasInsight",
            kpi_id="roas",
            conditions=(
                InsightCondition(">", 6, "ROAS excelente! Campanhas com alto retorno.", "success", "🚀"),
                InsightCondition("between", (3, 6), "ROAS positivo com potencial para escalar.", "info", "📊"),
                InsightCondition("<", 3, "ROAS baixo. Revise segmentações e criativos.", "warning", "⚠️"),
            ),
        ),
        InsightConfig(
            id="conversionInsight",
            kpi_id="conversionRate",
            conditions=(
                InsightCondition(">", 25, "Taxa de conversão excelente!", "success", "✅"),
                InsightCondition("<", 15, "Conversão abaixo do esperado. Revise o funil.", "warning", "⚠️"),
            ),
        ),
    ),
    locale=LocaleConfig(),
    user_profiles=("Executivo", "Marketing", "Vendas", "Produto", "Financeiro"),
    footer=FooterConfig(),
)

# Preset KPIs: (id, name, format, icon); navigation: (name, href, icon)
PRESETS: dict[str, dict] = {
    "ecommerce": {
        "name": "E-commerce Dashboard",
        "kpis": [
            ("gmv", "GMV", "currency", "🛒"),
            ("orders", "Pedidos", "number", "📦"),
            ("aov", "Ticket Médio", "currency", "💳"),
            ("cartAbandonment", "Abandono de Carrinho", "percentage", "🛒"),
        ],
        "navigation": [
            ("Vendas", "/sales", "shopping-cart"),
            ("Produtos", "/products", "briefcase"),
        ],
    },
    "saas": {
        "name": "SaaS Dashboard",
        "kpis": [
            ("mrr", "MRR", "currency", "💵"),
            ("arr", "ARR", "currency", "📅"),
            ("churn", "Churn", "percentage", "📉"),
            ("ltv", "LTV", "currency", "💎"),
            ("cac", "CAC", "currency", "👥"),
        ],
        "navigation": [
            ("Assinaturas", "/subscriptions", "users"),
            ("Receita", "/revenue", "dollar-sign"),
        ],
    },
    "healthcare": {
        "name": "Healthcare Dashboard",
        "kpis": [
            ("patients", "Pacientes", "number", "🏥"),
            ("appointments", "Consultas", "number", "📋"),
            ("satisfaction", "Satisfação", "percentage", "😊"),
        ],
        "navigation": [
            ("Pacientes", "/patients", "heart"),
            ("Agenda", "/schedule", "bar-chart-3"),
        ],
    },
    "marketing": {
        "name": "Marketing Dashboard",
        "kpis": [
            ("leads", "Leads", "number", "🎯"),
            ("cpl", "CPL", "currency", "💰"),
            ("roas", "ROAS", "decimal", "📈"),
            ("ctr", "CTR", "percentage", "🖱️"),
        ],
        "navigation": [
            ("Campanhas", "/campaigns", "trending-up"),
            ("Performance", "/performance", "zap"),
        ],
    },
    "fintech": {
        "name": "Fintech Dashboard",
        "kpis": [
            ("tpv", "TPV", "currency", "💳"),
            ("transactions", "Transações", "number", "🔄"),
            ("revenue", "Receita", "currency", "💰"),
            ("defaultRate", "Taxa de Inadimplência", "percentage", "⚠️"),
        ],
        "navigation": [
            ("Transações", "/transactions", "dollar-sign"),
            ("Clientes", "/customers", "users"),
        ],
    },
}

# Extra chart colours appended after the theme colours
_CHART_EXTRA = ("#8B5CF6", "#EC4899", "#14B8A6", "#F97316", "#84CC16")


# ---------------------------------------------------------------------------
# Building sections from plain dicts
# ---------------------------------------------------------------------------
def _kpi_from_dict(raw: dict) -> KPIDefinition:
    thresholds = raw.get("thresholds")
    return KPIDefinition(
        id=raw["id"],
        name=raw.get("name", raw["id"]),
        format=raw.get("format", "number"),
        category=raw.get("category", "custom"),
        good_direction=raw.get("good_direction", raw.get("goodDirection", "up")),
        description=raw.get("description", ""),
        thresholds=Thresholds(**thresholds) if thresholds else None,
        icon=raw.get("icon"),
        formula=raw.get("formula"),
    )


def _insight_from_dict(raw: dict) -> InsightConfig:
    conditions = []
    for cond in raw.get("conditions", []):
        value = cond["value"]
        if isinstance(value, list):
            value = tuple(value)
        conditions.append(
            InsightCondition(
                operator=cond["operator"],
                value=value,
                message=cond["message"],
                severity=cond.get("severity", "info"),
                icon=cond.get("icon"),
            )
        )
    return InsightConfig(
        id=raw["id"],
        kpi_id=raw.get("kpi_id", raw.get("kpiId")),
        conditions=tuple(conditions),
        type=raw.get("type", "threshold"),
    )


_SECTION_BUILDERS = {
    "kpis": _kpi_from_dict,
    "insights": _insight_from_dict,
    "goals": lambda raw: GoalConfig(**raw),
    "data_sources": lambda raw: DataSourceDescriptor(**raw),
    "navigation": lambda raw: NavigationItem(**raw),
}


# ---------------------------------------------------------------------------
# Merging and presets
# ---------------------------------------------------------------------------
def _merge_section(base, override):
    """Field-by-field merge of a frozen dataclass with a dict or dataclass."""
    if override is None:
        return base
    if not isinstance(override, dict):
        return override
    known = {f.name for f in fields(base)}
    changes = {k: v for k, v in override.items() if k in known}
    return replace(base, **changes)


def merge_config(custom: dict[str, Any] | None, base: DashboardConfig = DEFAULT_CONFIG) -> DashboardConfig:
    """Return a new config with `custom` laid over `base`.

    Top-level fields are replaced wholesale; dict entries in the list sections
    (kpis, goals, data_sources, navigation, insights) are built into their
    dataclasses. theme, theme.sidebar, locale, locale.number_format and footer
    are merged field by field.
    """
    custom = dict(custom or {})

    theme_override = custom.pop("theme", None)
    locale_override = custom.pop("locale", None)
    footer_override = custom.pop("footer", None)

    theme = base.theme
    if isinstance(theme_override, dict):
        theme_override = dict(theme_override)
        sidebar = _merge_section(theme.sidebar, theme_override.pop("sidebar", None))
        theme = replace(_merge_section(theme, theme_override), sidebar=sidebar)
    elif theme_override is not None:
        theme = theme_override

    locale = base.locale
    if isinstance(locale_override, dict):
        locale_override = dict(locale_override)
        number_format = _merge_section(locale.number_format, locale_override.pop("number_format", None))
        locale = replace(_merge_section(locale, locale_override), number_format=number_format)
    elif locale_override is not None:
        locale = locale_override

    footer = _merge_section(base.footer, footer_override)

    known = {f.name for f in fields(base)}
    unknown = set(custom) - known
    if unknown:
        logger.warning("Ignoring unknown config keys: %s", sorted(unknown))

    top_level = {}
    for key, value in custom.items():
        if key not in known:
            continue
        builder = _SECTION_BUILDERS.get(key)
        if builder is not None and value is not None:
            value = tuple(builder(item) if isinstance(item, dict) else item for item in value)
        elif isinstance(value, list):
            value = tuple(value)
        top_level[key] = value

    return replace(base, theme=theme, locale=locale, footer=footer, **top_level)


def apply_preset(preset_name: str, custom: dict[str, Any] | None = None) -> DashboardConfig:
    """Return the default config extended with an industry preset.

    Raises KeyError for an unknown preset name.
    """
    preset = PRESETS[preset_name]

    preset_kpis = tuple(
        KPIDefinition(
            id=kpi_id,
            name=name,
            format=fmt,
            icon=icon,
            description=name,
            category="custom",
            good_direction="up",
        )
        for kpi_id, name, fmt, icon in preset["kpis"]
    )
    preset_nav = tuple(
        NavigationItem(name=name, href=href, icon=icon, description=name)
        for name, href, icon in preset["navigation"]
    )

    overrides: dict[str, Any] = {
        "name": preset["name"],
        "kpis": DEFAULT_CONFIG.kpis + preset_kpis,
        "navigation": DEFAULT_CONFIG.navigation + preset_nav,
    }
    overrides.update(custom or {})
    return merge_config(overrides)


# ---------------------------------------------------------------------------
# Loading from disk
# ---------------------------------------------------------------------------
def load_config(path: str | Path | None = None) -> DashboardConfig:
    """Load a JSON override file and merge it over DEFAULT_CONFIG.

    Parameters
    ----------
    path : JSON file. Falls back to the BI_DASHBOARD_CONFIG environment
           variable; with neither set the defaults are returned.
    """
    if path is None:
        path = os.getenv(CONFIG_ENV_VAR)
    if not path:
        return DEFAULT_CONFIG

    try:
        with open(path, encoding="utf-8") as fh:
            raw = json.load(fh)
    except (OSError, json.JSONDecodeError):
        logger.exception("Failed to read config overrides: %s", path)
        raise

    config = merge_config(raw)
    logger.info("Loaded config overrides from %s", path)
    return config


_active_config: DashboardConfig | None = None


def get_config() -> DashboardConfig:
    """Return the process-wide configuration, loading it on first use."""
    global _active_config
    if _active_config is None:
        _active_config = load_config()
    return _active_config


# ---------------------------------------------------------------------------
# Derived lookups
# ---------------------------------------------------------------------------
def get_kpi(kpi_id: str, config: DashboardConfig | None = None) -> KPIDefinition | None:
    config = config or get_config()
    return next((k for k in config.kpis if k.id == kpi_id), None)


def get_data_source(source_id: str, config: DashboardConfig | None = None) -> DataSourceDescriptor | None:
    config = config or get_config()
    return next((s for s in config.data_sources if s.id == source_id), None)


def goal_targets(config: DashboardConfig | None = None) -> dict[str, float]:
    """Map goal id -> target."""
    config = config or get_config()
    return {goal.id: goal.target for goal in config.goals}


def revenue_goal(config: DashboardConfig | None = None) -> float:
    return goal_targets(config).get("revenueGoal", 0)


def color_palette(config: DashboardConfig | None = None) -> dict[str, Any]:
    """Theme colours plus a ten-colour series for charts."""
    theme = (config or get_config()).theme
    palette: dict[str, Any] = {
        name: getattr(theme, name)
        for name in (
            "primary", "secondary", "success", "danger", "warning",
            "info", "neutral", "background", "foreground",
        )
    }
    palette["chart"] = (
        theme.primary,
        theme.secondary,
        theme.success,
        theme.warning,
        theme.info,
    ) + _CHART_EXTRA
    return palette


def kpi_color(kpi_id: str, value: float, config: DashboardConfig | None = None) -> str:
    """Return 'success', 'warning', 'danger' or 'neutral' for a KPI value."""
    from .kpis import determine_status

    kpi = get_kpi(kpi_id, config)
    if kpi is None or kpi.thresholds is None:
        return "neutral"
    return determine_status(value, kpi.thresholds, kpi.good_direction)


def status_color(status: str, config: DashboardConfig | None = None) -> str:
    palette = color_palette(config)
    return palette.get(status) or palette["neutral"]
