"""
Insight generation: config-driven threshold rules, runtime rule chains and
fixed narrative commentary for specific business metrics.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from .config import DashboardConfig, InsightCondition, get_config
from .formatting import format_currency

logger = logging.getLogger(__name__)

SEVERITIES = ("success", "warning", "danger", "info")


@dataclass(frozen=True)
class Insight:
    id: str
    kpi_id: str
    message: str
    severity: str
    icon: str | None = None
    value: float | None = None


# ---------------------------------------------------------------------------
# Config-driven rules
# ---------------------------------------------------------------------------
def condition_matches(condition: InsightCondition, value: float) -> bool:
    op = condition.operator
    if op == "between":
        low, high = condition.value
        return low <= value <= high

    threshold = condition.value
    if op == ">":
        return value > threshold
    if op == "<":
        return value < threshold
    if op == ">=":
        return value >= threshold
    if op == "<=":
        return value <= threshold
    if op == "==":
        return value == threshold

    logger.warning("Unknown insight operator %r", op)
    return False


def generate_insight(kpi_id: str, value: float, config: DashboardConfig | None = None) -> Insight | None:
    """First matching configured condition for `kpi_id`, or None.

    Conditions are tried in declaration order. A KPI without insight rules,
    or a value no condition matches, yields None.
    """
    config = config or get_config()
    insight_config = next((i for i in config.insights if i.kpi_id == kpi_id), None)
    if insight_config is None:
        return None

    for condition in insight_config.conditions:
        if condition_matches(condition, value):
            return Insight(
                id=insight_config.id,
                kpi_id=insight_config.kpi_id,
                message=condition.message,
                severity=condition.severity,
                icon=condition.icon,
                value=value,
            )
    return None


def generate_all_insights(values: dict[str, float], config: DashboardConfig | None = None) -> list[Insight]:
    insights = []
    for kpi_id, value in values.items():
        insight = generate_insight(kpi_id, value, config)
        if insight is not None:
            insights.append(insight)
    return insights


# ---------------------------------------------------------------------------
# Runtime rule chains
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class InsightRule:
    condition: Callable[..., bool]
    message: str | Callable[..., str]
    severity: str
    icon: str | None = None

    def __post_init__(self):
        if self.severity not in SEVERITIES:
            raise ValueError(f"severity must be one of {SEVERITIES}, got {self.severity!r}")

    def render(self, value: float, *args: float) -> str:
        if callable(self.message):
            return self.message(value, *args)
        return self.message


class InsightRuleRegistry:
    """Named, ordered rule chains evaluated first-match-wins.

    Each chain should end with a catch-all rule (condition always true) so
    that every value produces an insight.
    """

    def __init__(self, rules: dict[str, list[InsightRule]] | None = None):
        self._rules: dict[str, list[InsightRule]] = {}
        for insight_type, chain in (rules or {}).items():
            self.register(insight_type, chain)

    def register(self, insight_type: str, rules: list[InsightRule]) -> None:
        self._rules[insight_type] = list(rules)

    def types(self) -> list[str]:
        return list(self._rules)

    def generate(self, insight_type: str, value: float, *args: float) -> Insight | None:
        rules = self._rules.get(insight_type)
        if rules is None:
            return None

        for rule in rules:
            if rule.condition(value, *args):
                return Insight(
                    id=f"{insight_type}-insight",
                    kpi_id=insight_type,
                    message=rule.render(value, *args),
                    severity=rule.severity,
                    icon=rule.icon,
                    value=value,
                )
        return None


def default_insight_rules() -> InsightRuleRegistry:
    return InsightRuleRegistry({
        "conversion": [
            InsightRule(lambda v: v > 25, lambda v: f"🚀 Taxa de conversão excelente: {v:.2f}%", "success", "🚀"),
            InsightRule(lambda v: v > 15, lambda v: f"📈 Taxa de conversão boa: {v:.2f}%", "info", "📈"),
            InsightRule(lambda v: v > 5, lambda v: f"⚠️ Taxa de conversão baixa: {v:.2f}%", "warning", "⚠️"),
            InsightRule(lambda v: True, lambda v: f"🔴 Taxa de conversão crítica: {v:.2f}%", "danger", "🔴"),
        ],
        "roas": [
            InsightRule(lambda v: v > 6, lambda v: f"💰 ROAS excelente: {v:.2f}x", "success", "💰"),
            InsightRule(lambda v: v > 3, lambda v: f"📊 ROAS positivo: {v:.2f}x", "info", "📊"),
            InsightRule(lambda v: v > 1, lambda v: f"⚠️ ROAS baixo: {v:.2f}x", "warning", "⚠️"),
            InsightRule(lambda v: True, lambda v: f"🔴 ROAS negativo: {v:.2f}x", "danger", "🔴"),
        ],
    })


def generate_dynamic_insight(
    insight_type: str,
    value: float,
    *args: float,
    registry: InsightRuleRegistry | None = None,
) -> Insight | None:
    registry = registry or default_insight_rules()
    return registry.generate(insight_type, value, *args)


# ---------------------------------------------------------------------------
# Narrative commentary
# ---------------------------------------------------------------------------
def conversion_insight(rate: float) -> str:
    if rate > 25:
        return f"🚀 Excelente! Taxa de conversão de {rate:.2f}% acima do esperado."
    if rate > 15:
        return f"📈 Taxa de conversão razoável ({rate:.2f}%), com espaço para otimização."
    if rate > 5:
        return f"⚠️ Taxa de conversão abaixo do ideal ({rate:.2f}%). Revise o funil."
    return f"🔴 Taxa de conversão crítica ({rate:.2f}%). Ação urgente necessária."


def roas_insight(roas: float) -> str:
    if roas > 6:
        return f"💰 ROAS excelente ({roas:.2f}x). Campanhas com alto retorno!"
    if roas > 3:
        return f"📊 ROAS positivo ({roas:.2f}x). Potencial para escalar."
    if roas > 1:
        return f"⚠️ ROAS baixo ({roas:.2f}x). Avalie segmentações e criativos."
    return f"🔴 ROAS negativo ({roas:.2f}x). Campanhas estão dando prejuízo."


def cac_insight(cac: float, avg_ltv: float) -> str:
    """CAC commentary driven by the LTV/CAC ratio (0 when CAC is 0)."""
    ratio = avg_ltv / cac if cac else 0
    cac_text = format_currency(cac)

    if ratio > 5:
        return f"✅ CAC saudável ({cac_text}). Razão LTV/CAC de {ratio:.1f}x é excelente."
    if ratio > 3:
        return f"📈 CAC adequado ({cac_text}). Razão LTV/CAC de {ratio:.1f}x é boa."
    if ratio > 1:
        return f"⚠️ CAC alto ({cac_text}). Razão LTV/CAC de {ratio:.1f}x precisa melhorar."
    return f"🔴 CAC muito alto ({cac_text}). Razão LTV/CAC de {ratio:.1f}x é insustentável."


def churn_insight(churn_rate: float) -> str:
    if churn_rate < 2:
        return f"✅ Churn excelente ({churn_rate:.2f}%). Retenção muito forte."
    if churn_rate < 5:
        return f"📈 Churn aceitável ({churn_rate:.2f}%). Monitore a tendência."
    if churn_rate < 10:
        return f"⚠️ Churn elevado ({churn_rate:.2f}%). Investigue as causas de cancelamento."
    return f"🔴 Churn crítico ({churn_rate:.2f}%). Ação urgente de retenção necessária."


def nps_insight(nps: float) -> str:
    if nps > 70:
        return f"🌟 NPS excepcional ({nps:.0f}). Clientes são promotores ativos!"
    if nps > 50:
        return f"✅ NPS excelente ({nps:.0f}). Boa satisfação do cliente."
    if nps > 30:
        return f"📈 NPS bom ({nps:.0f}). Há espaço para melhorias."
    if nps > 0:
        return f"⚠️ NPS neutro ({nps:.0f}). A satisfação precisa de atenção."
    return f"🔴 NPS negativo ({nps:.0f}). Clientes insatisfeitos predominam."


def goal_insight(current: float, target: float) -> str:
    """Progress towards a revenue goal."""
    pct = current / target * 100 if target else 0
    remaining = format_currency(target - current)

    if pct >= 100:
        return f"🏆 Meta atingida! {format_currency(current)} ({pct:.1f}% da meta)."
    if pct >= 90:
        return f"🏁 Quase lá! {pct:.1f}% da meta. Faltam {remaining}."
    if pct >= 70:
        return f"🚀 Bom progresso! {pct:.1f}% da meta. Restam {remaining}."
    if pct >= 50:
        return f"📊 Progresso moderado: {pct:.1f}%. Faltam {remaining} para a meta."
    return f"⚠️ Atenção: apenas {pct:.1f}% da meta. Acelere as ações!"


def conversion_time_insight(avg_days: float) -> str:
    if avg_days <= 3:
        return f"⚡ Conversão ultrarrápida ({avg_days:.1f} dias). Excelente eficiência!"
    if avg_days <= 7:
        return f"🚀 Conversão rápida ({avg_days:.1f} dias). A equipe está ágil."
    if avg_days <= 14:
        return f"📈 Tempo de conversão razoável ({avg_days:.1f} dias)."
    if avg_days <= 30:
        return f"⚠️ Conversão lenta ({avg_days:.1f} dias). Otimize o follow-up."
    return f"🔴 Conversão muito lenta ({avg_days:.1f} dias). Revise o processo."


def active_leads_insight(count: int) -> str:
    if count > 1500:
        return f"📌 {count} leads ativos. O follow-up precisa de reforço imediato!"
    if count > 800:
        return f"🔍 {count} leads em aberto. Priorize por probabilidade de conversão."
    if count > 300:
        return f"📊 {count} leads ativos. Volume gerenciável."
    return f"✅ {count} leads ativos. Sob controle."


def seller_insight(name: str, conversion: float, ticket: float, days: float) -> str:
    """Combined commentary on one seller's conversion, ticket and speed."""
    parts = []

    if conversion > 25:
        parts.append(f"✅ {name}: ótima conversão ({conversion:.1f}%).")
    elif conversion < 15:
        parts.append(f"⚠️ {name}: conversão abaixo da média ({conversion:.1f}%).")

    if ticket > 20_000:
        parts.append(f"💎 Ticket alto ({format_currency(ticket)}).")

    if days <= 5:
        parts.append(f"⚡ Conversão rápida ({days:g} dias).")
    elif days > 14:
        parts.append(f"🐢 Conversão lenta ({days:g} dias).")

    return " ".join(parts) if parts else f"{name}: performance dentro da média."


def benchmark_insight(value: float, benchmark: float, metric: str, higher_is_better: bool = True) -> str:
    diff = (value - benchmark) / benchmark * 100 if benchmark else 0
    if higher_is_better:
        comparison = "acima" if value > benchmark else "abaixo"
    else:
        comparison = "melhor" if value < benchmark else "pior"

    if abs(diff) < 5:
        return f"📊 {metric} está alinhado com o benchmark do setor."
    if (higher_is_better and diff > 0) or (not higher_is_better and diff < 0):
        return f"✅ {metric} está {abs(diff):.1f}% {comparison} do benchmark. Excelente!"
    return f"⚠️ {metric} está {abs(diff):.1f}% {comparison} do benchmark. Oportunidade de melhoria."


def trend_insight(current: float, previous: float, metric: str) -> str:
    if previous == 0:
        return f"📊 {metric}: {current:g} (sem dados anteriores para comparação)."

    change = (current - previous) / previous * 100
    if change > 20:
        return f"🚀 {metric} cresceu {change:.1f}% vs período anterior. Excelente tendência!"
    if change > 5:
        return f"📈 {metric} subiu {change:.1f}% vs período anterior. Bom progresso."
    if change > -5:
        sign = "+" if change > 0 else ""
        return f"➡️ {metric} estável ({sign}{change:.1f}%) vs período anterior."
    if change > -20:
        return f"📉 {metric} caiu {abs(change):.1f}% vs período anterior. Monitore."
    return f"🔴 {metric} despencou {abs(change):.1f}% vs período anterior. Ação necessária!"
