"""Rule-based financial insights.

Each rule is an independent function over transactions or net-flow series;
`generate_insights` simply concatenates their output, so rule order never
changes the result set.
"""

from collections import defaultdict
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import timedelta

from finpyme.config import settings
from finpyme.utils.numbers import format_es_ar, safe_amount
from finpyme.utils.records import field_value, to_naive_utc, utc_now

INSIGHT_TYPES = ("pattern", "opportunity", "recommendation", "alert")

CONCENTRATION_THRESHOLD = 30.0  # percent of total expenses
HIGH_CONCENTRATION_THRESHOLD = 50.0


@dataclass(frozen=True)
class Insight:
    id: str
    type: str
    title: str
    description: str
    priority: str
    confidence: float
    impact: str
    actionable: bool = True
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


def _default_formatter(amount: float) -> str:
    return f"${format_es_ar(abs(amount))} ARS"


def detect_spending_patterns(transactions) -> list[Insight]:
    """Flag expense categories that take more than 30% of total expenses."""
    by_category: dict = defaultdict(float)
    for txn in transactions:
        if field_value(txn, "type") == "expense":
            amount = abs(safe_amount(field_value(txn, "amount")))
            by_category[field_value(txn, "category_id")] += amount

    total = sum(by_category.values())
    if total <= 0:
        return []

    insights = []
    for category_id, amount in by_category.items():
        percentage = amount / total * 100
        if percentage <= CONCENTRATION_THRESHOLD:
            continue
        insights.append(Insight(
            id=f"pattern-{category_id}",
            type="pattern",
            title="Concentración de Gastos Detectada",
            description=(
                f"El {percentage:.1f}% de tus gastos se concentra en una sola categoría. "
                "Considera diversificar o optimizar esta área."
            ),
            priority="high" if percentage > HIGH_CONCENTRATION_THRESHOLD else "medium",
            confidence=0.85,
            impact="negative",
            metadata={"category_id": category_id, "percentage": percentage, "amount": amount},
        ))
    return insights


def detect_cash_flow_trends(net_flows: list[float]) -> list[Insight]:
    """Look at the last three net flows; needs at least three points."""
    if len(net_flows) < 3:
        return []

    a, b, c = (safe_amount(v) for v in net_flows[-3:])
    if a > b > c:
        return [Insight(
            id="trend-decreasing",
            type="alert",
            title="Tendencia Negativa en Flujo de Caja",
            description=(
                "Se detecta una tendencia decreciente en el flujo de caja durante los "
                "últimos 3 períodos. Considera revisar gastos o incrementar ingresos."
            ),
            priority="high",
            confidence=0.9,
            impact="negative",
            metadata={"net_flows": [a, b, c]},
        )]
    if a < b < c:
        return [Insight(
            id="trend-increasing",
            type="opportunity",
            title="Tendencia Positiva en Flujo de Caja",
            description=(
                "¡Excelente! Tu flujo de caja muestra una tendencia creciente. Este es un "
                "buen momento para considerar inversiones o reservas."
            ),
            priority="medium",
            confidence=0.85,
            impact="positive",
            metadata={"net_flows": [a, b, c]},
        )]
    return []


def generate_optimization_recommendations(
    transactions,
    now=None,
    threshold: float | None = None,
    format_amount: Callable[[float], str] | None = None,
) -> list[Insight]:
    """Recommend an expense review when the trailing 30-day daily average is high."""
    threshold = settings.insight_daily_expense_threshold if threshold is None else threshold
    format_amount = format_amount or _default_formatter
    current = to_naive_utc(now) or utc_now()
    cutoff = current - timedelta(days=30)

    recent = []
    for txn in transactions:
        when = to_naive_utc(field_value(txn, "date"))
        if when is not None and when >= cutoff:
            recent.append(txn)
    if not recent:
        return []

    total_expenses = sum(
        abs(safe_amount(field_value(t, "amount")))
        for t in recent
        if field_value(t, "type") == "expense"
    )
    avg_daily = total_expenses / 30
    if avg_daily <= threshold:
        return []

    return [Insight(
        id="recommendation-expense-review",
        type="recommendation",
        title="Revisión de Gastos Recomendada",
        description=(
            f"Con un promedio de {format_amount(avg_daily)} en gastos diarios, podrías "
            "optimizar revisando gastos no esenciales."
        ),
        priority="medium",
        confidence=0.75,
        impact="positive",
        metadata={"avg_daily_expenses": avg_daily},
    )]


def generate_insights(
    transactions,
    net_flows: list[float],
    now=None,
    format_amount: Callable[[float], str] | None = None,
) -> list[Insight]:
    return [
        *detect_spending_patterns(transactions),
        *detect_cash_flow_trends(net_flows),
        *generate_optimization_recommendations(transactions, now=now, format_amount=format_amount),
    ]
