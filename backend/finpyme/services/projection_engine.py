"""Cash-flow projection engine.

Pure transforms over in-memory transactions:

1. bucketing: transactions → ordered `PeriodAggregate`s for a fixed window
2. scenario: historical averages adjusted by a `Scenario`
3. metrics: totals, best/worst case, break-even and risk level
4. forecast: ordinary least squares over historical net flow

There are two models: a *projection* extrapolates the
historical average through a scenario, a *forecast* extrapolates the
net-flow trend line. Nothing here touches the database or keeps state
between calls.
"""

import math
from collections import defaultdict
from dataclasses import asdict, dataclass, field, replace
from datetime import date, datetime, timedelta

from dateutil.relativedelta import relativedelta

from finpyme.config import settings
from finpyme.utils.numbers import safe_amount
from finpyme.utils.records import field_value, to_naive_utc, utc_now

GRANULARITIES = ("day", "week", "month", "quarter", "year")

# Number of buckets in the window for each granularity
WINDOW_PERIODS = {"day": 30, "week": 8, "month": 12, "quarter": 8, "year": 5}

RISK_LEVELS = ("low", "medium", "high")

_MONTHS_ES = ("ene", "feb", "mar", "abr", "may", "jun", "jul", "ago", "sept", "oct", "nov", "dic")

_STEP = {
    "day": relativedelta(days=1),
    "week": relativedelta(weeks=1),
    "month": relativedelta(months=1),
    "quarter": relativedelta(months=3),
    "year": relativedelta(years=1),
}


# ── Types ─────────────────────────────────────────


@dataclass(frozen=True)
class PeriodAggregate:
    label: str
    income: float
    expense: float
    net_flow: float
    date: date

    @property
    def has_activity(self) -> bool:
        return self.income != 0 or self.expense != 0

    def to_dict(self) -> dict:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        return data


@dataclass(frozen=True)
class Scenario:
    """Percentage adjustments applied to historical averages.

    `inflation_rate` is annual; it is applied as one month's worth
    (rate / 12) on top of the projected monthly expenses.
    """

    name: str = "Escenario Base"
    income_growth: float = 0.0
    expense_reduction: float = 0.0
    one_time_income: float = 0.0
    one_time_expense: float = 0.0
    market_growth: float = 0.0
    inflation_rate: float = 0.0
    time_frame: int = 6  # months

    @property
    def income_factor(self) -> float:
        return (1 + self.income_growth / 100) * (1 + self.market_growth / 100)

    @property
    def expense_factor(self) -> float:
        return (1 - self.expense_reduction / 100) * (1 + self.inflation_rate / 100 / 12)


@dataclass(frozen=True)
class ProjectedAverages:
    avg_income: float
    avg_expenses: float
    projected_income: float
    projected_expenses: float

    @property
    def projected_net_flow(self) -> float:
        return self.projected_income - self.projected_expenses


@dataclass(frozen=True)
class ProjectionMetrics:
    total_projected_income: float = 0.0
    total_projected_expenses: float = 0.0
    net_projected_flow: float = 0.0
    worst_case: float = 0.0
    best_case: float = 0.0
    average_monthly_flow: float = 0.0
    break_even_point: float = 0.0
    risk_level: str = "medium"

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ForecastPoint:
    label: str
    date: date
    net_flow: float
    is_forecast: bool = False

    def to_dict(self) -> dict:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        return data


@dataclass(frozen=True)
class Forecast:
    """Historical and forecast points never overlap, so a chart can draw
    them as two separate segments."""

    historical: list[ForecastPoint]
    forecast: list[ForecastPoint]
    slope: float
    intercept: float

    def chart_series(self) -> dict:
        """Two equally long series padded with None outside their own segment."""
        n_hist, n_fore = len(self.historical), len(self.forecast)
        return {
            "labels": [p.label for p in self.historical + self.forecast],
            "historical": [p.net_flow for p in self.historical] + [None] * n_fore,
            "forecast": [None] * n_hist + [p.net_flow for p in self.forecast],
        }


@dataclass(frozen=True)
class ProjectionRow:
    date: date
    projected_income: float
    projected_expenses: float
    net_flow: float
    is_projection: bool = False

    def to_dict(self) -> dict:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        return data


@dataclass(frozen=True)
class WeeklyMetrics:
    weeks: list[dict] = field(default_factory=list)
    average_weekly_flow: float = 0.0
    positive_weeks: int = 0
    total_weeks: int = 0
    standard_deviation: float = 0.0
    volatility_level: str = "Baja"
    trend_direction: str = "Estable"
    trend_rate: float = 0.0
    forecast_value: float = 0.0
    forecast: str = "Negativo"
    recommendation: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


# ── Field access ──────────────────────────────────


def _now(now) -> datetime:
    return to_naive_utc(now) or utc_now()


def _signed_parts(txn) -> tuple[float, float]:
    """(income, expense) contribution of one transaction; expenses are unsigned."""
    amount = safe_amount(field_value(txn, "amount"))
    if field_value(txn, "type") == "income":
        return amount, 0.0
    return 0.0, abs(amount)


# ── 1. Bucketing ──────────────────────────────────


def window_start(granularity: str, now) -> date:
    """First day of the bucketing window that ends today."""
    today = _now(now).date()
    if granularity == "day":
        return today - timedelta(days=WINDOW_PERIODS["day"] - 1)
    if granularity == "week":
        return today - timedelta(days=WINDOW_PERIODS["week"] * 7 - 1)
    if granularity == "month":
        return today.replace(day=1) - relativedelta(months=WINDOW_PERIODS["month"] - 1)
    if granularity == "quarter":
        quarter_start = today.replace(month=(today.month - 1) // 3 * 3 + 1, day=1)
        return quarter_start - relativedelta(months=3 * (WINDOW_PERIODS["quarter"] - 1))
    if granularity == "year":
        return date(today.year - WINDOW_PERIODS["year"] + 1, 1, 1)
    raise ValueError(f"Unknown granularity: {granularity}")


def _bucket_index(granularity: str, start: date, day: date) -> int:
    if granularity == "day":
        return (day - start).days
    if granularity == "week":
        return (day - start).days // 7
    months = (day.year - start.year) * 12 + (day.month - start.month)
    if granularity == "month":
        return months
    if granularity == "quarter":
        return months // 3
    return day.year - start.year


def period_label(granularity: str, start: date) -> str:
    month = _MONTHS_ES[start.month - 1]
    if granularity == "day":
        return f"{start.day} {month}"
    if granularity == "week":
        end = start + timedelta(days=6)
        return f"{start.day} {month} - {end.day}"
    if granularity == "month":
        return f"{month} {start.year}"
    if granularity == "quarter":
        return f"T{(start.month - 1) // 3 + 1} {start.year}"
    return str(start.year)


def bucket_transactions(transactions, granularity: str = "month", now=None) -> list[PeriodAggregate]:
    """Partition transactions into the fixed window ending at `now`.

    Every bucket is present even when empty. Transactions dated before the
    window start or after `now` are dropped; the rest land in exactly one
    bucket.
    """
    if granularity not in GRANULARITIES:
        raise ValueError(f"Unknown granularity: {granularity}")

    current = _now(now)
    start = window_start(granularity, current)
    periods = WINDOW_PERIODS[granularity]

    income = [0.0] * periods
    expense = [0.0] * periods
    for txn in transactions:
        when = to_naive_utc(field_value(txn, "date"))
        if when is None or when > current or when.date() < start:
            continue
        idx = _bucket_index(granularity, start, when.date())
        if 0 <= idx < periods:
            inc, exp = _signed_parts(txn)
            income[idx] += inc
            expense[idx] += exp

    step = _STEP[granularity]
    aggregates = []
    for i in range(periods):
        bucket_start = start + step * i
        aggregates.append(PeriodAggregate(
            label=period_label(granularity, bucket_start),
            income=income[i],
            expense=expense[i],
            net_flow=income[i] - expense[i],
            date=bucket_start,
        ))
    return aggregates


# ── 2. Scenario application ───────────────────────


def project_averages(aggregates: list[PeriodAggregate], scenario: Scenario) -> ProjectedAverages:
    """Average income/expenses over buckets with activity, then apply the scenario.

    Empty buckets are excluded from the average so a short history is not
    diluted by the leading empty part of the window.
    """
    active = [a for a in aggregates if a.has_activity]
    if not active:
        return ProjectedAverages(0.0, 0.0, 0.0, 0.0)

    avg_income = sum(a.income for a in active) / len(active)
    avg_expenses = sum(a.expense for a in active) / len(active)
    return ProjectedAverages(
        avg_income=avg_income,
        avg_expenses=avg_expenses,
        projected_income=avg_income * scenario.income_factor,
        projected_expenses=avg_expenses * scenario.expense_factor,
    )


def apply_scenario(aggregates: list[PeriodAggregate], scenario: Scenario) -> list[PeriodAggregate]:
    """Scenario-adjusted copy of each bucket; one-time items hit the first bucket only."""
    adjusted = []
    for index, agg in enumerate(aggregates):
        income = agg.income * scenario.income_factor
        expense = agg.expense * scenario.expense_factor
        if index == 0:
            income += scenario.one_time_income
            expense += scenario.one_time_expense
        adjusted.append(replace(agg, income=income, expense=expense, net_flow=income - expense))
    return adjusted


# ── 3. Metrics ────────────────────────────────────


def classify_risk(worst_case: float, net_flow: float, avg_income: float) -> str:
    if worst_case < 0 and net_flow < avg_income * 2:
        return "high"
    if net_flow > avg_income * 6:
        return "low"
    return "medium"


def calculate_metrics(
    aggregates: list[PeriodAggregate],
    scenario: Scenario,
    months: int | None = None,
) -> ProjectionMetrics:
    """Scenario totals over `months` periods with a ±20% band on the monthly flow."""
    if not aggregates:
        return ProjectionMetrics()
    averages = project_averages(aggregates, scenario)

    months = scenario.time_frame if months is None else months
    monthly_net_flow = averages.projected_net_flow
    total_income = averages.projected_income * months + scenario.one_time_income
    total_expenses = averages.projected_expenses * months + scenario.one_time_expense
    net_flow = total_income - total_expenses

    variance = abs(monthly_net_flow * 0.2)
    worst_case = net_flow - variance * months
    best_case = net_flow + variance * months

    break_even = (
        averages.projected_income / averages.projected_expenses
        if averages.projected_expenses > 0
        else 0.0
    )

    return ProjectionMetrics(
        total_projected_income=total_income,
        total_projected_expenses=total_expenses,
        net_projected_flow=net_flow,
        worst_case=worst_case,
        best_case=best_case,
        average_monthly_flow=monthly_net_flow,
        break_even_point=break_even,
        risk_level=classify_risk(worst_case, net_flow, averages.avg_income),
    )


# ── 4. Forecast ───────────────────────────────────


def least_squares(values: list[float]) -> tuple[float, float]:
    """(slope, intercept) of y over x = 0..n-1. Degenerate input gives a flat line."""
    n = len(values)
    if n == 0:
        return 0.0, 0.0
    mean_y = sum(values) / n
    if n < 2:
        return 0.0, mean_y

    sum_x = sum(range(n))
    sum_xx = sum(x * x for x in range(n))
    sum_xy = sum(x * y for x, y in enumerate(values))
    denominator = n * sum_xx - sum_x * sum_x
    if denominator == 0:
        return 0.0, mean_y
    slope = (n * sum_xy - sum_x * sum(values)) / denominator
    intercept = (sum(values) - slope * sum_x) / n
    return slope, intercept


def linear_forecast(
    aggregates: list[PeriodAggregate],
    periods: int = 6,
    granularity: str = "month",
) -> Forecast:
    """Extend the net-flow trend line `periods` buckets past the last aggregate."""
    historical = [
        ForecastPoint(label=a.label, date=a.date, net_flow=a.net_flow) for a in aggregates
    ]
    slope, intercept = least_squares([a.net_flow for a in aggregates])
    if not aggregates:
        return Forecast(historical=[], forecast=[], slope=slope, intercept=intercept)

    step = _STEP.get(granularity, _STEP["month"])
    last = aggregates[-1].date
    n = len(aggregates)
    forecast = []
    for i in range(periods):
        future = last + step * (i + 1)
        forecast.append(ForecastPoint(
            label=period_label(granularity, future),
            date=future,
            net_flow=slope * (n + i) + intercept,
            is_forecast=True,
        ))
    return Forecast(historical=historical, forecast=forecast, slope=slope, intercept=intercept)


# ── Supplementary analyses ────────────────────────


def generate_projections(transactions, months: int = 6) -> list[ProjectionRow]:
    """Monthly history for months with data, then `months` rows at the historical average."""
    monthly: dict[date, list[float]] = defaultdict(lambda: [0.0, 0.0])
    for txn in transactions:
        when = to_naive_utc(field_value(txn, "date"))
        if when is None:
            continue
        inc, exp = _signed_parts(txn)
        bucket = monthly[date(when.year, when.month, 1)]
        bucket[0] += inc
        bucket[1] += exp

    rows = [
        ProjectionRow(date=month, projected_income=inc, projected_expenses=exp, net_flow=inc - exp)
        for month, (inc, exp) in sorted(monthly.items())
    ]
    if not rows:
        return rows

    avg_income = sum(r.projected_income for r in rows) / len(rows)
    avg_expenses = sum(r.projected_expenses for r in rows) / len(rows)
    last = rows[-1].date
    for i in range(1, months + 1):
        rows.append(ProjectionRow(
            date=last + relativedelta(months=i),
            projected_income=avg_income,
            projected_expenses=avg_expenses,
            net_flow=avg_income - avg_expenses,
            is_projection=True,
        ))
    return rows


def volatility_series(aggregates: list[PeriodAggregate]) -> list[float]:
    """Absolute change in net flow versus the previous bucket (0 for the first)."""
    return [
        0.0 if i == 0 else abs(agg.net_flow - aggregates[i - 1].net_flow)
        for i, agg in enumerate(aggregates)
    ]


def seasonal_averages(aggregates: list[PeriodAggregate]) -> list[float]:
    """Average net flow per calendar month, January first."""
    sums = [0.0] * 12
    counts = [0] * 12
    for agg in aggregates:
        sums[agg.date.month - 1] += agg.net_flow
        counts[agg.date.month - 1] += 1
    return [s / c if c else 0.0 for s, c in zip(sums, counts)]


def _volatility_level(std_dev: float) -> str:
    if std_dev < 50_000:
        return "Baja"
    if std_dev < 150_000:
        return "Media"
    return "Alta"


def _weekly_recommendation(positive_weeks: int) -> str:
    if positive_weeks >= 6:
        return "Excelente gestión financiera. Considera oportunidades de inversión."
    if positive_weeks >= 4:
        return "Mantener estrategia actual y considerar inversiones."
    if positive_weeks >= 2:
        return "Revisar gastos principales y optimizar categorías de mayor impacto."
    return "Urgente: revisar estructura de costos y buscar nuevas fuentes de ingresos."


def weekly_metrics(transactions, now=None, weeks: int = 8) -> WeeklyMetrics:
    """Rolling 7-day windows ending at `now`, most recent first.

    Windows are half-open except the most recent one, which also includes
    `now` itself.
    """
    current = _now(now)
    dated = [(t, to_naive_utc(field_value(t, "date"))) for t in transactions]

    week_rows = []
    for i in range(weeks):
        week_start = current - timedelta(days=7 * (i + 1))
        week_end = current - timedelta(days=7 * i)
        income = expense = 0.0
        for txn, when in dated:
            if when is None or when < week_start:
                continue
            if when < week_end or (i == 0 and when == week_end):
                inc, exp = _signed_parts(txn)
                income += inc
                expense += exp
        week_rows.append({
            "week_start": week_start.date().isoformat(),
            "week_end": week_end.date().isoformat(),
            "income": income,
            "expenses": expense,
            "net_flow": income - expense,
        })

    flows = [w["net_flow"] for w in week_rows]
    mean = sum(flows) / len(flows) if flows else 0.0
    std_dev = math.sqrt(sum((f - mean) ** 2 for f in flows) / len(flows)) if flows else 0.0

    half = weeks // 2
    recent = flows[:half]
    older = flows[half:]
    recent_avg = sum(recent) / len(recent) if recent else 0.0
    older_avg = sum(older) / len(older) if older else 0.0

    if recent_avg > older_avg:
        direction = "Creciente"
    elif recent_avg < older_avg:
        direction = "Decreciente"
    else:
        direction = "Estable"

    trend_rate = (recent_avg - older_avg) / older_avg if older_avg != 0 else 0.0
    forecast_value = recent_avg * (1 + trend_rate * 0.5)
    positive = sum(1 for f in flows if f > 0)

    return WeeklyMetrics(
        weeks=week_rows,
        average_weekly_flow=mean,
        positive_weeks=positive,
        total_weeks=len(flows),
        standard_deviation=std_dev,
        volatility_level=_volatility_level(std_dev),
        trend_direction=direction,
        trend_rate=trend_rate,
        forecast_value=forecast_value,
        forecast="Positivo" if forecast_value > 0 else "Negativo",
        recommendation=_weekly_recommendation(positive),
    )


# ── Scenarios ─────────────────────────────────────


def base_scenario(time_frame: int = 6) -> Scenario:
    return Scenario(
        name="Escenario Base",
        inflation_rate=settings.inflation_rate_current,
        time_frame=time_frame,
    )


def predefined_scenarios(time_frame: int = 6) -> list[Scenario]:
    return [
        Scenario("Optimista", 25, 15, 0, 0, 10, 25.0, time_frame),
        Scenario("Conservador", 8, 5, 0, 0, 3, settings.inflation_rate_current, time_frame),
        Scenario("Pesimista", -15, -8, 0, 100_000, -5, 55.0, time_frame),
        Scenario("Expansión", 40, 10, 200_000, 150_000, 15, 30.0, time_frame),
        Scenario("Crisis", -25, -10, 0, 75_000, -10, 75.0, time_frame),
    ]
