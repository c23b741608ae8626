"""Rule-based insight tests."""

from datetime import datetime, timedelta, timezone

from finpyme.services.insight_generator import (
    detect_cash_flow_trends,
    detect_spending_patterns,
    generate_insights,
    generate_optimization_recommendations,
)

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def expense(amount, category_id, days_ago=1):
    return {
        "amount": amount,
        "type": "expense",
        "category_id": category_id,
        "date": NOW - timedelta(days=days_ago),
    }


def test_concentrated_categories_are_flagged():
    insights = detect_spending_patterns([expense(600, 1), expense(400, 2)])
    by_id = {i.id: i for i in insights}

    assert by_id["pattern-1"].priority == "high"
    assert by_id["pattern-1"].metadata["percentage"] == 60
    assert by_id["pattern-2"].priority == "medium"
    assert "40.0%" in by_id["pattern-2"].description
    assert all(i.type == "pattern" and i.confidence == 0.85 for i in insights)


def test_spread_spending_is_not_flagged():
    transactions = [expense(250, category) for category in range(4)]
    assert detect_spending_patterns(transactions) == []


def test_income_is_ignored_by_spending_patterns():
    assert detect_spending_patterns([{"amount": 10, "type": "income", "category_id": 1}]) == []


def test_decreasing_trend_raises_alert():
    [insight] = detect_cash_flow_trends([50, 300, 200, 100])
    assert insight.type == "alert"
    assert insight.priority == "high"
    assert insight.confidence == 0.9


def test_increasing_trend_is_opportunity():
    [insight] = detect_cash_flow_trends([-10, 0, 10])
    assert insight.type == "opportunity"
    assert insight.priority == "medium"


def test_flat_or_short_series_yield_nothing():
    assert detect_cash_flow_trends([1, 1, 2]) == []
    assert detect_cash_flow_trends([3, 2]) == []


def test_high_daily_expenses_trigger_review():
    [insight] = generate_optimization_recommendations(
        [expense(200_000, 1), expense(1_000_000, 1, days_ago=45)],
        now=NOW,
    )
    assert insight.type == "recommendation"
    assert insight.metadata["avg_daily_expenses"] == 200_000 / 30
    assert "$6.667 ARS" in insight.description


def test_review_threshold_and_formatter_are_injectable():
    insights = generate_optimization_recommendations(
        [expense(3_000, 1)],
        now=NOW,
        threshold=50,
        format_amount=lambda amount: f"USD {amount:.2f}",
    )
    assert "USD 100.00" in insights[0].description

    assert generate_optimization_recommendations([expense(3_000, 1)], now=NOW) == []


def test_no_recent_activity_yields_nothing():
    assert generate_optimization_recommendations([expense(10**9, 1, days_ago=60)], now=NOW) == []


def test_generate_insights_is_order_insensitive():
    transactions = [expense(600_000, 1), expense(100_000, 2), expense(50_000, 3, days_ago=3)]
    flows = [300, 200, 100]

    forward = generate_insights(transactions, flows, now=NOW)
    backward = generate_insights(list(reversed(transactions)), flows, now=NOW)

    assert {i.id for i in forward} == {i.id for i in backward}
    assert {i.type for i in forward} == {"pattern", "alert", "recommendation"}
