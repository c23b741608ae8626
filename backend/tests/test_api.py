"""HTTP API tests: auth, ownership, validation and the per-user resources."""

from datetime import timedelta

from conftest import register, utc_now


# ── Auth ──────────────────────────────────────────


async def test_register_login_and_me(client):
    user_id, headers = await register(client, "pampa", preferred_currency="USD")

    response = await client.post(
        "/api/auth/login",
        json={"email": "pampa@pyme.com.ar", "password": "secreto123"},
    )
    assert response.status_code == 200
    assert response.json()["user"]["id"] == user_id

    me = await client.get("/api/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["preferred_currency"] == "USD"
    assert "password_hash" not in me.json()


async def test_duplicate_registration_conflicts(client):
    await register(client, "pampa")
    response = await client.post(
        "/api/auth/register",
        json={
            "username": "otro",
            "email": "pampa@pyme.com.ar",
            "password": "secreto123",
            "company_name": "Otro SA",
        },
    )
    assert response.status_code == 409


async def test_wrong_password_is_unauthorized(client):
    await register(client, "pampa")
    response = await client.post(
        "/api/auth/login",
        json={"email": "pampa@pyme.com.ar", "password": "incorrecta"},
    )
    assert response.status_code == 401


async def test_validation_errors_are_400_with_field_list(client):
    response = await client.post(
        "/api/auth/register",
        json={"username": "x", "email": "not-an-email", "password": "123", "company_name": "X"},
    )
    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Datos inválidos"
    fields = {e["field"] for e in body["errors"]}
    assert {"email", "password"} <= fields


async def test_me_requires_token(client):
    assert (await client.get("/api/auth/me")).status_code == 401
    bad = await client.get("/api/auth/me", headers={"Authorization": "Bearer nope"})
    assert bad.status_code == 401


# ── Ownership ─────────────────────────────────────


async def test_owner_routes_distinguish_401_and_403(client, user):
    user_id, headers = user
    _, other_headers = await register(client, "intruso")

    assert (await client.get(f"/api/transactions/{user_id}")).status_code == 401
    assert (await client.get(f"/api/transactions/{user_id}", headers=other_headers)).status_code == 403
    assert (await client.get(f"/api/dashboard/{user_id}", headers=other_headers)).status_code == 403
    assert (await client.get(f"/api/transactions/{user_id}", headers=headers)).status_code == 200


async def test_missing_token_wins_over_invalid_body(client, user):
    user_id, _ = user
    response = await client.post(f"/api/transactions/{user_id}", json={"amount": "x"})
    assert response.status_code == 401


# ── Transactions & categories ─────────────────────


async def test_create_and_list_transactions(client, user, categories):
    user_id, headers = user
    payload = {
        "category_id": categories["Ventas"],
        "description": "Factura A-0001",
        "amount": "150000.50",
        "type": "income",
        "date": utc_now().isoformat(),
    }
    created = await client.post(f"/api/transactions/{user_id}", json=payload, headers=headers)
    assert created.status_code == 201
    assert float(created.json()["amount"]) == 150000.5

    listed = await client.get(f"/api/transactions/{user_id}", headers=headers)
    assert [t["description"] for t in listed.json()] == ["Factura A-0001"]


async def test_transaction_validation(client, user, categories):
    user_id, headers = user
    response = await client.post(
        f"/api/transactions/{user_id}",
        json={"category_id": categories["Ventas"], "description": "", "amount": -5, "type": "gift",
              "date": "ayer"},
        headers=headers,
    )
    assert response.status_code == 400
    fields = {e["field"] for e in response.json()["errors"]}
    assert {"description", "amount", "type", "date"} <= fields


async def test_transaction_with_unknown_category_is_404(client, user):
    user_id, headers = user
    response = await client.post(
        f"/api/transactions/{user_id}",
        json={"category_id": 999, "description": "x", "amount": 1, "type": "income",
              "date": utc_now().isoformat()},
        headers=headers,
    )
    assert response.status_code == 404


async def test_categories_are_public(client, categories):
    response = await client.get("/api/transaction-categories")
    assert response.status_code == 200
    assert {c["name"] for c in response.json()} == set(categories)
    assert all(c["color"] == "#6B7280" for c in response.json())


# ── Dashboard, projections, insights ──────────────


async def _seed_month(client, user_id, headers, categories):
    now = utc_now()
    rows = [
        ("Ventas", "income", 1_270_000, now - timedelta(minutes=5)),
        ("Alquiler", "expense", 254_000, now - timedelta(minutes=4)),
        ("Sueldos", "expense", 127_000, now - timedelta(minutes=3)),
    ]
    for category, kind, amount, when in rows:
        response = await client.post(
            f"/api/transactions/{user_id}",
            json={"category_id": categories[category], "description": category, "amount": amount,
                  "type": kind, "date": when.isoformat()},
            headers=headers,
        )
        assert response.status_code == 201


async def test_dashboard_in_ars(client, user, categories):
    user_id, headers = user
    await _seed_month(client, user_id, headers, categories)

    response = await client.get(f"/api/dashboard/{user_id}", headers=headers)
    assert response.status_code == 200
    data = response.json()

    assert data["current_balance"] == 889_000
    assert data["monthly_income"] == 1_270_000
    assert data["monthly_expenses"] == 381_000
    assert data["formatted"]["current_balance"] == "$889.000 ARS"
    assert data["currency"] == {
        "currency": "ARS",
        "dollar_type": "oficial",
        "exchange_rate": 1000.0,
        "rates_live": True,
    }
    assert {c["category_name"] for c in data["expenses_by_category"]} == {"Alquiler", "Sueldos"}
    assert len(data["cash_flow_chart"]["labels"]) == 12
    assert data["cash_flow_chart"]["net_flow"]["scale"] == "thousands"
    assert data["weekly_metrics"]["total_weeks"] == 8
    assert len(data["cash_flow_projections"]) == 7  # one month of history + six projected


async def test_dashboard_in_usd_with_selected_dollar(client, user, categories):
    user_id, headers = user
    await _seed_month(client, user_id, headers, categories)

    response = await client.get(
        f"/api/dashboard/{user_id}",
        params={"currency": "USD", "dollar_type": "blue", "granularity": "week"},
        headers=headers,
    )
    data = response.json()

    assert data["currency"]["exchange_rate"] == 1200.0
    assert data["formatted"]["monthly_income"] == "$1.058,33 USD"
    assert len(data["cash_flow_chart"]["labels"]) == 8


async def test_dashboard_rejects_unknown_currency(client, user):
    user_id, headers = user
    response = await client.get(f"/api/dashboard/{user_id}", params={"currency": "EUR"}, headers=headers)
    assert response.status_code == 400


async def test_projection_crud_and_simulation(client, user, categories):
    user_id, headers = user
    await _seed_month(client, user_id, headers, categories)

    created = await client.post(
        f"/api/cash-flow-projections/{user_id}",
        json={"date": utc_now().isoformat(), "projected_income": 1000, "projected_expenses": 400},
        headers=headers,
    )
    assert created.status_code == 201
    assert float(created.json()["net_flow"]) == 600

    listed = await client.get(f"/api/cash-flow-projections/{user_id}", headers=headers)
    assert len(listed.json()) == 1

    simulated = await client.post(
        f"/api/cash-flow-projections/{user_id}/simulate",
        json={"scenario": {"name": "Plano", "time_frame": 1}, "granularity": "month"},
        headers=headers,
    )
    assert simulated.status_code == 200
    data = simulated.json()
    assert data["metrics"]["net_projected_flow"] == 889_000
    assert data["metrics"]["formatted"]["net_projected_flow"] == "$889.000 ARS"
    assert len(data["historical"]) == 12
    assert len(data["forecast"]["points"]) == 6


async def test_simulation_rejects_bad_scenario(client, user):
    user_id, headers = user
    response = await client.post(
        f"/api/cash-flow-projections/{user_id}/simulate",
        json={"scenario": {"time_frame": 0}, "granularity": "decade"},
        headers=headers,
    )
    assert response.status_code == 400


async def test_scenarios_are_public(client):
    response = await client.get("/api/cash-flow-projections/scenarios")
    assert response.status_code == 200
    names = [s["name"] for s in response.json()]
    assert names == ["Escenario Base", "Optimista", "Conservador", "Pesimista", "Expansión", "Crisis"]


async def test_generate_insights_saves_once(client, user, categories):
    user_id, headers = user
    await _seed_month(client, user_id, headers, categories)

    first = await client.post(f"/api/ai-insights/{user_id}/generate", headers=headers)
    assert first.status_code == 200
    generated = first.json()["insights"]
    assert {"pattern", "recommendation"} <= {i["type"] for i in generated}
    assert len(first.json()["saved"]) == len(generated)

    second = await client.post(f"/api/ai-insights/{user_id}/generate", headers=headers)
    assert second.json()["saved"] == []

    stored = await client.get(f"/api/ai-insights/{user_id}", headers=headers)
    assert len(stored.json()) == len(generated)


async def test_create_insight_manually(client, user):
    user_id, headers = user
    response = await client.post(
        f"/api/ai-insights/{user_id}",
        json={"type": "alert", "title": "Vencimiento AFIP", "description": "IVA vence el 20",
              "priority": "high", "metadata": {"tax": "IVA"}},
        headers=headers,
    )
    assert response.status_code == 201
    assert response.json()["metadata"] == {"tax": "IVA"}
    assert response.json()["is_read"] is False


# ── Notifications ─────────────────────────────────


async def _notify(client, user_id, headers, **overrides):
    payload = {"type": "business_tip", "title": "Tip", "message": "Revisá tus costos", **overrides}
    response = await client.post(f"/api/notifications/{user_id}", json=payload, headers=headers)
    assert response.status_code == 201
    return response.json()


async def test_notification_lifecycle(client, user):
    user_id, headers = user
    first = await _notify(client, user_id, headers)
    await _notify(client, user_id, headers, type="payment_reminder", priority="critical")

    count = await client.get(f"/api/notifications/{user_id}/count", headers=headers)
    assert count.json() == {"count": 2}

    read = await client.patch(f"/api/notifications/{user_id}/{first['id']}/read", headers=headers)
    assert read.status_code == 200
    count = await client.get(f"/api/notifications/{user_id}/count", headers=headers)
    assert count.json() == {"count": 1}

    await client.patch(f"/api/notifications/{user_id}/read-all", headers=headers)
    count = await client.get(f"/api/notifications/{user_id}/count", headers=headers)
    assert count.json() == {"count": 0}

    deleted = await client.delete(f"/api/notifications/{user_id}/{first['id']}", headers=headers)
    assert deleted.status_code == 200
    listed = await client.get(f"/api/notifications/{user_id}", headers=headers)
    assert len(listed.json()) == 1


async def test_expired_notifications_are_hidden(client, user):
    user_id, headers = user
    await _notify(client, user_id, headers, expires_at=(utc_now() - timedelta(hours=1)).isoformat())
    await _notify(client, user_id, headers, expires_at=(utc_now() + timedelta(days=1)).isoformat())

    listed = await client.get(f"/api/notifications/{user_id}", headers=headers)
    assert len(listed.json()) == 1
    count = await client.get(f"/api/notifications/{user_id}/count", headers=headers)
    assert count.json() == {"count": 1}


async def test_cannot_touch_another_users_notification(client, user):
    user_id, headers = user
    note = await _notify(client, user_id, headers)
    other_id, other_headers = await register(client, "intruso")

    response = await client.delete(f"/api/notifications/{other_id}/{note['id']}", headers=other_headers)
    assert response.status_code == 404


async def test_notification_type_is_validated(client, user):
    user_id, headers = user
    response = await client.post(
        f"/api/notifications/{user_id}",
        json={"type": "spam", "title": "x", "message": "y"},
        headers=headers,
    )
    assert response.status_code == 400


# ── Inflation & rates ─────────────────────────────


async def test_inflation_latest(client, user):
    _, headers = user
    assert (await client.get("/api/inflation/latest")).status_code == 404
    assert (await client.post("/api/inflation", json={"month": 9, "year": 2026, "rate": 2.1})).status_code == 401

    for month, rate in ((8, 1.9), (9, 2.1)):
        response = await client.post(
            "/api/inflation",
            json={"month": month, "year": 2026, "rate": rate},
            headers=headers,
        )
        assert response.status_code == 201

    latest = (await client.get("/api/inflation/latest")).json()
    assert latest["month"] == 9
    assert float(latest["rate"]) == 2.1
    assert latest["source"] == "INDEC"


async def test_rates_snapshot_and_refresh(client, user):
    _, headers = user
    current = await client.get("/api/rates")
    assert current.status_code == 200
    assert current.json()["oficial"] == 1000.0

    assert (await client.post("/api/rates/refresh")).status_code == 401

    refreshed = await client.post("/api/rates/refresh", headers=headers)
    assert refreshed.status_code == 200
    assert refreshed.json()["oficial"] == 1250.0
    assert refreshed.json()["is_live"] is True

    after = await client.get("/api/rates")
    assert after.json()["mep"] == 1320.0
