from datetime import datetime

from app.config import settings


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


async def test_requires_session(client):
    response = await client.get("/api/v1/categories")

    assert response.status_code == 401
    assert response.json()["error"]["kind"] == "authentication"


async def test_rejects_unknown_session(client):
    client.cookies.set(settings.SESSION_COOKIE_NAME, "forged-token")

    response = await client.get("/api/v1/user/profile")

    assert response.status_code == 401


async def test_dev_login_forbidden_outside_dev(client):
    response = await client.post("/api/v1/auth/dev-login")

    assert response.status_code == 403
    assert response.json()["error"]["kind"] == "forbidden"


async def test_dev_login_sets_session(client, monkeypatch):
    monkeypatch.setattr(settings, "PROJECT_ENV", "dev")

    response = await client.post("/api/v1/auth/dev-login")

    assert response.status_code == 200
    assert response.json()["email"] == "dev@aura.local"
    assert settings.SESSION_COOKIE_NAME in response.cookies

    profile = await client.get("/api/v1/user/profile")
    assert profile.json()["id"] == "dev-user-001"
    categories = await client.get("/api/v1/categories")
    assert len(categories.json()) == 8


async def test_dev_mode_serves_dev_user_without_cookie(client, monkeypatch):
    monkeypatch.setattr(settings, "PROJECT_ENV", "dev")

    response = await client.get("/api/v1/user/profile")

    assert response.status_code == 200
    assert response.json()["name"] == "Dev User"


async def test_profile_update(alice_client):
    response = await alice_client.patch(
        "/api/v1/user/profile", json={"monthlySalary": 5200, "budgetMode": "percentage"}
    )

    assert response.status_code == 200
    assert response.json()["monthlySalary"] == 5200
    assert response.json()["budgetMode"] == "percentage"

    empty = await alice_client.patch("/api/v1/user/profile", json={})
    assert empty.status_code == 400


async def test_category_crud(alice_client):
    created = await alice_client.post(
        "/api/v1/categories", json={"name": "Pets", "description": "Vet, food, grooming", "color": "#10b981"}
    )
    assert created.status_code == 201
    pets = created.json()
    assert pets["isDefault"] is False

    duplicate = await alice_client.post("/api/v1/categories", json={"name": "pets", "description": "again"})
    assert duplicate.status_code == 409

    renamed = await alice_client.patch(f"/api/v1/categories/{pets['id']}", json={"name": "Pet Care"})
    assert renamed.status_code == 200
    assert renamed.json()["name"] == "Pet Care"

    listed = await alice_client.get("/api/v1/categories")
    assert "Pet Care" in [c["name"] for c in listed.json()]


async def test_deleting_category_moves_spend_to_other(alice_client, repos, db, alice, category_id):
    shopping = await category_id("Shopping")
    other = await category_id("Other")
    transaction = await repos.transactions.create(
        user_id=alice.id, category_id=shopping, amount=30, vendor="UNIQLO",
        transaction_date=datetime(2026, 2, 2), confidence="high", source="manual",
    )
    await repos.vendor_cache.upsert(alice.id, "UNIQLO", shopping)
    await repos.budgets.create(user_id=alice.id, category_id=shopping, amount=200, year=2026, month=2)

    response = await alice_client.delete(f"/api/v1/categories/{shopping}")

    assert response.status_code == 200
    assert response.json()["reassignedTransactions"] == 1
    db.expunge_all()
    assert (await repos.transactions.get(transaction.id)).category_id == other
    assert await repos.vendor_cache.lookup(alice.id, "UNIQLO") is None
    assert await repos.budgets.find(alice.id, shopping, 2026, 2) is None


async def test_other_category_is_protected(alice_client, category_id):
    other = await category_id("Other")

    response = await alice_client.delete(f"/api/v1/categories/{other}")

    assert response.status_code == 403


async def test_manual_transaction_teaches_cache(alice_client, repos, alice, category_id):
    food = await category_id("Food & Beverage")

    response = await alice_client.post(
        "/api/v1/transactions",
        json={"amount": 6.8, "vendor": " kopi  corner ", "categoryId": food, "transactionDate": "2026-02-12T08:15:00"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["source"] == "manual"
    assert body["confidence"] == "high"
    assert body["vendor"] == "KOPI CORNER"
    entry = await repos.vendor_cache.lookup(alice.id, "KOPI CORNER")
    assert entry.category_id == food

    fetched = await alice_client.get(f"/api/v1/transactions/{body['id']}")
    assert fetched.json()["amount"] == 6.8


async def test_manual_transaction_validation(alice_client, category_id):
    response = await alice_client.post(
        "/api/v1/transactions",
        json={"amount": -5, "vendor": "X", "categoryId": await category_id("Other"), "transactionDate": "2026-02-12"},
    )

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["kind"] == "validation"
    assert any(d["field"] == "amount" for d in error["details"])


async def test_transaction_list_pagination(alice_client, repos, alice, category_id):
    food = await category_id("Food & Beverage")
    for day in range(1, 6):
        await repos.transactions.create(
            user_id=alice.id, category_id=food, amount=day, vendor="HAWKER",
            transaction_date=datetime(2026, 2, day), confidence="high", source="manual",
        )

    first = await alice_client.get("/api/v1/transactions", params={"page": 1, "limit": 2})
    body = first.json()
    assert body["total"] == 5
    assert body["hasMore"] is True
    assert [t["amount"] for t in body["data"]] == [5, 4]

    last = await alice_client.get("/api/v1/transactions", params={"page": 3, "limit": 2, "sortOrder": "desc"})
    assert last.json()["hasMore"] is False
    assert len(last.json()["data"]) == 1

    ranged = await alice_client.get(
        "/api/v1/transactions", params={"startDate": "2026-02-02T00:00:00", "endDate": "2026-02-04T00:00:00"}
    )
    assert ranged.json()["total"] == 2


async def test_editing_category_corrects_known_vendor_only(alice_client, repos, db, alice, category_id):
    food = await category_id("Food & Beverage")
    travel = await category_id("Travel")
    known = await repos.transactions.create(
        user_id=alice.id, category_id=food, amount=20, vendor="CHANGI AIRPORT",
        transaction_date=datetime(2026, 2, 2), confidence="medium", source="email",
    )
    await repos.vendor_cache.upsert(alice.id, "CHANGI AIRPORT", food)
    unknown = await repos.transactions.create(
        user_id=alice.id, category_id=food, amount=20, vendor="NEW PLACE",
        transaction_date=datetime(2026, 2, 2), confidence="medium", source="email",
    )

    await alice_client.patch(f"/api/v1/transactions/{known.id}", json={"categoryId": travel})
    await alice_client.patch(f"/api/v1/transactions/{unknown.id}", json={"categoryId": travel})

    db.expunge_all()
    assert (await repos.vendor_cache.lookup(alice.id, "CHANGI AIRPORT")).category_id == travel
    assert await repos.vendor_cache.lookup(alice.id, "NEW PLACE") is None


async def test_foreign_transaction_is_not_found(alice_client, repos, category_id):
    bob = await repos.users.create(
        id="user-bob-0002", email="bob@example.com", name="Bob", inbound_email="bob-user-bob@inbound.aura.local"
    )
    bobs_categories = await repos.categories.seed_defaults(bob.id)
    theirs = await repos.transactions.create(
        user_id=bob.id, category_id=bobs_categories[0].id, amount=9, vendor="X",
        transaction_date=datetime(2026, 2, 2), confidence="high", source="manual",
    )

    response = await alice_client.get(f"/api/v1/transactions/{theirs.id}")

    assert response.status_code == 404


async def test_budgets_with_spending(alice_client, repos, alice, category_id):
    food = await category_id("Food & Beverage")
    await repos.transactions.create(
        user_id=alice.id, category_id=food, amount=90, vendor="HAWKER",
        transaction_date=datetime(2026, 2, 3), confidence="high", source="manual",
    )

    created = await alice_client.post(
        "/api/v1/budgets", json={"categoryId": food, "amount": 100, "year": 2026, "month": 2}
    )
    assert created.status_code == 200
    budget_id = created.json()["id"]

    again = await alice_client.post("/api/v1/budgets", json={"categoryId": food, "amount": 120, "year": 2026, "month": 2})
    assert again.json()["id"] == budget_id
    assert again.json()["amount"] == 120

    listed = (await alice_client.get("/api/v1/budgets", params={"year": 2026, "month": 2})).json()
    assert listed["totalBudget"] == 120
    assert listed["totalSpent"] == 90
    assert listed["budgets"][0]["status"] == "on_track"
    assert listed["budgets"][0]["percentUsed"] == 75.0

    updated = await alice_client.patch(f"/api/v1/budgets/{budget_id}", json={"amount": 100})
    assert updated.json()["amount"] == 100
    listed = (await alice_client.get("/api/v1/budgets")).json()
    assert listed["budgets"][0]["status"] == "warning"

    deleted = await alice_client.delete(f"/api/v1/budgets/{budget_id}")
    assert deleted.status_code == 204
    assert (await alice_client.get("/api/v1/budgets")).json()["budgets"] == []


async def test_vendor_cache_listing(alice_client, repos, alice, category_id):
    await repos.vendor_cache.upsert(alice.id, "NTUC FAIRPRICE", await category_id("Groceries"))

    response = await alice_client.get("/api/v1/vendor-cache")

    assert response.status_code == 200
    entry = response.json()[0]
    assert entry["vendorName"] == "NTUC FAIRPRICE"
    assert entry["hitCount"] == 1
    assert set(entry) == {"id", "vendorName", "categoryId", "hitCount"}


async def test_blank_vendor_is_rejected_and_never_cached(alice_client, repos, alice, category_id):
    food = await category_id("Food & Beverage")

    created = await alice_client.post(
        "/api/v1/transactions",
        json={"amount": 4.5, "vendor": "   ", "categoryId": food, "transactionDate": "2026-02-12T08:15:00"},
    )

    assert created.status_code == 400
    assert any(d["field"] == "vendor" for d in created.json()["error"]["details"])
    assert await repos.vendor_cache.list_for_user(alice.id) == []


async def test_blank_vendor_edit_is_rejected(alice_client, repos, alice, category_id):
    transaction = await repos.transactions.create(
        user_id=alice.id, category_id=await category_id("Other"), amount=3, vendor="HAWKER",
        transaction_date=datetime(2026, 2, 2), confidence="high", source="manual",
    )

    response = await alice_client.patch(f"/api/v1/transactions/{transaction.id}", json={"vendor": " \t "})

    assert response.status_code == 400
