import uuid
from sqlalchemy.future import select

from models.authUser import AuthUser
from models.payment import Payment
from models.profile import Profile, ProfileStatusEnum
from models.sale import Sale
from conftest import PASSWORD, auth_headers, create_partnership, create_product, fetch_all, fetch_one


async def test_admin_routes_require_super_admin(client, creator):
    for method, url in (("get", "/api/admin/clients"), ("get", "/api/admin/users"),
                        ("delete", f"/api/admin/users/{creator.id}")):
        response = await client.request(method, url, headers=auth_headers(creator))
        assert response.status_code == 403
    response = await client.get("/api/admin/users")
    assert response.status_code == 401


async def test_clients_lists_creators_with_payments(client, admin, creator, affiliate):
    await client.put(
        f"/api/admin/users/{creator.id}/plan", json={"plan": "Pro Plan", "billing_cycle": "annual"},
        headers=auth_headers(admin),
    )
    response = await client.get("/api/admin/clients", headers=auth_headers(admin))
    assert response.status_code == 200
    clients = response.json()
    assert [c["email"] for c in clients] == ["creator@example.com"]
    assert [p["amount"] for p in clients[0]["payments"]] == [950]


async def test_users_are_paginated(client, admin, creator, affiliate):
    response = await client.get("/api/admin/users?offset=0&limit=2", headers=auth_headers(admin))
    body = response.json()
    assert body["total_users"] == 3
    assert len(body["users"]) == 2


async def test_admin_plan_change_records_payment(client, admin, affiliate):
    response = await client.put(
        f"/api/admin/users/{affiliate.id}/plan", json={"plan": "Growth Plan", "billing_cycle": "monthly"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["currentPlan"] == "Growth Plan"
    assert body["billingCycle"] == "monthly"
    assert "creator" in body["roles"]
    assert body["trialEndsAt"] is None

    payment = await fetch_one(select(Payment).where(Payment.user_id == affiliate.id))
    assert payment.amount == 49
    assert payment.plan == "Growth Plan"


async def test_admin_plan_change_rejects_unknown_plan(client, admin, creator):
    response = await client.put(
        f"/api/admin/users/{creator.id}/plan", json={"plan": "Gold Plan"}, headers=auth_headers(admin)
    )
    assert response.status_code == 400
    response = await client.put(
        f"/api/admin/users/{creator.id}/plan", json={"plan": "Pro Plan", "billing_cycle": "weekly"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 400
    assert await fetch_all(select(Payment)) == []


async def test_suspend_and_reactivate(client, admin, creator):
    await client.post("/api/auth/login", json={"email": "creator@example.com", "password": PASSWORD})

    response = await client.put(
        f"/api/admin/users/{creator.id}/suspend", json={"suspended": True}, headers=auth_headers(admin)
    )
    assert response.status_code == 200
    assert response.json()["status"] == "Suspended"
    auth_user = await fetch_one(select(AuthUser).where(AuthUser.id == creator.id))
    assert auth_user.refresh_token is None

    response = await client.get("/api/products/", headers=auth_headers(creator))
    assert response.status_code == 403

    response = await client.put(
        f"/api/admin/users/{creator.id}/suspend", json={"suspended": False}, headers=auth_headers(admin)
    )
    assert response.json()["status"] == "Active"


async def test_admin_cannot_suspend_or_delete_self(client, admin):
    response = await client.put(
        f"/api/admin/users/{admin.id}/suspend", json={"suspended": True}, headers=auth_headers(admin)
    )
    assert response.status_code == 400
    response = await client.delete(f"/api/admin/users/{admin.id}", headers=auth_headers(admin))
    assert response.status_code == 400


async def test_delete_user_removes_related_rows(client, admin, creator, affiliate):
    await create_partnership(creator, affiliate)
    product = await create_product(creator)
    await client.post(
        "/api/sales/",
        json={"affiliate_id": str(affiliate.id), "product_id": product.id, "sale_amount": 100},
        headers=auth_headers(creator),
    )

    response = await client.delete(f"/api/admin/users/{creator.id}", headers=auth_headers(admin))
    assert response.status_code == 200
    assert await fetch_one(select(Profile).where(Profile.id == creator.id)) is None
    assert await fetch_one(select(AuthUser).where(AuthUser.id == creator.id)) is None
    assert await fetch_all(select(Sale)) == []

    survivor = await fetch_one(select(Profile).where(Profile.id == affiliate.id))
    assert survivor.status == ProfileStatusEnum.Active


async def test_unknown_user(client, admin):
    response = await client.delete("/api/admin/users/not-a-uuid", headers=auth_headers(admin))
    assert response.status_code == 400
    response = await client.delete(f"/api/admin/users/{uuid.uuid4()}", headers=auth_headers(admin))
    assert response.status_code == 404


async def test_payments_scope(client, admin, creator, growth_creator):
    await client.post("/api/profiles/me/plan", json={"plan": "Growth Plan"}, headers=auth_headers(creator))
    await client.post("/api/profiles/me/plan", json={"plan": "Pro Plan"}, headers=auth_headers(growth_creator))

    response = await client.get("/api/payments/", headers=auth_headers(creator))
    assert [p["plan"] for p in response.json()] == ["Growth Plan"]
    response = await client.get("/api/payments/", headers=auth_headers(admin))
    assert len(response.json()) == 2

    response = await client.get("/api/payments/plans", headers=auth_headers(creator))
    assert [p["name"] for p in response.json()] == ["Starter Plan", "Growth Plan", "Pro Plan"]


async def test_admin_overview_and_analytics(client, admin, creator):
    await client.post(
        "/api/profiles/me/plan", json={"plan": "Pro Plan", "billing_cycle": "annual"}, headers=auth_headers(creator)
    )

    response = await client.get("/api/stats/admin/overview?range=30d", headers=auth_headers(admin))
    assert response.status_code == 200
    overview = response.json()
    assert overview["current"]["totalRevenue"] == 950
    assert overview["current"]["mrr"] == round(950 / 12, 2)
    assert overview["change"]["totalRevenue"] == "100.0%"
    assert overview["recentClients"][0]["email"] == "creator@example.com"

    response = await client.get("/api/stats/admin/analytics?range=this_year", headers=auth_headers(admin))
    analytics = response.json()
    assert analytics["newInPeriod"]["creators"] == 1
    assert analytics["onboardingFunnel"]["completionRate"] == 0.0

    response = await client.get("/api/stats/admin/overview?range=forever", headers=auth_headers(admin))
    assert response.status_code == 400
    response = await client.get("/api/stats/admin/overview", headers=auth_headers(creator))
    assert response.status_code == 403
