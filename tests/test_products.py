from sqlalchemy.future import select

from models.affiliateClicks import AffiliateClicks
from models.product import Product
from conftest import auth_headers, create_partnership, create_product, create_user, fetch_all

TIERS = [{"threshold": 10, "rate": 20}, {"threshold": 0, "rate": 10}]
BONUSES = [{"goal": 5, "reward": 50, "type": "sales"}]


async def test_create_product_with_default_tier(client, creator):
    response = await client.post(
        "/api/products/",
        json={"name": "Masterclass", "price": 199, "sales_page_url": "https://example.com/mc"},
        headers=auth_headers(creator),
    )
    assert response.status_code == 201
    product = response.json()
    assert product["commissionTiers"] == [{"threshold": 0, "rate": 20}]
    assert product["salesCount"] == 0
    assert product["userId"] == str(creator.id)


async def test_starter_plan_keeps_only_flat_commission(client, creator):
    response = await client.post(
        "/api/products/",
        json={"name": "Course", "price": 100, "commission_tiers": TIERS, "bonuses": BONUSES,
              "is_publicly_listed": True},
        headers=auth_headers(creator),
    )
    product = response.json()
    assert product["commissionTiers"] == [{"threshold": 0, "rate": 10}]
    assert product["bonuses"] == []
    assert product["isPubliclyListed"] is False


async def test_growth_plan_keeps_tiers_sorted_and_bonuses(client, growth_creator):
    response = await client.post(
        "/api/products/",
        json={"name": "Course", "price": 100, "commission_tiers": TIERS, "bonuses": BONUSES,
              "is_publicly_listed": True},
        headers=auth_headers(growth_creator),
    )
    product = response.json()
    assert [t["threshold"] for t in product["commissionTiers"]] == [0, 10]
    assert product["bonuses"] == BONUSES
    assert product["isPubliclyListed"] is True


async def test_bonuses_must_be_sales_goals(client, growth_creator):
    response = await client.post(
        "/api/products/",
        json={"name": "Course", "price": 100, "bonuses": [{"goal": 100, "reward": 20, "type": "clicks"}]},
        headers=auth_headers(growth_creator),
    )
    assert response.status_code == 422


async def test_product_limit_per_plan(client, creator):
    for index in range(5):
        await create_product(creator, name=f"Product {index}")
    response = await client.post(
        "/api/products/", json={"name": "One too many", "price": 10}, headers=auth_headers(creator)
    )
    assert response.status_code == 403
    assert "Starter Plan" in response.json()["detail"]


async def test_affiliate_cannot_create_products(client, affiliate):
    response = await client.post("/api/products/", json={"name": "X", "price": 10}, headers=auth_headers(affiliate))
    assert response.status_code == 403


async def test_list_products_is_scoped_by_role(client, creator, growth_creator, affiliate, admin):
    mine = await create_product(creator, name="Mine")
    await create_product(growth_creator, name="Theirs")
    await create_partnership(creator, affiliate)

    response = await client.get("/api/products/", headers=auth_headers(creator))
    assert [p["name"] for p in response.json()] == ["Mine"]

    response = await client.get("/api/products/", headers=auth_headers(affiliate))
    assert [p["id"] for p in response.json()] == [mine.id]

    response = await client.get("/api/products/", headers=auth_headers(admin))
    assert len(response.json()) == 2


async def test_marketplace_lists_public_products(client, creator, growth_creator, affiliate):
    await create_product(creator, name="Hidden")
    await create_product(growth_creator, name="Listed", is_publicly_listed=True)
    response = await client.get("/api/products/marketplace", headers=auth_headers(affiliate))
    items = response.json()
    assert [p["name"] for p in items] == ["Listed"]
    assert items[0]["creator"]["name"] == "Grace Growth"


async def test_get_product_visibility(client, creator, growth_creator, affiliate):
    product = await create_product(creator)
    response = await client.get(f"/api/products/{product.id}", headers=auth_headers(growth_creator))
    assert response.status_code == 404

    await create_partnership(creator, affiliate)
    response = await client.get(f"/api/products/{product.id}", headers=auth_headers(affiliate))
    assert response.status_code == 200
    assert response.json()["revenue"] == 0
    assert response.json()["recordedSales"] == 0


async def test_update_product_only_by_owner(client, creator, growth_creator):
    product = await create_product(creator)
    response = await client.put(
        f"/api/products/{product.id}", json={"price": 149.5}, headers=auth_headers(growth_creator)
    )
    assert response.status_code == 403

    response = await client.put(
        f"/api/products/{product.id}", json={"price": 149.5, "name": "Course v2"}, headers=auth_headers(creator)
    )
    assert response.status_code == 200
    assert response.json()["price"] == 149.5
    assert response.json()["name"] == "Course v2"


async def test_delete_product(client, creator, affiliate):
    product = await create_product(creator)
    await client.post(
        "/api/affiliates/rpc/increment_clicks",
        json={"p_id": product.id, "a_id": str(affiliate.id)},
        headers=auth_headers(affiliate),
    )
    response = await client.delete(f"/api/products/{product.id}", headers=auth_headers(creator))
    assert response.status_code == 200
    assert await fetch_all(select(Product)) == []
    assert await fetch_all(select(AffiliateClicks)) == []


async def test_product_with_sales_cannot_be_deleted(client, creator, affiliate):
    product = await create_product(creator)
    await client.post(
        "/api/sales/",
        json={"affiliate_id": str(affiliate.id), "product_id": product.id, "sale_amount": 100},
        headers=auth_headers(creator),
    )
    response = await client.delete(f"/api/products/{product.id}", headers=auth_headers(creator))
    assert response.status_code == 409


async def test_missing_product(client, creator):
    response = await client.get("/api/products/999", headers=auth_headers(creator))
    assert response.status_code == 404
    other = await create_user("third@example.com")
    response = await client.delete("/api/products/999", headers=auth_headers(other))
    assert response.status_code == 404
