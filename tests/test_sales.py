import asyncio
from sqlalchemy.future import select

from models.product import Product
from models.profile import Profile
from conftest import auth_headers, create_partnership, create_product, fetch_one

TIERS = [{"threshold": 0, "rate": 10}, {"threshold": 2, "rate": 20}]


async def post_sale(client, creator, affiliate, product, amount=100):
    return await client.post(
        "/api/sales/",
        json={"affiliate_id": str(affiliate.id), "product_id": product.id, "sale_amount": amount},
        headers=auth_headers(creator),
    )


async def test_commission_uses_tier_before_the_sale_is_counted(client, creator, affiliate):
    product = await create_product(creator, tiers=TIERS)
    commissions = []
    for _ in range(3):
        response = await post_sale(client, creator, affiliate, product)
        assert response.status_code == 201
        commissions.append(response.json()["sale"]["commissionAmount"])
    assert commissions == [10, 10, 20]

    stored = await fetch_one(select(Product).where(Product.id == product.id))
    assert stored.sales_count == 3
    profile = await fetch_one(select(Profile).where(Profile.id == affiliate.id))
    assert profile.sales == 3
    assert profile.commission == 40


async def test_sale_starts_pending_and_is_denormalized(client, creator, affiliate):
    product = await create_product(creator, name="Workshop")
    response = await post_sale(client, creator, affiliate, product, amount=49.999)
    body = response.json()
    assert body["message"] == "Sale recorded for Elena Rodriguez!"
    sale = body["sale"]
    assert sale["status"] == "Pending"
    assert sale["productName"] == "Workshop"
    assert sale["creatorId"] == str(creator.id)
    assert sale["saleAmount"] == 50.0
    assert sale["payoutId"] is None


async def test_bonus_is_awarded_once_at_the_goal(client, creator, affiliate):
    product = await create_product(
        creator, tiers=[{"threshold": 0, "rate": 10}], bonuses=[{"goal": 2, "reward": 25, "type": "sales"}]
    )
    bonuses = []
    for _ in range(3):
        response = await post_sale(client, creator, affiliate, product)
        bonuses.append(response.json()["sale"]["bonusAmount"])
    assert bonuses == [0, 25, 0]

    profile = await fetch_one(select(Profile).where(Profile.id == affiliate.id))
    assert profile.commission == 55


async def test_bonus_is_not_paid_again_after_a_refund(client, creator, affiliate):
    product = await create_product(
        creator, tiers=[{"threshold": 0, "rate": 10}], bonuses=[{"goal": 2, "reward": 25, "type": "sales"}]
    )
    first = (await post_sale(client, creator, affiliate, product)).json()["sale"]
    second = (await post_sale(client, creator, affiliate, product)).json()["sale"]
    assert second["bonusAmount"] == 25

    await client.put(f"/api/sales/{first['id']}/status", json={"status": "Refunded"}, headers=auth_headers(creator))
    third = (await post_sale(client, creator, affiliate, product)).json()["sale"]
    assert third["bonusAmount"] == 0

    profile = await fetch_one(select(Profile).where(Profile.id == affiliate.id))
    assert profile.sales == 2
    assert profile.commission == 45


async def test_concurrent_sales_are_all_counted(client, creator, affiliate):
    product = await create_product(creator, tiers=TIERS)
    responses = await asyncio.gather(*(post_sale(client, creator, affiliate, product) for _ in range(5)))
    assert [r.status_code for r in responses] == [201] * 5
    assert sorted(r.json()["sale"]["commissionAmount"] for r in responses) == [10, 10, 20, 20, 20]

    stored = await fetch_one(select(Product).where(Product.id == product.id))
    assert stored.sales_count == 5
    profile = await fetch_one(select(Profile).where(Profile.id == affiliate.id))
    assert profile.sales == 5
    assert profile.commission == 80


async def test_sale_by_coupon_code(client, creator, affiliate):
    product = await create_product(creator)
    response = await client.post(
        "/api/sales/coupon",
        json={"coupon_code": " elena10 ", "product_id": product.id, "sale_amount": 80},
        headers=auth_headers(creator),
    )
    assert response.status_code == 201
    assert response.json()["sale"]["affiliateId"] == str(affiliate.id)
    assert response.json()["sale"]["commissionAmount"] == 16


async def test_unknown_coupon_code(client, creator):
    product = await create_product(creator)
    response = await client.post(
        "/api/sales/coupon",
        json={"coupon_code": "NOPE", "product_id": product.id, "sale_amount": 80},
        headers=auth_headers(creator),
    )
    assert response.status_code == 404
    assert response.json()["detail"] == 'Coupon code "NOPE" not found.'


async def test_sale_on_another_creators_product(client, creator, growth_creator, affiliate):
    product = await create_product(growth_creator)
    response = await post_sale(client, creator, affiliate, product)
    assert response.status_code == 403


async def test_affiliate_cannot_record_sales(client, creator, affiliate):
    product = await create_product(creator)
    response = await post_sale(client, affiliate, affiliate, product)
    assert response.status_code == 403


async def test_refund_reverses_commission_and_bonus(client, creator, affiliate):
    product = await create_product(
        creator, tiers=[{"threshold": 0, "rate": 10}], bonuses=[{"goal": 1, "reward": 5, "type": "sales"}]
    )
    sale = (await post_sale(client, creator, affiliate, product)).json()["sale"]

    response = await client.put(
        f"/api/sales/{sale['id']}/status", json={"status": "Refunded"}, headers=auth_headers(creator)
    )
    assert response.status_code == 200
    assert response.json()["status"] == "Refunded"

    profile = await fetch_one(select(Profile).where(Profile.id == affiliate.id))
    assert profile.commission == 0
    assert profile.sales == 0

    response = await client.put(
        f"/api/sales/{sale['id']}/status", json={"status": "Cleared"}, headers=auth_headers(creator)
    )
    assert response.status_code == 409


async def test_clear_sale_manually(client, creator, affiliate):
    product = await create_product(creator)
    sale = (await post_sale(client, creator, affiliate, product)).json()["sale"]
    response = await client.put(
        f"/api/sales/{sale['id']}/status", json={"status": "Cleared"}, headers=auth_headers(creator)
    )
    assert response.json()["status"] == "Cleared"

    response = await client.put(
        "/api/sales/999/status", json={"status": "Cleared"}, headers=auth_headers(creator)
    )
    assert response.status_code == 404


async def test_list_sales_by_role_and_status(client, creator, affiliate):
    await create_partnership(creator, affiliate)
    product = await create_product(creator)
    first = (await post_sale(client, creator, affiliate, product)).json()["sale"]
    await post_sale(client, creator, affiliate, product)
    await client.put(f"/api/sales/{first['id']}/status", json={"status": "Cleared"}, headers=auth_headers(creator))

    response = await client.get("/api/sales/", headers=auth_headers(creator))
    assert len(response.json()) == 2

    response = await client.get("/api/sales/?status=Cleared", headers=auth_headers(affiliate))
    assert [s["id"] for s in response.json()] == [first["id"]]

    response = await client.get("/api/sales/?status=Lost", headers=auth_headers(creator))
    assert response.status_code == 400

    response = await client.get("/api/sales/?view=super_admin", headers=auth_headers(creator))
    assert response.status_code == 403
