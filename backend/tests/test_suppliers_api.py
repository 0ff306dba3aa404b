"""
供应商接口测试
"""
import pytest

from test_products_api import create_product, create_supplier


class TestSupplierApi:

    @pytest.mark.asyncio
    async def test_crud(self, client):
        created = (await client.post("/api/suppliers", json={
            "name": "义乌批发", "contact_name": "王姐", "phone": "13800000000", "type": "批发市场",
        })).json()
        assert created["type"] == "批发市场"

        response = await client.put(f"/api/suppliers/{created['id']}", json={"phone": "13900000000"})
        assert response.status_code == 200
        assert response.json()["phone"] == "13900000000"
        assert response.json()["name"] == "义乌批发"

        fetched = (await client.get(f"/api/suppliers/{created['id']}")).json()
        assert fetched["contact_name"] == "王姐"

        assert (await client.delete(f"/api/suppliers/{created['id']}")).status_code == 200
        assert (await client.get(f"/api/suppliers/{created['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_defaults_and_validation(self, client):
        created = (await client.post("/api/suppliers", json={"name": "1688"})).json()
        assert created["type"] == "其他"

        assert (await client.post("/api/suppliers", json={"name": ""})).status_code == 422

    @pytest.mark.asyncio
    async def test_list_newest_first(self, client):
        for name in ("甲", "乙", "丙"):
            await create_supplier(client, name)

        body = (await client.get("/api/suppliers")).json()
        assert body["total"] == 3
        assert [s["name"] for s in body["data"]] == ["丙", "乙", "甲"]

    @pytest.mark.asyncio
    async def test_delete_referenced_supplier_is_conflict(self, client):
        supplier = await create_supplier(client)
        product = await create_product(client, "B01")
        await client.post("/api/purchases", json={
            "supplier_id": supplier["id"],
            "purchase_date": "2026-05-01T10:00:00",
            "items": [{"product_id": product["id"], "quantity": 1, "unit_price": 1}],
        })

        assert (await client.delete(f"/api/suppliers/{supplier['id']}")).status_code == 409

    @pytest.mark.asyncio
    async def test_missing(self, client):
        assert (await client.get("/api/suppliers/42")).status_code == 404
        assert (await client.put("/api/suppliers/42", json={"name": "x"})).status_code == 404
        assert (await client.delete("/api/suppliers/42")).status_code == 404
