"""
货品接口测试
"""
import asyncio

import pytest
from fastapi import HTTPException
from sqlalchemy import select, func

from picknote.api.endpoints import products
from picknote.models import Product
from picknote.schemas.product import ProductCreate
from test_product_import import build_workbook, png_bytes

XLSX_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


async def create_supplier(client, name="义乌批发"):
    response = await client.post("/api/suppliers", json={"name": name})
    assert response.status_code == 200
    return response.json()


async def create_product(client, code, name=None, **extra):
    response = await client.post("/api/products", json={"code": code, "name": name or f"货品{code}", **extra})
    assert response.status_code == 200, response.text
    return response.json()


class TestProductCrud:
    """货品增删改查"""

    @pytest.mark.asyncio
    async def test_create_and_get(self, client):
        product = await create_product(client, "B01", "普洱茶饼", category="茶叶", price=88.5, spec="357g")

        assert product["current_stock"] == 0
        assert product["category"] == "茶叶"
        assert product["images"] == []

        response = await client.get(f"/api/products/{product['id']}")
        assert response.status_code == 200
        detail = response.json()
        assert detail["code"] == "B01"
        assert detail["price"] == pytest.approx(88.5)
        assert detail["recent_purchases"] == []

    @pytest.mark.asyncio
    async def test_default_category(self, client):
        product = await create_product(client, "X1")
        assert product["category"] == "其他"

    @pytest.mark.asyncio
    async def test_duplicate_code_names_owner(self, client):
        await create_product(client, "B01", "普洱茶饼")
        response = await client.post("/api/products", json={"code": "B01", "name": "别的"})
        assert response.status_code == 409
        assert "普洱茶饼" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_unknown_category_id(self, client):
        response = await client.post("/api/products", json={"code": "B01", "name": "茶", "category_id": 99})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_validation(self, client):
        response = await client.post("/api/products", json={"code": "", "name": "茶"})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_update_never_touches_stock(self, client):
        product = await create_product(client, "B01", "普洱")
        response = await client.put(
            f"/api/products/{product['id']}",
            json={"name": "熟普", "current_stock": 500},
        )
        assert response.status_code == 200
        assert response.json()["name"] == "熟普"
        assert response.json()["current_stock"] == 0

    @pytest.mark.asyncio
    async def test_update_code_collision(self, client):
        await create_product(client, "B01")
        second = await create_product(client, "B02")
        response = await client.put(f"/api/products/{second['id']}", json={"code": "B01"})
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_get_missing(self, client):
        assert (await client.get("/api/products/999")).status_code == 404
        assert (await client.put("/api/products/999", json={"name": "x"})).status_code == 404
        assert (await client.delete("/api/products/999")).status_code == 404

    @pytest.mark.asyncio
    async def test_delete(self, client):
        product = await create_product(client, "B01")
        response = await client.delete(f"/api/products/{product['id']}")
        assert response.status_code == 200
        assert (await client.get(f"/api/products/{product['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_delete_referenced_product_is_conflict(self, client):
        supplier = await create_supplier(client)
        product = await create_product(client, "B01")
        response = await client.post("/api/purchases", json={
            "supplier_id": supplier["id"],
            "purchase_date": "2026-05-01T10:00:00",
            "items": [{"product_id": product["id"], "quantity": 2, "unit_price": 5}],
        })
        assert response.status_code == 200

        response = await client.delete(f"/api/products/{product['id']}")
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_detail_lists_recent_purchases(self, client):
        supplier = await create_supplier(client, "茶厂直供")
        product = await create_product(client, "B01")
        for qty in (1, 2, 3):
            response = await client.post("/api/purchases", json={
                "supplier_id": supplier["id"],
                "purchase_date": f"2026-04-0{qty}T10:00:00",
                "items": [{"product_id": product["id"], "quantity": qty, "unit_price": 10}],
            })
            assert response.status_code == 200

        detail = (await client.get(f"/api/products/{product['id']}")).json()
        assert detail["current_stock"] == 6
        assert [r["quantity"] for r in detail["recent_purchases"]] == [3, 2, 1]
        assert detail["recent_purchases"][0]["supplier_name"] == "茶厂直供"


class TestCodeConflicts:
    """编码唯一约束兜底"""

    @pytest.mark.asyncio
    async def test_concurrent_creates_with_same_code(self, database):
        async def create_one(name):
            async with database.session() as s:
                try:
                    await products.create_product(db=s, product_in=ProductCreate(code="B01", name=name))
                except HTTPException as e:
                    return e.status_code
                return 200

        statuses = await asyncio.gather(create_one("红茶"), create_one("绿茶"))

        assert sorted(statuses) == [200, 409]
        async with database.session() as s:
            assert (await s.execute(select(func.count(Product.id)))).scalar() == 1

    @pytest.mark.asyncio
    async def test_unique_constraint_reports_owner(self, client, monkeypatch):
        await create_product(client, "B01", "红茶")
        other = await create_product(client, "B02", "绿茶")

        async def skip_check(db, code, exclude_id=None):
            return None

        # 模拟两个请求都已通过编码检查，由唯一约束拦下后写入的一方
        monkeypatch.setattr(products, "_ensure_code_available", skip_check)

        response = await client.post("/api/products", json={"code": "B01", "name": "白茶"})
        assert response.status_code == 409
        assert "红茶" in response.json()["detail"]

        response = await client.put(f"/api/products/{other['id']}", json={"code": "B01"})
        assert response.status_code == 409
        assert "红茶" in response.json()["detail"]
        assert (await client.get(f"/api/products/{other['id']}")).json()["code"] == "B02"


class TestProductList:
    """货品列表"""

    @pytest.mark.asyncio
    async def test_list_natural_order_and_paging(self, client):
        for code in ["B10", "B2", "B1", "A3"]:
            await create_product(client, code)

        response = await client.get("/api/products", params={"page": 1, "limit": 3})
        assert response.status_code == 200
        body = response.json()
        assert [p["code"] for p in body["data"]] == ["A3", "B1", "B2"]
        assert body["total"] == 4
        assert body["total_pages"] == 2

        body = (await client.get("/api/products", params={"page": 2, "limit": 3})).json()
        assert [p["code"] for p in body["data"]] == ["B10"]

    @pytest.mark.asyncio
    async def test_search_and_category(self, client):
        await create_product(client, "B03", "普洱", category="茶叶")
        await create_product(client, "C13", "手办3号", category="玩具")

        body = (await client.get("/api/products", params={"search": "3", "scope": "code"})).json()
        assert [p["code"] for p in body["data"]] == ["B03"]

        body = (await client.get("/api/products", params={"category": "玩具"})).json()
        assert [p["code"] for p in body["data"]] == ["C13"]

        body = (await client.get("/api/products", params={"category": "全部"})).json()
        assert body["total"] == 2

    @pytest.mark.asyncio
    async def test_bad_scope(self, client):
        response = await client.get("/api/products", params={"search": "3", "scope": "spec"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_categories(self, client):
        await create_product(client, "A1", category="茶叶")
        await create_product(client, "A2", category="玩具")
        await create_product(client, "A3", category="茶叶")

        response = await client.get("/api/products/categories")
        assert response.status_code == 200
        assert sorted(response.json()) == ["玩具", "茶叶"]


class TestProductImportApi:
    """导入接口"""

    @pytest.mark.asyncio
    async def test_import(self, client):
        content = build_workbook([("陈皮", "b3"), ("手办", "B4")], images={"B3": png_bytes()})
        response = await client.post(
            "/api/products/import",
            files={"file": ("products.xlsx", content, XLSX_TYPE)},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["imported_count"] == 2
        assert body["errors"] == []
        assert body["message"] == "导入完成，共处理 2 个货品"

        listing = (await client.get("/api/products")).json()
        by_code = {p["code"]: p for p in listing["data"]}
        assert by_code["B03"]["category"] == "补品"
        assert by_code["B04"]["category"] == "玩具"

        image_url = by_code["B03"]["images"][0]
        served = await client.get(image_url)
        assert served.status_code == 200
        assert served.content.startswith(b"\x89PNG")

    @pytest.mark.asyncio
    async def test_import_invalid_file(self, client):
        response = await client.post(
            "/api/products/import",
            files={"file": ("products.xlsx", b"not excel", XLSX_TYPE)},
        )
        assert response.status_code == 400
