"""
货品列表查询

数据库只做粗粒度的品类筛选，搜索、自然排序和分页都在内存中完成：
1. 取出符合品类条件的 (id, code, name, current_stock, price)
2. 按搜索范围过滤
3. 按编码自然排序（B2 排在 B10 前面）
4. 截取当前页的 id，再按 id 取完整数据并恢复排序
"""

import math
import re
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from picknote.models.product import Product

ALL_CATEGORIES = {"all", "全部"}
SEARCH_SCOPES = ("all", "name", "code")

_NUMBER_RUN = re.compile(r"(\d+)")


def natural_sort_key(value: str) -> Tuple[Tuple[int, int, str], ...]:
    """自然排序键：数字段按数值比较，文字段忽略大小写"""
    key = []
    # split 带捕获组，奇数下标是数字段
    for index, part in enumerate(_NUMBER_RUN.split(value or "")):
        if not part:
            continue
        if index % 2:
            key.append((0, int(part), part))
        else:
            key.append((1, 0, part.casefold()))
    return tuple(key)


def code_search_pattern(term: str) -> "re.Pattern[str]":
    """编码搜索：忽略前缀字母和前导0，匹配编码结尾，如 3 可以匹配 B03"""
    return re.compile(rf"^\D*0*{re.escape(term)}$", re.IGNORECASE)


def matches_search(code: str, name: str, search: str, scope: str = "all") -> bool:
    if not search:
        return True
    name_hit = search.casefold() in (name or "").casefold()
    if scope == "name":
        return name_hit
    code_hit = code_search_pattern(search).search(code or "") is not None
    if scope == "code":
        return code_hit
    return name_hit or code_hit


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


@dataclass
class ProductPage:
    items: List[Product]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return total_pages(self.total, self.limit)


class ProductQuery:
    """货品列表查询"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _load_candidates(self, category: Optional[str]) -> Sequence[Any]:
        query = select(
            Product.id, Product.code, Product.name, Product.current_stock, Product.price
        )
        if category and category not in ALL_CATEGORIES:
            query = query.where(Product.category == category)
        result = await self.db.execute(query)
        return result.all()

    async def list(
        self,
        *,
        category: Optional[str] = None,
        search: Optional[str] = None,
        scope: str = "all",
        page: int = 1,
        limit: int = 20,
    ) -> ProductPage:
        rows = await self._load_candidates(category)

        search = (search or "").strip()
        if search:
            rows = [r for r in rows if matches_search(r.code, r.name, search, scope)]

        rows = sorted(rows, key=lambda r: (natural_sort_key(r.code), r.code))
        total = len(rows)

        start = (page - 1) * limit
        paged_ids = [r.id for r in rows[start:start + limit]]

        items: List[Product] = []
        if paged_ids:
            result = await self.db.execute(select(Product).where(Product.id.in_(paged_ids)))
            by_id = {p.id: p for p in result.scalars().all()}
            # in 查询不保证顺序，按分页后的 id 顺序重新排列
            items = [by_id[pid] for pid in paged_ids if pid in by_id]

        return ProductPage(items=items, total=total, page=page, limit=limit)
