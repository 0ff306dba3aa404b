"""
进货单账本
- 单号生成：PO + 年月日 + 3位序号
- 创建进货单：单头、明细、库存增加在同一个事务中完成
- 删除进货单：库存扣减、删除单据在同一个事务中完成

单号先查当日最大号再加一，两个并发请求可能拿到同一个号；
purchases.order_no 的唯一约束会拒绝后写入的一方，此时整单回滚并重新分配单号。
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from fastapi import HTTPException
from sqlalchemy import select, func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from picknote.models.product import Product
from picknote.models.purchase import Purchase, PurchaseItem
from picknote.models.supplier import Supplier
from picknote.schemas.purchase import PurchaseCreate

logger = logging.getLogger(__name__)

ORDER_NO_PREFIX = "PO"
ORDER_SEQ_DIGITS = 3
MAX_DAILY_SEQUENCE = 10 ** ORDER_SEQ_DIGITS - 1


def order_no_prefix(day: datetime) -> str:
    return f"{ORDER_NO_PREFIX}{day.strftime('%Y%m%d')}"


def format_order_no(day: datetime, seq: int) -> str:
    return f"{order_no_prefix(day)}{seq:0{ORDER_SEQ_DIGITS}d}"


def _is_order_no_conflict(exc: IntegrityError) -> bool:
    return "order_no" in str(exc.orig)


class PurchaseLedger:
    """进货单账本，负责单号分配和库存增减"""

    def __init__(
        self,
        db: AsyncSession,
        max_retries: int = 3,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.db = db
        self.max_retries = max_retries
        self.clock = clock

    async def next_order_no(self) -> str:
        """生成下一个进货单号"""
        today = self.clock()
        prefix = order_no_prefix(today)

        result = await self.db.execute(
            select(func.max(Purchase.order_no)).where(Purchase.order_no.like(f"{prefix}%"))
        )
        max_no = result.scalar()

        seq = 1
        if max_no:
            try:
                seq = int(max_no[-ORDER_SEQ_DIGITS:]) + 1
            except ValueError:
                seq = 1

        if seq > MAX_DAILY_SEQUENCE:
            raise HTTPException(status_code=409, detail=f"{prefix} 当日进货单号已用完")

        return format_order_no(today, seq)

    async def load(self, purchase_id: int) -> Optional[Purchase]:
        """加载进货单及其供应商、明细、货品"""
        result = await self.db.execute(
            select(Purchase)
            .options(
                selectinload(Purchase.supplier),
                selectinload(Purchase.items).selectinload(PurchaseItem.product),
            )
            .where(Purchase.id == purchase_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create(self, purchase_in: PurchaseCreate) -> Purchase:
        """创建进货单并增加库存，单号冲突时有限次重试"""
        supplier = await self.db.get(Supplier, purchase_in.supplier_id)
        if not supplier:
            raise HTTPException(status_code=404, detail=f"供应商ID {purchase_in.supplier_id} 不存在")

        for attempt in range(1, self.max_retries + 1):
            order_no = await self.next_order_no()
            try:
                purchase_id = await self._write_purchase(order_no, purchase_in)
            except IntegrityError as e:
                await self.db.rollback()
                if not _is_order_no_conflict(e):
                    await self._raise_if_supplier_gone(purchase_in.supplier_id)
                    raise
                logger.warning(f"进货单号 {order_no} 已被占用，重新分配（第 {attempt}/{self.max_retries} 次）")
                continue
            except (HTTPException, SQLAlchemyError):
                await self.db.rollback()
                raise

            logger.info(f"📦 创建进货单 {order_no}: {len(purchase_in.items)} 个明细")
            return await self.load(purchase_id)

        raise HTTPException(status_code=409, detail="进货单号分配冲突，请稍后重试")

    async def _raise_if_supplier_gone(self, supplier_id: int) -> None:
        # 校验之后、写入之前供应商被删掉时，外键约束报错，按不存在处理
        result = await self.db.execute(select(Supplier.id).where(Supplier.id == supplier_id))
        if result.scalar_one_or_none() is None:
            raise HTTPException(status_code=404, detail=f"供应商ID {supplier_id} 不存在")

    async def _write_purchase(self, order_no: str, purchase_in: PurchaseCreate) -> int:
        purchase = Purchase(
            order_no=order_no,
            supplier_id=purchase_in.supplier_id,
            purchase_date=purchase_in.purchase_date,
            shipping_fee=Decimal(str(purchase_in.shipping_fee)),
            remark=purchase_in.remark,
            photos=list(purchase_in.photos),
        )
        self.db.add(purchase)
        # 单号唯一约束在这里检查
        await self.db.flush()

        total_amount = Decimal("0")
        for item_in in purchase_in.items:
            new_stock = await self._change_stock(item_in.product_id, item_in.quantity)
            if new_stock is None:
                raise HTTPException(status_code=404, detail=f"货品ID {item_in.product_id} 不存在")

            item = PurchaseItem(
                purchase_id=purchase.id,
                product_id=item_in.product_id,
                quantity=item_in.quantity,
                unit_price=Decimal(str(item_in.unit_price)),
            )
            item.calculate()
            self.db.add(item)
            total_amount += item.subtotal

        if purchase_in.total_amount is not None:
            client_total = Decimal(str(purchase_in.total_amount))
            if abs(client_total - total_amount) > Decimal("0.01"):
                logger.warning(
                    f"进货单 {order_no} 提交的总金额 {client_total} 与明细合计 {total_amount} 不一致，以明细为准"
                )
        purchase.total_amount = total_amount

        await self.db.commit()
        return purchase.id

    async def delete(self, purchase_id: int) -> Purchase:
        """删除进货单并回滚库存（库存允许扣成负数）"""
        purchase = await self.load(purchase_id)
        if not purchase:
            raise HTTPException(status_code=404, detail="进货单不存在")

        try:
            for item in purchase.items:
                new_stock = await self._change_stock(item.product_id, -item.quantity)
                if new_stock is None:
                    raise HTTPException(
                        status_code=404,
                        detail=f"货品ID {item.product_id} 不存在，无法回滚库存",
                    )
                if new_stock < 0:
                    logger.warning(
                        f"删除进货单 {purchase.order_no} 后货品ID {item.product_id} 库存为负: {new_stock}"
                    )

            # 删除单据（明细级联删除）
            await self.db.delete(purchase)
            await self.db.commit()
        except (HTTPException, SQLAlchemyError):
            await self.db.rollback()
            raise

        logger.info(f"🗑️ 删除进货单 {purchase.order_no}，已回滚 {len(purchase.items)} 个明细的库存")
        return purchase

    async def _change_stock(self, product_id: int, delta: int) -> Optional[int]:
        """按增量修改库存，返回修改后的库存；货品不存在时返回 None"""
        result = await self.db.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(current_stock=Product.current_stock + delta)
            .returning(Product.current_stock)
        )
        return result.scalar_one_or_none()
