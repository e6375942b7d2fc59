"""Promotion evaluation and usage tracking"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update, or_
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from pos_core.config import settings
from pos_core.exceptions import InvalidPromotion, NotFound
from pos_core.models.promotion import Promotion, PromotionUsage
from pos_core.services.pricing import compute_discount

logger = structlog.get_logger()


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


async def find_promotion(
    db: AsyncSession,
    organization_id: UUID,
    branch_id: Optional[UUID],
    code: str,
) -> Promotion:
    """Look up a code for an organization; branch-restricted codes only match their branch"""
    result = await db.execute(
        select(Promotion).where(
            Promotion.organization_id == organization_id,
            Promotion.code == normalize_code(code),
        )
    )
    promotion = result.scalar_one_or_none()

    if promotion is None or (
        promotion.branch_id is not None and promotion.branch_id != branch_id
    ):
        raise NotFound("Promotion", code)

    return promotion


def validate_promotion(
    promotion: Promotion,
    amount: Decimal,
    now: Optional[datetime] = None,
    count_usage: bool = True,
) -> None:
    """Raise InvalidPromotion if the code cannot be used against ``amount``.

    ``count_usage=False`` skips the usage cap, for a promotion whose use is
    already counted on the order being checked.
    """
    now = now or datetime.utcnow()

    if not promotion.is_active:
        raise InvalidPromotion("Promotion is not active", code=promotion.code)
    if promotion.valid_from and now < promotion.valid_from:
        raise InvalidPromotion("Promotion has not started", code=promotion.code)
    if promotion.valid_until and now > promotion.valid_until:
        raise InvalidPromotion("Promotion has expired", code=promotion.code)
    if promotion.min_order_total is not None and amount < promotion.min_order_total:
        raise InvalidPromotion(
            "Order total is below the promotion minimum",
            code=promotion.code,
            min_order_total=str(promotion.min_order_total),
        )
    if count_usage and promotion.max_uses is not None and promotion.usage_count >= promotion.max_uses:
        raise InvalidPromotion("Promotion usage limit reached", code=promotion.code)


async def evaluate(
    db: AsyncSession,
    organization_id: UUID,
    branch_id: Optional[UUID],
    code: str,
    amount: Decimal,
):
    """Discount a code would give against ``amount``, without redeeming it"""
    promotion = await find_promotion(db, organization_id, branch_id, code)
    validate_promotion(promotion, amount)
    return promotion, compute_discount(amount, promotion.rule, settings.currency_places)


async def redeem(db: AsyncSession, promotion: Promotion, order) -> PromotionUsage:
    """Attach ``promotion`` to ``order`` and count one use.

    The counter increment is guarded so concurrent redemptions never exceed
    ``max_uses``. Must run inside the caller's unit of work.
    """
    validate_promotion(promotion, order.subtotal)

    result = await db.execute(
        update(Promotion)
        .where(
            Promotion.id == promotion.id,
            or_(Promotion.max_uses.is_(None), Promotion.usage_count < Promotion.max_uses),
        )
        .values(usage_count=Promotion.usage_count + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise InvalidPromotion("Promotion usage limit reached", code=promotion.code)
    await db.refresh(promotion)

    order.promotion_id = promotion.id
    order.promotion_code = promotion.code
    order.promotion_rule = promotion.rule.to_dict()
    order.recalculate(settings.currency_places)

    usage = PromotionUsage(
        promotion_id=promotion.id,
        order_id=order.id,
        discount_amount=order.discount_amount,
    )
    db.add(usage)

    logger.info(
        "Promotion redeemed",
        promotion_code=promotion.code,
        order_id=str(order.id),
        discount_amount=str(order.discount_amount),
    )
    return usage


async def release(db: AsyncSession, order) -> Optional[PromotionUsage]:
    """Reverse the order's promotion usage and remove its discount"""
    if order.promotion_id is None:
        return None

    result = await db.execute(
        select(PromotionUsage).where(
            PromotionUsage.order_id == order.id,
            PromotionUsage.released_at.is_(None),
        )
    )
    usage = result.scalar_one_or_none()

    if usage is not None:
        usage.released_at = datetime.utcnow()
        await db.execute(
            update(Promotion)
            .where(Promotion.id == usage.promotion_id, Promotion.usage_count > 0)
            .values(usage_count=Promotion.usage_count - 1)
            .execution_options(synchronize_session=False)
        )
        logger.info(
            "Promotion usage released",
            promotion_code=order.promotion_code,
            order_id=str(order.id),
        )

    order.promotion_id = None
    order.promotion_code = None
    order.promotion_rule = None
    order.recalculate(settings.currency_places)
    return usage


async def revalidate(db: AsyncSession, order) -> bool:
    """Re-check the order's promotion against its current subtotal.

    A promotion the order no longer qualifies for is released and its
    discount removed. Returns False in that case. Call after
    ``order.recalculate()`` inside the caller's unit of work.
    """
    if order.promotion_id is None:
        return True

    promotion = await db.get(Promotion, order.promotion_id, populate_existing=True)
    try:
        validate_promotion(promotion, order.subtotal, count_usage=False)
    except InvalidPromotion as e:
        logger.warning(
            "Promotion no longer applies, releasing",
            promotion_code=order.promotion_code,
            order_id=str(order.id),
            subtotal=str(order.subtotal),
            reason=e.message,
        )
        await release(db, order)
        return False

    return True
