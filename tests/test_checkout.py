"""Tests for idempotent checkout"""

import asyncio
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select, func

from pos_core.exceptions import (
    AlreadyFinalized,
    ConflictError,
    InvalidPromotion,
    InvalidTransition,
    MissingIdempotencyKey,
    Unauthorized,
)
from pos_core.models import OrderStatus, Payment, PaymentMethod, Promotion, PromotionUsage
from pos_core.services import checkout, orders
from pos_core.services.scope import ActorScope


async def _confirmed_order(db, actor, lines, publisher):
    order = await orders.create_order(db, actor, lines, publisher)
    return await orders.transition_order(db, actor, order.id, OrderStatus.CONFIRMED, publisher)


async def test_checkout_marks_order_paid(test_db, cashier_scope, test_branch, hot_pad_thai, publisher):
    order = await _confirmed_order(test_db, cashier_scope, [hot_pad_thai], publisher)

    payment, created = await checkout.checkout(
        test_db, cashier_scope, order.id, PaymentMethod.CASH, "key-1", publisher
    )

    assert created is True
    assert payment.amount == Decimal("139.10")
    assert payment.payment_method == "CASH"
    assert payment.status == "SUCCESS"

    paid = await orders.get_order(test_db, cashier_scope, order.id)
    assert paid.status == "PAID"
    assert paid.paid_at is not None
    assert publisher.events[-1].type == "order_status_updated"
    assert publisher.events[-1].payload["new_status"] == "PAID"


async def test_checkout_scenario_with_promotion_code(
    session_factory, test_db, cashier_scope, test_branch, hot_pad_thai, save10, publisher
):
    order = await _confirmed_order(test_db, cashier_scope, [hot_pad_thai], publisher)

    payment, _ = await checkout.checkout(
        test_db, cashier_scope, order.id, PaymentMethod.CARD, "key-1", publisher, promotion_code="SAVE10"
    )

    assert payment.subtotal == Decimal("130.00")
    assert payment.discount_amount == Decimal("13.00")
    assert payment.tax == Decimal("8.19")
    assert payment.amount == Decimal("125.19")
    assert payment.promotion_code == "SAVE10"

    async with session_factory() as db:
        promotion = await db.get(Promotion, save10.id)
    assert promotion.usage_count == 1


async def test_repeated_key_returns_same_payment(
    session_factory, test_db, cashier_scope, test_branch, hot_pad_thai, save10, publisher
):
    order = await _confirmed_order(test_db, cashier_scope, [hot_pad_thai], publisher)
    events_before = len(publisher.events)

    first, created_first = await checkout.checkout(
        test_db, cashier_scope, order.id, PaymentMethod.QR, "same-key", publisher, promotion_code="SAVE10"
    )
    second, created_second = await checkout.checkout(
        test_db, cashier_scope, order.id, PaymentMethod.QR, "same-key", publisher, promotion_code="SAVE10"
    )

    assert (created_first, created_second) == (True, False)
    assert second.id == first.id
    assert second.amount == first.amount == Decimal("125.19")

    # One payment, one usage, one event
    async with session_factory() as db:
        payments = (await db.execute(select(func.count(Payment.id)))).scalar()
        usages = (await db.execute(select(func.count(PromotionUsage.id)))).scalar()
        promotion = await db.get(Promotion, save10.id)
    assert (payments, usages, promotion.usage_count) == (1, 1, 1)
    assert len(publisher.events) == events_before + 1


async def test_concurrent_checkout_with_same_key(
    session_factory, cashier_scope, test_branch, hot_pad_thai, publisher
):
    async with session_factory() as db:
        order = await _confirmed_order(db, cashier_scope, [hot_pad_thai], publisher)

    async def attempt():
        async with session_factory() as db:
            return await checkout.checkout(
                db, cashier_scope, order.id, PaymentMethod.CASH, "race-key", publisher
            )

    (first, _), (second, _) = await asyncio.gather(attempt(), attempt())

    assert first.id == second.id

    async with session_factory() as db:
        payments = (await db.execute(select(func.count(Payment.id)))).scalar()
    assert payments == 1


async def test_new_key_on_paid_order_is_rejected(test_db, cashier_scope, test_branch, hot_pad_thai, publisher):
    order = await _confirmed_order(test_db, cashier_scope, [hot_pad_thai], publisher)
    order_id = order.id
    await checkout.checkout(test_db, cashier_scope, order_id, PaymentMethod.CASH, "key-1", publisher)

    with pytest.raises(AlreadyFinalized):
        await checkout.checkout(test_db, cashier_scope, order_id, PaymentMethod.CASH, "key-2", publisher)


async def test_key_reused_for_other_order_conflicts(test_db, cashier_scope, test_branch, hot_pad_thai, publisher):
    first = await _confirmed_order(test_db, cashier_scope, [hot_pad_thai], publisher)
    second = await _confirmed_order(test_db, cashier_scope, [hot_pad_thai], publisher)
    second_id = second.id

    await checkout.checkout(test_db, cashier_scope, first.id, PaymentMethod.CASH, "shared", publisher)

    with pytest.raises(ConflictError):
        await checkout.checkout(test_db, cashier_scope, second_id, PaymentMethod.CASH, "shared", publisher)


@pytest.mark.parametrize("key", ["", "   "])
async def test_missing_idempotency_key(test_db, cashier_scope, test_branch, hot_pad_thai, publisher, key):
    order = await _confirmed_order(test_db, cashier_scope, [hot_pad_thai], publisher)

    with pytest.raises(MissingIdempotencyKey):
        await checkout.checkout(test_db, cashier_scope, order.id, PaymentMethod.CASH, key, publisher)


async def test_open_order_cannot_be_checked_out(test_db, cashier_scope, test_branch, hot_pad_thai, publisher):
    order = await orders.create_order(test_db, cashier_scope, [hot_pad_thai], publisher)

    with pytest.raises(InvalidTransition):
        await checkout.checkout(test_db, cashier_scope, order.id, PaymentMethod.CASH, "key-1", publisher)


async def test_cancelled_order_cannot_be_checked_out(test_db, cashier_scope, test_branch, hot_pad_thai, publisher):
    order = await orders.create_order(test_db, cashier_scope, [hot_pad_thai], publisher)
    await orders.transition_order(test_db, cashier_scope, order.id, OrderStatus.CANCELLED, publisher)

    with pytest.raises(AlreadyFinalized):
        await checkout.checkout(test_db, cashier_scope, order.id, PaymentMethod.CASH, "key-1", publisher)


async def test_checkout_from_ready(test_db, cashier_scope, test_branch, hot_pad_thai, publisher):
    order = await _confirmed_order(test_db, cashier_scope, [hot_pad_thai], publisher)
    for target in (OrderStatus.PREPARING, OrderStatus.READY):
        await orders.transition_order(test_db, cashier_scope, order.id, target, publisher)

    payment, created = await checkout.checkout(
        test_db, cashier_scope, order.id, PaymentMethod.TRANSFER, "key-1", publisher
    )

    assert created
    assert payment.payment_method == "TRANSFER"


async def test_checkout_respects_branch_scope(
    test_db, cashier_scope, test_org, test_branch, other_branch, hot_pad_thai, publisher
):
    order = await _confirmed_order(test_db, cashier_scope, [hot_pad_thai], publisher)
    order_id = order.id
    outsider = ActorScope(
        actor_id="other", role="CASHIER", organization_id=test_org.id, branch_id=other_branch.id
    )

    with pytest.raises(Unauthorized):
        await checkout.checkout(test_db, outsider, order_id, PaymentMethod.CASH, "key-1", publisher)

    assert (await orders.get_order(test_db, cashier_scope, order_id)).status == "CONFIRMED"


async def test_get_payment(test_db, cashier_scope, test_branch, hot_pad_thai, publisher):
    order = await _confirmed_order(test_db, cashier_scope, [hot_pad_thai], publisher)
    payment, _ = await checkout.checkout(
        test_db, cashier_scope, order.id, PaymentMethod.CASH, "key-1", publisher
    )

    fetched = await checkout.get_payment(test_db, cashier_scope, payment.id)

    assert fetched.id == payment.id
    assert fetched.order_id == order.id


async def test_concurrent_checkout_with_different_keys(
    session_factory, cashier_scope, test_branch, hot_pad_thai, save10, publisher
):
    async with session_factory() as db:
        order = await _confirmed_order(db, cashier_scope, [hot_pad_thai], publisher)
        order_id = order.id

    async def attempt(key):
        async with session_factory() as db:
            return await checkout.checkout(
                db, cashier_scope, order_id, PaymentMethod.CARD, key, publisher, promotion_code="SAVE10"
            )

    results = await asyncio.gather(attempt("till-1"), attempt("till-2"), return_exceptions=True)

    paid = [r for r in results if isinstance(r, tuple)]
    rejected = [r for r in results if isinstance(r, Exception)]
    assert len(paid) == 1
    assert len(rejected) == 1
    assert isinstance(rejected[0], (AlreadyFinalized, ConflictError))

    # Never a second charge or a double-counted discount
    async with session_factory() as db:
        payments = (await db.execute(select(func.count(Payment.id)))).scalar()
        usages = (await db.execute(select(func.count(PromotionUsage.id)))).scalar()
        promotion = await db.get(Promotion, save10.id)
    assert (payments, usages, promotion.usage_count) == (1, 1, 1)
    assert paid[0][0].discount_amount == Decimal("13.00")


async def test_checkout_drops_promotion_that_no_longer_applies(
    session_factory, test_db, seed, test_org, cashier_scope, test_branch, hot_pad_thai, publisher
):
    weekend = Promotion(
        id=uuid4(),
        organization_id=test_org.id,
        code="WEEKEND",
        name="Weekend special",
        discount_type="FIXED_AMOUNT",
        discount_value=Decimal("30.00"),
    )
    seed.add(weekend)
    await seed.commit()

    order = await _confirmed_order(test_db, cashier_scope, [hot_pad_thai], publisher)
    order = await orders.apply_promotion(test_db, cashier_scope, order.id, "WEEKEND", publisher)
    assert order.discount_amount == Decimal("30.00")

    # Manager switches the promotion off before the table pays
    weekend.is_active = False
    await seed.commit()

    payment, _ = await checkout.checkout(
        test_db, cashier_scope, order.id, PaymentMethod.CASH, "key-1", publisher
    )

    assert payment.discount_amount == Decimal("0.00")
    assert payment.promotion_code is None
    assert payment.amount == Decimal("139.10")

    async with session_factory() as db:
        promotion = await db.get(Promotion, weekend.id)
        usage = (await db.execute(select(PromotionUsage))).scalar_one()
    assert promotion.usage_count == 0
    assert usage.released_at is not None


async def test_checkout_code_below_minimum_is_rejected(
    test_db, seed, test_org, cashier_scope, test_branch, hot_pad_thai, publisher
):
    seed.add(
        Promotion(
            organization_id=test_org.id,
            code="BIG",
            name="50 off orders of 150 or more",
            discount_type="FIXED_AMOUNT",
            discount_value=Decimal("50.00"),
            min_order_total=Decimal("150.00"),
        )
    )
    await seed.commit()
    order = await _confirmed_order(test_db, cashier_scope, [hot_pad_thai], publisher)
    order_id = order.id

    with pytest.raises(InvalidPromotion):
        await checkout.checkout(
            test_db, cashier_scope, order_id, PaymentMethod.CASH, "key-1", publisher, promotion_code="BIG"
        )

    assert (await orders.get_order(test_db, cashier_scope, order_id)).status == "CONFIRMED"
