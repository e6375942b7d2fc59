"""Promotion API endpoints"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from pos_core.api.auth import get_actor_scope, require_role
from pos_core.api.products import catalog_organization
from pos_core.database import get_db, unit_of_work
from pos_core.models.promotion import Promotion
from pos_core.models.user import UserRole
from pos_core.schemas.promotion import (
    PromotionCreate,
    PromotionEvaluateRequest,
    PromotionEvaluateResponse,
    PromotionResponse,
)
from pos_core.services import promotions, table_sessions
from pos_core.services.scope import ADMIN, MANAGER, ActorScope

logger = structlog.get_logger()

router = APIRouter()


@router.get("", response_model=List[PromotionResponse])
async def list_promotions(
    is_active: Optional[bool] = None,
    organization_id: Optional[UUID] = None,
    actor: ActorScope = Depends(get_actor_scope),
    db: AsyncSession = Depends(get_db),
):
    """Promotions usable in the caller's organization and branch"""
    query = select(Promotion).where(
        Promotion.organization_id == catalog_organization(actor, organization_id)
    )

    if actor.role not in (ADMIN, MANAGER):
        query = query.where(
            or_(Promotion.branch_id.is_(None), Promotion.branch_id == actor.branch_id)
        )

    if is_active is not None:
        query = query.where(Promotion.is_active == is_active)

    result = await db.execute(query.order_by(Promotion.created_at.desc()))
    return result.scalars().all()


@router.post(
    "",
    response_model=PromotionResponse,
    status_code=201,
    dependencies=[Depends(require_role(UserRole.MANAGER))],
)
async def create_promotion(
    promotion_data: PromotionCreate,
    organization_id: Optional[UUID] = None,
    actor: ActorScope = Depends(get_actor_scope),
    db: AsyncSession = Depends(get_db),
):
    """Create a promotion code; codes are unique per organization"""
    org_id = catalog_organization(actor, organization_id)
    if promotion_data.branch_id is not None:
        branch = await table_sessions.load_branch(db, actor, promotion_data.branch_id)
        org_id = branch.organization_id

    async with unit_of_work(db):
        promotion = Promotion(
            organization_id=org_id,
            **promotion_data.model_dump(exclude={"code", "discount_type"}),
            code=promotions.normalize_code(promotion_data.code),
            discount_type=promotion_data.discount_type.value,
        )
        db.add(promotion)

    logger.info("Promotion created", promotion_id=str(promotion.id), code=promotion.code)
    return promotion


@router.post("/evaluate", response_model=PromotionEvaluateResponse)
async def evaluate_promotion(
    request: PromotionEvaluateRequest,
    actor: ActorScope = Depends(get_actor_scope),
    db: AsyncSession = Depends(get_db),
):
    """Discount a code would give against an amount, without redeeming it"""
    branch = await table_sessions.load_branch(db, actor, request.branch_id)
    promotion, discount = await promotions.evaluate(
        db, branch.organization_id, branch.id, request.code, request.order_total
    )
    return PromotionEvaluateResponse(
        promotion_id=promotion.id,
        code=promotion.code,
        name=promotion.name,
        discount_amount=discount,
    )
