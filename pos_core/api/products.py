"""Product catalog API endpoints"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
import structlog

from pos_core.api.auth import get_actor_scope, require_role
from pos_core.database import get_db
from pos_core.exceptions import NotFound, Unauthorized
from pos_core.models.catalog import Product, ProductOption
from pos_core.models.user import UserRole
from pos_core.schemas.catalog import ProductCreate, ProductResponse
from pos_core.services.scope import ADMIN, ActorScope

logger = structlog.get_logger()

router = APIRouter()


def catalog_organization(actor: ActorScope, organization_id: Optional[UUID] = None) -> UUID:
    """Organization whose catalog the caller works with"""
    if actor.role == ADMIN and organization_id is not None:
        return organization_id
    if organization_id is not None and organization_id != actor.organization_id:
        raise Unauthorized("Access denied to this organization")
    if actor.organization_id is None:
        raise Unauthorized("Organization context is required")
    return actor.organization_id


@router.get("", response_model=List[ProductResponse])
async def list_products(
    category: Optional[str] = None,
    is_available: Optional[bool] = None,
    organization_id: Optional[UUID] = None,
    actor: ActorScope = Depends(get_actor_scope),
    db: AsyncSession = Depends(get_db),
):
    """List products in the caller's organization"""
    query = select(Product).where(
        Product.organization_id == catalog_organization(actor, organization_id)
    )

    if category:
        query = query.where(Product.category == category)

    if is_available is not None:
        query = query.where(Product.is_available == is_available)

    query = query.options(selectinload(Product.options))
    query = query.order_by(Product.category, Product.sort_order, Product.name)

    result = await db.execute(query)
    return result.scalars().all()


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: UUID,
    actor: ActorScope = Depends(get_actor_scope),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Product)
        .where(Product.id == product_id)
        .options(selectinload(Product.options))
    )
    product = result.scalar_one_or_none()

    if product is None:
        raise NotFound("Product", product_id)
    if actor.role != ADMIN and product.organization_id != actor.organization_id:
        raise NotFound("Product", product_id)

    return product


@router.post(
    "",
    response_model=ProductResponse,
    status_code=201,
    dependencies=[Depends(require_role(UserRole.MANAGER))],
)
async def create_product(
    product_data: ProductCreate,
    organization_id: Optional[UUID] = None,
    actor: ActorScope = Depends(get_actor_scope),
    db: AsyncSession = Depends(get_db),
):
    """Create a product with its option groups"""
    product = Product(
        organization_id=catalog_organization(actor, organization_id),
        **product_data.model_dump(exclude={"options"}),
    )
    product.options = [
        ProductOption(**option.model_dump()) for option in product_data.options
    ]
    db.add(product)
    await db.commit()

    logger.info("Product created", product_id=str(product.id), name=product.name)

    # Reload with options
    result = await db.execute(
        select(Product)
        .where(Product.id == product.id)
        .options(selectinload(Product.options))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()
