"""Test configuration and fixtures"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from decimal import Decimal
from uuid import uuid4

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from pos_core.main import app
from pos_core.database import Base, get_db
from pos_core.models import (
    Organization,
    Branch,
    User,
    UserRole,
    Product,
    ProductOption,
    Promotion,
    DiscountType,
)
from pos_core.api.auth import create_access_token, get_password_hash
from pos_core.notifications import EventPublisher, get_publisher
from pos_core.schemas.order import CartLine
from pos_core.services.scope import ActorScope


class RecordingPublisher(EventPublisher):
    """Keeps published events in memory instead of queueing them"""

    def __init__(self):
        self.events = []

    def send(self, event):
        self.events.append(event)

    def types(self):
        return [event.type for event in self.events]


@pytest.fixture
async def engine(tmp_path):
    """File-backed SQLite so each session gets its own connection"""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False, poolclass=NullPool
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def test_db(session_factory):
    """Session for calling services directly"""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def seed(session_factory):
    """Session used only for creating fixture rows"""
    async with session_factory() as session:
        yield session


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
async def test_org(seed):
    org = Organization(id=uuid4(), name="Baan Thai Group")
    seed.add(org)
    await seed.commit()
    return org


@pytest.fixture
async def test_branch(seed, test_org):
    branch = Branch(
        id=uuid4(),
        organization_id=test_org.id,
        name="Siam Square",
        tax_rate=Decimal("0.07"),
    )
    seed.add(branch)
    await seed.commit()
    return branch


@pytest.fixture
async def other_branch(seed, test_org):
    """Second branch in the same organization"""
    branch = Branch(
        id=uuid4(),
        organization_id=test_org.id,
        name="Riverside",
        tax_rate=Decimal("0.07"),
    )
    seed.add(branch)
    await seed.commit()
    return branch


async def _make_user(seed, role, email, organization_id=None, branch_id=None):
    user = User(
        id=uuid4(),
        organization_id=organization_id,
        branch_id=branch_id,
        email=email,
        hashed_password=get_password_hash("testpass123"),
        full_name=f"Test {role.value.title()}",
        role=role,
        is_active=True,
    )
    seed.add(user)
    await seed.commit()
    return user


@pytest.fixture
async def cashier_user(seed, test_org, test_branch):
    return await _make_user(seed, UserRole.CASHIER, "cashier@example.com", test_org.id, test_branch.id)


@pytest.fixture
async def kitchen_user(seed, test_org, test_branch):
    return await _make_user(seed, UserRole.KITCHEN, "kitchen@example.com", test_org.id, test_branch.id)


@pytest.fixture
async def manager_user(seed, test_org):
    return await _make_user(seed, UserRole.MANAGER, "manager@example.com", test_org.id)


@pytest.fixture
async def admin_user(seed):
    return await _make_user(seed, UserRole.ADMIN, "admin@example.com")


@pytest.fixture
async def pad_thai(seed, test_org):
    """Pad Thai, base 60.00, required Spice Level {Mild: +0, Hot: +5.00}"""
    product = Product(
        id=uuid4(),
        organization_id=test_org.id,
        name="Pad Thai",
        price=Decimal("60.00"),
        category="Noodles",
    )
    product.options = [
        ProductOption(option_group="Spice Level", option_name="Mild", price_delta=Decimal("0"), is_required=True, sort_order=0),
        ProductOption(option_group="Spice Level", option_name="Hot", price_delta=Decimal("5.00"), is_required=True, sort_order=1),
        ProductOption(option_group="Extra", option_name="Egg", price_delta=Decimal("10.00"), sort_order=2),
    ]
    seed.add(product)
    await seed.commit()
    return product


@pytest.fixture
async def iced_tea(seed, test_org):
    product = Product(
        id=uuid4(),
        organization_id=test_org.id,
        name="Thai Iced Tea",
        price=Decimal("40.00"),
        category="Drinks",
    )
    seed.add(product)
    await seed.commit()
    return product


@pytest.fixture
async def save10(seed, test_org):
    """10% off, capped at 20.00"""
    promotion = Promotion(
        id=uuid4(),
        organization_id=test_org.id,
        code="SAVE10",
        name="Save 10%",
        discount_type=DiscountType.PERCENTAGE.value,
        discount_value=Decimal("10"),
        max_discount=Decimal("20.00"),
        is_active=True,
    )
    seed.add(promotion)
    await seed.commit()
    return promotion


@pytest.fixture
def cashier_scope(cashier_user):
    return ActorScope(
        actor_id=str(cashier_user.id),
        role=UserRole.CASHIER.value,
        organization_id=cashier_user.organization_id,
        branch_id=cashier_user.branch_id,
    )


@pytest.fixture
def manager_scope(manager_user):
    return ActorScope(
        actor_id=str(manager_user.id),
        role=UserRole.MANAGER.value,
        organization_id=manager_user.organization_id,
    )


@pytest.fixture
def hot_pad_thai(pad_thai):
    """The two-plate Hot Pad Thai line: 2 x 65.00"""
    return CartLine(product_id=pad_thai.id, quantity=2, selections={"Spice Level": "Hot"})


@pytest.fixture
async def client(session_factory, publisher):
    """Create test client with overridden database and publisher"""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_publisher] = lambda: publisher

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


def _auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def cashier_headers(cashier_user):
    return _auth_headers(cashier_user)


@pytest.fixture
def kitchen_headers(kitchen_user):
    return _auth_headers(kitchen_user)


@pytest.fixture
def manager_headers(manager_user):
    return _auth_headers(manager_user)


@pytest.fixture
def admin_headers(admin_user):
    return _auth_headers(admin_user)
