#!/usr/bin/env python3
"""
Seed script to create a demo organization, branches, staff and catalog
"""

import asyncio
import uuid
from datetime import datetime, timedelta
from decimal import Decimal

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


async def seed_demo_data():
    """Seed demo data for development"""
    from pos_core.database import SessionLocal, engine, Base
    from pos_core.models import (
        Organization, Branch, User, UserRole, Product, ProductOption, Promotion, DiscountType,
    )

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with SessionLocal() as db:
        # Check if demo organization already exists
        from sqlalchemy import select
        result = await db.execute(
            select(Organization).where(Organization.name == "Baan Thai Group")
        )
        existing = result.scalar_one_or_none()

        if existing:
            print("Demo data already exists. Skipping...")
            return

        print("Creating demo organization...")

        org = Organization(id=uuid.uuid4(), name="Baan Thai Group")
        db.add(org)
        await db.flush()

        siam = Branch(
            id=uuid.uuid4(),
            organization_id=org.id,
            name="Siam Square",
            tax_rate=Decimal("0.0700"),
            currency="THB",
        )
        riverside = Branch(
            id=uuid.uuid4(),
            organization_id=org.id,
            name="Riverside",
            tax_rate=Decimal("0.0700"),
            currency="THB",
        )
        db.add_all([siam, riverside])
        await db.flush()

        print(f"Created organization: {org.name} (ID: {org.id})")

        users = [
            User(
                email="admin@baanthai.co.th",
                hashed_password=pwd_context.hash("admin123"),
                full_name="System Admin",
                role=UserRole.ADMIN,
            ),
            User(
                organization_id=org.id,
                email="manager@baanthai.co.th",
                hashed_password=pwd_context.hash("manager123"),
                full_name="Somchai Manager",
                role=UserRole.MANAGER,
            ),
            User(
                organization_id=org.id,
                branch_id=siam.id,
                email="cashier@baanthai.co.th",
                hashed_password=pwd_context.hash("cashier123"),
                full_name="Siam Cashier",
                role=UserRole.CASHIER,
            ),
            User(
                organization_id=org.id,
                branch_id=siam.id,
                email="kitchen@baanthai.co.th",
                hashed_password=pwd_context.hash("kitchen123"),
                full_name="Siam Kitchen",
                role=UserRole.KITCHEN,
            ),
        ]
        db.add_all(users)

        print("Creating products...")

        products = [
            {"name": "Pad Thai", "description": "Stir-fried rice noodles with tamarind", "price": "120.00", "category": "Noodles"},
            {"name": "Pad See Ew", "description": "Wide noodles with dark soy sauce", "price": "110.00", "category": "Noodles"},
            {"name": "Green Curry", "description": "Chicken green curry with Thai basil", "price": "150.00", "category": "Curry"},
            {"name": "Massaman Curry", "description": "Beef massaman with potato and peanuts", "price": "180.00", "category": "Curry"},
            {"name": "Tom Yum Goong", "description": "Hot and sour prawn soup", "price": "200.00", "category": "Soup"},
            {"name": "Som Tam", "description": "Green papaya salad", "price": "90.00", "category": "Salad"},
            {"name": "Mango Sticky Rice", "description": "Sweet sticky rice with ripe mango", "price": "100.00", "category": "Dessert"},
            {"name": "Thai Iced Tea", "description": "Sweet milk tea over ice", "price": "60.00", "category": "Drinks"},
        ]

        for index, product_data in enumerate(products):
            product = Product(
                organization_id=org.id,
                name=product_data["name"],
                description=product_data["description"],
                price=Decimal(product_data["price"]),
                category=product_data["category"],
                sort_order=index,
            )

            if product_data["category"] in ("Noodles", "Curry", "Soup", "Salad"):
                product.options = [
                    ProductOption(option_group="Spice Level", option_name="Mild", is_required=True, sort_order=0),
                    ProductOption(option_group="Spice Level", option_name="Medium", is_required=True, sort_order=1),
                    ProductOption(option_group="Spice Level", option_name="Hot", price_delta=Decimal("5.00"), is_required=True, sort_order=2),
                ]
            if product_data["category"] in ("Noodles", "Curry"):
                product.options += [
                    ProductOption(option_group="Protein", option_name="Chicken", sort_order=10),
                    ProductOption(option_group="Protein", option_name="Shrimp", price_delta=Decimal("40.00"), sort_order=11),
                    ProductOption(option_group="Protein", option_name="Tofu", price_delta=Decimal("-10.00"), sort_order=12),
                ]
            if product_data["category"] == "Drinks":
                product.options = [
                    ProductOption(option_group="Size", option_name="Regular", sort_order=0),
                    ProductOption(option_group="Size", option_name="Large", price_delta=Decimal("15.00"), sort_order=1),
                ]
            db.add(product)

        db.add(
            Promotion(
                organization_id=org.id,
                code="SAVE10",
                name="10% off, up to 20 THB",
                discount_type=DiscountType.PERCENTAGE.value,
                discount_value=Decimal("10"),
                max_discount=Decimal("20.00"),
                valid_from=datetime.utcnow() - timedelta(days=1),
                valid_until=datetime.utcnow() + timedelta(days=90),
            )
        )

        await db.commit()

        print(f"""
Demo data created successfully!

Organization: {org.name}
  ID: {org.id}
  Branches: {siam.name} ({siam.id}), {riverside.name} ({riverside.id})

Users:
  Admin:    admin@baanthai.co.th / admin123
  Manager:  manager@baanthai.co.th / manager123
  Cashier:  cashier@baanthai.co.th / cashier123
  Kitchen:  kitchen@baanthai.co.th / kitchen123

Catalog: {len(products)} products created
Promotion: SAVE10
""")


if __name__ == "__main__":
    asyncio.run(seed_demo_data())
