"""Tests for branch and organization scoping"""

from decimal import Decimal
from uuid import uuid4

import pytest
from httpx import AsyncClient

from pos_core.models import Organization, Branch, Product
from pos_core.services.scope import ActorScope
from pos_core.exceptions import Unauthorized


def _line(product):
    return {"product_id": str(product.id), "quantity": 1, "selections": {"Spice Level": "Mild"}}


async def _create_order(client, headers, product, **extra):
    response = await client.post("/api/orders", json={"items": [_line(product)], **extra}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def test_cashier_cannot_see_other_branch_orders(
    client: AsyncClient, cashier_headers, manager_headers, pad_thai, other_branch
):
    other_order = await _create_order(
        client, manager_headers, pad_thai, branch_id=str(other_branch.id)
    )

    response = await client.get(f"/api/orders/{other_order['id']}", headers=cashier_headers)
    assert response.status_code == 403

    response = await client.get("/api/orders", headers=cashier_headers)
    assert response.json()["total"] == 0


async def test_cashier_cannot_target_other_branch(
    client: AsyncClient, cashier_headers, pad_thai, other_branch
):
    response = await client.post(
        "/api/orders",
        json={"items": [_line(pad_thai)], "branch_id": str(other_branch.id)},
        headers=cashier_headers,
    )
    assert response.status_code == 403

    response = await client.get(
        "/api/orders", headers={**cashier_headers, "X-Branch-ID": str(other_branch.id)}
    )
    assert response.status_code == 403


async def test_manager_sees_all_branches_in_org(
    client: AsyncClient, cashier_headers, manager_headers, pad_thai, test_branch, other_branch
):
    await _create_order(client, cashier_headers, pad_thai)
    await _create_order(client, manager_headers, pad_thai, branch_id=str(other_branch.id))

    response = await client.get("/api/orders", headers=manager_headers)
    assert response.json()["total"] == 2

    response = await client.get(
        "/api/orders", headers={**manager_headers, "X-Branch-ID": str(other_branch.id)}
    )
    assert response.status_code == 200

    response = await client.get(f"/api/orders?branch_id={other_branch.id}", headers=manager_headers)
    assert response.json()["total"] == 1


async def test_manager_working_branch_header(
    client: AsyncClient, manager_headers, pad_thai, other_branch
):
    order = await _create_order(
        client, {**manager_headers, "X-Branch-ID": str(other_branch.id)}, pad_thai
    )

    assert order["branch_id"] == str(other_branch.id)
    assert order["order_number"] == 1


async def test_manager_cannot_reach_other_organization(
    client: AsyncClient, seed, manager_headers, pad_thai
):
    foreign_org = Organization(id=uuid4(), name="Other Group")
    seed.add(foreign_org)
    await seed.flush()
    foreign_branch = Branch(id=uuid4(), organization_id=foreign_org.id, name="Elsewhere")
    seed.add(foreign_branch)
    await seed.commit()

    response = await client.post(
        "/api/orders",
        json={"items": [_line(pad_thai)], "branch_id": str(foreign_branch.id)},
        headers=manager_headers,
    )

    assert response.status_code == 403


async def test_admin_sees_everything(
    client: AsyncClient, admin_headers, cashier_headers, pad_thai, test_branch, other_branch, test_org
):
    await _create_order(client, cashier_headers, pad_thai)

    response = await client.get("/api/orders", headers=admin_headers)
    assert response.json()["total"] == 1

    response = await client.get(
        f"/api/products?organization_id={test_org.id}", headers=admin_headers
    )
    assert [p["name"] for p in response.json()] == ["Pad Thai"]


async def test_products_are_scoped_to_organization(
    client: AsyncClient, seed, cashier_headers, pad_thai
):
    foreign_org = Organization(id=uuid4(), name="Sushi Place")
    seed.add(foreign_org)
    await seed.flush()
    sushi = Product(organization_id=foreign_org.id, name="Salmon Roll", price=Decimal("180.00"))
    seed.add(sushi)
    await seed.commit()

    response = await client.get("/api/products", headers=cashier_headers)
    assert "Salmon Roll" not in {p["name"] for p in response.json()}

    response = await client.get(f"/api/products/{sushi.id}", headers=cashier_headers)
    assert response.status_code == 404

    # Foreign products cannot be ordered either
    response = await client.post(
        "/api/orders",
        json={"items": [{"product_id": str(sushi.id), "quantity": 1}]},
        headers=cashier_headers,
    )
    assert response.status_code == 404


async def test_guest_session_cannot_cross_branches(
    client: AsyncClient, cashier_headers, manager_headers, pad_thai, other_branch
):
    response = await client.post(
        "/api/qr-sessions", json={"table_number": 4}, headers=cashier_headers
    )
    token = response.json()["token"]

    # Staff of another branch cannot attach an order to this session
    response = await client.post(
        "/api/orders",
        json={"items": [_line(pad_thai)], "qr_session_token": token, "branch_id": str(other_branch.id)},
        headers=manager_headers,
    )
    assert response.status_code == 404


def test_scope_matching_rules():
    org, branch, other = uuid4(), uuid4(), uuid4()

    assert ActorScope("a", "ADMIN").can_access(uuid4(), uuid4())
    assert ActorScope("m", "MANAGER", organization_id=org).can_access(org, other)
    assert not ActorScope("m", "MANAGER", organization_id=org).can_access(uuid4(), branch)
    assert ActorScope("c", "CASHIER", org, branch).can_access(org, branch)
    assert not ActorScope("c", "CASHIER", org, branch).can_access(org, other)

    with pytest.raises(Unauthorized):
        ActorScope("c", "CASHIER", org, branch).resolve_branch(other)
