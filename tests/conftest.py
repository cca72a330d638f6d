"""
Shared fixtures.

Each test gets a fresh SQLite file (aiosqlite, no connection pooling so the
TestClient's event loop and the fixtures' ``asyncio.run`` never share a
connection). The auth dependency is replaced by a seeded user.
"""

import asyncio
import os
import uuid

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from alquemist.core.auth import current_active_user
from alquemist.db.database import Base, get_async_session, Company, Facility
from alquemist.db.users import User
from alquemist.main import app


@pytest.fixture()
def session_maker(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'alquemist.db'}", poolclass=NullPool)

    async def _create():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(_create())
    yield async_sessionmaker(engine, expire_on_commit=False)
    asyncio.run(engine.dispose())


@pytest.fixture()
def user_id(session_maker):
    async def _seed():
        async with session_maker() as s:
            u = User(
                id=uuid.uuid4(),
                email="grower@example.com",
                hashed_password="not-a-real-hash",
                is_active=True,
                is_superuser=False,
                is_verified=True,
                first_name="Ana",
                last_name="Rojas",
            )
            s.add(u)
            await s.commit()
            return u.id

    return asyncio.run(_seed())


@pytest.fixture()
def client(session_maker, user_id):
    async def _session():
        async with session_maker() as s:
            yield s

    async def _user(db: AsyncSession = Depends(get_async_session)):
        return await db.get(User, user_id)

    app.dependency_overrides[get_async_session] = _session
    app.dependency_overrides[current_active_user] = _user
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def run_db(session_maker):
    """Run ``fn(session)`` against the test database and return its result."""

    def _run(fn):
        async def _inner():
            async with session_maker() as s:
                return await fn(s)

        return asyncio.run(_inner())

    return _run


@pytest.fixture()
def company(client):
    res = client.post("/companies/", json={"name": "Cultivos del Valle", "tax_id": "900123456"})
    assert res.status_code == 201, res.text
    return res.json()


@pytest.fixture()
def facility(client, company):
    res = client.post(
        "/facilities/",
        json={"name": "Finca Norte", "license_number": "LIC-001", "facility_type": "greenhouse"},
    )
    assert res.status_code == 201, res.text
    return res.json()


@pytest.fixture()
def area(client, facility):
    res = client.post(
        "/areas/",
        json={"facility_id": facility["id"], "name": "Bodega", "area_type": "storage", "max_capacity": 200},
    )
    assert res.status_code == 201, res.text
    return res.json()


@pytest.fixture()
def make_product(client, company):
    counter = {"n": 0}

    def _make(name="Nitrato de calcio", category="nutrient", sku=None):
        counter["n"] += 1
        res = client.post(
            "/products/",
            json={"sku": sku or f"sku-{counter['n']}", "name": name, "category": category},
        )
        assert res.status_code == 201, res.text
        return res.json()

    return _make


@pytest.fixture()
def make_lot(client):
    def _make(product_id, area_id, quantity, received_date=None, **extra):
        body = {
            "product_id": product_id,
            "area_id": area_id,
            "quantity_available": quantity,
            "quantity_unit": "kg",
            "received_date": received_date,
        }
        body.update(extra)
        res = client.post("/inventory/", json=body)
        assert res.status_code == 201, res.text
        return res.json()

    return _make


@pytest.fixture()
def foreign_facility(run_db):
    """A facility owned by some other company."""

    async def _seed(s):
        other = Company(name="Otra Empresa")
        s.add(other)
        await s.flush()
        f = Facility(company_id=other.id, name="Ajena", license_number="LIC-OTHER")
        s.add(f)
        await s.commit()
        return str(f.id)

    return run_db(_seed)
