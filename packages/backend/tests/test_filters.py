"""Filter predicates and pagination helpers, tested against the real schema."""

import pytest
from sqlalchemy import select

from lexdesk.db.filters import Contains, Equals, In, IsNull, Range, apply_predicates, to_clause
from lexdesk.db.models import Folder
from lexdesk.db.repository import Page, active, paginate
from lexdesk.errors import ValidationFailed


@pytest.fixture
async def seeded(make_folder):
    await make_folder(1, title="Alpha", status="active", client_name="Maria Silva")
    await make_folder(2, title="Beta", status="archived", client_name="João Silva")
    await make_folder(3, title="Gamma", status="active", client_name=None)
    await make_folder(4, title="Delta", status="active", deleted=True)


async def _matching(db, *predicates) -> list[Folder]:
    q = apply_predicates(active(select(Folder), Folder), Folder, predicates).order_by(Folder.id)
    return list((await db.execute(q)).scalars().all())


@pytest.mark.asyncio
async def test_equals_and_in(db_session, seeded):
    folders = await _matching(db_session, Equals("status", "active"))
    assert [f.id for f in folders] == [1, 3]

    folders = await _matching(db_session, In("id", (2, 3, 4)))
    assert [f.id for f in folders] == [2, 3]


@pytest.mark.asyncio
async def test_contains_is_case_insensitive(db_session, seeded):
    folders = await _matching(db_session, Contains("client_name", "SILVA"))
    assert [f.id for f in folders] == [1, 2]


@pytest.mark.asyncio
async def test_contains_treats_wildcards_literally(db_session, seeded, make_folder):
    await make_folder(5, title="Epsilon", client_name="Rocha 100% Ltda")
    await make_folder(6, title="Zeta", client_name="acme_corp")

    assert [f.id for f in await _matching(db_session, Contains("client_name", "%"))] == [5]
    assert [f.id for f in await _matching(db_session, Contains("client_name", "_"))] == [6]
    assert [f.id for f in await _matching(db_session, Contains("client_name", "a%a"))] == []


@pytest.mark.asyncio
async def test_is_null_both_ways(db_session, seeded):
    assert [f.id for f in await _matching(db_session, IsNull("client_name"))] == [3]
    assert [f.id for f in await _matching(db_session, IsNull("client_name", is_null=False))] == [1, 2]


@pytest.mark.asyncio
async def test_range_bounds(db_session, seeded):
    assert [f.id for f in await _matching(db_session, Range("id", start=2))] == [2, 3]
    assert [f.id for f in await _matching(db_session, Range("id", end=2))] == [1, 2]
    assert [f.id for f in await _matching(db_session, Range("id", start=2, end=2))] == [2]


@pytest.mark.asyncio
async def test_predicates_are_anded(db_session, seeded):
    folders = await _matching(db_session, Equals("status", "active"), Contains("client_name", "silva"))
    assert [f.id for f in folders] == [1]


def test_unknown_field_rejected():
    with pytest.raises(ValidationFailed, match="Unknown filter field"):
        to_clause(Folder, Equals("password", "x"))


def test_open_range_rejected():
    with pytest.raises(ValidationFailed):
        to_clause(Folder, Range("created_at"))


def test_page_meta():
    assert Page(items=[], total=0, page=1, per_page=10).meta["last_page"] == 1
    meta = Page(items=[], total=21, page=3, per_page=10).meta
    assert meta == {
        "total": 21,
        "per_page": 10,
        "current_page": 3,
        "last_page": 3,
        "first_page": 1,
    }


@pytest.mark.asyncio
async def test_paginate_counts_whole_result(db_session, seeded):
    q = active(select(Folder), Folder).order_by(Folder.id)
    page = await paginate(db_session, q, page=2, per_page=2)
    assert page.total == 3
    assert [f.id for f in page.items] == [3]
    assert page.meta["last_page"] == 2
