from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.future import select

from database import Base, get_db
from main import app
from models.account import Account
from models.comment import Comment
from models.post import Post
from services.report import (
    AllSpheres,
    AnySphere,
    Between,
    ExactSphere,
    From,
    ReportFilters,
    Unbounded,
    Until,
    build_filter_clauses,
    date_range,
    generate_report_service,
    mark_all_unread_as_read_service,
    sphere_selector,
)


POST_URL = "https://instagram.com/p/report-post"


def _comment(comment_id, *, label="neutral", social="instagram", category=1, created=None, is_read=False):
    return Comment(
        id=comment_id,
        post_id=1,
        text=f"comment {comment_id}",
        label=label,
        likes=comment_id % 7,
        tip_social=social,
        category_id=category,
        created=created or datetime(2023, 12, 1, 8, 0, 0) + timedelta(hours=comment_id),
        is_read=is_read,
    )


@pytest_asyncio.fixture
async def report_env(tmp_path):
    db_path = tmp_path / "report_filters.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with session_maker() as session:
        session.add(Account(id=1, username="city_news"))
        await session.flush()
        session.add(Post(id=1, account_id=1, post_url=POST_URL, image_url="https://cdn.example.com/p.jpg"))
        await session.flush()

        comments = []
        # 25 positive comments spread over January 2024, one per day from the 2nd.
        for day in range(25):
            comments.append(
                _comment(
                    day + 1,
                    label="positive",
                    category=(day % 18) + 1,
                    created=datetime(2024, 1, 2 + day, 9, 30, 0),
                )
            )
        comments += [
            _comment(101, label="negative", social="telegram", category=3, created=datetime(2024, 1, 15, 10)),
            _comment(102, label="negative", social="vk", category=18, created=datetime(2024, 1, 16, 10)),
            _comment(103, label="neutral", social="facebook", category=42, created=datetime(2024, 1, 17, 10)),
            _comment(104, label="positive", social="instagram", category=None, created=datetime(2023, 12, 31, 23)),
            _comment(105, label="positive", social="instagram", category=5, created=datetime(2024, 2, 1, 0, 0, 1)),
            _comment(106, label="neutral", social="telegram", category=999, created=datetime(2024, 1, 20, 12), is_read=True),
        ]
        session.add_all(comments)
        await session.commit()

    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client, session_maker

    app.dependency_overrides.pop(get_db, None)
    await engine.dispose()


def test_sphere_selector_maps_sentinel_exact_and_missing():
    assert sphere_selector(999) == AllSpheres()
    assert AllSpheres().ids == tuple(range(1, 19))
    assert sphere_selector(7) == ExactSphere(7)
    assert sphere_selector(None) == AnySphere()
    assert sphere_selector(0) == AnySphere()


def test_date_range_picks_the_matching_shape():
    start, end = datetime(2024, 1, 1), datetime(2024, 1, 31)
    assert isinstance(date_range(None, None), Unbounded)
    assert isinstance(date_range(start, None), From)
    assert isinstance(date_range(None, end), Until)
    both = date_range(start, end)
    assert isinstance(both, Between)
    assert both.start.tzinfo is not None


def test_filters_default_pagination_and_no_clauses():
    filters = ReportFilters.from_request(page=0, limit=-5)
    assert filters.page == 1
    assert filters.limit == 100
    assert build_filter_clauses(filters) == []


def test_single_mood_uses_equality_and_many_use_in():
    single = build_filter_clauses(ReportFilters.from_request(moods=["positive"]))
    many = build_filter_clauses(ReportFilters.from_request(moods=["positive", "negative"]))

    assert len(single) == 1 and " = " in str(single[0])
    assert len(many) == 1 and " IN " in str(many[0]).upper()


@pytest.mark.asyncio
async def test_report_sentinel_matches_full_sphere_range(report_env):
    _, session_maker = report_env
    async with session_maker() as db:
        everything = await generate_report_service(
            filters=ReportFilters.from_request(sphere_id=999, limit=500), db=db
        )
        explicit = await db.execute(
            select(Comment.id).where(Comment.category_id.in_(list(range(1, 19))))
        )
        single = await generate_report_service(
            filters=ReportFilters.from_request(sphere_id=3, limit=500), db=db
        )

    sentinel_ids = {row["id"] for row in everything["data"]}
    assert sentinel_ids == set(explicit.scalars().all())
    assert 103 not in sentinel_ids and 104 not in sentinel_ids and 106 not in sentinel_ids
    assert {row["category_id"] for row in single["data"]} == {3}
    assert {row["id"] for row in single["data"]} < sentinel_ids


@pytest.mark.asyncio
async def test_report_combines_mood_social_and_sphere_filters(report_env):
    _, session_maker = report_env
    async with session_maker() as db:
        report = await generate_report_service(
            filters=ReportFilters.from_request(
                moods=["negative", "neutral"],
                tip_social=["telegram", "vk"],
                sphere_id=999,
            ),
            db=db,
        )

    assert [row["id"] for row in report["data"]] == [102, 101]
    assert report["total"] == 2


@pytest.mark.asyncio
async def test_report_open_ended_date_bounds(report_env):
    _, session_maker = report_env
    async with session_maker() as db:
        since = await generate_report_service(
            filters=ReportFilters.from_request(start_date=datetime(2024, 1, 25), limit=500), db=db
        )
        until = await generate_report_service(
            filters=ReportFilters.from_request(end_date=datetime(2024, 1, 1), limit=500), db=db
        )

    assert all(datetime.fromisoformat(row["created"]) >= datetime(2024, 1, 25) for row in since["data"])
    assert 105 in {row["id"] for row in since["data"]}
    assert [row["id"] for row in until["data"]] == [104]


@pytest.mark.asyncio
async def test_report_end_to_end_page_two(report_env):
    client, _ = report_env
    response = await client.post(
        "/report",
        json={
            "moods": ["positive"],
            "start_date": "2024-01-01",
            "end_date": "2024-01-31",
            "page": 2,
            "limit": 10,
        },
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["total"] == 25
    assert payload["page"] == 2
    assert payload["limit"] == 10
    assert payload["totalPages"] == 3

    rows = payload["data"]
    assert len(rows) == 10
    created = [datetime.fromisoformat(row["created"]) for row in rows]
    assert created == sorted(created, reverse=True)
    for row, stamp in zip(rows, created):
        assert row["label"] == "positive"
        assert datetime(2024, 1, 1) <= stamp <= datetime(2024, 1, 31)
        assert row["post_url"] == POST_URL
        assert row["post_id"] == 1
    assert [row["id"] for row in rows] == list(range(15, 5, -1))


@pytest.mark.asyncio
async def test_report_empty_result_has_zero_pages(report_env):
    client, _ = report_env
    response = await client.post("/report", json={"moods": ["furious"]})

    assert response.status_code == 200
    assert response.json() == {"data": [], "total": 0, "page": 1, "limit": 100, "totalPages": 0}


@pytest.mark.asyncio
async def test_report_rejects_malformed_input(report_env):
    client, _ = report_env
    assert (await client.post("/report", json={"page": "first"})).status_code == 422
    assert (await client.post("/report", json={"start_date": "last tuesday"})).status_code == 422
    assert (await client.post("/report", json={"sphere_id": -1})).status_code == 422


@pytest.mark.asyncio
async def test_report_rejects_out_of_range_pagination(report_env):
    client, _ = report_env
    assert (await client.post("/report", json={"page": 10**20})).status_code == 422
    assert (await client.post("/report", json={"limit": 1001})).status_code == 422

    response = await client.post("/report", json={"page": 1_000_000, "limit": 1000})
    assert response.status_code == 200
    assert response.json()["data"] == []


@pytest.mark.asyncio
async def test_list_unread_marks_rows_read(report_env):
    client, session_maker = report_env

    first = await client.get("/report/unread")
    assert first.status_code == 200
    rows = first.json()
    assert len(rows) == 30
    assert all(row["is_read"] is True for row in rows)
    assert 106 not in {row["id"] for row in rows}
    stamps = [datetime.fromisoformat(row["created"]) for row in rows]
    assert stamps == sorted(stamps, reverse=True)

    second = await client.get("/report/unread")
    assert second.json() == []

    async with session_maker() as db:
        result = await db.execute(select(Comment.id).where(Comment.is_read.is_(False)))
        assert result.scalars().all() == []


@pytest.mark.asyncio
async def test_peek_unread_does_not_mutate(report_env):
    client, _ = report_env

    peek = await client.get("/report/read")
    assert peek.status_code == 200
    rows = peek.json()
    assert len(rows) == 30
    assert all(row["is_read"] is False for row in rows)

    again = await client.get("/report/read")
    assert len(again.json()) == 30


@pytest.mark.asyncio
async def test_mark_all_unread_as_read_is_idempotent(report_env):
    client, session_maker = report_env

    first = await client.post("/report/mark-all-read")
    assert first.json() == {"success": True, "markedCount": 30}

    second = await client.post("/report/mark-all-read")
    assert second.json() == {"success": True, "markedCount": 0}

    async with session_maker() as db:
        assert await mark_all_unread_as_read_service(db=db) == {"success": True, "markedCount": 0}
