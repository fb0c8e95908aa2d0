"""
Tests for the admin dashboard lists and aggregates
"""
import io
import pytest
import pandas as pd
from datetime import datetime, timedelta
from httpx import AsyncClient
from pharmacy_feedback.db.models import Employee, Position
from pharmacy_feedback.feedback_sessions.models import FeedbackSession
from pharmacy_feedback.statistics.service import StatisticsService


async def seed_session(db_session, days_ago=0, status="completed", **fields) -> FeedbackSession:
    when = datetime.utcnow() - timedelta(days=days_ago)
    session = FeedbackSession(
        device_id="device_test",
        employee_ratings=fields.pop("employee_ratings", []),
        status=status,
        started_at=when,
        last_active_at=when,
        completed_at=when if status in ("completed", "processed") else None,
        inactivity_timeout_minutes=2,
        **fields,
    )
    db_session.add(session)
    await db_session.commit()
    return session


async def seed_employee(db_session, first_name, last_name, title=None) -> Employee:
    position = None
    if title:
        position = Position(title=title)
        db_session.add(position)
        await db_session.commit()
    employee = Employee(
        first_name=first_name,
        last_name=last_name,
        position_id=position.id if position else None,
        is_active=True,
    )
    db_session.add(employee)
    await db_session.commit()
    return employee


@pytest.mark.asyncio
async def test_statistics_require_auth(client: AsyncClient):
    for path in ("/admin/clients", "/admin/pharmacy-ratings", "/admin/suggestions", "/admin/employees/statistics"):
        response = await client.get(path)
        assert response.status_code in [401, 403]


@pytest.mark.asyncio
async def test_clients_search_and_pagination(client: AsyncClient, db_session, as_admin, auth_headers):
    await seed_session(db_session, pharmacy_rating=5, client_data={
        "firstName": "Marie", "lastName": "Curie", "email": "marie@example.com", "phone": "", "consent": True,
    })
    await seed_session(db_session, days_ago=1, client_data={
        "firstName": "Louis", "lastName": "Pasteur", "email": "louis@example.com", "phone": "0600000000", "consent": False,
    })
    await seed_session(db_session, days_ago=2, pharmacy_rating=3)

    response = await client.get("/admin/clients", headers=auth_headers)
    data = response.json()
    assert data["total"] == 2
    assert [c["first_name"] for c in data["items"]] == ["Marie", "Louis"]
    assert data["items"][0]["avg_rating"] == 5
    assert data["items"][1]["total_reviews"] == 0

    response = await client.get("/admin/clients", params={"search": "PASTEUR"}, headers=auth_headers)
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["email"] == "louis@example.com"

    response = await client.get("/admin/clients", params={"page": 2, "page_size": 1}, headers=auth_headers)
    data = response.json()
    assert data["total_pages"] == 2
    assert data["items"][0]["first_name"] == "Louis"


@pytest.mark.asyncio
async def test_pharmacy_ratings_with_stats(client: AsyncClient, db_session, as_admin, auth_headers):
    for rating in (5, 4, 2):
        await seed_session(db_session, days_ago=3, pharmacy_rating=rating)
    await seed_session(db_session, days_ago=45, pharmacy_rating=3)
    await seed_session(db_session, days_ago=1)

    response = await client.get("/admin/pharmacy-ratings", params={"time_filter": "30days"}, headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    stats = data["stats"]
    assert stats["total_reviews"] == 3
    assert stats["average_rating"] == 3.7
    assert stats["ratings_distribution"] == {"1": 0, "2": 1, "3": 0, "4": 1, "5": 1}
    # previous 30 days averaged 3.0
    assert stats["comparison_to_last_period"] == 0.7


@pytest.mark.asyncio
async def test_pharmacy_ratings_filters(client: AsyncClient, db_session, as_admin, auth_headers):
    for rating in (5, 4, 3, 1):
        await seed_session(db_session, pharmacy_rating=rating)

    response = await client.get("/admin/pharmacy-ratings", params={"sentiment": "positive"}, headers=auth_headers)
    assert sorted(item["rating"] for item in response.json()["items"]) == [4, 5]

    response = await client.get("/admin/pharmacy-ratings", params={"sentiment": "negative"}, headers=auth_headers)
    assert sorted(item["rating"] for item in response.json()["items"]) == [1, 3]

    response = await client.get("/admin/pharmacy-ratings", params={"rating": 3}, headers=auth_headers)
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["client_name"] == "Anonymous"
    # stats are not narrowed by the list filters
    assert data["stats"]["total_reviews"] == 4
    assert data["stats"]["comparison_to_last_period"] == 0.0


@pytest.mark.asyncio
async def test_pharmacy_ratings_invalid_filter(client: AsyncClient, as_admin, auth_headers):
    response = await client.get("/admin/pharmacy-ratings", params={"time_filter": "decade"}, headers=auth_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_employee_ratings_flattened(client: AsyncClient, db_session, as_admin, auth_headers):
    claire = await seed_employee(db_session, "Claire", "Martin", "Pharmacien")
    paul = await seed_employee(db_session, "Paul", "Durand")
    await seed_session(db_session, days_ago=1, employee_ratings=[
        {"employeeId": str(claire.id), "rating": 5, "comment": "great"},
        {"employeeId": str(paul.id), "rating": 2, "comment": ""},
    ])
    await seed_session(db_session, employee_ratings=[
        {"employeeId": "unknown", "rating": 4, "comment": ""},
    ])

    response = await client.get("/admin/employee-ratings", headers=auth_headers)
    data = response.json()
    assert data["total"] == 3
    assert data["items"][0]["employee_name"] == "N/A"
    assert data["items"][1]["employee_name"] == "Claire Martin"
    assert data["items"][1]["position"] == "Pharmacien"

    response = await client.get("/admin/employee-ratings", params={"sentiment": "negative"}, headers=auth_headers)
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["employee_name"] == "Paul Durand"

    response = await client.get("/admin/employee-ratings", params={"employee_id": str(claire.id)}, headers=auth_headers)
    assert response.json()["items"][0]["comment"] == "great"


@pytest.mark.asyncio
async def test_employee_statistics_ranked_by_score(client: AsyncClient, db_session, as_admin, auth_headers):
    claire = await seed_employee(db_session, "Claire", "Martin")
    paul = await seed_employee(db_session, "Paul", "Durand")
    await seed_session(db_session, employee_ratings=[{"employeeId": str(paul.id), "rating": 5, "comment": ""}])
    for rating in (5, 4, 5):
        await seed_session(db_session, employee_ratings=[{"employeeId": str(claire.id), "rating": rating, "comment": ""}])

    response = await client.get("/admin/employees/statistics", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert [e["employee_name"] for e in data["employees"]] == ["Claire Martin", "Paul Durand"]
    top = data["top_employees"][0]
    assert top["total_reviews"] == 3
    assert top["average_rating"] == 4.7
    assert top["score"] == round((14 / 3) * 1.3862943611198906, 2)


@pytest.mark.asyncio
async def test_suggestions(client: AsyncClient, db_session, as_admin, auth_headers):
    await seed_session(db_session, days_ago=1, suggestion="Open on Sundays", status="processed")
    await seed_session(db_session, suggestion="More chairs", client_data={"firstName": "Marie", "lastName": "Curie"})
    await seed_session(db_session, suggestion="")
    await seed_session(db_session, days_ago=10, suggestion="Old idea")

    response = await client.get("/admin/suggestions", headers=auth_headers)
    data = response.json()
    assert data["total"] == 3
    assert [(s["suggestion"], s["status"]) for s in data["items"]] == [
        ("More chairs", "new"),
        ("Open on Sundays", "processed"),
        ("Old idea", "new"),
    ]
    assert data["items"][0]["client_name"] == "Marie Curie"

    start = (datetime.utcnow() - timedelta(days=5)).isoformat()
    response = await client.get("/admin/suggestions", params={"start_date": start}, headers=auth_headers)
    assert response.json()["total"] == 2


@pytest.mark.asyncio
async def test_suggestions_invalid_range(client: AsyncClient, as_admin, auth_headers):
    response = await client.get(
        "/admin/suggestions",
        params={"start_date": "2024-02-01T00:00:00", "end_date": "2024-01-01T00:00:00"},
        headers=auth_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_export_csv(client: AsyncClient, db_session, as_admin, auth_headers):
    await seed_session(db_session, pharmacy_rating=4, suggestion="Thanks", employee_ratings=[
        {"employeeId": "E", "rating": 5, "comment": ""},
    ])

    response = await client.get("/admin/exports/feedback-sessions", params={"format": "csv"}, headers=auth_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")

    df = pd.read_csv(io.StringIO(response.text))
    assert len(df) == 1
    assert df.loc[0, "Pharmacy Rating"] == 4
    assert df.loc[0, "Employee Ratings"] == "E=5"
    assert df.loc[0, "Status"] == "completed"


@pytest.mark.asyncio
async def test_export_json(client: AsyncClient, db_session, as_admin, auth_headers):
    await seed_session(db_session, pharmacy_rating=2)
    response = await client.get("/admin/exports/feedback-sessions", headers=auth_headers)
    rows = response.json()
    assert len(rows) == 1
    assert rows[0]["Pharmacy Rating"] == 2


@pytest.mark.asyncio
async def test_export_requires_permission(client: AsyncClient, auth_headers):
    from pharmacy_feedback.main import app
    from pharmacy_feedback.auth.middleware import JWTPayload, verify_token

    app.dependency_overrides[verify_token] = lambda: JWTPayload(user_id="viewer", roles=[], permissions=["feedback:read"])
    response = await client.get("/admin/exports/feedback-sessions", headers=auth_headers)
    assert response.status_code == 403
    app.dependency_overrides.pop(verify_token, None)


@pytest.mark.asyncio
async def test_employee_statistics_service_filter(db_session):
    await seed_session(db_session, employee_ratings=[
        {"employeeId": "A", "rating": 4, "comment": ""},
        {"employeeId": "B", "rating": 1, "comment": ""},
    ])
    stats = await StatisticsService(db_session).get_employee_statistics("B")
    assert len(stats) == 1
    assert stats[0].employee_id == "B"
    assert stats[0].rating_distribution["1"] == 1


@pytest.mark.asyncio
async def test_pharmacy_ratings_page_counts_whole_match(client: AsyncClient, db_session, as_admin, auth_headers):
    for days_ago, rating in enumerate((5, 4, 4, 3, 1)):
        await seed_session(db_session, days_ago=days_ago, pharmacy_rating=rating)
    await seed_session(db_session)

    response = await client.get(
        "/admin/pharmacy-ratings",
        params={"sentiment": "positive", "rating": 4, "page": 2, "page_size": 1},
        headers=auth_headers,
    )
    data = response.json()
    assert data["total"] == 2
    assert data["total_pages"] == 2
    assert [item["rating"] for item in data["items"]] == [4]

    # a filter that contradicts the sentiment matches nothing
    response = await client.get(
        "/admin/pharmacy-ratings",
        params={"sentiment": "negative", "rating": 5},
        headers=auth_headers,
    )
    assert response.json()["total"] == 0

    response = await client.get("/admin/pharmacy-ratings", params={"page": 9}, headers=auth_headers)
    data = response.json()
    assert data["items"] == []
    assert data["total"] == 5


@pytest.mark.asyncio
async def test_session_queries_filter_in_database(db_session):
    await seed_session(db_session, pharmacy_rating=5, suggestion="  ")
    await seed_session(db_session, days_ago=1, pharmacy_rating=5, employee_ratings=[
        {"employeeId": "e1", "rating": 4, "comment": ""},
    ])
    await seed_session(db_session, days_ago=2, pharmacy_rating=2, suggestion="Longer hours")
    await seed_session(db_session, days_ago=40, pharmacy_rating=1)

    sessions = StatisticsService(db_session).sessions
    assert await sessions.pharmacy_rating_counts() == {1: 1, 2: 1, 5: 2}
    since = datetime.utcnow() - timedelta(days=30)
    assert await sessions.pharmacy_rating_counts(start=since) == {2: 1, 5: 2}

    with_ratings = await sessions.list_with_employee_ratings()
    assert [s.employee_ratings[0]["employeeId"] for s in with_ratings] == ["e1"]

    items, total = await sessions.page_suggestions(1, 10)
    assert total == 1
    assert items[0].suggestion == "Longer hours"

    items, total = await sessions.page_clients(1, 10, search="anyone")
    assert (items, total) == ([], 0)
