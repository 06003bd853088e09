# tests/test_routes/test_keyword_routes.py
import pytest

from merchant_app.models.wishlist import SuggestedKeyword, Wishlist


@pytest.mark.asyncio
async def test_keyword_admin_requires_auth(api_client):
    listed = await api_client.get("/app/keywords")
    added = await api_client.post("/app/keywords", json={"keyword": "mew"})
    stats = await api_client.get("/app/keywords/stats")

    assert listed.status_code == added.status_code == stats.status_code == 401


@pytest.mark.asyncio
async def test_add_and_list_keywords(api_client, auth_headers):
    added = await api_client.post("/app/keywords", json={"keyword": " Lugia "}, headers=auth_headers)

    assert added.status_code == 200
    body = added.json()
    assert body["success"] is True
    assert body["message"] == "Keyword added successfully"
    assert body["keyword"]["value"] == "lugia"
    assert body["keyword"]["source"] == "admin"

    listed = await api_client.get("/app/keywords", headers=auth_headers)
    assert [k["value"] for k in listed.json()["suggestedKeywords"]] == ["lugia"]


@pytest.mark.asyncio
async def test_add_duplicate_or_empty_keyword_is_400(api_client, auth_headers):
    await api_client.post("/app/keywords", json={"keyword": "lugia"}, headers=auth_headers)

    duplicate = await api_client.post("/app/keywords", json={"keyword": "LUGIA"}, headers=auth_headers)
    empty = await api_client.post("/app/keywords", json={}, headers=auth_headers)

    assert duplicate.status_code == 400
    assert duplicate.json() == {"error": "This keyword already exists"}
    assert empty.status_code == 400
    assert empty.json() == {"error": "Keyword cannot be empty"}


@pytest.mark.asyncio
async def test_delete_keyword(api_client, auth_headers, db_session):
    keyword = SuggestedKeyword(value="ho-oh")
    db_session.add(keyword)
    await db_session.commit()

    deleted = await api_client.delete(f"/app/keywords/{keyword.id}", headers=auth_headers)
    missing = await api_client.delete(f"/app/keywords/{keyword.id}", headers=auth_headers)

    assert deleted.json() == {"success": True, "message": "Keyword deleted successfully"}
    assert missing.status_code == 404
    assert missing.json() == {"error": "Keyword not found"}


@pytest.mark.asyncio
async def test_bulk_delete_keywords(api_client, auth_headers, db_session):
    keywords = [SuggestedKeyword(value=value) for value in ("zapdos", "moltres", "articuno")]
    db_session.add_all(keywords)
    await db_session.commit()

    response = await api_client.post(
        "/app/keywords/bulk-delete", json={"ids": [keywords[0].id, keywords[1].id]}, headers=auth_headers
    )
    invalid = await api_client.post("/app/keywords/bulk-delete", json={"ids": "all"}, headers=auth_headers)

    assert response.json() == {"success": True, "deleted": 2, "message": "2 keywords deleted successfully"}
    assert invalid.status_code == 400
    listed = await api_client.get("/app/keywords", headers=auth_headers)
    assert [k["value"] for k in listed.json()["suggestedKeywords"]] == ["articuno"]


@pytest.mark.asyncio
async def test_keyword_stats(api_client, auth_headers, db_session):
    for customer_id, email in (("1", "ash@example.com"), ("2", None)):
        db_session.add(Wishlist(customer_id=customer_id, email=email, keywords=[]))
    await db_session.commit()
    await api_client.post("/api/wishlist", json={"id": "1", "intent": "add_keyword", "keyword": "Gengar"})
    await api_client.post("/api/wishlist", json={"id": "2", "intent": "add_keyword", "keyword": "gengar"})

    response = await api_client.get("/app/keywords/stats", headers=auth_headers)

    body = response.json()
    assert body["totalEmails"] == 1
    assert [(k["value"], k["subscribers"]) for k in body["keywords"]] == [("gengar", 1)]
    assert body["suggestedKeywords"] == []
