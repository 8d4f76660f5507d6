"""
Article endpoint tests: CRUD, ownership checks, filters, the feed and
the tag list.
"""
import pytest
from httpx import AsyncClient


async def _register(async_client: AsyncClient, username: str) -> str:
    resp = await async_client.post("/api/users", json={"user": {
        "username": username,
        "email": f"{username}@example.com",
        "password": "password123",
    }})
    assert resp.status_code == 201
    return resp.json()["user"]["token"]


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def _create_article(async_client: AsyncClient, token: str, title: str = "Test Article", tags=None) -> dict:
    resp = await async_client.post("/api/articles", headers=_auth(token), json={"article": {
        "title": title,
        "description": "A short summary",
        "body": "Body content for the article.",
        "tagList": tags or [],
    }})
    assert resp.status_code == 201
    return resp.json()["article"]


# ---------------------------------------------------------------------------
# Create / read
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_article(async_client: AsyncClient):
    token = await _register(async_client, "author")
    article = await _create_article(async_client, token, "Hello World", tags=["python", "asyncio"])

    assert article["slug"] == "hello-world"
    assert article["title"] == "Hello World"
    assert article["tagList"] == ["asyncio", "python"]
    assert article["favorited"] is False
    assert article["favoritesCount"] == 0
    assert article["author"] == {"username": "author", "bio": "", "image": "", "following": False}


@pytest.mark.asyncio
async def test_create_article_requires_auth(async_client: AsyncClient):
    resp = await async_client.post("/api/articles", json={"article": {"title": "x", "body": "y"}})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_create_article_missing_body(async_client: AsyncClient):
    token = await _register(async_client, "author")
    resp = await async_client.post("/api/articles", headers=_auth(token), json={"article": {"title": "No body"}})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_slug_collision_gets_suffix(async_client: AsyncClient):
    token = await _register(async_client, "author")
    first = await _create_article(async_client, token, "Same Title")
    second = await _create_article(async_client, token, "Same Title")

    assert first["slug"] == "same-title"
    assert second["slug"] != first["slug"]
    assert second["slug"].startswith("same-title-")


@pytest.mark.asyncio
async def test_get_article(async_client: AsyncClient):
    token = await _register(async_client, "author")
    await _create_article(async_client, token, "Readable")

    resp = await async_client.get("/api/articles/readable")
    assert resp.status_code == 200
    assert resp.json()["article"]["body"] == "Body content for the article."


@pytest.mark.asyncio
async def test_get_article_not_found(async_client: AsyncClient):
    resp = await async_client.get("/api/articles/does-not-exist")
    assert resp.status_code == 404
    assert resp.json() == {"errors": {"body": ["article not found"]}}


# ---------------------------------------------------------------------------
# List / filters
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_list_articles_newest_first(async_client: AsyncClient):
    token = await _register(async_client, "author")
    await _create_article(async_client, token, "First")
    await _create_article(async_client, token, "Second")

    resp = await async_client.get("/api/articles")
    assert resp.status_code == 200
    data = resp.json()
    assert data["articlesCount"] == 2
    assert [a["slug"] for a in data["articles"]] == ["second", "first"]


@pytest.mark.asyncio
async def test_list_filter_by_tag(async_client: AsyncClient):
    token = await _register(async_client, "author")
    await _create_article(async_client, token, "Tagged", tags=["python"])
    await _create_article(async_client, token, "Untagged")

    resp = await async_client.get("/api/articles", params={"tag": "python"})
    assert [a["slug"] for a in resp.json()["articles"]] == ["tagged"]


@pytest.mark.asyncio
async def test_list_filter_by_author(async_client: AsyncClient):
    alice = await _register(async_client, "alice")
    bob = await _register(async_client, "bob")
    await _create_article(async_client, alice, "By Alice")
    await _create_article(async_client, bob, "By Bob")

    resp = await async_client.get("/api/articles", params={"author": "bob"})
    assert [a["slug"] for a in resp.json()["articles"]] == ["by-bob"]


@pytest.mark.asyncio
async def test_list_filter_by_favorited(async_client: AsyncClient):
    alice = await _register(async_client, "alice")
    bob = await _register(async_client, "bob")
    await _create_article(async_client, alice, "Liked")
    await _create_article(async_client, alice, "Ignored")
    await async_client.post("/api/articles/liked/favorite", headers=_auth(bob))

    resp = await async_client.get("/api/articles", params={"favorited": "bob"})
    assert [a["slug"] for a in resp.json()["articles"]] == ["liked"]

    resp = await async_client.get("/api/articles", params={"favorited": "nobody"})
    assert resp.json() == {"articles": [], "articlesCount": 0}


# ---------------------------------------------------------------------------
# Update / delete
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_update_article_by_author(async_client: AsyncClient):
    token = await _register(async_client, "author")
    await _create_article(async_client, token, "Original Title", tags=["old"])

    resp = await async_client.put("/api/articles/original-title", headers=_auth(token), json={"article": {
        "title": "Updated Title",
        "tagList": ["new"],
    }})
    assert resp.status_code == 200
    article = resp.json()["article"]
    assert article["title"] == "Updated Title"
    assert article["slug"] == "updated-title"
    assert article["tagList"] == ["new"]
    assert article["description"] == "A short summary"

    assert (await async_client.get("/api/articles/updated-title")).status_code == 200


@pytest.mark.asyncio
async def test_update_article_by_other_user_forbidden(async_client: AsyncClient):
    owner = await _register(async_client, "owner")
    intruder = await _register(async_client, "intruder")
    await _create_article(async_client, owner, "Mine")

    resp = await async_client.put("/api/articles/mine", headers=_auth(intruder), json={"article": {"body": "hijacked"}})
    assert resp.status_code == 403

    resp = await async_client.get("/api/articles/mine")
    assert resp.json()["article"]["body"] == "Body content for the article."


@pytest.mark.asyncio
async def test_delete_article(async_client: AsyncClient):
    token = await _register(async_client, "author")
    await _create_article(async_client, token, "Doomed")

    resp = await async_client.delete("/api/articles/doomed", headers=_auth(token))
    assert resp.status_code == 204
    assert (await async_client.get("/api/articles/doomed")).status_code == 404


@pytest.mark.asyncio
async def test_delete_article_by_other_user_forbidden(async_client: AsyncClient):
    owner = await _register(async_client, "owner")
    intruder = await _register(async_client, "intruder")
    await _create_article(async_client, owner, "Keep Me")

    resp = await async_client.delete("/api/articles/keep-me", headers=_auth(intruder))
    assert resp.status_code == 403
    assert (await async_client.get("/api/articles/keep-me")).status_code == 200


# ---------------------------------------------------------------------------
# Feed
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_feed_shows_followed_authors_only(async_client: AsyncClient):
    reader = await _register(async_client, "reader")
    followed = await _register(async_client, "followed")
    stranger = await _register(async_client, "stranger")
    await _create_article(async_client, followed, "Followed Post")
    await _create_article(async_client, stranger, "Stranger Post")
    await async_client.post("/api/profiles/followed/follow", headers=_auth(reader))

    resp = await async_client.get("/api/articles/feed", headers=_auth(reader))
    assert resp.status_code == 200
    articles = resp.json()["articles"]
    assert [a["slug"] for a in articles] == ["followed-post"]
    assert articles[0]["author"]["following"] is True


@pytest.mark.asyncio
async def test_feed_empty_without_follows(async_client: AsyncClient):
    reader = await _register(async_client, "reader")
    resp = await async_client.get("/api/articles/feed", headers=_auth(reader))
    assert resp.json() == {"articles": [], "articlesCount": 0}


@pytest.mark.asyncio
async def test_feed_requires_auth(async_client: AsyncClient):
    resp = await async_client.get("/api/articles/feed")
    assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Tags / health
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_tags(async_client: AsyncClient):
    token = await _register(async_client, "author")
    await _create_article(async_client, token, "One", tags=["zeta", "alpha"])
    await _create_article(async_client, token, "Two", tags=["alpha"])

    resp = await async_client.get("/api/tags")
    assert resp.status_code == 200
    assert resp.json() == {"tags": ["alpha", "zeta"]}


@pytest.mark.asyncio
async def test_health(async_client: AsyncClient):
    resp = await async_client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"
    assert "x-response-time-ms" in resp.headers
