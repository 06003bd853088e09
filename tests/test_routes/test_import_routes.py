# tests/test_routes/test_import_routes.py
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select

from merchant_app.core.exceptions import ScrapeError
from merchant_app.models.job import Job
from merchant_app.models.product import Product
from merchant_app.routes import imports
from merchant_app.services.scraping.trolltoad import TrollToadItem

ITEM_URL = "https://www.trollandtoad.com/pokemon/base-set-unlimited-singles/charizard-4-102/1000"


def make_item(name="Charizard - 4/102", quantity="1"):
    return TrollToadItem(
        link=ITEM_URL, name=name, price="300.0", image="", collection="Base Set",
        variant="near-mint", quantity=quantity,
    )


@pytest.fixture
def scraper(mocker):
    scrape_item = mocker.patch.object(imports.TrollToadScraper, "scrape_item", AsyncMock(return_value=make_item()))
    scrape_collection = mocker.patch.object(
        imports.TrollToadScraper, "scrape_collection",
        AsyncMock(return_value=[make_item("Mew", "0"), make_item("", "0"), make_item("Pikachu", "0")]),
    )
    return scrape_item, scrape_collection


async def queued_jobs(db_session, job_type):
    result = await db_session.execute(select(Job).where(Job.job_type == job_type).order_by(Job.id))
    return result.scalars().all()


"""
Troll & Toad
"""

@pytest.mark.asyncio
async def test_troll_import_requires_auth(api_client, scraper):
    response = await api_client.post("/api/troll/import", data={"url": ITEM_URL})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_troll_import_rejects_bad_form(api_client, auth_headers, scraper):
    response = await api_client.post(
        "/api/troll/import", data={"url": "not a url", "quantity": "0"}, headers=auth_headers
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid form data", "itemsReturn": None, "duplicates": None}


@pytest.mark.asyncio
async def test_troll_import_scrape_failure(api_client, auth_headers, scraper):
    scrape_item, _ = scraper
    scrape_item.side_effect = ScrapeError("Could not fetch")

    response = await api_client.post("/api/troll/import", data={"url": ITEM_URL}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["error"] == "Unable to retrieve product details from Troll & Toad."


@pytest.mark.asyncio
async def test_troll_import_returns_duplicates(api_client, auth_headers, db_session, scraper):
    db_session.add(Product(id="gid://shopify/Product/1", title="Charizard - 4/102", status="ACTIVE", total_inventory=1))
    await db_session.commit()

    response = await api_client.post("/api/troll/import", data={"url": ITEM_URL}, headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {
        "error": None,
        "itemsReturn": None,
        "duplicates": [{"id": "gid://shopify/Product/1", "title": "Charizard - 4/102", "status": "ACTIVE"}],
    }
    assert await queued_jobs(db_session, "troll_import") == []


@pytest.mark.asyncio
async def test_troll_import_into_chosen_product(api_client, auth_headers, db_session, scraper):
    scrape_item, _ = scraper
    db_session.add(Product(id="gid://shopify/Product/1", title="Charizard - 4/102", status="ACTIVE", total_inventory=1))
    await db_session.commit()

    response = await api_client.post(
        "/api/troll/import",
        data={"url": ITEM_URL, "quantity": "2", "price": "250", "type": "near-mint",
              "specific_product": "gid://shopify/Product/1"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    jobs = await queued_jobs(db_session, "troll_import")
    assert response.json()["itemsReturn"] == [jobs[0].id]
    assert jobs[0].payload["existing_product_id"] == "gid://shopify/Product/1"
    assert jobs[0].payload["shop"] == "test-shop.myshopify.com"
    assert jobs[0].max_attempts == 6
    scrape_item.assert_awaited_once_with(ITEM_URL, 2, 250.0, "near-mint")


@pytest.mark.asyncio
async def test_troll_import_force_new_product(api_client, auth_headers, db_session, scraper):
    db_session.add(Product(id="gid://shopify/Product/1", title="Charizard - 4/102", total_inventory=0))
    await db_session.commit()

    response = await api_client.post(
        "/api/troll/import", json={"url": ITEM_URL, "specific_product": "NULL"}, headers=auth_headers
    )

    jobs = await queued_jobs(db_session, "troll_import")
    assert response.json()["itemsReturn"] == [jobs[0].id]
    assert jobs[0].payload["existing_product_id"] is None


@pytest.mark.asyncio
async def test_troll_collection_import_queues_named_items(api_client, auth_headers, db_session, scraper):
    response = await api_client.post(
        "/api/troll/import", data={"url": ITEM_URL, "collection": "true"}, headers=auth_headers
    )

    assert response.status_code == 200
    jobs = await queued_jobs(db_session, "troll_import")
    assert [j.payload["item"]["name"] for j in jobs] == ["Mew", "Pikachu"]


@pytest.mark.asyncio
async def test_troll_jobs_lists_waiting_and_failed(api_client, auth_headers, db_session, scraper):
    await api_client.post("/api/troll/import", json={"url": ITEM_URL}, headers=auth_headers)
    failed = Job(job_type="troll_import", payload={"item": {"name": "Mew"}}, status="failed",
                 attempts=6, max_attempts=6, backoff_seconds=2.0, error_message="boom")
    db_session.add(failed)
    await db_session.commit()

    response = await api_client.get("/api/troll/jobs", headers=auth_headers)

    body = response.json()
    assert len(body["waitingJobs"]) == 1
    assert body["waitingJobs"][0]["item"]["name"] == "Charizard - 4/102"
    assert body["failedJobs"] == [{"data": {"item": {"name": "Mew"}}, "error": "boom"}]


"""
PSA
"""

@pytest.mark.asyncio
async def test_psa_import_queues_one_job_per_cert(api_client, auth_headers, db_session):
    response = await api_client.post(
        "/api/psa/import",
        data={"certs": "82345678, 82345679", "prices": "100,25.5"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    assert response.json() == {
        "error": None,
        "jobsQueued": 2,
        "jobs": [{"certNo": "82345678", "price": 100.0}, {"certNo": "82345679", "price": 25.5}],
    }
    jobs = await queued_jobs(db_session, "psa_import")
    assert [j.payload["cert_number"] for j in jobs] == ["82345678", "82345679"]
    assert all(j.max_attempts == 4 for j in jobs)


@pytest.mark.asyncio
async def test_psa_import_count_mismatch(api_client, auth_headers):
    response = await api_client.post(
        "/api/psa/import", json={"certs": ["1", "2"], "prices": ["10"]}, headers=auth_headers
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Certs and prices count do not match."


@pytest.mark.asyncio
async def test_psa_import_skips_non_positive_prices(api_client, auth_headers):
    rejected = await api_client.post(
        "/api/psa/import", json={"certs": "1,2", "prices": "0,free"}, headers=auth_headers
    )
    partial = await api_client.post(
        "/api/psa/import", json={"certs": "1,2", "prices": "0,15"}, headers=auth_headers
    )

    assert rejected.status_code == 400
    assert rejected.json()["error"] == "No valid cert/price pairs (prices must be > 0)."
    assert partial.json()["jobs"] == [{"certNo": "2", "price": 15.0}]


"""
Manual
"""

@pytest.mark.asyncio
async def test_create_manual_product_queues_job(api_client, auth_headers, db_session):
    response = await api_client.post(
        "/api/products/create-manual",
        json={"title": "Umbreon VMAX", "price": 450, "quantity": 1, "tags": "Alt Art, Evolving Skies",
              "condition": "near-mint", "card_type": "raw"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    jobs = await queued_jobs(db_session, "manual_product")
    assert body["jobId"] == jobs[0].id
    assert jobs[0].payload["tags"] == ["Alt Art", "Evolving Skies"]
    assert jobs[0].payload["condition"] == "near-mint"
    assert jobs[0].payload["shop"] == "test-shop.myshopify.com"


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    {"price": 10, "quantity": 1},
    {"title": "Mew", "price": 0, "quantity": 1},
    {"title": "Mew", "price": 10, "quantity": 0},
])
async def test_create_manual_product_validation(api_client, auth_headers, body):
    response = await api_client.post("/api/products/create-manual", json=body, headers=auth_headers)

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Title, price, and quantity are required"}


@pytest.mark.asyncio
@pytest.mark.parametrize("price", ["inf", "nan", "-inf", "Infinity"])
async def test_psa_import_rejects_non_finite_prices(api_client, auth_headers, db_session, price):
    response = await api_client.post(
        "/api/psa/import", json={"certs": "12345678", "prices": price}, headers=auth_headers
    )

    assert response.status_code == 400
    assert response.json()["error"] == "No valid cert/price pairs (prices must be > 0)."
    assert await queued_jobs(db_session, "psa_import") == []


@pytest.mark.asyncio
async def test_psa_import_keeps_finite_pairs_next_to_non_finite(api_client, auth_headers):
    response = await api_client.post(
        "/api/psa/import", data={"certs": "1,2", "prices": "inf,40"}, headers=auth_headers
    )

    assert response.status_code == 200
    assert response.json()["jobs"] == [{"certNo": "2", "price": 40.0}]


@pytest.mark.asyncio
@pytest.mark.parametrize("price", ["inf", "nan"])
async def test_create_manual_product_rejects_non_finite_price(api_client, auth_headers, db_session, price):
    response = await api_client.post(
        "/api/products/create-manual",
        data={"title": "Mew", "price": price, "quantity": "1"},
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Title, price, and quantity are required"}
    assert await queued_jobs(db_session, "manual_product") == []


@pytest.mark.asyncio
async def test_troll_import_rejects_non_finite_price(api_client, auth_headers, scraper):
    scrape_item, _ = scraper

    response = await api_client.post(
        "/api/troll/import", data={"url": ITEM_URL, "price": "inf"}, headers=auth_headers
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid form data"
    scrape_item.assert_not_awaited()
