import pytest
from sqlalchemy import select

from merchant_app.core.exceptions import ValidationError
from merchant_app.models.wishlist import SuggestedKeyword
from merchant_app.services.keyword_service import SuggestedKeywordService
from merchant_app.services.wishlist_service import WishlistService


@pytest.mark.asyncio
async def test_add_normalizes_and_marks_admin_source(db_session):
    keyword = await SuggestedKeywordService(db_session).add("  Charizard ")

    assert keyword.value == "charizard"
    assert keyword.source == "admin"


@pytest.mark.asyncio
@pytest.mark.parametrize("value,message", [
    ("", "Keyword cannot be empty"),
    ("   ", "Keyword cannot be empty"),
    ("PIKACHU", "This keyword already exists"),
])
async def test_add_rejects_empty_and_duplicates(db_session, value, message):
    service = SuggestedKeywordService(db_session)
    await service.add("pikachu")

    with pytest.raises(ValidationError, match=message):
        await service.add(value)

    rows = (await db_session.execute(select(SuggestedKeyword))).scalars().all()
    assert [row.value for row in rows] == ["pikachu"]


@pytest.mark.asyncio
async def test_delete_and_bulk_delete(db_session):
    service = SuggestedKeywordService(db_session)
    first = await service.add("mew")
    second = await service.add("mewtwo")
    third = await service.add("eevee")

    assert await service.delete(first.id) is True
    assert await service.delete(first.id) is False
    assert await service.bulk_delete([second.id, third.id, 999]) == 2
    assert await service.bulk_delete([]) == 0
    assert await service.list_all() == []


@pytest.mark.asyncio
async def test_stats_count_only_wishlists_with_email(db_session):
    wishlists = WishlistService(db_session)
    alice = await wishlists.get_or_create("alice")
    bob = await wishlists.get_or_create("bob")
    carol = await wishlists.get_or_create("carol")
    await wishlists.set_email(alice, "alice@example.com")
    await wishlists.set_email(bob, "bob@example.com")
    for wishlist, keyword in [(alice, "charizard"), (bob, "charizard"), (carol, "charizard"),
                              (alice, "blastoise"), (carol, "venusaur")]:
        await wishlists.add_keyword(wishlist, keyword)
    await SuggestedKeywordService(db_session).add("pokemon")

    stats = await SuggestedKeywordService(db_session).stats()

    assert [(k["value"], k["subscribers"]) for k in stats["keywords"]] == [
        ("charizard", 2), ("blastoise", 1), ("venusaur", 0),
    ]
    assert stats["suggestedKeywords"] == ["pokemon"]
    assert stats["totalEmails"] == 2
