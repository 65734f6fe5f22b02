"""
Tests for app category resolution and the category store
"""

import pytest

from companion_backend.models.activity import CategoryOrigin
from companion_backend.processing.category_resolver import CategoryResolver
from companion_backend.processing.default_categories import (
    lookup_default,
    match_keywords,
    normalize_app_name,
)


def test_normalize_app_name():
    assert normalize_app_name("C:\\Program Files\\Microsoft VS Code\\Code.exe") == "code"
    assert normalize_app_name("/usr/bin/firefox") == "firefox"
    assert normalize_app_name("  Spotify.app ") == "spotify"


def test_default_table_and_keywords():
    assert lookup_default("code").productivity_score == 95
    assert match_keywords("supergame") == ("entertainment", "gaming", 10)
    assert match_keywords("firefox-nightly").subcategory == "browser"


def test_generic_keys_do_not_match_as_substrings():
    # "code" must not catch "unicode-viewer" through the table
    assert match_keywords("unicode-viewer").category == "development"
    assert match_keywords("unicode-viewer").productivity_score == 90
    assert match_keywords("myappname") is None


@pytest.mark.asyncio
async def test_resolve_default_app():
    resolver = CategoryResolver()

    record = await resolver.resolve("Code.exe")

    assert record.category == "development"
    assert record.subcategory == "ide"
    assert record.origin == CategoryOrigin.DEFAULT
    assert resolver.pending_count == 0


@pytest.mark.asyncio
async def test_unknown_app_is_queued_with_placeholder():
    resolver = CategoryResolver()

    first = await resolver.resolve("Zettlr.exe")
    second = await resolver.resolve("zettlr")

    assert first == second
    assert first.is_uncategorized
    assert first.productivity_score == 50
    assert first.origin == CategoryOrigin.PENDING
    assert resolver.pending_batch() == ["Zettlr.exe"]


@pytest.mark.asyncio
async def test_resolve_many_keys_by_given_name():
    resolver = CategoryResolver()

    records = await resolver.resolve_many(["chrome.exe", "Discord", "chrome.exe"])

    assert set(records) == {"chrome.exe", "Discord"}
    assert records["Discord"].productivity_score == 40


@pytest.mark.asyncio
async def test_auto_categories_applied_and_persisted(db):
    resolver = CategoryResolver(db.app_categories)
    await resolver.resolve("zettlr")

    applied = await resolver.apply_auto_categories(
        {"zettlr": {"category": "productivity", "subcategory": "notes", "productivity_score": 85}}
    )

    assert applied == 1
    assert resolver.pending_count == 0
    record = await resolver.resolve("zettlr")
    assert record.origin == CategoryOrigin.AUTO
    row = await db.app_categories.get("zettlr")
    assert row["origin"] == "auto"
    assert row["productivity_score"] == 85


@pytest.mark.asyncio
async def test_user_category_survives_auto_categorization(db):
    resolver = CategoryResolver(db.app_categories)
    await resolver.set_user_category("Zettlr", "work", "writing", 90)

    applied = await resolver.apply_auto_categories(
        {"zettlr": {"category": "entertainment", "productivity_score": 10}}
    )

    assert applied == 0
    record = await resolver.resolve("zettlr")
    assert record.origin == CategoryOrigin.USER
    assert record.category == "work"
    assert (await db.app_categories.get("zettlr"))["category"] == "work"


@pytest.mark.asyncio
async def test_store_blocks_auto_write_over_user_row(db):
    await db.app_categories.upsert("zettlr", "work", None, 90, "user")
    # A fresh resolver has not loaded the store yet
    resolver = CategoryResolver(db.app_categories)

    applied = await resolver.apply_auto_categories({"zettlr": {"category": "other"}})

    assert applied == 0
    record = await resolver.resolve("zettlr")
    assert record.origin == CategoryOrigin.USER
    assert record.category == "work"


@pytest.mark.asyncio
async def test_user_write_replaces_user_row(db):
    assert await db.app_categories.upsert("zettlr", "work", None, 90, "user")
    assert await db.app_categories.upsert("zettlr", "productivity", "notes", 80, "user")
    assert not await db.app_categories.upsert("zettlr", "other", None, 50, "auto")

    row = await db.app_categories.get("zettlr")
    assert row["category"] == "productivity"


@pytest.mark.asyncio
async def test_only_auto_and_user_rows_are_persisted(db):
    with pytest.raises(ValueError):
        await db.app_categories.upsert("code", "development", "ide", 95, "default")


@pytest.mark.asyncio
async def test_load_seeds_cache_from_store(db):
    await db.app_categories.upsert("zettlr", "productivity", "notes", 85, "auto")
    resolver = CategoryResolver(db.app_categories)

    assert await resolver.load() == 1
    assert [record.app_name for record in resolver.cached_records()] == ["zettlr"]


@pytest.mark.asyncio
async def test_set_user_category_rejects_empty_name():
    with pytest.raises(ValueError):
        await CategoryResolver().set_user_category("   ", "work")


@pytest.mark.asyncio
async def test_requeue_moves_apps_to_back():
    resolver = CategoryResolver()
    for app in ("alpha", "bravo", "charlie"):
        await resolver.resolve(app)

    assert resolver.requeue(["Alpha.exe", "unknown"]) == 1
    assert resolver.pending_batch() == ["bravo", "charlie", "alpha"]
