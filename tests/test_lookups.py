"""Tests for the remote lookup client."""

from datetime import datetime

import httpx
import pytest

from mhtimer.db.models import SearchEntity
from mhtimer.services.lookups import LookupClient, search_entities, split_time_filter
from mhtimer.utils.time_utils import UTC

BASE_URL = "https://mhct.test"
DBGAMES_URL = "https://sheet.test/rh.csv"
NOW = datetime(2026, 3, 15, 18, 0, tzinfo=UTC)

MICE = [{"id": 1, "value": "Gold Mouse"}, {"id": 2, "value": "Golden Goose"}, {"id": 3, "value": "Marigold"}]
ITEMS = [{"id": 10, "value": "Golden Egg"}, {"id": 11, "value": "Rare Map Piece"}]


def mouse_rows():
    rows = [
        {"location": "Town of Gnawnia", "stage": None, "cheese": "Cheddar", "rate": 250, "total_hunts": 5000},
        {"location": "Meadow", "stage": None, "cheese": "Brie", "rate": 900, "total_hunts": 400},
        # Too few hunts to be reported
        {"location": "Harbour", "stage": None, "cheese": "Gouda", "rate": 9999, "total_hunts": 99},
    ]
    return rows


def make_client(handler) -> LookupClient:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return LookupClient(BASE_URL, DBGAMES_URL, client=client, clock=lambda: NOW)


def mhct_handler(request: httpx.Request) -> httpx.Response:
    params = request.url.params
    if request.url.path == "/searchByItem.php":
        if params["item_id"] == "all":
            return httpx.Response(200, json=MICE if params["item_type"] == "mouse" else ITEMS)
        if params["item_type"] == "mouse":
            return httpx.Response(200, json=mouse_rows())
        return httpx.Response(
            200,
            json=[{"location": "Zokor", "stage": "Farming", "cheese": "Gouda", "rate_per_catch": 1500, "total_catches": 250}],
        )
    if request.url.path == "/filters.php":
        return httpx.Response(
            200,
            json=[
                {"code_name": "1_month", "start_time": "2026-02-15", "end_time": None},
                {"code_name": "spring_egg_hunt_2026", "start_time": "2026-03-10", "end_time": None},
                {"code_name": "halloween_2025", "start_time": "2025-10-10", "end_time": "2025-11-01"},
            ],
        )
    return httpx.Response(404)


def test_search_entities_ordering():
    """Test matches are ranked by position, then name."""
    values = [SearchEntity(str(m["id"]), m["value"]) for m in MICE]

    assert [e.value for e in search_entities("gold", values)] == ["Gold Mouse", "Golden Goose", "Marigold"]
    assert search_entities("", values) == []
    assert search_entities("zebra", values) == []


def test_split_time_filter():
    """Test the -e flag is removed from the search text."""
    assert split_time_filter("-e 3d gold mouse") == ("gold mouse", "3d")
    assert split_time_filter("gold mouse") == ("gold mouse", None)
    assert split_time_filter("-e gold") == ("-e gold", None)


@pytest.mark.asyncio
async def test_find_mouse():
    """Test attraction rates are filtered and sorted."""
    lookups = make_client(mhct_handler)

    text = await lookups.find_mouse("gold mouse")

    assert text.startswith("Gold Mouse (mouse) can be found the following ways:")
    assert text.index("Meadow") < text.index("Town of Gnawnia")
    assert "9.00%" in text
    assert "5,000" in text
    assert "Harbour" not in text
    await lookups.close()


@pytest.mark.asyncio
async def test_find_mouse_falls_back_to_items():
    """Test a search with no mouse match looks for items instead."""
    lookups = make_client(mhct_handler)

    text = await lookups.find_mouse("egg")

    assert text.startswith("Golden Egg (loot)")
    assert "1.500" in text
    await lookups.close()


@pytest.mark.asyncio
async def test_find_nothing():
    """Test a search matching neither type says so."""
    lookups = make_client(mhct_handler)
    assert await lookups.find_item("zebra") == "'zebra' not found."
    await lookups.close()


@pytest.mark.asyncio
async def test_time_filters():
    """Test shorthands and the running-event filter."""
    lookups = make_client(mhct_handler)
    await lookups.refresh_filters()

    assert lookups.resolve_time_filter("3d") == "3_days"
    assert lookups.resolve_time_filter("current") == "spring_egg_hunt_2026"
    assert lookups.resolve_time_filter("all_time") == "all_time"
    assert "halloween_2025" in lookups.filter_names()
    await lookups.close()


@pytest.mark.asyncio
async def test_entity_lists_refresh_at_most_once_per_interval():
    """Test cached lists are not re-requested within the refresh rate."""
    requests = []

    def handler(request):
        requests.append(request)
        return mhct_handler(request)

    lookups = make_client(handler)
    await lookups.refresh_mice()
    await lookups.refresh_mice()
    assert len(requests) == 1
    assert len(lookups.mice) == 3

    await lookups.refresh_mice(force=True)
    assert len(requests) == 2
    await lookups.close()


@pytest.mark.asyncio
async def test_errors_give_empty_results():
    """Test HTTP failures leave lists empty and locations unknown."""

    def handler(request):
        if request.url.path == "/tracker.json":
            raise httpx.ConnectError("down", request=request)
        return httpx.Response(500)

    lookups = make_client(handler)

    await lookups.refresh_all()
    assert lookups.mice == []
    assert lookups.items == []
    assert (await lookups.mhct_relic_hunter()).location == "unknown"
    assert (await lookups.dbgames_relic_hunter()).location == "unknown"
    await lookups.close()


@pytest.mark.asyncio
async def test_relic_hunter_lookups():
    """Test both Relic Hunter sources are decoded."""

    def handler(request):
        if request.url.path == "/tracker.json":
            return httpx.Response(200, json={"rh": {"location": "Laboratory", "last_seen": 1773590400}})
        return httpx.Response(200, text="Mountain\n")

    lookups = make_client(handler)

    mhct = await lookups.mhct_relic_hunter()
    assert (mhct.location, mhct.source) == ("Laboratory", "MHCT")
    assert mhct.last_seen == datetime.fromtimestamp(1773590400, UTC)

    dbgames = await lookups.dbgames_relic_hunter()
    assert (dbgames.location, dbgames.source) == ("Mountain", "DBGames")
    assert dbgames.last_seen == datetime(2026, 3, 15, tzinfo=UTC)
    await lookups.close()


@pytest.mark.asyncio
async def test_malformed_rows_are_skipped():
    """Test rows that cannot be parsed are left out instead of raising."""

    def handler(request):
        params = request.url.params
        if params.get("item_id") == "all":
            return mhct_handler(request)
        return httpx.Response(
            200,
            json=[
                "not a row",
                {"location": "Harbour", "cheese": "Gouda", "rate": "n/a", "total_hunts": "1,234"},
            ],
        )

    lookups = make_client(handler)

    assert await lookups.find_mouse("gold mouse") == "Gold Mouse either hasn't been seen enough, or something broke."
    await lookups.close()
