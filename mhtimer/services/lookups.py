"""Remote lookups against MHCT and the DBGames Relic Hunter sheet.

Every failure (transport error, non-200 status, unparseable body) is logged
and reported as an empty or "unknown" result, never raised.
"""

import logging
from datetime import datetime
from html import escape
from typing import Any, Callable, Sequence

import httpx

from mhtimer.db.models import RelicHunterState, SearchEntity
from mhtimer.parser.aliases import DEFAULT_CURRENT_FILTER, FILTER_SHORTHANDS
from mhtimer.utils.constants import (
    DEFAULT_REFRESH_RATE,
    MAX_SEARCH_RESULTS,
    MIN_ATTRACTION_HUNTS,
    UNKNOWN_LOCATION,
)
from mhtimer.utils.time_utils import UTC, utcnow

logger = logging.getLogger(__name__)


def search_entities(text: str, values: Sequence[SearchEntity]) -> list[SearchEntity]:
    """Substring search, best match first, capped at MAX_SEARCH_RESULTS.

    Entities whose name contains the text earlier rank higher; ties are
    ordered by case-insensitive name.
    """
    text = text.lower()
    if not text or not values:
        return []
    matches = [v for v in values if text in v.lower_value]
    matches.sort(key=lambda v: (v.lower_value.index(text), v.lower_value))
    return matches[:MAX_SEARCH_RESULTS]


def split_time_filter(args: str) -> tuple[str, str | None]:
    """Strip a leading "-e <filter>" flag from search text."""
    tokens = args.split()
    if len(tokens) > 2 and tokens[0] == "-e":
        return " ".join(tokens[2:]), tokens[1].lower()
    return args, None


def _format_table(rows: list[dict[str, str]], columns: list[tuple[str, str]]) -> str:
    widths = {
        key: max(len(label), *(len(row[key]) for row in rows)) for key, label in columns
    }
    header = " | ".join(label.ljust(widths[key]) for key, label in columns)
    lines = [header, "=" * len(header)]
    for row in rows:
        lines.append(" | ".join(row[key].ljust(widths[key]) for key, _ in columns))
    return "\n".join(lines)


def _parse_setups(rows: list, rate_key: str, rate_scale: int, count_key: str) -> list[dict[str, Any]]:
    """Setups seen at least MIN_ATTRACTION_HUNTS times; malformed rows are skipped."""
    setups = []
    for row in rows:
        try:
            hunts = int(row.get(count_key) or 0)
            rate = float(row.get(rate_key) or 0) / rate_scale
        except (AttributeError, TypeError, ValueError):
            logger.warning(f"Lookups: skipping malformed row {row!r}")
            continue
        if hunts < MIN_ATTRACTION_HUNTS:
            continue
        setups.append(
            {
                "location": str(row.get("location", "")),
                "stage": str(row.get("stage") or "N/A"),
                "cheese": str(row.get("cheese", "")),
                "rate": rate,
                "hunts": hunts,
            }
        )
    return setups


class LookupClient:
    """Async client for the remote databases, with cached entity lists."""

    def __init__(
        self,
        base_url: str,
        dbgames_url: str,
        timeout: float = 10.0,
        refresh_rate=DEFAULT_REFRESH_RATE,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.base_url = base_url.rstrip("/")
        self.dbgames_url = dbgames_url
        self._timeout = timeout
        self._refresh_rate = refresh_rate
        self._client = client
        self._clock = clock
        self._last_refresh: dict[str, datetime] = {}
        self.mice: list[SearchEntity] = []
        self.items: list[SearchEntity] = []
        self.filters: list[dict[str, Any]] = []

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _get(self, url: str, params: dict[str, str] | None = None) -> httpx.Response | None:
        client = await self._get_client()
        try:
            response = await client.get(url, params=params)
        except httpx.HTTPError as e:
            logger.error(f"Lookups: request to {url} failed: {e}")
            return None
        if response.status_code != 200:
            logger.warning(f"Lookups: {url} returned HTTP {response.status_code}")
            return None
        return response

    async def _get_json(self, url: str, params: dict[str, str] | None = None) -> Any:
        response = await self._get(url, params)
        if response is None:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Lookups: {url} returned invalid JSON: {e}")
            return None

    def _refresh_due(self, kind: str) -> bool:
        now = self._clock()
        last = self._last_refresh.get(kind)
        if last is not None and now < last + self._refresh_rate:
            return False
        self._last_refresh[kind] = now
        return True

    # Entity lists

    async def _refresh_entities(self, kind: str, item_type: str, force: bool) -> list[SearchEntity] | None:
        if not force and not self._refresh_due(kind):
            return None
        logger.info(f"Lookups: requesting a new {kind} list")
        body = await self._get_json(
            f"{self.base_url}/searchByItem.php", {"item_type": item_type, "item_id": "all"}
        )
        if not isinstance(body, list):
            return None
        entities = [
            SearchEntity(id=str(entry["id"]), value=str(entry["value"]))
            for entry in body
            if isinstance(entry, dict) and "id" in entry and "value" in entry
        ]
        logger.info(f"Lookups: got {len(entities)} {kind}")
        return entities

    async def refresh_mice(self, force: bool = False) -> None:
        entities = await self._refresh_entities("mice", "mouse", force)
        if entities is not None:
            self.mice = entities

    async def refresh_items(self, force: bool = False) -> None:
        entities = await self._refresh_entities("items", "loot", force)
        if entities is not None:
            self.items = entities

    async def refresh_filters(self, force: bool = False) -> None:
        if not force and not self._refresh_due("filters"):
            return
        body = await self._get_json(f"{self.base_url}/filters.php")
        if isinstance(body, list):
            self.filters = [f for f in body if isinstance(f, dict) and f.get("code_name")]

    async def refresh_all(self) -> None:
        await self.refresh_mice()
        await self.refresh_items()
        await self.refresh_filters()

    def filter_names(self) -> list[str]:
        return [f["code_name"] for f in self.filters]

    def resolve_time_filter(self, name: str) -> str:
        """Expand shorthands; "current" picks a running event if there is one."""
        if name == "current":
            for f in self.filters:
                if f.get("start_time") and not f.get("end_time") and f["code_name"] != DEFAULT_CURRENT_FILTER:
                    return f["code_name"]
            return DEFAULT_CURRENT_FILTER
        return FILTER_SHORTHANDS.get(name, name)

    # Queries

    async def query(self, item_type: str, entity: SearchEntity, timefilter: str | None = None) -> list[dict] | None:
        params = {"item_type": item_type, "item_id": entity.id}
        if timefilter:
            params["timefilter"] = timefilter
        body = await self._get_json(f"{self.base_url}/searchByItem.php", params)
        return body if isinstance(body, list) else None

    async def find_mouse(self, args: str, fallback: bool = True) -> str:
        """Top attraction rates for the best matching mouse.

        Falls back to an item search when no mouse matches.
        """
        search, timefilter = split_time_filter(args)
        if timefilter:
            timefilter = self.resolve_time_filter(timefilter)
        await self.refresh_mice()

        matches = search_entities(search, self.mice)
        if not matches:
            if fallback:
                return await self.find_item(args, fallback=False)
            return f"'{escape(args)}' not found."

        mouse = matches[0]
        rows = await self.query("mouse", mouse, timefilter)
        if rows is None:
            return f"Could not process results for '{escape(search)}', AKA {escape(mouse.value)}."

        setups = _parse_setups(rows, "rate", 100, "total_hunts")
        if not setups:
            return f"{escape(mouse.value)} either hasn't been seen enough, or something broke."
        setups.sort(key=lambda s: s["rate"], reverse=True)

        text = f"{escape(mouse.value)} (mouse) can be found the following ways:\n"
        text += self._format_setups(setups[:MAX_SEARCH_RESULTS], "Hunts", "AR", "{:.2f}%")
        text += self._other_matches(matches)
        return text

    async def find_item(self, args: str, fallback: bool = True) -> str:
        """Top drop rates for the best matching item.

        Falls back to a mouse search when no item matches.
        """
        search, timefilter = split_time_filter(args)
        if timefilter:
            timefilter = self.resolve_time_filter(timefilter)
        await self.refresh_items()

        matches = search_entities(search, self.items)
        if not matches:
            if fallback:
                return await self.find_mouse(args, fallback=False)
            return f"'{escape(args)}' not found."

        item = matches[0]
        rows = await self.query("loot", item, timefilter)
        if rows is None:
            return f"Could not process results for '{escape(search)}', AKA {escape(item.value)}."

        setups = _parse_setups(rows, "rate_per_catch", 1000, "total_catches")
        if not setups:
            return f"{escape(item.value)} either hasn't been seen enough, or something broke."
        setups.sort(key=lambda s: s["rate"], reverse=True)

        text = f"{escape(item.value)} (loot) can be found the following ways:\n"
        text += self._format_setups(setups[:MAX_SEARCH_RESULTS], "Catches", "DR", "{:.3f}")
        text += self._other_matches(matches)
        return text

    @staticmethod
    def _format_setups(setups: list[dict], count_label: str, rate_label: str, rate_format: str) -> str:
        columns = [("location", "Location"), ("stage", "Stage"), ("cheese", "Cheese"), ("rate", rate_label), ("hunts", count_label)]
        if all(s["stage"] == "N/A" for s in setups):
            columns.remove(("stage", "Stage"))
        rows = [
            {
                "location": s["location"],
                "stage": s["stage"],
                "cheese": s["cheese"],
                "rate": rate_format.format(s["rate"]),
                "hunts": f"{s['hunts']:,}",
            }
            for s in setups
        ]
        return f"<pre>{escape(_format_table(rows, columns))}</pre>"

    @staticmethod
    def _other_matches(matches: list[SearchEntity]) -> str:
        if len(matches) < 2:
            return ""
        others = ", ".join(escape(m.value) for m in matches[1:])
        return f"\nOther matches: {others}"

    # Relic Hunter

    async def mhct_relic_hunter(self) -> RelicHunterState:
        """Relic Hunter sighting from the MHCT tracker."""
        body = await self._get_json(f"{self.base_url}/tracker.json")
        rh = body.get("rh") if isinstance(body, dict) else None
        if not isinstance(rh, dict) or not rh.get("location"):
            return RelicHunterState(location=UNKNOWN_LOCATION, source="MHCT")

        try:
            last_seen = datetime.fromtimestamp(float(rh.get("last_seen") or 0), UTC)
        except (TypeError, ValueError, OverflowError):
            last_seen = datetime.fromtimestamp(0, UTC)
        logger.info(f"Relic Hunter: MHCT reports {rh['location']}, last seen {last_seen.isoformat()}")
        return RelicHunterState(location=str(rh["location"]), source="MHCT", last_seen=last_seen)

    async def dbgames_relic_hunter(self) -> RelicHunterState:
        """Relic Hunter location decoded by DBGames, published as a one-cell sheet."""
        response = await self._get(self.dbgames_url)
        location = response.text.strip() if response is not None else ""
        if not location:
            return RelicHunterState(location=UNKNOWN_LOCATION, source="DBGames")

        logger.info(f"Relic Hunter: DBGames reports {location}")
        today = self._clock().replace(hour=0, minute=0, second=0, microsecond=0)
        return RelicHunterState(location=location, source="DBGames", last_seen=today)
