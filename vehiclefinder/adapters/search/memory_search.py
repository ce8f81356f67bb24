"""
In-memory vehicle record store.

Seeded from a JSON list of vehicles (VEHICLES_FILE env var, default: the
bundled sample). Identifier search is a case-insensitive substring match on
plate_no and stock_id, limited to 5 rows. search_all also looks at brand,
model and location and takes exact brand/model filters, like the inventory
search page.
"""
import json
import os
from pathlib import Path
from typing import Any

from vehiclefinder.adapters.search.base import SearchAdapter
from vehiclefinder.orchestrator.contracts import SearchResult

SAMPLE_FILE = Path(__file__).parent / "sample_vehicles.json"

IDENTIFIER_FIELDS = ("plate_no", "stock_id")
GENERAL_FIELDS = ("stock_id", "plate_no", "brand", "model", "location")
IDENTIFIER_LIMIT = 5
GENERAL_LIMIT = 50


def _contains(record: dict[str, Any], fields, needle: str) -> bool:
    for f in fields:
        value = record.get(f)
        if value and needle in str(value).upper():
            return True
    return False


def filter_exact(rows: list[dict[str, Any]], **wanted: str | None) -> list[dict[str, Any]]:
    """Keep rows whose fields equal the wanted values, ignoring case. None/blank values don't filter."""
    for field_name, value in wanted.items():
        if value and value.strip():
            v = value.strip().upper()
            rows = [r for r in rows if str(r.get(field_name) or "").upper() == v]
    return rows


class MemorySearch(SearchAdapter):
    name = "memory"

    def __init__(self, status_store, records: list[dict[str, Any]] | None = None, path: str | None = None):
        self.status = status_store
        if records is None:
            records = self._load(Path(path or os.getenv("VEHICLES_FILE", str(SAMPLE_FILE))))
        self.records = list(records)
        self.queries: list[str] = []

    def _load(self, path: Path) -> list[dict[str, Any]]:
        if not path.is_file():
            self.status.log(f"memory_search: {path} not found, starting empty")
            return []
        data = json.loads(path.read_text(encoding="utf-8"))
        rows = data.get("vehicles", []) if isinstance(data, dict) else data
        self.status.log(f"memory_search: loaded {len(rows)} vehicles from {path.name}")
        return rows

    def _match(self, query: str, fields, limit: int) -> list[dict[str, Any]]:
        needle = query.strip().upper()
        if not needle:
            return []
        return [r for r in self.records if _contains(r, fields, needle)][:limit]

    async def search(self, identifier: str) -> SearchResult:
        self.queries.append(identifier)
        rows = self._match(identifier, IDENTIFIER_FIELDS, IDENTIFIER_LIMIT)
        self.status.log(f"memory_search: {identifier!r} -> {len(rows)}")
        return SearchResult(matched_records=rows)

    def search_all(self, query: str = "", brand: str | None = None, model: str | None = None,
                   limit: int = GENERAL_LIMIT) -> list[dict[str, Any]]:
        """Inventory page search: free text over all general fields, narrowed by
        exact (case-insensitive) brand and model. A blank query lists everything."""
        needle = query.strip().upper()
        rows = [r for r in self.records if not needle or _contains(r, GENERAL_FIELDS, needle)]
        return filter_exact(rows, brand=brand, model=model)[:limit]
