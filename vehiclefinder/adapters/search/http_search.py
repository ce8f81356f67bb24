"""
HTTP adapter for a remote inventory service.

Contract (scripts/fake_search_server.py implements it):
  Request:  GET /vehicles?q=<identifier>&limit=5
  Response: {"vehicles": [{...}, ...]}
"""
import httpx

from vehiclefinder.adapters.search.base import SearchAdapter
from vehiclefinder.orchestrator.contracts import SearchResult
from vehiclefinder.orchestrator.errors import SearchError


class HttpSearch(SearchAdapter):
    name = "http"

    def __init__(self, status_store, base_url: str = "http://127.0.0.1:9100", timeout: float = 10.0,
                 limit: int = 5, transport: httpx.AsyncBaseTransport | None = None):
        self.status = status_store
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.limit = limit
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport)

    async def search(self, identifier: str) -> SearchResult:
        self.status.log(f"http_search: GET /vehicles q={identifier}")
        try:
            async with self._client() as client:
                resp = await client.get("/vehicles", params={"q": identifier, "limit": self.limit})
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise SearchError(f"search {identifier!r} failed: {e}") from e
        if not isinstance(data, dict):
            raise SearchError(f"search {identifier!r}: expected an object, got {type(data).__name__}")
        rows = data.get("vehicles") or []
        if not isinstance(rows, list):
            raise SearchError(f"search {identifier!r}: 'vehicles' is {type(rows).__name__}, not a list")
        self.status.log(f"http_search: {identifier!r} -> {len(rows)}")
        return SearchResult(matched_records=rows)

    async def ping(self) -> bool:
        try:
            async with self._client() as client:
                resp = await client.get("/status")
                return resp.is_success
        except httpx.HTTPError as e:
            self.status.log(f"http_search: unreachable: {e}")
            return False
