"""
Fake inventory server for testing the HttpSearch adapter without the real backend.

Serves the bundled sample vehicles on port 9100 with a small simulated latency.

Usage:
    python -m vehiclefinder.scripts.fake_search_server
    SEARCH_ADAPTER=http uvicorn vehiclefinder.services.api:app  (second terminal)
"""

import asyncio
import uvicorn
from fastapi import FastAPI

from vehiclefinder.adapters.search.memory_search import MemorySearch
from vehiclefinder.services.status_store import StatusStore

app = FastAPI(title="fake-search-server")

store = MemorySearch(StatusStore())
DELAY_S = 0.2


@app.get("/vehicles")
async def vehicles(q: str = "", limit: int = 5):
    await asyncio.sleep(DELAY_S)
    rows = (await store.search(q)).matched_records[:limit]
    print(f"[inventory] q={q!r} -> {len(rows)}")
    return {"vehicles": rows}


@app.get("/status")
async def status():
    return {"ok": True, "vehicles": len(store.records)}


if __name__ == "__main__":
    print("Fake search server starting on http://localhost:9100")
    uvicorn.run(app, host="0.0.0.0", port=9100)
