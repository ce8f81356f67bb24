from abc import ABC, abstractmethod

from vehiclefinder.orchestrator.contracts import SearchResult


class SearchAdapter(ABC):
    name = "search"

    @abstractmethod
    async def search(self, identifier: str) -> SearchResult:
        """Records whose plate or stock ID contains `identifier`.
        An empty result is a miss, not an error. Raises SearchError on infrastructure failure."""
        ...

    async def ping(self) -> bool:
        return True
