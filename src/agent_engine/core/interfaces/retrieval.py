"""Retriever Protocol used by the dataset retrieval tool."""

from typing import Any, Protocol


class RetrieverProtocol(Protocol):
    """Protocol for searching bound knowledge bases."""

    async def search(
        self,
        dataset_ids: list[str],
        query: str,
        retrieval_strategy: str = "semantic",
        k: int = 4,
        score: float = 0.0,
    ) -> list[dict[str, Any]]:
        """
        Search the datasets.

        Returns:
            Documents as dicts with a "content" key (plus optional metadata)
        """
        ...
