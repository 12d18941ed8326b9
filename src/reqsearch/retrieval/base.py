"""Abstract base class for vector-store backends.

Adding a new backend only requires subclassing :class:`VectorStoreBase`
and implementing the five abstract methods.  The pipeline, ranker and
engine are backend-agnostic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from reqsearch.retrieval.models import IndexedItem


class VectorStoreBase(ABC):
    """Backend-agnostic async vector-store interface.

    The store is treated as single-writer; implementations are expected to
    serialise concurrent writes themselves if they need to.

    Parameters
    ----------
    collection_name:
        Logical name of the collection / index / namespace.
    """

    def __init__(self, collection_name: str) -> None:
        self.collection_name = collection_name

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    async def create_index(self) -> None:
        """Create the index.

        Raises
        ------
        IndexAlreadyExistsError
            When the index is already there.  Callers treat this as success.
        """
        ...

    @abstractmethod
    async def insert_item(self, item: IndexedItem) -> None:
        """Persist *item*.  No uniqueness check is made on ``item.id``."""
        ...

    @abstractmethod
    async def query_items(self, vector: list[float], k: int) -> list[tuple[float, IndexedItem]]:
        """Return up to *k* ``(score, item)`` pairs, most similar first.

        Higher scores mean more similar.
        """
        ...

    @abstractmethod
    async def list_items(self) -> list[IndexedItem]:
        """Return every stored item (vectors may be omitted)."""
        ...

    @abstractmethod
    async def delete_index(self) -> None:
        """Drop the index and everything in it.

        Raises
        ------
        IndexNotFoundError
            When there is nothing to delete.
        """
        ...

    # -- optional overrides ---------------------------------------------------

    async def close(self) -> None:
        """Release any handles on the index's files.

        Called before the index directory is replaced on disk.  The store
        reopens the index on its next operation.
        """
