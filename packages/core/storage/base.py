from __future__ import annotations

from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    FrozenSet,
    Generic,
    Iterable,
    List,
    Optional,
    Protocol,
    TypeVar,
    runtime_checkable,
)


T = TypeVar("T")

Document = Dict[str, Any]


class NonIndexedQueryError(ValueError):
    """Raised when a query names a field the collection does not index."""


@runtime_checkable
class RecordStore(Protocol):
    def insert(self, collection: str, key: str, document: Document, index: Dict[str, str]) -> None:
        """Persist a new document. Raises if the key already exists."""

    def upsert(self, collection: str, key: str, document: Document, index: Dict[str, str]) -> None:
        """Insert or replace the document stored under key."""

    def find(self, collection: str, query: Dict[str, str]) -> List[Document]:
        """Return documents whose indexed fields equal every query value, in insertion order."""

    def delete(self, collection: str, query: Dict[str, str]) -> int:
        """Delete documents matching the query. Returns the number removed."""

    def delete_all(self, collection: str) -> int:
        """Delete every document in the collection. Returns the number removed."""


class Repository(Generic[T]):
    """Typed access to one collection of a :class:`RecordStore`.

    Only ``indexed_fields`` can be queried; anything else is rejected before
    the store is touched. Indexed values are stored and compared as strings.
    """

    def __init__(
        self,
        store: RecordStore,
        collection: str,
        key_field: str,
        indexed_fields: Iterable[str],
        to_document: Callable[[T], Document],
        from_document: Callable[[Document], T],
    ) -> None:
        self._store = store
        self.collection = collection
        self.key_field = key_field
        self.indexed_fields: FrozenSet[str] = frozenset(indexed_fields) | {key_field}
        self._to_document = to_document
        self._from_document = from_document

    def insert(self, entity: T) -> None:
        document = self._to_document(entity)
        self._store.insert(self.collection, self._key(document), document, self._index(document))

    def upsert(self, entity: T) -> None:
        document = self._to_document(entity)
        self._store.upsert(self.collection, self._key(document), document, self._index(document))

    def find_all(self, **query: Any) -> List[T]:
        documents = self._store.find(self.collection, self._check_query(query))
        return [self._from_document(document) for document in documents]

    def find_one(self, **query: Any) -> Optional[T]:
        found = self.find_all(**query)
        return found[0] if found else None

    def delete_by_query(self, **query: Any) -> int:
        if not query:
            raise NonIndexedQueryError("Refusing to delete without a query; use clear_all")
        return self._store.delete(self.collection, self._check_query(query))

    def clear_all(self) -> int:
        return self._store.delete_all(self.collection)

    def _key(self, document: Document) -> str:
        key = document.get(self.key_field)
        if not isinstance(key, str) or not key:
            raise ValueError(f"{self.collection} document has no {self.key_field}")
        return key

    def _index(self, document: Document) -> Dict[str, str]:
        index = {}
        for field in self.indexed_fields:
            value = _index_value(document.get(field))
            if value is not None:
                index[field] = value
        return index

    def _check_query(self, query: Dict[str, Any]) -> Dict[str, str]:
        checked = {}
        for field, value in query.items():
            if field not in self.indexed_fields:
                raise NonIndexedQueryError(
                    f"Trying to search {self.collection} on non-indexed field {field}"
                )
            if value is None:
                raise NonIndexedQueryError(f"No value provided for query field {field}")
            value = _index_value(value)
            if not isinstance(value, str):
                raise NonIndexedQueryError(f"Indexed field {field} must be queried with a string")
            checked[field] = value
        return checked


def _index_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value
