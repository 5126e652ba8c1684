"""In-process corpus store."""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from itertools import count
from typing import Optional

from corpus_refresh.core import ContentItem, CorpusStore


@dataclass
class _Record:
    id: str
    seq: int
    created_at: datetime
    document: dict


class MemoryCorpusStore(CorpusStore):
    """Keep the corpus in a Python list.

    Every method runs without awaiting, so each one is atomic with respect
    to other coroutines on the same event loop. ``replace_all`` swaps the
    whole list in one assignment.
    """

    def __init__(self, item_type: type[ContentItem]) -> None:
        self.item_type = item_type
        self._records: list[_Record] = []
        self._seq = count(1)

    def _record(self, item: ContentItem) -> _Record:
        return _Record(
            id=uuid.uuid4().hex,
            seq=next(self._seq),
            created_at=datetime.now(timezone.utc),
            document=item.to_document(),
        )

    def _load(self, record: _Record) -> ContentItem:
        return self.item_type.from_document(record.document, record.id, record.created_at)

    async def count(self) -> int:
        return len(self._records)

    async def delete_all(self) -> int:
        deleted = len(self._records)
        self._records = []
        return deleted

    async def insert_one(self, item: ContentItem) -> ContentItem:
        record = self._record(item)
        self._records.append(record)
        return self._load(record)

    async def insert_many(self, items: list[ContentItem]) -> list[ContentItem]:
        records = [self._record(item) for item in items]
        self._records.extend(records)
        return [self._load(record) for record in records]

    async def replace_all(self, items: list[ContentItem]) -> int:
        records = [self._record(item) for item in items]
        deleted = len(self._records)
        self._records = records
        return deleted

    async def find(
        self, skip: int, limit: int, term: Optional[str] = None
    ) -> list[ContentItem]:
        records = reversed(self._records)
        if term:
            records = (r for r in records if self._load(r).matches(term))
        result = []
        for index, record in enumerate(records):
            if index < skip:
                continue
            if len(result) >= limit:
                break
            result.append(self._load(record))
        return result

    async def get_by_id(self, item_id: str) -> Optional[ContentItem]:
        for record in self._records:
            if record.id == item_id:
                return self._load(record)
        return None
