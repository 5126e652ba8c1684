"""Core domain entities."""

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Optional


class ItemKind(str, Enum):
    """Shape of the items kept in the corpus."""

    ARTICLE = "article"
    JOKE = "joke"


class RefreshPriority(str, Enum):
    """Origin tag carried by a refresh request."""

    MANUAL = "manual"
    SCHEDULED = "scheduled"
    NORMAL = "normal"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


@dataclass
class ContentItem:
    """Base entity for a single fetched record.

    The id and created_at are assigned by the store on insert and never
    change afterwards.
    """

    kind: ClassVar[ItemKind]
    primary_field: ClassVar[str]
    search_fields: ClassVar[tuple[str, ...]]

    @classmethod
    def from_payload(cls, payload: Any) -> "ContentItem":
        """Decode a document returned by the external source."""
        raise NotImplementedError

    @classmethod
    def from_document(
        cls, document: dict, id: str, created_at: Optional[datetime] = None
    ) -> "ContentItem":
        """Rebuild an item from its stored document."""
        raise NotImplementedError

    def to_document(self) -> dict:
        """Store representation, without id."""
        raise NotImplementedError

    def to_dict(self) -> dict:
        """Public JSON representation."""
        data = {"id": self.id}
        data.update(self.to_document())
        return data

    @property
    def primary_value(self) -> str:
        return getattr(self, self.primary_field) or ""

    def search_text(self) -> str:
        """Casefolded text searched by substring queries."""
        values = [getattr(self, name) or "" for name in self.search_fields]
        return "\n".join(values).casefold()

    def matches(self, term: str) -> bool:
        return term.casefold() in self.search_text()


@dataclass
class Thumbnail:
    """Article thumbnail image."""

    source: Optional[str] = None
    width: int = 0
    height: int = 0


@dataclass
class Article(ContentItem):
    """Encyclopedia-style page summary."""

    kind: ClassVar[ItemKind] = ItemKind.ARTICLE
    primary_field: ClassVar[str] = "title"
    search_fields: ClassVar[tuple[str, ...]] = ("title", "description")

    title: Optional[str] = None
    description: Optional[str] = None
    extract: Optional[str] = None
    thumbnail: Optional[Thumbnail] = None
    content_url: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.title or not self.title.strip():
            raise ValueError("Title cannot be empty")

    @classmethod
    def from_payload(cls, payload: Any) -> "Article":
        if not isinstance(payload, dict):
            raise ValueError("Article payload must be a JSON object")

        thumbnail = None
        raw_thumbnail = payload.get("thumbnail")
        if isinstance(raw_thumbnail, dict):
            thumbnail = Thumbnail(
                source=_optional_str(raw_thumbnail.get("source")),
                width=int(raw_thumbnail.get("width") or 0),
                height=int(raw_thumbnail.get("height") or 0),
            )

        content_url = None
        content_urls = payload.get("content_urls")
        if isinstance(content_urls, dict):
            desktop = content_urls.get("desktop")
            if isinstance(desktop, dict):
                content_url = _optional_str(desktop.get("page"))

        return cls(
            title=_optional_str(payload.get("title")),
            description=_optional_str(payload.get("description")),
            extract=_optional_str(payload.get("extract")),
            thumbnail=thumbnail,
            content_url=content_url,
        )

    @classmethod
    def from_document(
        cls, document: dict, id: str, created_at: Optional[datetime] = None
    ) -> "Article":
        article = cls.from_payload(document)
        article.id = id
        article.created_at = created_at
        return article

    def to_document(self) -> dict:
        thumbnail = None
        if self.thumbnail is not None:
            thumbnail = {
                "source": self.thumbnail.source,
                "width": self.thumbnail.width,
                "height": self.thumbnail.height,
            }
        content_urls = None
        if self.content_url is not None:
            content_urls = {"desktop": {"page": self.content_url}}
        return {
            "title": self.title,
            "description": self.description,
            "extract": self.extract,
            "thumbnail": thumbnail,
            "content_urls": content_urls,
        }


@dataclass
class Joke(ContentItem):
    """Setup/punchline joke record."""

    kind: ClassVar[ItemKind] = ItemKind.JOKE
    primary_field: ClassVar[str] = "setup"
    search_fields: ClassVar[tuple[str, ...]] = ("setup", "punchline", "type")

    setup: Optional[str] = None
    punchline: Optional[str] = None
    type: Optional[str] = None
    joke_id: Optional[int] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.setup or not self.setup.strip():
            raise ValueError("Setup cannot be empty")
        if not self.punchline or not self.punchline.strip():
            raise ValueError("Punchline cannot be empty")

    @classmethod
    def from_payload(cls, payload: Any) -> "Joke":
        if not isinstance(payload, dict):
            raise ValueError("Joke payload must be a JSON object")

        joke_id = payload.get("id", payload.get("joke_id"))
        return cls(
            setup=_optional_str(payload.get("setup")),
            punchline=_optional_str(payload.get("punchline")),
            type=_optional_str(payload.get("type")),
            joke_id=int(joke_id) if joke_id is not None else None,
        )

    @classmethod
    def from_document(
        cls, document: dict, id: str, created_at: Optional[datetime] = None
    ) -> "Joke":
        joke = cls.from_payload(document)
        joke.id = id
        joke.created_at = created_at
        return joke

    def to_document(self) -> dict:
        return {
            "type": self.type,
            "setup": self.setup,
            "punchline": self.punchline,
            "joke_id": self.joke_id,
        }


ITEM_TYPES: dict[ItemKind, type[ContentItem]] = {
    ItemKind.ARTICLE: Article,
    ItemKind.JOKE: Joke,
}


@dataclass
class FetchFailure:
    """A fetch that failed after all of its attempts."""

    reason: str
    attempts: int


@dataclass
class RefreshRequest:
    """One refresh invocation, created by a trigger."""

    batch_size: int
    priority: RefreshPriority = RefreshPriority.NORMAL
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=_utcnow)

    def to_json(self) -> bytes:
        return json.dumps({
            "requestId": self.request_id,
            "batchSize": self.batch_size,
            "priority": self.priority.value,
            "timestamp": self.timestamp.isoformat(),
        }).encode("utf-8")

    @classmethod
    def from_json(cls, data: bytes) -> "RefreshRequest":
        """Decode a request message.

        Raises:
            ValueError: If the message is not a valid refresh request.
        """
        payload = json.loads(data)
        if not isinstance(payload, dict):
            raise ValueError("Refresh request must be a JSON object")

        batch_size = payload.get("batchSize")
        if not isinstance(batch_size, int) or isinstance(batch_size, bool):
            raise ValueError(f"Invalid batchSize: {batch_size!r}")

        request = cls(
            batch_size=batch_size,
            priority=RefreshPriority(payload.get("priority", RefreshPriority.NORMAL.value)),
        )
        if payload.get("requestId"):
            request.request_id = str(payload["requestId"])
        timestamp = payload.get("timestamp")
        if timestamp:
            if not isinstance(timestamp, str):
                raise ValueError(f"Invalid timestamp: {timestamp!r}")
            request.timestamp = datetime.fromisoformat(timestamp)
        return request


@dataclass
class RefreshResult:
    """Outcome of a refresh request, echoed back over the event transport."""

    request_id: str
    success: bool
    processed_count: int = 0
    failed_count: int = 0
    error: Optional[str] = None
    completed_at: datetime = field(default_factory=_utcnow)

    def to_json(self) -> bytes:
        return json.dumps({
            "requestId": self.request_id,
            "success": self.success,
            "processedCount": self.processed_count,
            "failedCount": self.failed_count,
            "error": self.error,
            "completedAt": self.completed_at.isoformat(),
        }).encode("utf-8")


@dataclass
class RefreshOutcome:
    """Counts produced by one run of the refresh orchestrator."""

    success_count: int
    fail_count: int
    deleted_count: int = 0
    committed: bool = True
    duration_seconds: float = 0.0

    @property
    def attempted(self) -> int:
        return self.success_count + self.fail_count


@dataclass
class ItemPage:
    """One page of query results."""

    items: list[ContentItem]
    total: int
    page: int
    page_size: int
    search: Optional[str] = None

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.page_size)
