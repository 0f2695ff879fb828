"""Event records, store filters and the signed submission body."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from pydevlog._constants import MAX_KEY_LENGTH, MAX_PAGE_SIZE
from pydevlog.models._base import Category, DevLogBaseModel, UtcDatetime


class Event(DevLogBaseModel):
    """A single stored observation.

    Parameters
    ----------
    project_id : int
        Project the device reports into; also selects the signing secret.
    device_id : str
        Hardware identifier of the reporting device.
    session_id : str
        Opaque identifier of one run of the device.
    client_timestamp : int
        Device clock at submission, epoch milliseconds.
    category : Category
        ``record``, ``warning`` or ``error``.
    key : str
        Observation name, 1-255 characters.
    value : str
        Flat string payload. Interpretation is up to the caller.
    server_received_at : datetime
        Server clock when the event was accepted (UTC).
    sequence_id : int or None
        Assigned by the store on append.
    """

    project_id: int
    device_id: str = Field(min_length=1)
    session_id: str = Field(min_length=1)
    client_timestamp: int
    category: Category
    key: str = Field(min_length=1, max_length=MAX_KEY_LENGTH)
    value: str
    server_received_at: UtcDatetime
    sequence_id: int | None = None


class EventFilter(DevLogBaseModel):
    """Conjunctive filter understood by every event store.

    ``start`` and ``end`` bound ``server_received_at`` inclusively.
    """

    project_id: int | None = None
    device_id: str | None = None
    session_id: str | None = None
    category: Category | None = None
    start: UtcDatetime | None = None
    end: UtcDatetime | None = None

    def matches(self, event: Event) -> bool:
        if self.project_id is not None and event.project_id != self.project_id:
            return False
        if self.device_id is not None and event.device_id != self.device_id:
            return False
        if self.session_id is not None and event.session_id != self.session_id:
            return False
        if self.category is not None and event.category != self.category:
            return False
        if self.start is not None and event.server_received_at < self.start:
            return False
        return not (self.end is not None and event.server_received_at > self.end)


class Page(DevLogBaseModel):
    """1-based page selector."""

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=MAX_PAGE_SIZE)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class PageInfo(DevLogBaseModel):
    """Position of a page within a filtered listing."""

    page: int = Field(ge=1)
    page_size: int = Field(ge=1)
    total: int = Field(ge=0)
    total_pages: int = Field(ge=0)


class PaginatedEvents(DevLogBaseModel):
    """One page of events, newest first, plus paging totals."""

    data: list[Event] = Field(default_factory=list)
    pagination: PageInfo


class GroupCount(DevLogBaseModel):
    """One row of a grouped count query."""

    group: dict[str, str]
    count: int = Field(ge=0)
    min_timestamp: datetime | None = None
    max_timestamp: datetime | None = None


class SigningPrincipal(DevLogBaseModel):
    """Owner of the secret a submission was verified against."""

    project_id: int


class Submission(DevLogBaseModel):
    """Signed event body as sent by a device.

    Field names follow the device wire format (``projectId``, ``deviceId``,
    ...); snake_case names are accepted as well.
    """

    project_id: int
    device_id: str = Field(min_length=1)
    session_id: str = Field(min_length=1)
    timestamp: int = Field(gt=0)
    category: Category
    key: str = Field(min_length=1, max_length=MAX_KEY_LENGTH)
    value: str
    signature: str = Field(min_length=1)

    def to_event(self, server_received_at: datetime) -> Event:
        return Event(
            project_id=self.project_id,
            device_id=self.device_id,
            session_id=self.session_id,
            client_timestamp=self.timestamp,
            category=self.category,
            key=self.key,
            value=self.value,
            server_received_at=server_received_at,
        )
