"""
Job data model (plain dataclass) for ytscribe.
"""

from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone

from ytscribe.core.constants import JobStatus, TERMINAL_STATUSES

# Always serialized, even when zero/empty
_ALWAYS_SERIALIZED = ('id', 'status', 'progress', 'audio_progress',
                      'transcript_progress', 'created')


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Job:
    id: str                          # UUID
    status: str = JobStatus.QUEUED
    url: str = ""                    # kept for resumption
    file: str = ""                   # public transcript reference
    audio_file: str = ""             # public audio reference
    text: str = ""
    progress: int = 0
    audio_progress: int = 0
    transcript_progress: int = 0
    error: str = ""
    error_code: str = ""
    created: datetime = field(default_factory=utcnow)

    # Video metadata (best-effort)
    title: str = ""
    description: str = ""
    thumbnail: str = ""
    duration: int = 0                # seconds
    channel_name: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def copy(self) -> "Job":
        return replace(self)

    def to_dict(self) -> dict:
        """JSON shape of the record; empty/default optional fields are omitted."""
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name not in _ALWAYS_SERIALIZED and not value:
                continue
            if isinstance(value, datetime):
                value = value.isoformat()
            data[f.name] = value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Job":
        if not isinstance(data, dict):
            raise ValueError("job record must be a JSON object")
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        if not kwargs.get('id'):
            raise ValueError("job record has no id")
        created = kwargs.get('created')
        if isinstance(created, str):
            created = datetime.fromisoformat(created)
            if created.tzinfo is None:
                # Records without an offset are taken as UTC
                created = created.replace(tzinfo=timezone.utc)
            kwargs['created'] = created
        elif created is None:
            kwargs.pop('created', None)
        else:
            raise ValueError(f"job record has invalid created: {created!r}")
        return cls(**kwargs)
