"""Data models for sheet ingestion."""
from dataclasses import dataclass, field
from typing import List, Optional, Union


@dataclass
class ProgramItem:
    """Normalized program/agenda entry."""
    external_id: str
    day: str
    start_time: str
    end_time: Optional[str]
    title: str
    description: Optional[str]
    location: Optional[str]
    category: Optional[str]


@dataclass
class Participant:
    """Normalized participant entry."""
    external_id: str
    name: str
    company: Optional[str]


@dataclass
class Exhibitor:
    """Normalized exhibitor entry."""
    external_id: str
    company_name: str
    stand_number: Optional[str]


Record = Union[ProgramItem, Participant, Exhibitor]


@dataclass
class RowBatch:
    """Records accepted from one sheet, plus how many rows were dropped."""
    records: List[Record]
    skipped: int = 0


@dataclass
class EntitySyncResult:
    """Outcome of syncing one entity type."""
    count: int = 0
    errors: List[str] = field(default_factory=list)
    skipped: int = 0

    def to_dict(self) -> dict:
        return {
            'count': self.count,
            'errors': list(self.errors),
            'skipped': self.skipped
        }


@dataclass
class SyncResult:
    """Result of a sync invocation across all entity types."""
    program: EntitySyncResult
    participants: EntitySyncResult
    exhibitors: EntitySyncResult

    @property
    def has_errors(self) -> bool:
        return bool(
            self.program.errors or
            self.participants.errors or
            self.exhibitors.errors
        )

    def to_dict(self) -> dict:
        return {
            'program': self.program.to_dict(),
            'participants': self.participants.to_dict(),
            'exhibitors': self.exhibitors.to_dict()
        }
