"""Orchestrates fetch, validation and full replace for each entity type."""
import logging
from dataclasses import dataclass
from typing import Tuple

from processor.models import EntitySyncResult, SyncResult
from processor.row_processor import RowProcessor
from sheets.sheet_fetcher import SheetFetcher
from storage.event_store import EventStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntityType:
    """One independently synchronized data set."""
    key: str
    sheet_name: str


PROGRAM = EntityType(key='program', sheet_name='Program')
PARTICIPANTS = EntityType(key='participants', sheet_name='Deltakere')
EXHIBITORS = EntityType(key='exhibitors', sheet_name='Utstillere')

ENTITY_TYPES: Tuple[EntityType, ...] = (PROGRAM, PARTICIPANTS, EXHIBITORS)


class DatasetSynchronizer:
    """Runs the sheet-to-store pipeline for program, participants and exhibitors."""

    def __init__(
        self,
        fetcher: SheetFetcher,
        processor: RowProcessor,
        store: EventStore
    ):
        self.fetcher = fetcher
        self.processor = processor
        self.store = store

    def sync_all(self, sheet_id: str, event_id: str) -> SyncResult:
        """
        Synchronize every entity type for one event.

        Entity types are independent: a failure in one is recorded in its
        own result and the others are still attempted.

        Args:
            sheet_id: Spreadsheet identifier
            event_id: Event whose child rows are replaced

        Returns:
            SyncResult with per-entity counts and errors
        """
        results = {
            entity.key: self.sync_entity(entity, sheet_id, event_id)
            for entity in ENTITY_TYPES
        }
        return SyncResult(
            program=results[PROGRAM.key],
            participants=results[PARTICIPANTS.key],
            exhibitors=results[EXHIBITORS.key]
        )

    def sync_entity(
        self,
        entity: EntityType,
        sheet_id: str,
        event_id: str
    ) -> EntitySyncResult:
        """
        Fetch, validate and replace one entity type. Never raises.

        The sheet is fetched and parsed before anything is deleted, so a
        transport or limit failure leaves the stored rows untouched.
        """
        try:
            rows = self.fetcher.fetch_rows(sheet_id, entity.sheet_name)
            batch = self.processor.process_rows(entity.key, rows)
            count = self.store.replace_items(entity.key, event_id, batch.records)

            logger.info(
                f"Synced {count} {entity.key} rows for event {event_id}",
                extra={'skipped_rows': batch.skipped}
            )
            return EntitySyncResult(count=count, skipped=batch.skipped)

        except Exception as e:
            logger.error(
                f"Failed to sync {entity.key} for event {event_id}: {e}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            return EntitySyncResult(count=0, errors=[str(e)])
