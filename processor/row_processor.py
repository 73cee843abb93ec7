"""Row processor for validating and normalizing sheet rows."""
import logging
from typing import List, Mapping, Optional

from processor.field_extractor import (
    EXHIBITOR_FIELDS,
    PARTICIPANT_FIELDS,
    PROGRAM_FIELDS,
    extract_fields,
    normalize_categories,
)
from processor.models import Exhibitor, Participant, ProgramItem, RowBatch
from processor.normalizers import normalize_date, normalize_time

logger = logging.getLogger(__name__)

Row = Mapping[str, Optional[str]]


class RowProcessor:
    """Turns raw sheet rows into validated records for one entity type."""

    MAX_TITLE_LENGTH = 200
    MAX_NAME_LENGTH = 200
    MAX_DESCRIPTION_LENGTH = 2000

    PROGRAM_PREFIX = 'p'
    PARTICIPANT_PREFIX = 'd'
    EXHIBITOR_PREFIX = 'u'

    def process_rows(self, entity: str, rows: List[Row]) -> RowBatch:
        """
        Process rows for the named entity type.

        Args:
            entity: One of 'program', 'participants', 'exhibitors'
            rows: Parsed sheet rows (header -> cell text)

        Returns:
            RowBatch of accepted records
        """
        handlers = {
            'program': self.process_program_rows,
            'participants': self.process_participant_rows,
            'exhibitors': self.process_exhibitor_rows,
        }
        if entity not in handlers:
            raise ValueError(f"Unknown entity type: {entity}")
        return handlers[entity](rows)

    def process_program_rows(self, rows: List[Row]) -> RowBatch:
        """Validate program rows; day, start and title are required."""
        items: List[ProgramItem] = []
        skipped = 0

        for index, row in enumerate(rows, start=1):
            row_number = self._row_number(row, index)
            fields = extract_fields(row, PROGRAM_FIELDS)

            if not fields['title']:
                self._log_rejected('Program', row_number, 'title', None)
                skipped += 1
                continue

            day = normalize_date(fields['day'])
            if not day:
                self._log_rejected('Program', row_number, 'day', fields['day'])
                skipped += 1
                continue

            start_time = normalize_time(fields['start_time'])
            if not start_time:
                self._log_rejected(
                    'Program', row_number, 'start', fields['start_time']
                )
                skipped += 1
                continue

            end_time = None
            if fields['end_time']:
                end_time = normalize_time(fields['end_time'])
                if not end_time:
                    logger.warning(
                        f"Program row {row_number}: ignoring unparseable end "
                        f"time '{fields['end_time']}'"
                    )

            items.append(ProgramItem(
                external_id=f"{self.PROGRAM_PREFIX}{len(items) + 1}",
                day=day,
                start_time=start_time,
                end_time=end_time,
                title=fields['title'][:self.MAX_TITLE_LENGTH],
                description=self._truncate(
                    fields['description'], self.MAX_DESCRIPTION_LENGTH
                ),
                location=fields['location'],
                category=normalize_categories(fields['category'])
            ))

        self._log_summary('Program', len(items), len(rows))
        return RowBatch(records=items, skipped=skipped)

    def process_participant_rows(self, rows: List[Row]) -> RowBatch:
        """Validate participant rows; name is required."""
        participants: List[Participant] = []
        skipped = 0

        for index, row in enumerate(rows, start=1):
            row_number = self._row_number(row, index)
            fields = extract_fields(row, PARTICIPANT_FIELDS)

            if not fields['name']:
                self._log_rejected('Participants', row_number, 'name', None)
                skipped += 1
                continue

            participants.append(Participant(
                external_id=f"{self.PARTICIPANT_PREFIX}{len(participants) + 1}",
                name=fields['name'][:self.MAX_NAME_LENGTH],
                company=self._truncate(fields['company'], self.MAX_NAME_LENGTH)
            ))

        self._log_summary('Participants', len(participants), len(rows))
        return RowBatch(records=participants, skipped=skipped)

    def process_exhibitor_rows(self, rows: List[Row]) -> RowBatch:
        """Validate exhibitor rows; company name is required."""
        exhibitors: List[Exhibitor] = []
        skipped = 0

        for index, row in enumerate(rows, start=1):
            row_number = self._row_number(row, index)
            fields = extract_fields(row, EXHIBITOR_FIELDS)

            if not fields['company_name']:
                self._log_rejected(
                    'Exhibitors', row_number, 'company name', None
                )
                skipped += 1
                continue

            exhibitors.append(Exhibitor(
                external_id=f"{self.EXHIBITOR_PREFIX}{len(exhibitors) + 1}",
                company_name=fields['company_name'][:self.MAX_NAME_LENGTH],
                stand_number=fields['stand_number']
            ))

        self._log_summary('Exhibitors', len(exhibitors), len(rows))
        return RowBatch(records=exhibitors, skipped=skipped)

    def _row_number(self, row: Row, index: int) -> int:
        # Fetched rows know their sheet row; plain mappings fall back to position
        return getattr(row, 'row_number', index)

    def _truncate(self, value: Optional[str], limit: int) -> Optional[str]:
        if value is None:
            return None
        return value[:limit]

    def _log_rejected(
        self,
        sheet: str,
        row_number: int,
        field_name: str,
        raw_value: Optional[str]
    ) -> None:
        if raw_value:
            logger.warning(
                f"{sheet} row {row_number} skipped: unparseable {field_name} "
                f"'{raw_value}'"
            )
        else:
            logger.warning(
                f"{sheet} row {row_number} skipped: missing required field "
                f"{field_name}"
            )

    def _log_summary(self, sheet: str, accepted: int, total: int) -> None:
        logger.info(
            f"Processed {accepted} valid {sheet.lower()} rows out of "
            f"{total} total rows"
        )
