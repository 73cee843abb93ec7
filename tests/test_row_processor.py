"""Unit tests for RowProcessor."""
import logging

import pytest

from processor.models import Exhibitor, Participant, ProgramItem
from processor.row_processor import RowProcessor
from sheets.sheet_fetcher import SheetRow


class TestRowProcessor:
    """Test cases for RowProcessor class."""

    def test_program_scenario_drops_row_without_day(self):
        """Test the documented opening/keynote example."""
        processor = RowProcessor()

        rows = [
            {'dag': '15.03.2026', 'start': '9.30', 'tittel': 'Åpning'},
            {'dag': '', 'start': '10:00', 'tittel': 'Keynote'},
        ]

        batch = processor.process_program_rows(rows)

        assert len(batch.records) == 1
        assert batch.skipped == 1
        item = batch.records[0]
        assert isinstance(item, ProgramItem)
        assert item.external_id == 'p1'
        assert item.day == '2026-03-15'
        assert item.start_time == '09:30'
        assert item.title == 'Åpning'
        assert item.end_time is None
        assert item.description is None

    def test_program_all_fields(self):
        """Test a fully populated program row."""
        processor = RowProcessor()

        rows = [{
            'Dag': '2026-03-15',
            'Start': '0900',
            'End': '10:15:00',
            'Tittel': 'Workshop',
            'Beskrivelse': 'Hands-on session',
            'Sted': 'Room 2',
            'Category': 'Fagprogram, Transport',
        }]

        item = processor.process_program_rows(rows).records[0]

        assert item.start_time == '09:00'
        assert item.end_time == '10:15'
        assert item.description == 'Hands-on session'
        assert item.location == 'Room 2'
        assert item.category == 'Fagprogram, Transport'

    @pytest.mark.parametrize('row', [
        {'dag': '15.03.2026', 'start': '9:30', 'tittel': ''},
        {'dag': 'not-a-date', 'start': '9:30', 'tittel': 'Talk'},
        {'dag': '15.03.2026', 'start': 'soon', 'tittel': 'Talk'},
        {'dag': '15.03.2026', 'tittel': 'Talk'},
    ])
    def test_program_rejects_missing_required_fields(self, row):
        """Test that rows missing day, start or title are dropped."""
        processor = RowProcessor()

        batch = processor.process_program_rows([row])

        assert batch.records == []
        assert batch.skipped == 1

    def test_program_unparseable_end_time_is_ignored(self):
        """Test that a bad optional end time does not drop the row."""
        processor = RowProcessor()

        rows = [{'dag': '15.03.2026', 'start': '9:30', 'end': 'late', 'tittel': 'Talk'}]

        batch = processor.process_program_rows(rows)

        assert len(batch.records) == 1
        assert batch.records[0].end_time is None

    def test_external_ids_count_retained_rows(self):
        """Test that ids are numbered among accepted rows only."""
        processor = RowProcessor()

        rows = [
            {'dag': '15.03.2026', 'start': '9:00', 'tittel': 'A'},
            {'dag': '', 'start': '9:30', 'tittel': 'Dropped'},
            {'dag': '15.03.2026', 'start': '10:00', 'tittel': 'B'},
        ]

        batch = processor.process_program_rows(rows)

        assert [item.external_id for item in batch.records] == ['p1', 'p2']
        assert [item.title for item in batch.records] == ['A', 'B']

    def test_participants(self):
        """Test participant validation and id prefix."""
        processor = RowProcessor()

        rows = [
            {'Navn': 'Kari Nordmann', 'Bedrift': 'Acme AS'},
            {'Navn': '', 'Bedrift': 'Nobody Inc'},
            {'name': 'Ola', 'company': ''},
        ]

        batch = processor.process_participant_rows(rows)

        assert batch.records == [
            Participant(external_id='d1', name='Kari Nordmann', company='Acme AS'),
            Participant(external_id='d2', name='Ola', company=None),
        ]
        assert batch.skipped == 1

    def test_exhibitors(self):
        """Test exhibitor validation and id prefix."""
        processor = RowProcessor()

        rows = [
            {'Bedriftsnavn': 'Acme AS', 'Standnummer': 'A12'},
            {'Bedriftsnavn': '', 'Standnummer': 'B1'},
        ]

        batch = processor.process_exhibitor_rows(rows)

        assert batch.records == [
            Exhibitor(external_id='u1', company_name='Acme AS', stand_number='A12'),
        ]
        assert batch.skipped == 1

    def test_truncates_long_fields(self):
        """Test that long title and description are truncated."""
        processor = RowProcessor()

        rows = [{
            'dag': '15.03.2026',
            'start': '9:30',
            'tittel': 'A' * 300,
            'beskrivelse': 'B' * 3000,
        }]

        item = processor.process_program_rows(rows).records[0]

        assert len(item.title) == 200
        assert len(item.description) == 2000

    def test_process_rows_dispatch(self):
        """Test dispatch by entity key."""
        processor = RowProcessor()

        batch = processor.process_rows('participants', [{'navn': 'Kari'}])

        assert batch.records[0].external_id == 'd1'

    def test_process_rows_unknown_entity(self):
        """Test that an unknown entity key raises ValueError."""
        processor = RowProcessor()

        with pytest.raises(ValueError):
            processor.process_rows('sponsors', [])

    def test_rejected_rows_are_logged(self, caplog):
        """Test that each dropped row produces a warning."""
        processor = RowProcessor()

        with caplog.at_level(logging.WARNING, logger='processor.row_processor'):
            processor.process_program_rows([
                {'dag': '', 'start': '10:00', 'tittel': 'Keynote'},
            ])

        assert any(
            'Program row 1 skipped' in record.message
            for record in caplog.records
        )

    def test_rejected_rows_report_sheet_row_number(self, caplog):
        """Test that warnings name the row as numbered in the spreadsheet."""
        processor = RowProcessor()

        with caplog.at_level(logging.WARNING, logger='processor.row_processor'):
            batch = processor.process_participant_rows([
                SheetRow({'navn': 'Kari', 'bedrift': 'Acme AS'}, 2),
                SheetRow({'navn': '', 'bedrift': 'Beta AS'}, 7),
            ])

        assert batch.skipped == 1
        assert batch.records[0].external_id == 'd1'
        messages = [record.message for record in caplog.records]
        assert any('Participants row 7 skipped' in msg for msg in messages)
        assert not any('Participants row 2 skipped' in msg for msg in messages)
