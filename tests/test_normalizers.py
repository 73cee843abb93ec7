"""Unit tests for date and time normalization."""
import pytest

from processor.normalizers import normalize_date, normalize_time


class TestNormalizeDate:
    """Test cases for normalize_date."""

    @pytest.mark.parametrize('raw', [
        '2026-03-15',
        '15/03/2026',
        '15.03.2026',
        '2026/03/15',
    ])
    def test_known_formats(self, raw):
        """Test that every supported layout yields the same ISO date."""
        assert normalize_date(raw) == '2026-03-15'

    def test_single_digit_day_and_month(self):
        """Test day-first dates without zero padding."""
        assert normalize_date('5.3.2026') == '2026-03-05'
        assert normalize_date('5-3-2026') == '2026-03-05'

    def test_year_first_single_digits(self):
        """Test year-first dates without zero padding."""
        assert normalize_date('2026.3.5') == '2026-03-05'

    def test_ambiguous_dates_are_day_first(self):
        """Test that 03/04/2026 is read as 3 April, not 4 March."""
        assert normalize_date('03/04/2026') == '2026-04-03'

    def test_surrounding_whitespace(self):
        """Test that whitespace around the value is ignored."""
        assert normalize_date('  15.03.2026 ') == '2026-03-15'

    def test_fallback_iso_datetime(self):
        """Test that an ISO timestamp falls back to its date part."""
        assert normalize_date('2026-03-15T10:30:00') == '2026-03-15'

    def test_fallback_month_name(self):
        """Test generic parsing of month-name dates."""
        assert normalize_date('March 15, 2026') == '2026-03-15'
        assert normalize_date('15 March 2026') == '2026-03-15'

    def test_impossible_calendar_date(self):
        """Test that dates which do not exist are rejected."""
        assert normalize_date('31.02.2026') is None
        assert normalize_date('2026-13-01') is None

    @pytest.mark.parametrize('raw', ['not-a-date', '', '   ', None])
    def test_unparseable(self, raw):
        """Test that invalid input returns None."""
        assert normalize_date(raw) is None


class TestNormalizeTime:
    """Test cases for normalize_time."""

    @pytest.mark.parametrize('raw', [
        '9:30',
        '09:30',
        '9.30',
        '0930',
        '09:30:00',
    ])
    def test_known_formats(self, raw):
        """Test that every supported layout yields the same HH:MM."""
        assert normalize_time(raw) == '09:30'

    def test_three_digit_compact(self):
        """Test compact times with a single-digit hour."""
        assert normalize_time('930') == '09:30'

    def test_afternoon(self):
        """Test 24-hour afternoon values."""
        assert normalize_time('14.05') == '14:05'
        assert normalize_time('1405') == '14:05'

    def test_twelve_hour_clock(self):
        """Test AM/PM values after the 24-hour formats."""
        assert normalize_time('7:00 PM') == '19:00'
        assert normalize_time('7:00pm') == '19:00'
        assert normalize_time('9:30 AM') == '09:30'

    def test_out_of_range(self):
        """Test that impossible times are rejected."""
        assert normalize_time('25:00') is None
        assert normalize_time('12:75') is None
        assert normalize_time('2460') is None

    @pytest.mark.parametrize('raw', ['not-a-time', '', None, '9', '09:3'])
    def test_unparseable(self, raw):
        """Test that invalid input returns None."""
        assert normalize_time(raw) is None
