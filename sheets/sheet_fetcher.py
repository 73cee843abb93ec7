"""Google Sheets CSV fetcher for event data tabs."""
import csv
import io
import logging
import time
from typing import Dict, List, Optional
from urllib.parse import quote

import requests
from bs4 import BeautifulSoup
from urllib3.exceptions import DecodeError, ProtocolError, ReadTimeoutError

logger = logging.getLogger(__name__)


class SheetFetchError(Exception):
    """Raised when a sheet cannot be retrieved."""


class SheetLimitError(SheetFetchError):
    """Raised when a sheet exceeds the configured size or row limits."""


class SheetParseError(SheetFetchError):
    """Raised when sheet contents cannot be decoded into rows."""


class SheetRow(dict):
    """Header -> cell mapping that remembers its 1-based row number in the sheet."""

    def __init__(self, values: Dict[str, str], row_number: int):
        super().__init__(values)
        self.row_number = row_number


class SheetFetcher:
    """Fetches single tabs of a Google spreadsheet as CSV rows."""

    EXPORT_URL = (
        "https://docs.google.com/spreadsheets/d/{sheet_id}/gviz/tq"
        "?tqx=out:csv&sheet={sheet_name}"
    )
    CHUNK_SIZE = 64 * 1024

    def __init__(
        self,
        timeout: int = 30,
        max_bytes: int = 10 * 1024 * 1024,
        max_rows: int = 10000,
        max_retries: int = 3,
        base_delay: float = 1
    ):
        """
        Initialize the sheet fetcher.

        Args:
            timeout: Deadline in seconds for each download attempt (default: 30)
            max_bytes: Largest accepted CSV payload (default: 10 MiB)
            max_rows: Largest accepted number of non-empty rows (default: 10000)
            max_retries: Attempts for transient failures (default: 3)
            base_delay: First retry delay in seconds, doubled per attempt
        """
        self.timeout = timeout
        self.max_bytes = max_bytes
        self.max_rows = max_rows
        self.max_retries = max(1, max_retries)
        self.base_delay = base_delay

    def build_export_url(self, sheet_id: str, sheet_name: str) -> str:
        return self.EXPORT_URL.format(
            sheet_id=sheet_id,
            sheet_name=quote(sheet_name)
        )

    def fetch_rows(self, sheet_id: str, sheet_name: str) -> List[SheetRow]:
        """
        Fetch one tab and parse it into rows.

        Args:
            sheet_id: Spreadsheet identifier from the sharing URL
            sheet_name: Tab name, e.g. "Program"

        Returns:
            List of rows mapping header to stripped cell text, with
            fully-empty rows removed

        Raises:
            SheetFetchError: If the sheet cannot be downloaded
            SheetLimitError: If the sheet is too large
            SheetParseError: If the contents are not valid CSV
        """
        logger.info(f"Fetching sheet '{sheet_name}'")

        csv_text = self._fetch_csv(sheet_id, sheet_name)
        rows = self._parse_csv(csv_text, sheet_name)

        if len(rows) > self.max_rows:
            raise SheetLimitError(
                f"Sheet '{sheet_name}' has {len(rows)} rows, "
                f"exceeding the limit of {self.max_rows}"
            )

        logger.info(f"Fetched {len(rows)} rows from sheet '{sheet_name}'")
        return rows

    def _fetch_csv(self, sheet_id: str, sheet_name: str) -> str:
        """
        Download the CSV export with retry logic.

        Connection errors, timeouts and 5xx responses are retried with
        exponential backoff. Client errors, limit violations and downloads
        that overrun the deadline are not.
        """
        url = self.build_export_url(sheet_id, sheet_name)
        last_error: Optional[SheetFetchError] = None

        for attempt in range(self.max_retries):
            try:
                logger.info(
                    f"Requesting sheet '{sheet_name}' "
                    f"(attempt {attempt + 1}/{self.max_retries})"
                )
                return self._download(url, sheet_name)

            except (requests.ConnectionError, requests.Timeout) as e:
                last_error = SheetFetchError(
                    f"Sheet '{sheet_name}' request failed: {e}"
                )
            except requests.HTTPError as e:
                status = e.response.status_code if e.response is not None else None
                last_error = SheetFetchError(
                    f"Sheet '{sheet_name}' request failed with HTTP {status}"
                )
                if status is None or status < 500:
                    raise last_error from e
            except requests.RequestException as e:
                raise SheetFetchError(
                    f"Sheet '{sheet_name}' request failed: {e}"
                ) from e

            if attempt < self.max_retries - 1:
                delay = self.base_delay * (2 ** attempt)
                logger.warning(
                    f"{last_error} (attempt {attempt + 1}/{self.max_retries}). "
                    f"Retrying in {delay} seconds..."
                )
                time.sleep(delay)

        logger.error(
            f"All {self.max_retries} attempts for sheet '{sheet_name}' failed. "
            f"Last error: {last_error}"
        )
        raise last_error

    def _download(self, url: str, sheet_name: str) -> str:
        # requests' timeout bounds each socket read, not the whole transfer
        deadline = time.monotonic() + self.timeout

        with requests.get(url, timeout=self.timeout, stream=True) as response:
            response.raise_for_status()

            declared = response.headers.get('Content-Length')
            if declared and declared.isdigit() and int(declared) > self.max_bytes:
                raise SheetLimitError(
                    f"Sheet '{sheet_name}' is {int(declared)} bytes, "
                    f"exceeding the limit of {self.max_bytes} bytes"
                )

            received = 0
            chunks = []
            while True:
                chunk = self._read_chunk(response)
                if not chunk:
                    break

                if time.monotonic() > deadline:
                    raise SheetFetchError(
                        f"Sheet '{sheet_name}' did not finish downloading "
                        f"within {self.timeout} seconds"
                    )

                received += len(chunk)
                if received > self.max_bytes:
                    raise SheetLimitError(
                        f"Sheet '{sheet_name}' exceeded the limit of "
                        f"{self.max_bytes} bytes while downloading"
                    )
                chunks.append(chunk)

            content_type = response.headers.get('Content-Type', '')
            # Without an explicit charset requests assumes ISO-8859-1 for text/*
            encoding = 'utf-8'
            if 'charset=' in content_type.lower() and response.encoding:
                encoding = response.encoding

        try:
            text = b''.join(chunks).decode(encoding)
        except (LookupError, UnicodeDecodeError) as e:
            raise SheetParseError(
                f"Sheet '{sheet_name}' could not be decoded: {e}"
            ) from e

        if self._looks_like_html(content_type, text):
            raise SheetFetchError(
                f"Sheet '{sheet_name}' returned an HTML page instead of CSV "
                f"({self._page_title(text)}). Check that the spreadsheet is "
                f"shared with 'anyone with the link'"
            )

        return text

    def _read_chunk(self, response: requests.Response) -> bytes:
        """
        Read whatever part of the body has arrived, up to CHUNK_SIZE bytes.

        iter_content blocks until a full chunk is buffered, so a server
        trickling bytes would never reach the deadline check. urllib3 errors
        are mapped the same way requests maps them in iter_content.
        """
        try:
            return response.raw.read1(self.CHUNK_SIZE, decode_content=True)
        except (ReadTimeoutError, ProtocolError) as e:
            raise requests.ConnectionError(e) from e
        except DecodeError as e:
            raise requests.exceptions.ContentDecodingError(e) from e

    def _looks_like_html(self, content_type: str, text: str) -> bool:
        if 'text/html' in content_type.lower():
            return True
        head = text.lstrip()[:100].lower()
        return head.startswith('<!doctype html') or head.startswith('<html')

    def _page_title(self, html_content: str) -> str:
        soup = BeautifulSoup(html_content, 'html.parser')
        if soup.title and soup.title.get_text(strip=True):
            return soup.title.get_text(strip=True)
        return 'untitled page'

    def _parse_csv(self, csv_text: str, sheet_name: str) -> List[SheetRow]:
        """
        Parse CSV text into header -> value rows.

        Args:
            csv_text: Raw CSV export
            sheet_name: Tab name, used in error messages

        Returns:
            Non-empty rows with stripped headers and values, each carrying
            its row number in the sheet (the header is row 1)
        """
        text = csv_text.lstrip('\ufeff')
        rows: List[SheetRow] = []

        try:
            reader = csv.reader(io.StringIO(text, newline=''))
            header: Optional[List[str]] = None
            for row_number, record in enumerate(reader, start=1):
                if header is None:
                    header = [column.strip() for column in record]
                    continue

                row = {}
                for index, column in enumerate(header):
                    value = record[index] if index < len(record) else ''
                    # Later duplicate columns must not blank out an earlier value
                    if column in row and not value.strip():
                        continue
                    row[column] = value.strip()

                if any(row.values()):
                    rows.append(SheetRow(row, row_number))

        except csv.Error as e:
            raise SheetParseError(
                f"Sheet '{sheet_name}' is not valid CSV: {e}"
            ) from e

        return rows
