"""AWS Lambda handler for the event spreadsheet sync endpoint."""
import base64
import json
import logging
import os
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from auth.cognito_authenticator import (
    AuthenticationError,
    CognitoAuthenticator,
    extract_bearer_token,
)
from processor.row_processor import RowProcessor
from sheets.sheet_fetcher import SheetFetcher
from storage.event_store import EventStore
from storage.role_store import RoleStore
from sync.dataset_synchronizer import DatasetSynchronizer

EVENT_ID_RE = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$',
    re.IGNORECASE
)
SHEETS_URL_RE = re.compile(r'^https://docs\.google\.com/spreadsheets/d/([a-zA-Z0-9-_]+)')

CORS_ALLOW_HEADERS = 'authorization, x-client-info, apikey, content-type'


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


@dataclass
class SyncSettings:
    """Runtime configuration read from environment variables."""
    log_level: str = 'INFO'
    timeout_seconds: int = 30
    max_sheet_bytes: int = 10 * 1024 * 1024
    max_sheet_rows: int = 10000
    fetch_max_retries: int = 3
    sync_lock_seconds: int = 900
    events_table: str = 'events'
    program_table: str = 'program_items'
    participants_table: str = 'participants'
    exhibitors_table: str = 'exhibitors'
    user_roles_table: str = 'user_roles'
    admin_roles: List[str] = field(default_factory=lambda: ['admin', 'super_admin'])
    allowed_origin: str = '*'
    region: Optional[str] = None

    @classmethod
    def from_env(cls) -> 'SyncSettings':
        admin_roles = [
            role.strip()
            for role in os.environ.get('ADMIN_ROLES', 'admin,super_admin').split(',')
            if role.strip()
        ]
        return cls(
            log_level=os.environ.get('LOG_LEVEL', 'INFO'),
            timeout_seconds=int(os.environ.get('TIMEOUT_SECONDS', '30')),
            max_sheet_bytes=int(os.environ.get('MAX_SHEET_BYTES', str(10 * 1024 * 1024))),
            max_sheet_rows=int(os.environ.get('MAX_SHEET_ROWS', '10000')),
            fetch_max_retries=int(os.environ.get('FETCH_MAX_RETRIES', '3')),
            sync_lock_seconds=int(os.environ.get('SYNC_LOCK_SECONDS', '900')),
            events_table=os.environ.get('EVENTS_TABLE', 'events'),
            program_table=os.environ.get('PROGRAM_TABLE', 'program_items'),
            participants_table=os.environ.get('PARTICIPANTS_TABLE', 'participants'),
            exhibitors_table=os.environ.get('EXHIBITORS_TABLE', 'exhibitors'),
            user_roles_table=os.environ.get('USER_ROLES_TABLE', 'user_roles'),
            admin_roles=admin_roles,
            allowed_origin=os.environ.get('ALLOWED_ORIGIN', '*'),
            region=os.environ.get('AWS_REGION') or None
        )


class RequestError(Exception):
    """Request-level failure that aborts the invocation before any sync."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code


def build_response(
    status_code: int,
    body: Optional[Dict[str, Any]],
    allowed_origin: str = '*'
) -> Dict[str, Any]:
    """Build an API Gateway proxy response with CORS headers."""
    return {
        'statusCode': status_code,
        'headers': {
            'Access-Control-Allow-Origin': allowed_origin,
            'Access-Control-Allow-Headers': CORS_ALLOW_HEADERS,
            'Access-Control-Allow-Methods': 'POST, OPTIONS',
            'Content-Type': 'application/json'
        },
        'body': json.dumps(body, ensure_ascii=False) if body is not None else ''
    }


def parse_sync_request(event: Dict[str, Any]) -> Tuple[str, str]:
    """
    Validate the request body.

    Args:
        event: API Gateway proxy event

    Returns:
        Tuple of (event_id, sheet_id)

    Raises:
        RequestError: 400 if the body, eventId or sheetsUrl is malformed
    """
    raw_body = event.get('body') or ''
    if event.get('isBase64Encoded') and raw_body:
        try:
            raw_body = base64.b64decode(raw_body).decode('utf-8')
        except (ValueError, UnicodeDecodeError) as e:
            raise RequestError(400, 'Request body is not valid base64') from e

    try:
        payload = json.loads(raw_body) if raw_body else {}
    except json.JSONDecodeError as e:
        raise RequestError(400, 'Request body must be valid JSON') from e

    if not isinstance(payload, dict):
        raise RequestError(400, 'Request body must be a JSON object')

    event_id = payload.get('eventId')
    if not isinstance(event_id, str) or not EVENT_ID_RE.match(event_id):
        raise RequestError(400, 'Invalid eventId')

    sheets_url = payload.get('sheetsUrl')
    match = SHEETS_URL_RE.match(sheets_url) if isinstance(sheets_url, str) else None
    if not match:
        raise RequestError(400, 'Invalid Google Sheets URL')

    return event_id.lower(), match.group(1)


def handle_sync_request(
    event: Dict[str, Any],
    settings: SyncSettings,
    authenticator: CognitoAuthenticator,
    role_store: RoleStore,
    event_store: EventStore,
    synchronizer: DatasetSynchronizer
) -> Tuple[int, Dict[str, Any]]:
    """
    Authenticate, authorize, validate and run a sync.

    Args:
        event: API Gateway proxy event
        settings: Runtime configuration
        authenticator: Verifies the caller's bearer token
        role_store: Looks up the caller's roles
        event_store: Event and child-table store
        synchronizer: Runs the per-entity pipelines

    Returns:
        Tuple of (HTTP status code, response body)

    Raises:
        RequestError: For 401/403/400/404/409 outcomes
    """
    logger = logging.getLogger(__name__)

    token = extract_bearer_token(event.get('headers'))
    try:
        user = authenticator.authenticate(token)
    except AuthenticationError as e:
        raise RequestError(401, str(e)) from e

    if not role_store.has_any_role(user.user_id, settings.admin_roles):
        raise RequestError(403, 'Admin role required')

    event_id, sheet_id = parse_sync_request(event)

    if event_store.get_event(event_id) is None:
        raise RequestError(404, 'Event not found')

    lock_token = event_store.acquire_sync_lock(event_id, settings.sync_lock_seconds)
    if lock_token is None:
        raise RequestError(409, 'A sync is already running for this event')

    logger.info(f"Syncing sheets for event: {event_id}")
    try:
        result = synchronizer.sync_all(sheet_id, event_id)
        timestamp = datetime.now(timezone.utc).isoformat(timespec='milliseconds')
        timestamp = timestamp.replace('+00:00', 'Z')

        try:
            event_store.mark_synced(event_id, timestamp)
        except Exception as e:
            logger.warning(f"Failed to record last_synced_at for {event_id}: {e}")
    finally:
        event_store.release_sync_lock(event_id, lock_token)

    if result.has_errors:
        logger.warning(
            f"Sync for event {event_id} completed with errors",
            extra={'results': result.to_dict()}
        )

    # Entity-level failures are reported in results, not in the status code
    return 200, {
        'success': True,
        'results': result.to_dict(),
        'timestamp': timestamp
    }


def _http_method(event: Dict[str, Any]) -> str:
    method = event.get('httpMethod')
    if not method:
        request_context = event.get('requestContext') or {}
        method = (request_context.get('http') or {}).get('method')
    return (method or '').upper()


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler for spreadsheet sync requests.

    Args:
        event: API Gateway proxy event with a JSON body
            {"sheetsUrl": ..., "eventId": ...} and a bearer token
        context: Lambda context object

    Returns:
        API Gateway proxy response
    """
    settings = SyncSettings.from_env()

    setup_logging(settings.log_level)
    logger = logging.getLogger(__name__)

    if _http_method(event) == 'OPTIONS':
        return build_response(200, None, settings.allowed_origin)

    start_time = time.time()
    logger.info("Lambda execution started")

    try:
        authenticator = CognitoAuthenticator(region_name=settings.region)
        role_store = RoleStore(
            table_name=settings.user_roles_table,
            region_name=settings.region
        )
        event_store = EventStore(
            events_table=settings.events_table,
            program_table=settings.program_table,
            participants_table=settings.participants_table,
            exhibitors_table=settings.exhibitors_table,
            region_name=settings.region
        )
        fetcher = SheetFetcher(
            timeout=settings.timeout_seconds,
            max_bytes=settings.max_sheet_bytes,
            max_rows=settings.max_sheet_rows,
            max_retries=settings.fetch_max_retries
        )
        synchronizer = DatasetSynchronizer(fetcher, RowProcessor(), event_store)

        status_code, body = handle_sync_request(
            event,
            settings,
            authenticator,
            role_store,
            event_store,
            synchronizer
        )

        duration = time.time() - start_time
        logger.info(
            "Lambda execution completed successfully",
            extra={'duration_seconds': round(duration, 2)}
        )
        return build_response(status_code, body, settings.allowed_origin)

    except RequestError as e:
        logger.warning(
            f"Sync request rejected ({e.status_code}): {e}",
            extra={'status_code': e.status_code}
        )
        return build_response(
            e.status_code,
            {'success': False, 'error': str(e)},
            settings.allowed_origin
        )

    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return build_response(
            500,
            {'success': False, 'error': str(e)},
            settings.allowed_origin
        )
