"""DynamoDB store for events and their sheet-derived child collections."""
import logging
import time
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from processor.models import Record

logger = logging.getLogger(__name__)


class EventStore:
    """Manager for event and child-table DynamoDB operations."""

    BATCH_SIZE = 25  # DynamoDB batch operation limit

    def __init__(
        self,
        events_table: str = 'events',
        program_table: str = 'program_items',
        participants_table: str = 'participants',
        exhibitors_table: str = 'exhibitors',
        region_name: Optional[str] = None
    ):
        """
        Initialize DynamoDB resource and table references.

        Args:
            events_table: Table keyed by event 'id'
            program_table: Child table keyed by 'event_id' + 'external_id'
            participants_table: Child table keyed by 'event_id' + 'external_id'
            exhibitors_table: Child table keyed by 'event_id' + 'external_id'
            region_name: AWS region; boto3's default chain when omitted
        """
        self.dynamodb = boto3.resource('dynamodb', region_name=region_name)
        self.events = self.dynamodb.Table(events_table)
        self.child_tables = {
            'program': self.dynamodb.Table(program_table),
            'participants': self.dynamodb.Table(participants_table),
            'exhibitors': self.dynamodb.Table(exhibitors_table),
        }
        logger.info(f"Initialized EventStore for table: {events_table}")

    def get_event(self, event_id: str) -> Optional[dict]:
        """Return the event item, or None if it does not exist."""
        response = self.events.get_item(Key={'id': event_id})
        return response.get('Item')

    def get_items(self, entity: str, event_id: str) -> List[dict]:
        """
        Retrieve all child rows of one entity type for an event.

        Args:
            entity: One of 'program', 'participants', 'exhibitors'
            event_id: Owning event id

        Returns:
            List of DynamoDB items ordered by external_id
        """
        table = self._child_table(entity)
        return self._query_all(table, event_id)

    def replace_items(
        self,
        entity: str,
        event_id: str,
        records: Sequence[Record]
    ) -> int:
        """
        Replace every child row of one entity type for an event.

        All existing rows are deleted first, then the new records are
        written. This is not transactional: if the write fails after the
        delete, the event is left with no rows for this entity type.

        Args:
            entity: One of 'program', 'participants', 'exhibitors'
            event_id: Owning event id
            records: Validated records to store

        Returns:
            Count of written records

        Raises:
            ClientError: If a delete or write fails
        """
        table = self._child_table(entity)

        deleted = self.delete_items(entity, event_id)
        logger.info(
            f"Replacing {entity} for event {event_id}: "
            f"{deleted} deleted, {len(records)} to write"
        )

        created_at = datetime.now(timezone.utc).isoformat()
        written = 0
        for i in range(0, len(records), self.BATCH_SIZE):
            batch = records[i:i + self.BATCH_SIZE]
            with table.batch_writer() as writer:
                for record in batch:
                    writer.put_item(
                        Item=self._record_to_item(record, event_id, created_at)
                    )
                    written += 1

        logger.info(f"Successfully wrote {written} {entity} rows")
        return written

    def delete_items(self, entity: str, event_id: str) -> int:
        """
        Delete all child rows of one entity type for an event.

        Returns:
            Count of deleted rows
        """
        table = self._child_table(entity)
        keys = [
            {'event_id': item['event_id'], 'external_id': item['external_id']}
            for item in self._query_all(table, event_id, keys_only=True)
        ]

        deleted = 0
        for i in range(0, len(keys), self.BATCH_SIZE):
            batch = keys[i:i + self.BATCH_SIZE]
            with table.batch_writer() as writer:
                for key in batch:
                    writer.delete_item(Key=key)
                    deleted += 1

        return deleted

    def mark_synced(self, event_id: str, synced_at: str) -> None:
        """Record when the event's sheet data was last synchronized."""
        self.events.update_item(
            Key={'id': event_id},
            UpdateExpression='SET last_synced_at = :synced_at',
            ExpressionAttributeValues={':synced_at': synced_at}
        )

    def acquire_sync_lock(self, event_id: str, lease_seconds: int = 900) -> Optional[int]:
        """
        Take the per-event sync lease.

        The lease is a 'sync_lock_until' epoch timestamp on the event item.
        It can be taken when absent or expired.

        Returns:
            The lease expiry, which the holder passes back to
            release_sync_lock, or None if another sync holds the lease
        """
        now = int(time.time())
        until = now + lease_seconds
        try:
            self.events.update_item(
                Key={'id': event_id},
                UpdateExpression='SET sync_lock_until = :until',
                ConditionExpression=(
                    'attribute_exists(#id) AND '
                    '(attribute_not_exists(sync_lock_until) OR sync_lock_until < :now)'
                ),
                ExpressionAttributeNames={'#id': 'id'},
                ExpressionAttributeValues={
                    ':until': until,
                    ':now': now
                }
            )
            return until
        except ClientError as e:
            if e.response['Error']['Code'] == 'ConditionalCheckFailedException':
                logger.warning(f"Sync already in progress for event {event_id}")
                return None
            raise

    def release_sync_lock(self, event_id: str, until: int) -> None:
        """Remove the lease, unless it has expired and another sync took it over."""
        try:
            self.events.update_item(
                Key={'id': event_id},
                UpdateExpression='REMOVE sync_lock_until',
                ConditionExpression='sync_lock_until = :until',
                ExpressionAttributeValues={':until': until}
            )
        except ClientError as e:
            if e.response['Error']['Code'] != 'ConditionalCheckFailedException':
                raise
            logger.warning(
                f"Sync lease for event {event_id} was taken over before release"
            )

    def _child_table(self, entity: str):
        if entity not in self.child_tables:
            raise ValueError(f"Unknown entity type: {entity}")
        return self.child_tables[entity]

    def _query_all(self, table, event_id: str, keys_only: bool = False) -> List[dict]:
        kwargs = {'KeyConditionExpression': Key('event_id').eq(event_id)}
        if keys_only:
            kwargs['ProjectionExpression'] = 'event_id, external_id'

        response = table.query(**kwargs)
        items = response.get('Items', [])

        # Handle pagination
        while 'LastEvaluatedKey' in response:
            response = table.query(
                ExclusiveStartKey=response['LastEvaluatedKey'],
                **kwargs
            )
            items.extend(response.get('Items', []))

        return items

    def _record_to_item(self, record: Record, event_id: str, created_at: str) -> Dict:
        """
        Convert a record to a DynamoDB item.

        Optional fields that are None are left out of the item.
        """
        item = {'event_id': event_id, 'created_at': created_at}
        for name, value in asdict(record).items():
            if value is not None:
                item[name] = value
        return item
