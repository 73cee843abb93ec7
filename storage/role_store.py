"""DynamoDB lookup of user roles."""
import logging
from typing import Iterable, Optional, Set

import boto3
from boto3.dynamodb.conditions import Key

logger = logging.getLogger(__name__)


class RoleStore:
    """Reads role assignments from the user_roles table."""

    def __init__(self, table_name: str = 'user_roles', region_name: Optional[str] = None):
        """
        Args:
            table_name: Table keyed by 'user_id' (hash) and 'role' (range)
            region_name: AWS region; boto3's default chain when omitted
        """
        self.dynamodb = boto3.resource('dynamodb', region_name=region_name)
        self.table = self.dynamodb.Table(table_name)

    def get_roles(self, user_id: str) -> Set[str]:
        response = self.table.query(
            KeyConditionExpression=Key('user_id').eq(user_id)
        )
        return {item['role'] for item in response.get('Items', [])}

    def has_any_role(self, user_id: str, roles: Iterable[str]) -> bool:
        """Check whether the user holds at least one of the given roles."""
        granted = self.get_roles(user_id)
        allowed = set(roles)
        if granted & allowed:
            return True

        logger.info(
            f"User {user_id} lacks required role",
            extra={'required_roles': sorted(allowed)}
        )
        return False
