"""Bearer token verification against an Amazon Cognito user pool."""
import logging
from dataclasses import dataclass
from typing import Mapping, Optional

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Raised when a bearer token is missing, invalid or expired."""


@dataclass
class AuthenticatedUser:
    """Caller identity resolved from an access token."""
    user_id: str
    username: str
    email: Optional[str] = None


def extract_bearer_token(headers: Optional[Mapping[str, str]]) -> Optional[str]:
    """
    Pull the token out of an 'Authorization: Bearer <token>' header.

    Header names are matched case-insensitively, since API Gateway passes
    them through as the client sent them.
    """
    if not headers:
        return None

    for name, value in headers.items():
        if name.lower() != 'authorization' or not value:
            continue
        scheme, _, token = value.strip().partition(' ')
        if scheme.lower() == 'bearer' and token.strip():
            return token.strip()

    return None


class CognitoAuthenticator:
    """Resolves access tokens to users via Cognito GetUser."""

    REJECTED_TOKEN_CODES = ('NotAuthorizedException', 'UserNotFoundException')

    def __init__(self, region_name: Optional[str] = None):
        self.client = boto3.client('cognito-idp', region_name=region_name)

    def authenticate(self, token: Optional[str]) -> AuthenticatedUser:
        """
        Verify an access token.

        Args:
            token: Cognito access token from the Authorization header

        Returns:
            AuthenticatedUser whose user_id is the Cognito 'sub'

        Raises:
            AuthenticationError: If the token is missing or rejected
            ClientError: If Cognito fails for any other reason
        """
        if not token:
            raise AuthenticationError('Missing authorization header')

        try:
            response = self.client.get_user(AccessToken=token)
        except ClientError as e:
            code = e.response['Error']['Code']
            if code not in self.REJECTED_TOKEN_CODES:
                logger.error(f"Cognito GetUser failed: {code}")
                raise
            logger.warning(f"Access token rejected: {code}")
            raise AuthenticationError('Invalid or expired token') from e

        attributes = {
            attr['Name']: attr['Value']
            for attr in response.get('UserAttributes', [])
        }
        username = response['Username']

        return AuthenticatedUser(
            user_id=attributes.get('sub', username),
            username=username,
            email=attributes.get('email')
        )
