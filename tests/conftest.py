"""Shared fixtures for the test suite."""
import boto3
import pytest
from moto import mock_aws

EVENT_ID = '3f2b8c1e-9a4d-4e2f-8b6a-1c2d3e4f5a6b'
ADMIN_USER_ID = 'admin-sub-0001'
PLAIN_USER_ID = 'user-sub-0002'

CHILD_TABLES = ('program_items', 'participants', 'exhibitors')


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    """Fake AWS credentials so boto3 never reaches a real account."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')


@pytest.fixture
def dynamodb_tables():
    """Create mock events, child and role tables."""
    with mock_aws():
        dynamodb = boto3.resource('dynamodb', region_name='us-east-1')

        dynamodb.create_table(
            TableName='events',
            KeySchema=[{'AttributeName': 'id', 'KeyType': 'HASH'}],
            AttributeDefinitions=[{'AttributeName': 'id', 'AttributeType': 'S'}],
            BillingMode='PAY_PER_REQUEST'
        )

        for table_name in CHILD_TABLES:
            dynamodb.create_table(
                TableName=table_name,
                KeySchema=[
                    {'AttributeName': 'event_id', 'KeyType': 'HASH'},
                    {'AttributeName': 'external_id', 'KeyType': 'RANGE'}
                ],
                AttributeDefinitions=[
                    {'AttributeName': 'event_id', 'AttributeType': 'S'},
                    {'AttributeName': 'external_id', 'AttributeType': 'S'}
                ],
                BillingMode='PAY_PER_REQUEST'
            )

        dynamodb.create_table(
            TableName='user_roles',
            KeySchema=[
                {'AttributeName': 'user_id', 'KeyType': 'HASH'},
                {'AttributeName': 'role', 'KeyType': 'RANGE'}
            ],
            AttributeDefinitions=[
                {'AttributeName': 'user_id', 'AttributeType': 'S'},
                {'AttributeName': 'role', 'AttributeType': 'S'}
            ],
            BillingMode='PAY_PER_REQUEST'
        )

        dynamodb.Table('events').put_item(Item={
            'id': EVENT_ID,
            'name': 'Fagdag 2026',
            'slug': 'fagdag-2026'
        })
        dynamodb.Table('user_roles').put_item(
            Item={'user_id': ADMIN_USER_ID, 'role': 'admin'}
        )
        dynamodb.Table('user_roles').put_item(
            Item={'user_id': PLAIN_USER_ID, 'role': 'user'}
        )

        yield dynamodb
