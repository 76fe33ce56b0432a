"""Unit tests for blob stores."""
import json
from unittest.mock import patch

import boto3
import pytest
from botocore.exceptions import ClientError
from moto import mock_aws

from storage.blob_store import DynamoDBBlobStore, InMemoryBlobStore
from storage.persistence import PersistenceAdapter
from tracker.item_store import ItemStore


@pytest.fixture
def aws_env(monkeypatch):
    """Point boto3 at a fake region with fake credentials."""
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')


@pytest.fixture
def dynamodb_table(aws_env):
    """Create a mock DynamoDB table for testing."""
    with mock_aws():
        dynamodb = boto3.resource('dynamodb', region_name='us-east-1')

        table = dynamodb.create_table(
            TableName='test-event-list',
            KeySchema=[
                {'AttributeName': 'storage_key', 'KeyType': 'HASH'}
            ],
            AttributeDefinitions=[
                {'AttributeName': 'storage_key', 'AttributeType': 'S'}
            ],
            BillingMode='PAY_PER_REQUEST'
        )

        yield table


@pytest.fixture
def blob_store(dynamodb_table):
    """Create DynamoDBBlobStore instance with mock table."""
    return DynamoDBBlobStore('test-event-list')


def test_get_missing_key(blob_store):
    """Test get returns None when no item exists."""
    assert blob_store.get('thingListEvents') is None


def test_set_then_get(blob_store, dynamodb_table):
    """Test set writes one item per key and get reads it back."""
    blob_store.set('thingListEvents', '[]')

    assert blob_store.get('thingListEvents') == '[]'
    item = dynamodb_table.get_item(Key={'storage_key': 'thingListEvents'})['Item']
    assert item['value'] == '[]'


def test_set_overwrites(blob_store):
    """Test a second set replaces the first value."""
    blob_store.set('thingListEvents', '[1]')
    blob_store.set('thingListEvents', '[2]')

    assert blob_store.get('thingListEvents') == '[2]'


def test_remove(blob_store):
    """Test remove deletes only the given key."""
    blob_store.set('thingListEvents', '[]')
    blob_store.set('otherKey', 'other')

    blob_store.remove('thingListEvents')

    assert blob_store.get('thingListEvents') is None
    assert blob_store.get('otherKey') == 'other'


def test_remove_missing_key(blob_store):
    """Test removing an absent key does not raise."""
    blob_store.remove('never-written')


def test_client_error_propagates(blob_store):
    """Test DynamoDB errors are re-raised to the caller."""
    error = ClientError(
        {'Error': {'Code': 'ProvisionedThroughputExceededException', 'Message': 'slow down'}},
        'PutItem'
    )
    with patch.object(blob_store.table, 'put_item', side_effect=error):
        with pytest.raises(ClientError):
            blob_store.set('thingListEvents', '[]')


def test_persistence_round_trip_through_dynamodb(blob_store):
    """Test saving and loading events through DynamoDB keeps their order."""
    store = ItemStore(id_source=lambda: 1)
    store.create("First")
    store.create("Second", "with note")
    store.move(2, 1)
    adapter = PersistenceAdapter(blob_store)

    adapter.save(store.list())
    loaded = adapter.load()

    assert [(e.id, e.name, e.sort_order) for e in loaded] == [
        (2, "Second", 0),
        (1, "First", 1),
    ]
    assert json.loads(blob_store.get('thingListEvents'))[0]['note'] == 'with note'


def test_in_memory_store():
    """Test the in-memory store get, set and remove."""
    store = InMemoryBlobStore({'a': '1'})

    store.set('b', '2')
    store.remove('a')
    store.remove('missing')

    assert store.get('a') is None
    assert store.get('b') == '2'
    assert store.data == {'b': '2'}
