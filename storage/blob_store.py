"""Key-value blob stores holding one text value per key."""
import logging
from typing import Dict, Optional

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)


class BlobStore:
    """Interface for a key-value store of text blobs."""

    def get(self, key: str) -> Optional[str]:
        """Return the value stored under key, or None if absent."""
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        raise NotImplementedError

    def remove(self, key: str) -> None:
        """Delete key. Removing an absent key is not an error."""
        raise NotImplementedError


class InMemoryBlobStore(BlobStore):
    """Dict-backed blob store."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class DynamoDBBlobStore(BlobStore):
    """Blob store keeping one DynamoDB item per key."""

    def __init__(
        self,
        table_name: str,
        key_attribute: str = 'storage_key',
        value_attribute: str = 'value'
    ):
        """
        Initialize DynamoDB client and table reference.

        Args:
            table_name: Name of the DynamoDB table
            key_attribute: Hash key attribute holding the blob key
            value_attribute: Attribute holding the blob text
        """
        self.table_name = table_name
        self.key_attribute = key_attribute
        self.value_attribute = value_attribute
        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized DynamoDBBlobStore for table: {table_name}")

    def get(self, key: str) -> Optional[str]:
        """
        Read the blob stored under key.

        Args:
            key: Blob key

        Returns:
            Blob text, or None if no item exists for the key
        """
        try:
            response = self.table.get_item(
                Key={self.key_attribute: key},
                ConsistentRead=True
            )
        except ClientError as e:
            logger.error(f"Error reading key '{key}' from DynamoDB: {e}")
            raise

        item = response.get('Item')
        if item is None:
            logger.info(f"No item found for key '{key}'")
            return None
        return item.get(self.value_attribute)

    def set(self, key: str, value: str) -> None:
        """
        Write the blob under key, replacing the whole item.

        Args:
            key: Blob key
            value: Blob text
        """
        try:
            self.table.put_item(
                Item={self.key_attribute: key, self.value_attribute: value}
            )
        except ClientError as e:
            logger.error(f"Error writing key '{key}' to DynamoDB: {e}")
            raise
        logger.info(f"Wrote {len(value)} characters under key '{key}'")

    def remove(self, key: str) -> None:
        try:
            self.table.delete_item(Key={self.key_attribute: key})
        except ClientError as e:
            logger.error(f"Error deleting key '{key}' from DynamoDB: {e}")
            raise
        logger.info(f"Removed key '{key}'")
