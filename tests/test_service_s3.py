"""
Tests for S3 service operations.
"""

import pytest
from unittest.mock import patch, MagicMock
from botocore.exceptions import ClientError
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

from services import s3


def client_error(code, operation='GetObject'):
    return ClientError({'Error': {'Code': code, 'Message': code}}, operation)


class TestFetchEmailFromS3:
    """Test fetching email content from S3."""

    @patch('services.s3.s3_client')
    def test_fetch_email_success(self, mock_s3_client):
        """Test successful email fetch from S3."""
        # Setup
        sample_email = b"From: test@example.com\r\nSubject: Test\r\n\r\nBody content"
        mock_s3_client.get_object.return_value = {
            'Body': MagicMock(read=lambda: sample_email)
        }

        # Execute
        result = s3.fetch_email_from_s3('test-bucket', 'inbox/message-id')

        # Assert
        assert result == sample_email
        assert isinstance(result, bytes)
        mock_s3_client.get_object.assert_called_once_with(
            Bucket='test-bucket',
            Key='inbox/message-id'
        )

    @patch('services.s3.s3_client')
    def test_fetch_email_no_such_key(self, mock_s3_client):
        """Test fetch when S3 object doesn't exist."""
        mock_s3_client.get_object.side_effect = client_error('NoSuchKey')

        with pytest.raises(ValueError, match="Email file not found in S3"):
            s3.fetch_email_from_s3('test-bucket', 'missing-email')

    @patch('services.s3.s3_client')
    def test_fetch_email_no_such_bucket(self, mock_s3_client):
        """Test fetch when S3 bucket doesn't exist."""
        mock_s3_client.get_object.side_effect = client_error('NoSuchBucket')

        with pytest.raises(ValueError, match="S3 bucket not found"):
            s3.fetch_email_from_s3('missing-bucket', 'message-id')

    @patch('services.s3.s3_client')
    def test_fetch_email_access_denied(self, mock_s3_client):
        """Other client errors are re-raised unchanged."""
        mock_s3_client.get_object.side_effect = client_error('AccessDenied')

        with pytest.raises(ClientError):
            s3.fetch_email_from_s3('test-bucket', 'message-id')

    @patch('services.s3.s3_client')
    def test_fetch_email_generic_error(self, mock_s3_client):
        """Test fetch with generic S3 error."""
        mock_s3_client.get_object.side_effect = RuntimeError("S3 connection error")

        with pytest.raises(RuntimeError, match="S3 connection error"):
            s3.fetch_email_from_s3('test-bucket', 'message-id')

    @patch('services.s3.s3_client')
    def test_fetch_email_empty_arguments(self, mock_s3_client):
        with pytest.raises(ValueError, match="bucket name cannot be empty"):
            s3.fetch_email_from_s3('', 'message-id')
        with pytest.raises(ValueError, match="object key cannot be empty"):
            s3.fetch_email_from_s3('test-bucket', '')

        mock_s3_client.get_object.assert_not_called()

    @patch('services.s3.s3_client')
    def test_fetch_large_email(self, mock_s3_client):
        """Test fetching a large email file."""
        # Setup - 1MB email
        large_email = b"X" * (1024 * 1024)
        mock_s3_client.get_object.return_value = {
            'Body': MagicMock(read=lambda: large_email)
        }

        result = s3.fetch_email_from_s3('test-bucket', 'large-message-id')

        assert len(result) == 1024 * 1024


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
