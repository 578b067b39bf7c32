"""
Tests for SES service operations.
"""

import pytest
from unittest.mock import patch
from botocore.exceptions import ClientError
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

from services import ses


class TestSendRawEmail:
    """Test sending composed messages through SES."""

    @patch('services.ses.ses_client')
    def test_send_success(self, mock_ses_client):
        raw = b"From: unit@test.com\r\nTo: santa@north.pole\r\n\r\nHello"
        mock_ses_client.send_raw_email.return_value = {'MessageId': 'ses-message-1'}

        result = ses.send_raw_email(raw)

        assert result == 'ses-message-1'
        mock_ses_client.send_raw_email.assert_called_once_with(
            RawMessage={'Data': raw}
        )

    @patch('services.ses.ses_client')
    def test_send_empty_message(self, mock_ses_client):
        with pytest.raises(ValueError, match="cannot be empty"):
            ses.send_raw_email(b'')

        mock_ses_client.send_raw_email.assert_not_called()

    @patch('services.ses.ses_client')
    def test_send_rejected(self, mock_ses_client):
        mock_ses_client.send_raw_email.side_effect = ClientError(
            {
                'Error': {
                    'Code': 'MessageRejected',
                    'Message': 'Email address is not verified.'
                }
            },
            'SendRawEmail'
        )

        with pytest.raises(ClientError):
            ses.send_raw_email(b"From: unit@test.com\r\n\r\nHello")


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
