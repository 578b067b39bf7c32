"""
SES outbound operations for the forwarder.
"""

import logging

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

# Same timeout policy as the S3 client: one attempt, bounded waits
ses_config = Config(
    retries={
        'max_attempts': 1,
        'mode': 'standard'
    },
    connect_timeout=10,
    read_timeout=30
)

# Module-level client (reused across invocations)
ses_client = boto3.client('ses', config=ses_config)
logger.info("SES client initialized with timeouts: connect=10s, read=30s, max_attempts=1")


def send_raw_email(raw_message: bytes) -> str:
    """
    Send a composed RFC 5322 message through SES.

    Recipients are taken from the To and Cc headers of the message.

    Args:
        raw_message: Complete message bytes

    Returns:
        str: SES MessageId of the sent message

    Raises:
        ValueError: If the message is empty
        ClientError: If SES rejects the message
    """
    if not raw_message:
        raise ValueError("Raw message cannot be empty")

    try:
        logger.info(f"Sending raw email via SES: size={len(raw_message):,} bytes")

        response = ses_client.send_raw_email(RawMessage={'Data': raw_message})
        message_id = response.get('MessageId', '')

        logger.info(f"SES accepted message: {message_id}")
        return message_id

    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code', 'Unknown')
        error_message = e.response.get('Error', {}).get('Message', str(e))

        logger.error(
            f"Failed to send raw email via SES: "
            f"error_code={error_code}, error_message={error_message}"
        )

        raise
