"""
Email forwarding pipeline - core business logic.

This module handles the end-to-end forwarding of SES receipt notifications:
1. Parse SES notification (direct Lambda action or SQS/SNS delivery)
2. Translate original recipients (abort early if none resolves)
3. Fetch raw email from S3
4. Parse email, inject forwarding banner, build outbound options
5. Compose and send through SES
6. Return result (success or failure)

Each external call happens at most once; there are no retries.
"""

import json
import logging
from typing import Any, Callable, Dict, List, Optional

from .config import ForwarderConfig
from .errors import (
    ComposeFailed,
    ForwardingCancelled,
    ForwardingError,
    ParseFailed,
    RoutingExhausted,
    StorageFetchFailed,
    TransportFailed,
)
from .models import (
    Attachment,
    ForwardResult,
    InboundEnvelope,
    OutboundMessageOptions,
    ParsedMessage,
)
from .router import AddressRouter
from .transformer import MessageTransformer
from services import email as email_service
from services import s3 as s3_service
from services import ses as ses_service

logger = logging.getLogger(__name__)


def _as_address_list(value: Any) -> List[str]:
    """SES header fields can be a list or a single string."""
    if isinstance(value, list):
        return [str(v) for v in value if v]
    if isinstance(value, str) and value:
        return [value]
    return []


class EmailForwarder:
    """
    Forwards emails received by SES according to the configured mappings.

    One instance is created per Lambda container and reused; it holds only
    the immutable configuration and the components built from it.
    """

    def __init__(self, config: ForwarderConfig):
        """Initialize forwarder from configuration."""
        self.config = config
        self.router = AddressRouter(config.mapping)
        self.transformer = MessageTransformer(config.from_address)

    def process_ses_record(
        self,
        record: Dict[str, Any],
        is_cancelled: Optional[Callable[[], bool]] = None
    ) -> ForwardResult:
        """
        Forward a single record, converting any failure into a result.

        Args:
            record: SES Lambda record or SQS record with an SES notification
            is_cancelled: Returns True when the host wants the operation stopped

        Returns:
            ForwardResult with success=True or success=False (errors logged)
        """
        message_id = self._record_message_id(record)

        try:
            return self.forward(record, is_cancelled=is_cancelled)

        except ForwardingError as e:
            logger.error(f"Failed to forward {message_id}: {e}")
            return ForwardResult(
                success=False,
                message_id=message_id,
                error_kind=type(e).__name__,
                error_message=str(e)
            )

        except Exception as e:
            logger.error(f"Failed to process {message_id}: {e}", exc_info=True)
            return ForwardResult(
                success=False,
                message_id=message_id,
                error_kind=type(e).__name__,
                error_message=str(e)
            )

    def forward(
        self,
        record: Dict[str, Any],
        is_cancelled: Optional[Callable[[], bool]] = None
    ) -> ForwardResult:
        """
        Forward a single record.

        Raises:
            ValueError: If the notification is malformed
            RoutingExhausted: If no original address has a mapping
            ForwardingCancelled: If the host cancelled before the S3 fetch
            StorageFetchFailed, ParseFailed, ComposeFailed, TransportFailed
        """
        envelope = self.parse_ses_record(record)
        logger.info(
            f"Parsed: message={envelope.message_id}, from={envelope.sender}, "
            f"to={list(envelope.to_addresses)}, cc={list(envelope.cc_addresses)}"
        )

        # Routing is cheap; do it before any I/O so unroutable mail costs nothing
        resolved = self.router.resolve_all(envelope.to_addresses, envelope.cc_addresses)
        if resolved.is_empty:
            raise RoutingExhausted(envelope.to_addresses + envelope.cc_addresses)
        logger.info(f"Resolved: to={resolved.to_addresses}, cc={resolved.cc_addresses}")

        if is_cancelled is not None and is_cancelled():
            raise ForwardingCancelled(
                f"Cancelled before fetching message {envelope.message_id}"
            )

        raw_email = self._fetch_email(envelope)
        parsed = self._parse_email(raw_email)
        logger.info(
            f"Parsed email: text={len(parsed.text_body or '')}, "
            f"html={len(parsed.html_body or '')}, attachments={len(parsed.attachments)}"
        )

        options = self.transformer.transform(parsed, envelope, resolved)
        raw_message = self._compose_email(options)
        ses_message_id = self._send_email(raw_message)

        confirmation = (
            f"Forwarded e-mail for {', '.join(envelope.to_addresses)} "
            f"to {', '.join(resolved.to_addresses)}"
        )
        if resolved.cc_addresses:
            confirmation += f" (cc {', '.join(resolved.cc_addresses)})"
        logger.info(confirmation)

        return ForwardResult(
            success=True,
            message_id=envelope.message_id,
            confirmation=confirmation,
            ses_message_id=ses_message_id
        )

    def parse_ses_record(self, record: Dict[str, Any]) -> InboundEnvelope:
        """
        Extract the envelope from an SES notification record.

        Handles direct SES Lambda invocations as well as SQS deliveries,
        optionally wrapped in SNS.

        Args:
            record: Lambda event record

        Returns:
            InboundEnvelope: Immutable envelope metadata

        Raises:
            ValueError: If notification structure is invalid
            json.JSONDecodeError: If JSON parsing fails
        """
        notification = self._unwrap_notification(record)

        mail = notification.get('mail')
        if not isinstance(mail, dict):
            raise ValueError("SES notification missing 'mail' field")
        receipt = notification.get('receipt') or {}
        common_headers = mail.get('commonHeaders') or {}

        message_id = mail.get('messageId')
        if not message_id:
            raise ValueError("SES notification missing 'mail.messageId'")

        # Receiving mailbox selects the storage directory
        recipients = receipt.get('recipients') or mail.get('destination') or []
        mailbox = recipients[0] if recipients else None

        action = receipt.get('action') or {}
        object_key = action.get('objectKey')
        if not object_key:
            object_key = self.config.mailbox_directories.storage_key(message_id, mailbox)

        return InboundEnvelope(
            message_id=message_id,
            subject=common_headers.get('subject') or '',
            sender=', '.join(_as_address_list(common_headers.get('from'))) or mail.get('source', ''),
            date=common_headers.get('date') or mail.get('timestamp', ''),
            to_addresses=tuple(_as_address_list(common_headers.get('to'))),
            cc_addresses=tuple(_as_address_list(common_headers.get('cc'))),
            storage_key=object_key,
            mailbox=mailbox,
            bucket_name=action.get('bucketName')
        )

    def _unwrap_notification(self, record: Dict[str, Any]) -> Dict[str, Any]:
        # Direct SES -> Lambda receipt action
        if 'ses' in record:
            return record['ses']

        if 'body' not in record:
            raise ValueError("Record is neither an SES event nor an SQS message")

        body = json.loads(record['body'])

        # Check if wrapped in SNS (optional setup: SES -> SNS -> SQS)
        if body.get('Type') == 'Notification' and 'Message' in body:
            logger.info("Unwrapping SNS message (SES -> SNS -> SQS)")
            return json.loads(body['Message'])
        return body

    def _record_message_id(self, record: Dict[str, Any]) -> str:
        ses = record.get('ses')
        if isinstance(ses, dict):
            return (ses.get('mail') or {}).get('messageId', 'UNKNOWN')
        return record.get('messageId', 'UNKNOWN')

    def _fetch_email(self, envelope: InboundEnvelope) -> bytes:
        bucket = envelope.bucket_name or self.config.bucket_name
        logger.info(f"Fetching email from: s3://{bucket}/{envelope.storage_key}")

        try:
            raw_email = s3_service.fetch_email_from_s3(bucket, envelope.storage_key)
        except Exception as e:
            raise StorageFetchFailed(bucket, envelope.storage_key, str(e)) from e

        logger.info(f"Fetched {len(raw_email):,} bytes from S3")
        return raw_email

    def _parse_email(self, raw_email: bytes) -> ParsedMessage:
        try:
            parsed = email_service.extract_email_body(raw_email)
        except Exception as e:
            raise ParseFailed(f"Failed to parse email: {e}") from e

        # Convert attachment dicts to Attachment objects
        attachments = [
            Attachment(
                filename=att.get('filename'),
                content=att.get('content'),
                content_type=att.get('content_type') or 'application/octet-stream',
                content_disposition=att.get('content_disposition'),
                content_id=att.get('content_id'),
                charset=att.get('charset'),
                length=att.get('length', 0),
                transfer_encoding=att.get('transfer_encoding')
            )
            for att in parsed.get('attachments', [])
        ]

        return ParsedMessage(
            text_body=parsed.get('text_body') or None,
            html_body=parsed.get('html_body') or None,
            attachments=attachments
        )

    def _compose_email(self, options: OutboundMessageOptions) -> bytes:
        try:
            return email_service.compose_email(**options.to_composer_kwargs())
        except Exception as e:
            raise ComposeFailed(f"Failed to compose forwarded email: {e}") from e

    def _send_email(self, raw_message: bytes) -> str:
        try:
            return ses_service.send_raw_email(raw_message)
        except Exception as e:
            raise TransportFailed(f"SES rejected forwarded email: {e}") from e
