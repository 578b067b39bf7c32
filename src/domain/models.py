"""
Data models for the email forwarding domain.

These type-safe data structures define clear contracts between components.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Mapping, Tuple

# "Jane Doe <jane@example.com>" -> "jane@example.com"
_ANGLE_ADDRESS = re.compile(r'<([^<>]*)>\s*$')


@dataclass(frozen=True)
class AddressMapping:
    """
    Address translation tables, listed in order of precedence.

    Attributes:
        email_to_email: Exact address -> address
        domain_to_email: Domain -> fixed address
        domain_to_domain: Domain -> domain (local part is kept)
    """
    email_to_email: Mapping[str, str] = field(default_factory=dict)
    domain_to_email: Mapping[str, str] = field(default_factory=dict)
    domain_to_domain: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'AddressMapping':
        """
        Build mapping from the configuration layout.

        Args:
            data: Dict with optional emailToEmail, domainToEmail and
                domainToDomain tables

        Returns:
            AddressMapping with missing tables left empty
        """
        data = data or {}
        return cls(
            email_to_email=dict(data.get('emailToEmail') or {}),
            domain_to_email=dict(data.get('domainToEmail') or {}),
            domain_to_domain=dict(data.get('domainToDomain') or {}),
        )


@dataclass(frozen=True)
class ParsedAddress:
    """
    Email address split into its routing parts.

    Attributes:
        address: Bare address (display name removed)
        local_part: Portion before the first "@"
        domain: Portion after the first "@"
        subdomains: Domain labels excluding the top label
    """
    address: str
    local_part: str
    domain: str
    subdomains: Tuple[str, ...]

    @classmethod
    def parse(cls, raw: str) -> Optional['ParsedAddress']:
        """
        Parse an address string.

        Returns:
            ParsedAddress, or None if the address has no "@"

        Example:
            >>> ParsedAddress.parse("Jane <jane@mail.example.com>").subdomains
            ('mail', 'example')
        """
        if not raw:
            return None

        address = raw.strip()
        match = _ANGLE_ADDRESS.search(address)
        if match:
            address = match.group(1).strip()

        if '@' not in address:
            return None

        local_part, _, domain = address.partition('@')
        labels = domain.split('.')
        return cls(
            address=address,
            local_part=local_part,
            domain=domain,
            subdomains=tuple(labels[:-1]),
        )

    @property
    def parent_domains(self) -> List[str]:
        """Domain followed by each parent domain that keeps two labels."""
        labels = self.domain.split('.')
        return ['.'.join(labels[i:]) for i in range(max(len(labels) - 1, 1))]


@dataclass(frozen=True)
class InboundEnvelope:
    """
    Header metadata of the received message, read from the SES notification.

    Attributes:
        message_id: SES message identifier
        subject: Original subject line
        sender: Original From header
        date: Original Date header
        to_addresses: Original "to" addresses in order
        cc_addresses: Original "cc" addresses in order
        storage_key: S3 object key of the raw message
        mailbox: Receiving mailbox address (selects the storage directory)
        bucket_name: Bucket from the S3 receipt action, if any
    """
    message_id: str
    subject: str
    sender: str
    date: str
    to_addresses: Tuple[str, ...]
    cc_addresses: Tuple[str, ...]
    storage_key: str
    mailbox: Optional[str] = None
    bucket_name: Optional[str] = None


@dataclass
class ResolvedRecipients:
    """Translated recipient lists, unmapped addresses already dropped."""
    to_addresses: List[str] = field(default_factory=list)
    cc_addresses: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True when nothing resolved in either list."""
        return not self.to_addresses and not self.cc_addresses


@dataclass
class Attachment:
    """
    Email attachment, same record on the inbound and outbound side.

    Attributes:
        filename: Original filename
        content: Decoded binary content (None if the part had no payload)
        content_type: MIME type (e.g., "image/png", "application/pdf")
        content_disposition: "attachment" or "inline"
        content_id: Content-ID header (referenced by cid: URLs in HTML)
        charset: Charset parameter of the part, if any
        length: Size of the decoded content in bytes
        transfer_encoding: Original Content-Transfer-Encoding
    """
    filename: Optional[str]
    content: Optional[bytes]
    content_type: str = 'application/octet-stream'
    content_disposition: Optional[str] = None
    content_id: Optional[str] = None
    charset: Optional[str] = None
    length: int = 0
    transfer_encoding: Optional[str] = None

    def to_dict_for_composer(self) -> Dict[str, Any]:
        return {
            'filename': self.filename,
            'content': self.content,
            'content_type': self.content_type,
            'content_disposition': self.content_disposition,
            'content_id': self.content_id,
            'charset': self.charset,
            'transfer_encoding': self.transfer_encoding,
        }


@dataclass
class ParsedMessage:
    """
    Parsed inbound message content.

    Attributes:
        text_body: Plain text body (None if not present)
        html_body: HTML body (None if not present)
        attachments: List of Attachment objects
    """
    text_body: Optional[str] = None
    html_body: Optional[str] = None
    attachments: List[Attachment] = field(default_factory=list)


@dataclass
class OutboundMessageOptions:
    """Everything the composer needs to build the forwarded message."""
    from_address: str
    to_addresses: List[str]
    cc_addresses: List[str]
    subject: str
    text_body: Optional[str] = None
    html_body: Optional[str] = None
    attachments: List[Attachment] = field(default_factory=list)

    def to_composer_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for services.email.compose_email()."""
        return {
            'from_address': self.from_address,
            'to_addresses': list(self.to_addresses),
            'cc_addresses': list(self.cc_addresses),
            'subject': self.subject,
            'text_body': self.text_body,
            'html_body': self.html_body,
            'attachments': [a.to_dict_for_composer() for a in self.attachments],
        }


@dataclass
class ForwardResult:
    """
    Result of forwarding one SES record.

    This explicit result type makes success/failure handling clear
    and prevents exceptions from being used for control flow.

    Attributes:
        success: Whether the message was forwarded
        message_id: SES message identifier
        confirmation: Human-readable summary (if forwarding succeeded)
        ses_message_id: MessageId returned by SendRawEmail
        error_kind: Name of the ForwardingError subclass (if it failed)
        error_message: Error description (if it failed)
    """
    success: bool
    message_id: str
    confirmation: Optional[str] = None
    ses_message_id: Optional[str] = None
    error_kind: Optional[str] = None
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {'success': self.success, 'messageId': self.message_id}
        if self.success:
            result['message'] = self.confirmation
            result['sesMessageId'] = self.ses_message_id
        else:
            result['errorKind'] = self.error_kind
            result['error'] = self.error_message
        return result

    def __repr__(self) -> str:
        """Human-readable representation for logging."""
        if self.success:
            return f"ForwardResult(success=True, message_id={self.message_id})"
        else:
            return (
                f"ForwardResult(success=False, message_id={self.message_id}, "
                f"error={self.error_kind}: {self.error_message})"
            )
