"""
MIME parsing and composing for the forwarder.

Parsing turns the raw message fetched from S3 into bodies and attachments;
composing builds the forwarded message that is handed to SES.
"""

import logging
from email import policy
from email.message import EmailMessage
from email.parser import BytesParser
from typing import Dict, Any, Iterator, List, Optional

logger = logging.getLogger(__name__)

# Transfer encodings the composer can reproduce for binary attachment data
REUSABLE_TRANSFER_ENCODINGS = ('base64', 'quoted-printable')
DEFAULT_TRANSFER_ENCODING = 'base64'

# message/* subtypes re-attached as a parsed message; other message/*
# parts (delivery reports) go out as opaque bytes
ATTACHABLE_MESSAGE_SUBTYPES = ('rfc822',)


def _leaf_parts(part) -> Iterator[EmailMessage]:
    """
    Yield every non-multipart part in document order.

    Attached messages (message/*) are leaves: their inner parts belong to
    the attached message, not to this one.
    """
    if part.get_content_maintype() == 'multipart':
        for subpart in part.iter_parts():
            yield from _leaf_parts(subpart)
    else:
        yield part


def _part_content(part) -> Optional[bytes]:
    if part.get_content_maintype() == 'message' and part.is_multipart():
        # Parsed attached message(s); serialize them back to raw bytes
        return b''.join(inner.as_bytes() for inner in part.get_payload())
    return part.get_payload(decode=True)


def _attachment_from_part(part) -> Dict[str, Any]:
    content = _part_content(part)
    content_id = part.get('Content-ID')
    return {
        'filename': part.get_filename(),
        'content': content,
        'content_type': part.get_content_type(),
        'content_disposition': part.get_content_disposition(),
        'content_id': str(content_id).strip() if content_id else None,
        'charset': part.get_content_charset(),
        'length': len(content) if content is not None else 0,
        'transfer_encoding': str(part.get('Content-Transfer-Encoding', '')).strip().lower() or None,
    }


def _decode_text_part(part, label: str) -> str:
    try:
        # get_content() handles quoted-printable, base64, etc automatically
        return part.get_content()
    except Exception as e:
        logger.warning(f"Failed to decode {label} body with get_content(): {e}")
        # Fallback: manual decode with get_payload(decode=True)
        payload = part.get_payload(decode=True)
        if payload:
            charset = part.get_content_charset() or 'utf-8'
            return payload.decode(charset, errors='replace')
        return ''


def extract_email_body(email_content: bytes) -> Dict[str, Any]:
    """
    Parse raw email (MIME format) and extract bodies and attachments.

    The first text/plain and the first text/html part that are not marked
    as attachments become the bodies. Every other part is an attachment,
    with or without a filename: inline images, further text parts,
    calendar invites and attached messages (kept whole, not flattened).

    Args:
        email_content: Raw email bytes from S3

    Returns:
        Dictionary with text_body, html_body and attachments. Each attachment
        dict has filename, content, content_type, content_disposition,
        content_id, charset, length and transfer_encoding.

    Raises:
        ValueError: If the email content is empty

    Example:
        >>> email_bytes = b"From: sender@example.com\\r\\n\\r\\nHello World"
        >>> result = extract_email_body(email_bytes)
        >>> print(result['text_body'])
        "Hello World"
    """
    if not email_content:
        raise ValueError("Email content cannot be empty")

    # Parse the MIME email
    msg = BytesParser(policy=policy.default).parsebytes(email_content)

    result = {
        'text_body': '',
        'html_body': '',
        'attachments': []
    }

    text_found = False
    html_found = False
    for part in _leaf_parts(msg):
        content_type = part.get_content_type()

        # Explicit attachments, and anything carrying a filename
        # (inline images are often sent as "inline" with a filename)
        if part.get_content_disposition() == 'attachment' or part.get_filename():
            result['attachments'].append(_attachment_from_part(part))

        # Extract text body (first one only)
        elif content_type == "text/plain" and not text_found:
            result['text_body'] = _decode_text_part(part, 'text')
            text_found = True

        # Extract HTML body (first one only)
        elif content_type == "text/html" and not html_found:
            result['html_body'] = _decode_text_part(part, 'HTML')
            html_found = True

        # cid: images without filename, extra text parts, invites, ...
        else:
            result['attachments'].append(_attachment_from_part(part))

    return result


def _add_attachment(msg: EmailMessage, attachment: Dict[str, Any]) -> None:
    content = attachment.get('content')
    if content is None:
        raise ValueError(f"Attachment {attachment.get('filename')} has no content")

    maintype, _, subtype = (attachment.get('content_type') or '').partition('/')
    if not maintype or not subtype:
        maintype, subtype = 'application', 'octet-stream'

    content_id = attachment.get('content_id')
    disposition = attachment.get('content_disposition') or ('inline' if content_id else 'attachment')

    if maintype == 'message' and subtype in ATTACHABLE_MESSAGE_SUBTYPES:
        # Attached messages must stay unencoded to remain readable messages
        inner = BytesParser(policy=policy.default).parsebytes(bytes(content))
        msg.add_attachment(
            inner,
            subtype=subtype,
            disposition=disposition,
            filename=attachment.get('filename'),
            cid=content_id,
        )
        return

    cte = (attachment.get('transfer_encoding') or '').lower()
    if cte not in REUSABLE_TRANSFER_ENCODINGS:
        cte = DEFAULT_TRANSFER_ENCODING

    params = {}
    if attachment.get('charset'):
        params['charset'] = attachment['charset']

    msg.add_attachment(
        bytes(content),
        maintype=maintype,
        subtype=subtype,
        cte=cte,
        disposition=disposition,
        filename=attachment.get('filename'),
        cid=content_id,
        params=params or None,
    )


def compose_email(
    from_address: str,
    to_addresses: List[str],
    cc_addresses: List[str],
    subject: str,
    text_body: Optional[str] = None,
    html_body: Optional[str] = None,
    attachments: Optional[List[Dict[str, Any]]] = None
) -> bytes:
    """
    Compose a MIME message ready for SES SendRawEmail.

    Text and HTML bodies become a multipart/alternative; attachments are
    added with their original content, content type, charset, Content-ID
    and disposition. Base64 and quoted-printable parts keep their transfer
    encoding, anything else is sent as base64. Attached messages are
    re-attached as message parts.

    Args:
        from_address: Sender address
        to_addresses: "To" recipients
        cc_addresses: "Cc" recipients
        subject: Subject line
        text_body: Plain text body (optional)
        html_body: HTML body (optional)
        attachments: Attachment dicts (see extract_email_body)

    Returns:
        bytes: Message serialized with CRLF line endings

    Raises:
        ValueError: If there is no recipient or an attachment has no content
    """
    if not to_addresses and not cc_addresses:
        raise ValueError("At least one recipient is required")

    msg = EmailMessage()
    msg['MIME-Version'] = '1.0'
    msg['From'] = from_address
    if to_addresses:
        msg['To'] = ', '.join(to_addresses)
    if cc_addresses:
        msg['Cc'] = ', '.join(cc_addresses)
    msg['Subject'] = subject or ''

    if text_body and html_body:
        msg.set_content(text_body)
        msg.add_alternative(html_body, subtype='html')
    elif text_body:
        msg.set_content(text_body)
    elif html_body:
        msg.set_content(html_body, subtype='html')

    for attachment in attachments or []:
        _add_attachment(msg, attachment)

    raw = msg.as_bytes(policy=policy.SMTP)
    logger.info(
        f"Composed message: {len(raw):,} bytes, "
        f"attachments={len(attachments or [])}"
    )
    return raw
