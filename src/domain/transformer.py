"""
Message transformation - turns a received message into the forwarded one.

The "Forwarded Message" banner is rendered once as plain text; the HTML
version is the same text, escaped, inside a <span>.
"""

import logging
import re
from typing import Iterable, List, Optional

from bs4 import BeautifulSoup

from .errors import ParseFailed
from .models import (
    Attachment,
    InboundEnvelope,
    OutboundMessageOptions,
    ParsedMessage,
    ResolvedRecipients,
)

logger = logging.getLogger(__name__)

BANNER_TEMPLATE = '\n'.join([
    '-------- Forwarded Message --------',
    'Subject:    {subject}',
    'Date:       {date}',
    'From:       {sender}',
    'To:         {to}',
])
BANNER_CC_LINE = 'Cc:         {cc}'

# Opening tag only; "<bodyguard>" or "somebody" must not match
BODY_TAG_PATTERN = re.compile(r'<body\b[^>]*>', re.IGNORECASE)

# Regions where a "<body>" is text, not markup
NON_MARKUP_PATTERN = re.compile(
    r'<!--.*?(?:-->|\Z)|<(script|style)\b.*?(?:</\1\s*>|\Z)',
    re.IGNORECASE | re.DOTALL
)


def find_body_tag(html: str) -> Optional[re.Match]:
    """
    Find the opening <body> tag, ignoring comments, scripts and styles.

    Masked regions are blanked out with spaces of the same length, so
    offsets of the returned match are valid in the original string.
    """
    masked = NON_MARKUP_PATTERN.sub(lambda m: ' ' * len(m.group(0)), html)
    return BODY_TAG_PATTERN.search(masked)


def build_forward_banner(
    subject: str,
    original_date: str,
    original_sender: str,
    original_tos: Iterable[str],
    original_ccs: Iterable[str] = ()
) -> str:
    """
    Build the banner prepended to forwarded bodies.

    Args:
        subject: Original subject
        original_date: Original Date header
        original_sender: Original From header
        original_tos: Original "to" addresses, before translation
        original_ccs: Original "cc" addresses, before translation

    Returns:
        str: Banner lines joined with "\\n", without a trailing newline

    Example:
        >>> print(build_forward_banner("Hi", "Mon, 1 Jan 2000", "a@b.com", ["c@d.com"]))
        -------- Forwarded Message --------
        Subject:    Hi
        Date:       Mon, 1 Jan 2000
        From:       a@b.com
        To:         c@d.com
    """
    banner = BANNER_TEMPLATE.format(
        subject=subject,
        date=original_date,
        sender=original_sender,
        to=', '.join(original_tos),
    )

    ccs = list(original_ccs or [])
    if ccs:
        banner += '\n' + BANNER_CC_LINE.format(cc=', '.join(ccs))

    return banner


def render_html_banner(banner: str) -> str:
    """
    Render banner text as an escaped <span> element.

    Subject, sender and recipients come from the sender of the mail,
    so markup characters must never reach the HTML unescaped.
    """
    soup = BeautifulSoup('', 'html.parser')
    span = soup.new_tag('span')
    span.string = banner
    return str(span)


def inject_banner(message: ParsedMessage, banner: str) -> ParsedMessage:
    """
    Prepend the banner to the text and HTML bodies of a message.

    The text body gets the banner followed by a newline. In the HTML body
    the escaped banner becomes the first child of <body>; HTML without a
    <body> tag gets the banner block and a newline in front of it. Bodies
    that are absent stay absent.

    Args:
        message: Parsed message, modified in place
        banner: Output of build_forward_banner()

    Returns:
        The same message object
    """
    if message.text_body:
        message.text_body = banner + '\n' + message.text_body

    if message.html_body:
        html = message.html_body
        banner_html = render_html_banner(banner)

        match = find_body_tag(html)
        if match:
            insert_at = match.end()
            message.html_body = html[:insert_at] + banner_html + html[insert_at:]
        else:
            logger.debug("HTML body has no <body> tag, prepending banner block")
            message.html_body = banner_html + '\n' + html

    return message


def build_outbound_options(
    parsed: ParsedMessage,
    resolved: ResolvedRecipients,
    envelope: InboundEnvelope,
    from_address: str
) -> OutboundMessageOptions:
    """
    Assemble the options for composing the forwarded message.

    Attachments are copied one to one; their content is never re-encoded.

    Raises:
        ParseFailed: If an attachment has no content
    """
    attachments: List[Attachment] = []
    for index, attachment in enumerate(parsed.attachments):
        if attachment.content is None:
            raise ParseFailed(
                f"Attachment {attachment.filename or f'#{index}'} has no content"
            )
        attachments.append(Attachment(
            filename=attachment.filename,
            content=attachment.content,
            content_type=attachment.content_type,
            content_disposition=attachment.content_disposition,
            content_id=attachment.content_id,
            charset=attachment.charset,
            length=attachment.length,
            transfer_encoding=attachment.transfer_encoding,
        ))

    return OutboundMessageOptions(
        from_address=from_address,
        to_addresses=list(resolved.to_addresses),
        cc_addresses=list(resolved.cc_addresses),
        subject=envelope.subject,
        text_body=parsed.text_body,
        html_body=parsed.html_body,
        attachments=attachments,
    )


class MessageTransformer:
    """Builds the forwarded message from the received one."""

    def __init__(self, from_address: str):
        self.from_address = from_address

    def transform(
        self,
        parsed: ParsedMessage,
        envelope: InboundEnvelope,
        resolved: ResolvedRecipients
    ) -> OutboundMessageOptions:
        """
        Inject the forwarding banner and build outbound options.

        The banner lists the original recipients, not the translated ones.
        """
        banner = build_forward_banner(
            subject=envelope.subject,
            original_date=envelope.date,
            original_sender=envelope.sender,
            original_tos=envelope.to_addresses,
            original_ccs=envelope.cc_addresses,
        )
        inject_banner(parsed, banner)

        return build_outbound_options(parsed, resolved, envelope, self.from_address)
