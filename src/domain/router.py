"""
Address routing - decides where a received address is forwarded to.

Rules are tried in a fixed order and the first match wins:
1. Exact address -> address
2. Domain -> address
3. Domain -> domain (local part is kept)

Addresses that match no rule, or that cannot be parsed, have no destination.
That outcome is normal routing behavior, not an error.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Mapping, Optional, Tuple

from .models import AddressMapping, ParsedAddress, ResolvedRecipients

logger = logging.getLogger(__name__)

Rule = Callable[[ParsedAddress], Optional[str]]


class AddressRouter:
    """
    Translates original recipient addresses using an AddressMapping.

    The router holds no mutable state; one instance is shared by every
    invocation of a warm Lambda container.
    """

    def __init__(self, mapping: AddressMapping):
        self.mapping = mapping
        self.rules: Tuple[Tuple[str, Rule], ...] = (
            ('email_to_email', self._match_email_to_email),
            ('domain_to_email', self._match_domain_to_email),
            ('domain_to_domain', self._match_domain_to_domain),
        )

    def resolve(self, address: str) -> Optional[str]:
        """
        Resolve one address to its forwarding destination.

        Args:
            address: Original recipient address

        Returns:
            Destination address, or None if no rule applies

        Example:
            >>> router.resolve("color@blue.com")  # domainToDomain blue.com -> red.com
            'color@red.com'
        """
        parsed = ParsedAddress.parse(address)
        if parsed is None:
            logger.debug(f"Unparseable address, no destination: {address!r}")
            return None

        for rule_name, rule in self.rules:
            destination = rule(parsed)
            if destination is not None:
                logger.debug(f"{address} -> {destination} ({rule_name})")
                return destination

        logger.debug(f"No mapping for {address}")
        return None

    def resolve_all(
        self,
        to_addresses: Iterable[str],
        cc_addresses: Iterable[str]
    ) -> ResolvedRecipients:
        """
        Resolve every original to/cc address, preserving order.

        Addresses without a destination are dropped.
        """
        resolved = ResolvedRecipients()
        for address in to_addresses:
            destination = self.resolve(address)
            if destination:
                resolved.to_addresses.append(destination)
        for address in cc_addresses:
            destination = self.resolve(address)
            if destination:
                resolved.cc_addresses.append(destination)
        return resolved

    def _match_email_to_email(self, parsed: ParsedAddress) -> Optional[str]:
        return self.mapping.email_to_email.get(parsed.address)

    def _match_domain_to_email(self, parsed: ParsedAddress) -> Optional[str]:
        return self.mapping.domain_to_email.get(parsed.domain)

    def _match_domain_to_domain(self, parsed: ParsedAddress) -> Optional[str]:
        target_domain = self.mapping.domain_to_domain.get(parsed.domain)
        if target_domain is None:
            return None
        return f"{parsed.local_part}@{target_domain}"


@dataclass(frozen=True)
class MailboxDirectories:
    """
    Maps receiving mailboxes to the S3 directory SES stores their mail in.

    Keys are full mailbox addresses or domains; a domain key also covers
    its subdomains unless a more specific key exists.

    Attributes:
        directories: Mailbox address or domain -> directory
        default_directory: Directory for mailboxes without an entry
    """
    directories: Mapping[str, str] = field(default_factory=dict)
    default_directory: str = ''

    def directory_for(self, mailbox: Optional[str]) -> str:
        """Directory for a receiving mailbox, falling back to the default."""
        parsed = ParsedAddress.parse(mailbox) if mailbox else None
        if parsed is None:
            return self.default_directory

        for candidate in [parsed.address] + parsed.parent_domains:
            if candidate in self.directories:
                return self.directories[candidate]
        return self.default_directory

    def storage_key(self, message_id: str, mailbox: Optional[str] = None) -> str:
        """
        Build the S3 key of a stored message.

        Example:
            >>> MailboxDirectories({'example.com': 'inbox/'}).storage_key('abc', 'me@example.com')
            'inbox/abc'
        """
        directory = self.directory_for(mailbox).strip('/')
        if not directory:
            return message_id
        return f"{directory}/{message_id}"
