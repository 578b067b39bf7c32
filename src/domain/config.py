"""
Forwarder configuration.

Loaded once per Lambda container and passed to the components that need it.
Two sources are supported:
1. A JSON file named by FORWARDER_CONFIG_PATH (config.json layout)
2. Individual environment variables
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict

from .errors import ConfigurationError
from .models import AddressMapping
from .router import MailboxDirectories

logger = logging.getLogger(__name__)

# Stop before the S3 fetch when less time than this is left in the invocation
DEFAULT_MIN_REMAINING_TIME_MS = 5000


@dataclass(frozen=True)
class ForwarderConfig:
    """
    Immutable forwarder settings.

    Attributes:
        from_address: Verified SES identity used as sender of forwarded mail
        bucket_name: S3 bucket SES stores received messages in
        mapping: Address translation tables
        mailbox_directories: Mailbox -> S3 directory table
        min_remaining_time_ms: Cancellation threshold before the S3 fetch
    """
    from_address: str
    bucket_name: str
    mapping: AddressMapping = field(default_factory=AddressMapping)
    mailbox_directories: MailboxDirectories = field(default_factory=MailboxDirectories)
    min_remaining_time_ms: int = DEFAULT_MIN_REMAINING_TIME_MS

    def __post_init__(self):
        if not self.from_address:
            raise ConfigurationError("Forwarding from address is not set")
        if not self.bucket_name:
            raise ConfigurationError("SES incoming bucket is not set")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ForwarderConfig':
        """
        Build configuration from a config.json style dict.

        Example:
            >>> ForwarderConfig.from_dict({
            ...     "from": "forwarder@example.com",
            ...     "bucket": "ses-incoming",
            ...     "mappings": {"domainToDomain": {"old.com": "new.com"}}
            ... })
        """
        try:
            min_remaining = int(data.get('minRemainingTimeMs', DEFAULT_MIN_REMAINING_TIME_MS))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid minRemainingTimeMs: {e}") from e

        return cls(
            from_address=data.get('from', ''),
            bucket_name=data.get('bucket', ''),
            mapping=AddressMapping.from_dict(data.get('mappings')),
            mailbox_directories=MailboxDirectories(
                directories=dict(data.get('mailboxDirectories') or {}),
                default_directory=data.get('defaultDirectory') or '',
            ),
            min_remaining_time_ms=min_remaining,
        )

    @classmethod
    def from_file(cls, path: str) -> 'ForwarderConfig':
        """Load configuration from a JSON file."""
        logger.info(f"Loading forwarder config from file: {path}")
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Failed to load config file {path}: {e}") from e
        return cls.from_dict(data)

    @classmethod
    def from_env(cls) -> 'ForwarderConfig':
        """
        Load configuration from environment variables.

        Environment:
            FORWARDER_CONFIG_PATH: JSON config file (takes precedence)
            FORWARD_FROM_ADDRESS: Sender of forwarded mail
            SES_INCOMING_BUCKET: Bucket with received messages
            FORWARD_MAPPINGS: JSON with emailToEmail/domainToEmail/domainToDomain
            MAILBOX_DIRECTORIES: JSON mailbox -> directory
            DEFAULT_MAILBOX_DIRECTORY: Directory for unlisted mailboxes
            MIN_REMAINING_TIME_MS: Cancellation threshold
        """
        config_path = os.environ.get('FORWARDER_CONFIG_PATH')
        if config_path:
            return cls.from_file(config_path)

        return cls.from_dict({
            'from': os.environ.get('FORWARD_FROM_ADDRESS', ''),
            'bucket': os.environ.get('SES_INCOMING_BUCKET', ''),
            'mappings': _read_json_env('FORWARD_MAPPINGS'),
            'mailboxDirectories': _read_json_env('MAILBOX_DIRECTORIES'),
            'defaultDirectory': os.environ.get('DEFAULT_MAILBOX_DIRECTORY', ''),
            'minRemainingTimeMs': os.environ.get(
                'MIN_REMAINING_TIME_MS', DEFAULT_MIN_REMAINING_TIME_MS
            ),
        })


def _read_json_env(name: str) -> Dict[str, Any]:
    raw = os.environ.get(name, '').strip()
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"{name} is not valid JSON: {e}") from e
    if not isinstance(value, dict):
        raise ConfigurationError(f"{name} must be a JSON object")
    return value
