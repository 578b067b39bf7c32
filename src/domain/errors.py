"""
Exception types for the forwarding pipeline.

Every failure that ends a forwarding operation is a ForwardingError subclass,
so the pipeline boundary can report the kind of failure without inspecting
collaborator-specific exceptions.
"""

from typing import Iterable


class ConfigurationError(Exception):
    """Raised when forwarder configuration is invalid or missing."""
    pass


# ============================================================================
# Forwarding Failures
# ============================================================================

class ForwardingError(Exception):
    """Base class for errors that abort a single forwarding operation."""
    pass


class RoutingExhausted(ForwardingError):
    """Raised when none of the original to/cc addresses has a mapping."""

    def __init__(self, addresses: Iterable[str]):
        self.addresses = list(addresses)
        super().__init__(
            f"No routable recipient: none of the addresses has a mapping "
            f"({', '.join(self.addresses) or 'no addresses'})"
        )


class StorageFetchFailed(ForwardingError):
    """Raised when the raw message cannot be read from S3."""

    def __init__(self, bucket: str, key: str, reason: str):
        self.bucket = bucket
        self.key = key
        super().__init__(f"Failed to fetch s3://{bucket}/{key}: {reason}")


class ParseFailed(ForwardingError):
    """Raised when the raw message or one of its parts is malformed."""
    pass


class ComposeFailed(ForwardingError):
    """Raised when the outbound message cannot be composed."""
    pass


class TransportFailed(ForwardingError):
    """Raised when SES rejects the outbound message."""
    pass


class ForwardingCancelled(ForwardingError):
    """Raised when the host runs out of time before the S3 fetch."""
    pass
