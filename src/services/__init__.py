"""
AWS and MIME collaborators for the forwarder.

This package contains the S3 fetch, SES send and MIME parse/compose
functions used by the forwarding pipeline.
"""

__all__ = ['email', 's3', 'ses']
