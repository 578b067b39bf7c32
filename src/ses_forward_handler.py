"""
AWS Lambda handler for forwarding emails received by SES.

Thin orchestration layer that delegates to EmailForwarder.
Policy: No retries. Every record gets a result; errors are logged to CloudWatch
and returned in the response instead of failing the invocation, because a
Lambda retry would re-send messages that were already forwarded.
"""

import logging
import os
from typing import Any, Callable, Dict, Optional

from domain.config import ForwarderConfig
from domain.forwarder import EmailForwarder


def _log_level() -> int:
    """Level named by LOG_LEVEL, INFO when unset or unknown."""
    level = logging.getLevelName(os.environ.get('LOG_LEVEL', 'INFO').strip().upper())
    return level if isinstance(level, int) else logging.INFO


# Configure logging
logger = logging.getLogger()
logger.setLevel(_log_level())

# Add console handler for local testing (AWS Lambda provides handlers automatically)
if not logger.handlers:
    console_handler = logging.StreamHandler()
    console_handler.setLevel(_log_level())
    formatter = logging.Formatter('%(levelname)s - %(message)s')
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

# Load configuration and build the forwarder once per container
config = ForwarderConfig.from_env()
email_forwarder = EmailForwarder(config)


def _cancellation_check(context: Any) -> Optional[Callable[[], bool]]:
    """Cancel when the invocation is about to time out."""
    get_remaining = getattr(context, 'get_remaining_time_in_millis', None)
    if not callable(get_remaining):
        return None

    def is_cancelled() -> bool:
        return get_remaining() < config.min_remaining_time_ms

    return is_cancelled


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Forward SES received emails.

    Args:
        event: SES receipt event, or SQS batch of SES notifications
        context: Lambda context

    Returns:
        Dict with successCount, errorCount and one result per record
    """
    logger.info("=" * 70)
    logger.info("SES Email Forwarder - Started")
    logger.info("=" * 70)

    records = event.get('Records', [])
    logger.info(f"Processing batch of {len(records)} message(s)")

    is_cancelled = _cancellation_check(context)

    # Process each record
    results = []
    for record in records:
        result = email_forwarder.process_ses_record(record, is_cancelled=is_cancelled)
        results.append(result)

        # Log outcome
        if result.success:
            logger.info(f"✓ {result.confirmation}")
        else:
            logger.warning(
                f"⚠ Message {result.message_id} not forwarded: "
                f"{result.error_kind}: {result.error_message}"
            )

    # Log summary
    success_count = sum(1 for r in results if r.success)
    error_count = len(results) - success_count
    logger.info("=" * 70)
    logger.info(f"Batch processing complete: {len(results)} message(s)")
    logger.info(f"  Success: {success_count}")
    logger.info(f"  Errors: {error_count}")
    logger.info("=" * 70)

    return {
        'successCount': success_count,
        'errorCount': error_count,
        'results': [r.to_dict() for r in results]
    }
