"""Proposal generation logger.

Provides highly visible, formatted logging for proposal generation runs
with distinctive visual markers that stand out in log streams.
"""

from datetime import datetime, timezone
from typing import Optional

import structlog

logger = structlog.get_logger()

# Visual markers for different log types
BANNER_WIDTH = 80
GENERATION_BANNER_CHAR = "█"
FALLBACK_BANNER_CHAR = "░"


def _create_banner(char: str, text: str, width: int = BANNER_WIDTH) -> str:
    """Create a centered banner with given character."""
    text_with_spaces = f" {text} "
    padding = (width - len(text_with_spaces)) // 2
    return char * padding + text_with_spaces + char * (width - padding - len(text_with_spaces))


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def log_generation_start(customer_id: str, requested_grade: Optional[str] = None) -> None:
    """Log proposal generation start with prominent banner."""
    print("\n")
    print(GENERATION_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(GENERATION_BANNER_CHAR, "PROPOSAL GENERATION STARTED"))
    print(GENERATION_BANNER_CHAR * BANNER_WIDTH)
    print(f"║ Customer ID     : {customer_id}")
    print(f"║ Timestamp       : {_timestamp()}")
    print(f"║ Requested Grade : {requested_grade or 'auto'}")
    print(GENERATION_BANNER_CHAR * BANNER_WIDTH)
    print("\n")

    logger.info(
        "proposal_generation_started",
        customer_id=customer_id,
        requested_grade=requested_grade
    )


def log_generation_complete(
    customer_id: str,
    recommended_grade: str,
    total_price: int,
    content_source: str,
    duration_ms: int
) -> None:
    """Log proposal generation completion with summary."""
    print("\n")
    print(GENERATION_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(GENERATION_BANNER_CHAR, "✓ PROPOSAL GENERATED"))
    print(GENERATION_BANNER_CHAR * BANNER_WIDTH)
    print(f"║ Customer ID       : {customer_id}")
    print(f"║ Timestamp         : {_timestamp()}")
    print(f"║ Duration          : {duration_ms:,} ms ({duration_ms / 1000:.2f}s)")
    print(f"║ Recommended Grade : {recommended_grade}")
    print(f"║ Total Price       : ${total_price:,.0f}")
    print(f"║ Content Source    : {content_source}")
    print(GENERATION_BANNER_CHAR * BANNER_WIDTH)
    print("\n")

    logger.info(
        "proposal_generation_complete",
        customer_id=customer_id,
        recommended_grade=recommended_grade,
        total_price=total_price,
        content_source=content_source,
        duration_ms=duration_ms
    )


def log_generation_failed(customer_id: str, error: str) -> None:
    """Log proposal generation failure with details."""
    print("\n")
    print("!" * BANNER_WIDTH)
    print(_create_banner("!", "✗ PROPOSAL GENERATION FAILED"))
    print("!" * BANNER_WIDTH)
    print(f"║ Customer ID : {customer_id}")
    print(f"║ Timestamp   : {_timestamp()}")
    print(f"║ Error       : {error}")
    print("!" * BANNER_WIDTH)
    print("\n")

    logger.error(
        "proposal_generation_failed",
        customer_id=customer_id,
        error=error
    )


def log_content_fallback(strategy: str, reason: str) -> None:
    """Log when a content strategy fails and the next one takes over."""
    print("\n")
    print(FALLBACK_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(FALLBACK_BANNER_CHAR, f"CONTENT FALLBACK: {strategy.upper()}"))
    print(FALLBACK_BANNER_CHAR * BANNER_WIDTH)
    print(f"░ Failed Strategy : {strategy}")
    print(f"░ Reason          : {reason}")
    print(FALLBACK_BANNER_CHAR * BANNER_WIDTH)
    print("\n")

    logger.warning(
        "content_strategy_fallback",
        strategy=strategy,
        reason=reason
    )
