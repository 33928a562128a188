"""
Cleanup module for orphaned sponsor flags.

An orphaned flag is a target marked as a sponsor whose referenced sponsor
record no longer exists or is no longer active. Removing it keeps the target
store from advertising sponsorship the directory no longer backs.
"""

from datetime import datetime
from typing import Callable, Optional

from .config import DEFAULT_UPDATE_CHUNK_SIZE
from .logger import get_logger
from .repositories import SponsorRepository, TargetRepository

logger = get_logger()


def cleanup_orphaned_flags(
    sponsors: SponsorRepository,
    targets: TargetRepository,
    chunk_size: int = DEFAULT_UPDATE_CHUNK_SIZE,
    dry_run: bool = False,
    clock: Optional[Callable[[], datetime]] = None,
) -> int:
    """
    Reset every flagged target whose sponsor reference fails verification.

    Args:
        sponsors: Sponsor directory used to verify references
        targets: Target store holding the flags
        chunk_size: Number of references verified per directory call
        dry_run: Count orphans without writing
        clock: Timestamp source for the reset (default: datetime.now)

    Returns:
        Number of orphaned flags found (and reset unless dry_run)
    """
    clock = clock or datetime.now
    flagged = targets.fetch_flagged_targets()
    if not flagged:
        logger.info("No flagged targets to validate")
        return 0

    logger.info(f"Validating {len(flagged)} flagged targets", chunk_size=chunk_size)

    cleaned = 0
    for start in range(0, len(flagged), chunk_size):
        chunk = flagged[start:start + chunk_size]
        referenced = {t.matched_sponsor_id for t in chunk if t.matched_sponsor_id}
        if not referenced:
            continue

        existing = sponsors.fetch_active_ids(referenced)
        orphaned = [
            t for t in chunk
            if t.matched_sponsor_id and t.matched_sponsor_id not in existing
        ]
        if not orphaned:
            continue

        logger.info(f"Found {len(orphaned)} orphaned flags in chunk", offset=start)
        if not dry_run:
            targets.bulk_reset_flags([t.id for t in orphaned], clock())
        cleaned += len(orphaned)

        for target in orphaned:
            logger.debug(
                "Cleaned orphaned flag",
                target_id=target.id,
                target_name=target.name,
                sponsor_id=target.matched_sponsor_id,
            )

    logger.info(
        f"Cleanup complete: {cleaned} orphaned flags {'found' if dry_run else 'removed'}",
        flagged=len(flagged),
        cleaned=cleaned,
        dry_run=dry_run,
    )
    return cleaned
