"""Download state machine for items.

Centralizes which download status changes are allowed. Writes are made
conditional on the current status, so a stale decision from the UI can
never undo what the worker already did.
"""

from wiggle.models import DownloadStatus

# Define valid download status transitions
VALID_TRANSITIONS = {
    DownloadStatus.UNSET: {
        DownloadStatus.QUEUED,
        DownloadStatus.SKIP,
        DownloadStatus.DOWNLOADED,
    },
    DownloadStatus.QUEUED: {
        DownloadStatus.DOWNLOADED,
        DownloadStatus.SKIP,
    },
    DownloadStatus.SKIP: {
        DownloadStatus.QUEUED,
        DownloadStatus.DOWNLOADED,
    },
    DownloadStatus.DOWNLOADED: set(),  # Terminal state
}


def can_transition(from_status: DownloadStatus, to_status: DownloadStatus) -> bool:
    """Validate if a download status change is allowed.

    Args:
        from_status: Current download status
        to_status: Desired download status

    Returns:
        True if the change is valid, False otherwise
    """
    # Allow re-asserting the same status
    if from_status == to_status:
        return True

    return to_status in VALID_TRANSITIONS.get(from_status, set())


def sources_for(to_status: DownloadStatus) -> list[DownloadStatus]:
    """Every status an item may be in for a move to to_status to be valid."""
    return [status for status in DownloadStatus if can_transition(status, to_status)]
