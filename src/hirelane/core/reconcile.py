from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from hirelane.core.cv_profiles import DELETE_FAILED
from hirelane.db.repositories import Repository
from hirelane.storage.drive import GoogleDriveStorage

logger = logging.getLogger(__name__)


def reconcile_pending_deletions(session: Session, storage: GoogleDriveStorage, *, limit: int = 50) -> dict[str, int]:
    """Retry remote deletes that failed during CV maintenance."""
    repo = Repository(session)
    pending = repo.list_pending_storage_deletions(limit=limit)

    resolved = 0
    failed = 0
    for item in pending:
        if storage.delete(item.provider_id):
            repo.mark_storage_deletion(item.id, resolved=True)
            resolved += 1
        else:
            repo.mark_storage_deletion(item.id, resolved=False, error=DELETE_FAILED)
            failed += 1

    logger.info("Storage reconciliation checked=%s resolved=%s failed=%s", len(pending), resolved, failed)
    return {"checked": len(pending), "resolved": resolved, "failed": failed}
