"""
Dictionary registration and the import idempotency guard.

A (title, revision) pair is imported at most once. Only dictionaries stamped
complete count as installed; an incomplete row left by a failed import is
removed so the import can be retried.
"""

import sys
from typing import Optional

from yomidb.backends.base import StorageBackend
from yomidb.data.banks import DictIndex
from yomidb.services.retry import BackoffPolicy, retry_call


class DictionaryRegistrar:
    def __init__(self, backend: StorageBackend, policy: Optional[BackoffPolicy] = None):
        self.backend = backend
        self.policy = policy

    def _call(self, operation, *args, description: str):
        return retry_call(operation, *args, policy=self.policy, description=description)

    def register(self, index: DictIndex, is_bundled: bool = False) -> Optional[int]:
        """
        Register a dictionary for import.

        Returns:
            The new dictionary id, or None if (title, revision) is already
            installed and the import should be skipped.
        """
        existing = self._call(
            self.backend.find_dictionary,
            index.title,
            index.revision,
            description="dictionary lookup",
        )
        if existing is not None:
            if existing.completed:
                return None
            print(
                f"Removing incomplete import of {index.title} ({index.revision}) "
                f"left by an earlier run (id {existing.id})",
                file=sys.stderr,
            )
            self._call(
                self.backend.remove_dictionary, existing.id, description="dictionary removal"
            )

        # None here means another importer registered it between our checks
        return self._call(
            self.backend.register_dictionary,
            index,
            is_bundled,
            description="dictionary registration",
        )

    def complete(self, dict_id: int) -> None:
        self._call(self.backend.mark_complete, dict_id, description="dictionary completion")

    def abandon(self, dict_id: int) -> bool:
        """Best-effort removal of a failed import; False if it could not be removed."""
        try:
            self._call(
                self.backend.remove_dictionary, dict_id, description="dictionary cleanup"
            )
        except Exception as e:
            print(
                f"Could not remove partial dictionary {dict_id}: {e}. "
                "It will be cleaned up by the next import attempt.",
                file=sys.stderr,
            )
            return False
        return True
