"""Per-run processing budget split between metadata updates and new analyses."""

from typing import Sequence

from docsync.models.reconciliation import BudgetAllocation, MetadataUpdate, NewDocument


class BudgetAllocator:
    """Splits the per-run budget: metadata updates first, analyses get the rest.

    Items that do not fit are only counted; the next run plans them again.
    """

    def allocate(
        self,
        limit: int,
        new: Sequence[NewDocument],
        metadata_updates: Sequence[MetadataUpdate],
    ) -> BudgetAllocation:
        budget = max(0, limit)
        metadata_count = min(len(metadata_updates), budget)
        analyze_count = min(len(new), budget - metadata_count)

        return BudgetAllocation(
            analyze_targets=list(new[:analyze_count]),
            metadata_targets=list(metadata_updates[:metadata_count]),
            skipped_metadata=len(metadata_updates) - metadata_count,
            skipped_analyze=len(new) - analyze_count,
        )
