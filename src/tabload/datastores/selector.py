"""Storage target selection."""

from __future__ import annotations

from collections.abc import Sequence

from tabload.core.errors import NoCandidates
from tabload.core.models import StorageTarget


def select_least_loaded(candidates: Sequence[StorageTarget]) -> StorageTarget:
    """Pick the candidate holding the fewest datasets.

    Ties go to the candidate listed first.

    Raises:
        NoCandidates: ``candidates`` is empty
    """
    if not candidates:
        raise NoCandidates("no storage targets available")

    selected = candidates[0]
    for candidate in candidates[1:]:
        if candidate.current_dataset_count < selected.current_dataset_count:
            selected = candidate
    return selected
