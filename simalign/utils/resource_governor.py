"""Worker-count tuning for the per-individual alignment passes."""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class ResourceSnapshot:
    cpu_count: int


class ResourceGovernor:
    """Computes safe worker recommendations from local machine resources.

    Small passes are not worth spreading over threads, so each worker is
    given at least `min_items_per_worker` individuals.
    """

    def __init__(
        self,
        resource_mode: str = "auto",
        safe_auto_workers: bool = True,
        min_items_per_worker: int = 256,
    ):
        self.resource_mode = resource_mode
        self.safe_auto_workers = safe_auto_workers
        self.min_items_per_worker = max(1, min_items_per_worker)

    def snapshot(self) -> ResourceSnapshot:
        return ResourceSnapshot(cpu_count=max(1, os.cpu_count() or 1))

    def recommend_workers(self, requested_workers: int, item_count: int) -> int:
        requested_workers = max(1, int(requested_workers))
        if self.resource_mode != "auto":
            return requested_workers

        snap = self.snapshot()
        cpu_cap = max(1, snap.cpu_count - 1) if self.safe_auto_workers else snap.cpu_count
        work_cap = max(1, item_count // self.min_items_per_worker)

        if self.safe_auto_workers:
            cpu_cap = min(cpu_cap, 8)

        return max(1, min(requested_workers, cpu_cap, work_cap))
