# workers/favorites_pruner/config.py
"""
Configuration for the favorites pruner worker.
"""
from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass
class WorkerConfig:
    """Configuration for the favorites pruner worker."""

    # Worker identification
    worker_id: str = os.getenv("WORKER_ID", f"pruner-{os.getpid()}")

    # Scheduling
    poll_interval_seconds: int = int(os.getenv("PRUNER_INTERVAL_SECONDS", "3600"))
    run_once: bool = os.getenv("PRUNER_RUN_ONCE", "false").lower() == "true"

    # Batching
    page_size: int = int(os.getenv("PRUNER_PAGE_SIZE", "100"))
    lookup_batch_size: int = int(os.getenv("PRUNER_LOOKUP_BATCH_SIZE", "10"))

    # Supabase
    supabase_url: str = os.getenv("SUPABASE_URL", "")
    supabase_key: str = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")

    def validate(self) -> list[str]:
        errors: list[str] = []

        if not self.supabase_url:
            errors.append("SUPABASE_URL is required")

        if not self.supabase_key:
            errors.append("SUPABASE_SERVICE_ROLE_KEY is required")

        if self.page_size <= 0:
            errors.append("PRUNER_PAGE_SIZE must be positive")

        if self.lookup_batch_size <= 0:
            errors.append("PRUNER_LOOKUP_BATCH_SIZE must be positive")

        return errors


def get_config() -> WorkerConfig:
    return WorkerConfig()
