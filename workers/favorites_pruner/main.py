from __future__ import annotations

import logging
import signal
import sys
import time
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv

load_dotenv(find_dotenv(usecwd=True))

from supabase import Client, create_client

from cookeasy.app.domain.errors import GatewayError, WorkerConfigurationError
from cookeasy.app.domain.models import UserProfile
from cookeasy.app.infra.db.base import RecipeRepository, UserRepository
from cookeasy.app.infra.db.supabase_repo import SupabaseRecipeRepository, SupabaseUserRepository
from workers.favorites_pruner.config import WorkerConfig, get_config

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger("favorites-pruner")


def _create_supabase_client(config: WorkerConfig) -> Client:
    if not config.supabase_url or not config.supabase_key:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY required")
    return create_client(config.supabase_url, config.supabase_key)


@dataclass
class PruneReport:
    users_scanned: int = 0
    users_changed: int = 0
    favorites_removed: int = 0


class FavoritesPrunerWorker:
    """
    Removes favorite identifiers whose recipe no longer exists.
    Deletes already prune favorites; this sweep covers records left behind
    by failed or older deletes.
    """

    def __init__(
        self,
        config: WorkerConfig,
        user_repository: UserRepository,
        recipe_repository: RecipeRepository,
    ):
        self.config = config
        self.users = user_repository
        self.recipes = recipe_repository
        self.running = False
        self.runs_completed = 0

    def start(self) -> None:
        self._validate_configuration()
        self._setup_signal_handlers()
        logger.info(
            "Starting favorites pruner: id=%s, interval=%ds, run_once=%s",
            self.config.worker_id,
            self.config.poll_interval_seconds,
            self.config.run_once,
        )
        self.running = True
        self._run_main_loop()
        logger.info("Pruner shutdown complete: runs_completed=%d", self.runs_completed)

    def _validate_configuration(self) -> None:
        errors = self.config.validate()
        if errors:
            raise WorkerConfigurationError(errors)

    def _setup_signal_handlers(self) -> None:
        signal.signal(signal.SIGTERM, self._handle_shutdown_signal)
        signal.signal(signal.SIGINT, self._handle_shutdown_signal)

    def _run_main_loop(self) -> None:
        while self.running:
            try:
                report = self.run_once()
                logger.info(
                    "Prune pass done: scanned=%d, changed=%d, removed=%d",
                    report.users_scanned,
                    report.users_changed,
                    report.favorites_removed,
                )
            except GatewayError as exc:
                logger.error("Prune pass failed: %s", exc)

            self.runs_completed += 1
            if self.config.run_once:
                break
            self._sleep(self.config.poll_interval_seconds)

    def _sleep(self, seconds: int) -> None:
        deadline = time.monotonic() + seconds
        while self.running and time.monotonic() < deadline:
            time.sleep(min(1.0, deadline - time.monotonic()))

    def run_once(self) -> PruneReport:
        report = PruneReport()
        offset = 0
        while True:
            page = self.users.list_users_with_favorites(limit=self.config.page_size, offset=offset)
            if not page:
                break

            emptied = 0
            for user in page:
                report.users_scanned += 1
                removed = self._prune_user(user)
                if removed:
                    report.users_changed += 1
                    report.favorites_removed += removed
                    if removed == len(set(user.favorites)):
                        emptied += 1

            # Users left without favorites drop out of the listing
            offset += len(page) - emptied
            if len(page) < self.config.page_size:
                break
        return report

    def _prune_user(self, user: UserProfile) -> int:
        ids = list(dict.fromkeys(user.favorites))
        existing: set[str] = set()
        batch_size = self.config.lookup_batch_size
        for start in range(0, len(ids), batch_size):
            batch = ids[start:start + batch_size]
            existing.update(recipe.recipe_id for recipe in self.recipes.get_recipes_by_ids(batch))

        dangling = [recipe_id for recipe_id in ids if recipe_id not in existing]
        for recipe_id in dangling:
            self.users.remove_favorite(user.user_id, recipe_id)
        if dangling:
            logger.info("Pruned favorites: user=%s, removed=%d", user.user_id, len(dangling))
        return len(dangling)

    def _handle_shutdown_signal(self, signum: int, frame: object) -> None:
        logger.info("Received shutdown signal %d", signum)
        self.running = False


def main() -> None:
    config = get_config()
    client = _create_supabase_client(config)
    worker = FavoritesPrunerWorker(
        config=config,
        user_repository=SupabaseUserRepository(client),
        recipe_repository=SupabaseRecipeRepository(client),
    )
    worker.start()


if __name__ == "__main__":
    main()
