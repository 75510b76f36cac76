"""Main entry point for the Feedback Quality Analytics service."""

import asyncio
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI

from .analytics.aggregator import Aggregator
from .analytics.facade import AnalyticsFacade
from .analytics.store import FeedbackStore, SqlAlchemyFeedbackStore
from .api.analytics_api import create_analytics_api
from .cache.request_cache import RequestCache
from .config.settings import SystemConfig
from .database.connection import DatabaseManager
from .utils.logging import setup_logging, get_logger


class FeedbackAnalyticsSystem:
    """Composition root: wires config, cache, store, facade and API together."""

    def __init__(self, config: Optional[SystemConfig] = None, config_path: Optional[str] = None,
                 store: Optional[FeedbackStore] = None):
        # Load configuration
        if config is None:
            config = SystemConfig.from_file(config_path) if config_path else SystemConfig.from_env()
        self.config = config

        if not self.config.validate():
            raise ValueError("Invalid configuration")

        setup_logging(self.config.logging)
        self.logger = get_logger(__name__)

        self.cache = RequestCache(
            default_ttl=self.config.cache.default_ttl,
            coalesce_cold_misses=self.config.cache.coalesce_cold_misses,
        )

        self.db_manager: Optional[DatabaseManager] = None
        if store is None:
            self.db_manager = DatabaseManager.from_config(self.config.database)
            store = SqlAlchemyFeedbackStore(self.db_manager)
        self.store = store

        analytics = self.config.analytics
        self.facade = AnalyticsFacade(
            store=self.store,
            cache=self.cache,
            aggregator=Aggregator(top_categories=analytics.top_categories, top_providers=analytics.top_providers),
            ttl=self.config.cache.analytics_ttl,
            stale_while_revalidate=self.config.cache.stale_while_revalidate,
            max_retries=analytics.max_retries,
            initial_delay=analytics.initial_delay,
            max_delay=analytics.max_delay,
            comparison_days=analytics.comparison_days,
            default_timeframe=analytics.default_timeframe,
        )

        self._sweeper: Optional[asyncio.Task] = None
        self.app = create_analytics_api(self.facade, self.db_manager, lifespan=self.lifespan)

    @asynccontextmanager
    async def lifespan(self, app: FastAPI):
        """Start the cache sweeper on startup and release resources on shutdown."""
        self.start()
        try:
            yield
        finally:
            await self.stop()

    def start(self) -> None:
        self.logger.info("Starting Feedback Quality Analytics service...")
        if self.db_manager:
            self.db_manager.initialize()
            self.db_manager.create_tables()
        self._sweeper = asyncio.get_running_loop().create_task(self._sweep_expired())

    async def stop(self) -> None:
        self.logger.info("Stopping Feedback Quality Analytics service...")
        if self._sweeper:
            self._sweeper.cancel()
            try:
                await self._sweeper
            except asyncio.CancelledError:
                pass
            self._sweeper = None

        await self.cache.aclose()
        self.cache.clear()

        if self.db_manager:
            self.db_manager.close()
        self.logger.info("Feedback Quality Analytics service stopped")

    async def _sweep_expired(self) -> None:
        """Periodically drop expired cache entries."""
        while True:
            await asyncio.sleep(self.config.cache.sweep_interval)
            removed = self.cache.clear_expired()
            if removed:
                self.logger.debug(f"Swept {removed} expired cache entries")

    def get_system_status(self) -> dict:
        """Get current system status."""
        return {
            "sweeper_running": self._sweeper is not None and not self._sweeper.done(),
            "cache": self.cache.get_stats(),
            "config_valid": self.config.validate(),
            "database_healthy": self.db_manager.health_check() if self.db_manager else None,
        }


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Feedback Quality Analytics service")
    parser.add_argument("--config", help="Path to configuration file")
    parser.add_argument("--host", help="Bind address (overrides configuration)")
    parser.add_argument("--port", type=int, help="Bind port (overrides configuration)")
    args = parser.parse_args()

    load_dotenv()

    try:
        system = FeedbackAnalyticsSystem(config_path=args.config)
        uvicorn.run(
            system.app,
            host=args.host or system.config.api.host,
            port=args.port or system.config.api.port,
            log_config=None,
        )
    except KeyboardInterrupt:
        print("\nShutdown requested by user")
    except Exception as e:
        print(f"System error: {str(e)}")
        sys.exit(1)


if __name__ == "__main__":
    main()
