#!/usr/bin/env python3
"""
Login Attempt Retention Sweep Worker

Deletes login attempts older than the retention period from auth_db.
Designed to be safe to run at any time:
- The cutoff is computed once per run, so attempts written during a sweep
  are never touched
- Repeated or overlapping runs only repeat no-op deletions
- A failed run deletes nothing it should not and is retried next interval

Usage:
    python sweep_login_attempts.py          # run forever
    python sweep_login_attempts.py --once   # single sweep, then exit

Environment Variables:
    MONGO_URI: MongoDB connection string
    LOGIN_ATTEMPT_RETENTION_DAYS: Days of attempts to keep (default: 30)
    SWEEP_INTERVAL_MINUTES: Minutes between sweeps (default: 60)
    LOG_LEVEL: Logging level (default: INFO)
"""
import argparse
import asyncio
import logging
import signal
import sys
from datetime import datetime, timedelta
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from pymongo.errors import PyMongoError

from accountguard.core.timeutils import to_storage, utcnow
from accountguard.database.databases import auth_db
from accountguard.services.login_ledger import LoginAttemptLedger


# ==================== Configuration ====================

class SweepConfig(BaseSettings):
    """Worker configuration from environment."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # MongoDB
    mongo_uri: str = Field(default="mongodb://mongodb:27017")
    auth_db_name: str = Field(default=auth_db.DB_NAME)

    # Sweep settings
    login_attempt_retention_days: int = Field(default=30, ge=1)
    sweep_interval_minutes: int = Field(default=60, ge=1)

    # Logging
    log_level: str = Field(default="INFO")


config = SweepConfig()


# ==================== Logging Setup ====================

logging.basicConfig(
    level=getattr(logging, config.log_level.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("retention_sweep")

SWEEP_STATE_ID = "retention_sweep"


# ==================== Main Sweep Worker ====================

class RetentionSweepWorker:
    """Periodic purge of expired login attempts."""

    def __init__(self, sweep_config: Optional[SweepConfig] = None):
        self.config = sweep_config or config
        self.mongo_client: Optional[AsyncIOMotorClient] = None
        self.running = False
        self.db: Optional[AsyncIOMotorDatabase] = None
        self.ledger: Optional[LoginAttemptLedger] = None

    @property
    def retention(self) -> timedelta:
        return timedelta(days=self.config.login_attempt_retention_days)

    async def connect(self, client: Optional[AsyncIOMotorClient] = None):
        """Connect to MongoDB (or attach to an existing client)."""
        if client is None:
            client = AsyncIOMotorClient(self.config.mongo_uri)
            await client.admin.command("ping")
            logger.info("Connected to MongoDB")

        self.mongo_client = client
        self.db = client[self.config.auth_db_name]
        self.ledger = LoginAttemptLedger(self.db)

    async def disconnect(self):
        if self.mongo_client:
            self.mongo_client.close()
        logger.info("Disconnected")

    async def sweep_once(self, now: Optional[datetime] = None) -> dict[str, Any]:
        """
        Run one sweep.

        Returns:
            Stats dict with the cutoff used and the number of attempts deleted
            (0 when the store failed)
        """
        cutoff = (now or utcnow()) - self.retention
        start_time = utcnow()

        try:
            deleted = await self.ledger.purge_older_than(cutoff)
        except PyMongoError as e:
            logger.error(f"Sweep failed for cutoff {cutoff.isoformat()}: {e}")
            return {
                "cutoff": cutoff.isoformat(),
                "deleted": 0,
                "complete": False,
                "error": str(e),
            }

        elapsed = (utcnow() - start_time).total_seconds()
        await self._save_state(cutoff, deleted)

        logger.info(
            f"Sweep complete: {deleted} attempts older than {cutoff.isoformat()} "
            f"deleted in {round(elapsed, 2)}s"
        )
        return {
            "cutoff": cutoff.isoformat(),
            "deleted": deleted,
            "elapsed_seconds": round(elapsed, 2),
            "complete": True,
        }

    async def _save_state(self, cutoff: datetime, deleted: int):
        """Record the last successful sweep in the database metadata."""
        now = to_storage(utcnow())
        await self.db[auth_db.Collections.METADATA].update_one(
            {"_id": SWEEP_STATE_ID},
            {
                "$set": {
                    "last_cutoff": to_storage(cutoff),
                    "last_deleted": deleted,
                    "updated_at": now,
                },
                "$inc": {"total_deleted": deleted},
                "$setOnInsert": {"started_at": now},
            },
            upsert=True,
        )

    async def run(self):
        """Main worker loop."""
        self.running = True

        while self.running:
            try:
                await self.sweep_once()

                logger.info(f"Sleeping {self.config.sweep_interval_minutes} minutes until next sweep...")
                await asyncio.sleep(self.config.sweep_interval_minutes * 60)
            except asyncio.CancelledError:
                logger.info("Worker cancelled")
                break
            except PyMongoError as e:
                logger.error(f"Error in sweep loop: {e}")
                await asyncio.sleep(60)  # Wait before retry

    def stop(self):
        """Stop the worker gracefully."""
        logger.info("Stopping worker...")
        self.running = False


# ==================== Main Entry Point ====================

async def main(once: bool = False):
    """Main entry point."""
    worker = RetentionSweepWorker()

    # Signal handlers for graceful shutdown
    loop = asyncio.get_running_loop()

    def shutdown_handler(sig):
        logger.info(f"Received signal {sig.name}")
        worker.stop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda s=sig: shutdown_handler(s))

    try:
        await worker.connect()
        if once:
            await worker.sweep_once()
        else:
            await worker.run()
    except PyMongoError as e:
        logger.error(f"Worker error: {e}")
        sys.exit(1)
    finally:
        await worker.disconnect()
        logger.info("Worker shutdown complete")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Login attempt retention sweep")
    parser.add_argument("--once", action="store_true", help="Run a single sweep and exit")
    args = parser.parse_args()

    logger.info("=" * 60)
    logger.info("Login Attempt Retention Sweep Worker")
    logger.info(f"Retention: {config.login_attempt_retention_days} days")
    logger.info(f"Sweep interval: {config.sweep_interval_minutes} minutes")
    logger.info("=" * 60)

    asyncio.run(main(once=args.once))
