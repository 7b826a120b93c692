"""
Tests for retention_sweep worker.

These tests cover:
- Deleting only attempts older than the retention period
- Idempotent repeated runs
- Sweep state tracking in _metadata
- Store failures reported without raising
"""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from pymongo.errors import PyMongoError


async def _insert_attempt(db, email, attempted_at, successful=False):
    await db.login_attempts.insert_one(
        {
            "email": email,
            "ip_address": "10.0.0.1",
            "successful": successful,
            "attempted_at": attempted_at.replace(tzinfo=None),
        }
    )


class TestSweepConfig:
    """Tests for worker configuration."""

    def test_default_retention_is_30_days(self):
        from workers.retention_sweep.sweep_login_attempts import SweepConfig

        sweep_config = SweepConfig()

        assert sweep_config.login_attempt_retention_days == 30
        assert sweep_config.sweep_interval_minutes == 60
        assert sweep_config.auth_db_name == "auth_db"


class TestSweepOnce:
    """Tests for a single sweep run."""

    @pytest.mark.asyncio
    async def test_deletes_only_expired_attempts(self, mock_async_mongo_client, fixed_now):
        from workers.retention_sweep.sweep_login_attempts import RetentionSweepWorker

        db = mock_async_mongo_client["auth_db"]
        await _insert_attempt(db, "old@example.com", fixed_now - timedelta(days=31))
        await _insert_attempt(db, "old@example.com", fixed_now - timedelta(days=45), successful=True)
        await _insert_attempt(db, "recent@example.com", fixed_now - timedelta(days=29))
        await _insert_attempt(db, "recent@example.com", fixed_now - timedelta(minutes=5))

        worker = RetentionSweepWorker()
        await worker.connect(client=mock_async_mongo_client)

        stats = await worker.sweep_once(now=fixed_now)

        assert stats["deleted"] == 2
        assert stats["complete"] is True
        remaining = await db.login_attempts.find({}).to_list(length=None)
        assert {doc["email"] for doc in remaining} == {"recent@example.com"}

    @pytest.mark.asyncio
    async def test_repeated_sweeps_are_idempotent(self, mock_async_mongo_client, fixed_now):
        from workers.retention_sweep.sweep_login_attempts import RetentionSweepWorker

        db = mock_async_mongo_client["auth_db"]
        await _insert_attempt(db, "old@example.com", fixed_now - timedelta(days=40))
        await _insert_attempt(db, "recent@example.com", fixed_now - timedelta(days=1))

        worker = RetentionSweepWorker()
        await worker.connect(client=mock_async_mongo_client)

        first = await worker.sweep_once(now=fixed_now)
        second = await worker.sweep_once(now=fixed_now)

        assert first["deleted"] == 1
        assert second["deleted"] == 0
        assert await db.login_attempts.count_documents({}) == 1

    @pytest.mark.asyncio
    async def test_sweep_state_is_saved(self, mock_async_mongo_client, fixed_now):
        from workers.retention_sweep.sweep_login_attempts import RetentionSweepWorker, SWEEP_STATE_ID

        db = mock_async_mongo_client["auth_db"]
        await _insert_attempt(db, "old@example.com", fixed_now - timedelta(days=60))

        worker = RetentionSweepWorker()
        await worker.connect(client=mock_async_mongo_client)

        await worker.sweep_once(now=fixed_now)
        await worker.sweep_once(now=fixed_now)

        state = await db["_metadata"].find_one({"_id": SWEEP_STATE_ID})
        assert state["last_deleted"] == 0
        assert state["total_deleted"] == 1
        assert state["last_cutoff"] == (fixed_now - timedelta(days=30)).replace(tzinfo=None)

    @pytest.mark.asyncio
    async def test_store_failure_reports_zero(self, mock_async_mongo_client, fixed_now):
        from workers.retention_sweep.sweep_login_attempts import RetentionSweepWorker

        worker = RetentionSweepWorker()
        await worker.connect(client=mock_async_mongo_client)
        worker.ledger.purge_older_than = AsyncMock(side_effect=PyMongoError("store down"))

        stats = await worker.sweep_once(now=fixed_now)

        assert stats["deleted"] == 0
        assert stats["complete"] is False
        assert "store down" in stats["error"]


class TestWorkerLifecycle:
    """Tests for worker start/stop."""

    def test_stop_clears_running_flag(self):
        from workers.retention_sweep.sweep_login_attempts import RetentionSweepWorker

        worker = RetentionSweepWorker()
        worker.running = True

        worker.stop()

        assert worker.running is False
