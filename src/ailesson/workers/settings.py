"""arq worker settings module.

Import path for arq CLI: arq ailesson.workers.settings.WorkerSettings
"""

from __future__ import annotations

from ailesson.workers.leaderboard_worker import LeaderboardWorkerSettings as WorkerSettings

__all__ = ["WorkerSettings"]
