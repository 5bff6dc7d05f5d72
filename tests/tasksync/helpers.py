"""Builders shared by the sync engine tests."""

import asyncio
from dataclasses import dataclass

from tasksync.config import SyncSettings
from tasksync.store import Installation, InMemorySyncStore, Integration, Project, Task

SYSTEM_USER_ID = 99
MEMBER_USER_ID = 7
INSTALLATION_ID = 1
REPOSITORY = "org/repo"
WEBHOOK_SECRET = "test-webhook-secret"


def run_async(coro):
    return asyncio.run(coro)


@dataclass
class Seeded:
    """A project integrated with org/repo through the installation of "username"."""

    store: InMemorySyncStore
    project: Project
    installation: Installation
    integration: Integration

    def open_lane_id(self) -> int:
        return run_async(self.store.get_lane(self.project.id, done=False)).id

    def done_lane_id(self) -> int:
        return run_async(self.store.get_lane(self.project.id, done=True)).id

    def task(self, task_id: int) -> Task:
        return self.store.tasks[task_id]

    def drop_lane(self, done: bool) -> None:
        lane = run_async(self.store.get_lane(self.project.id, done=done))
        del self.store.lanes[lane.id]


def make_seeded() -> Seeded:
    store = InMemorySyncStore()
    project = store.add_project()
    installation = store.add_installation(
        INSTALLATION_ID, user_id=MEMBER_USER_ID, github_login="username"
    )
    store.add_member(project.id, MEMBER_USER_ID)
    integration = store.add_integration(project.id, installation.id, REPOSITORY)
    return Seeded(store, project, installation, integration)


def make_settings(**overrides) -> SyncSettings:
    values = {
        "github_webhook_secret": WEBHOOK_SECRET,
        "github_token": "ghs_test_token",
        "system_user_id": SYSTEM_USER_ID,
    }
    values.update(overrides)
    return SyncSettings(**values)
