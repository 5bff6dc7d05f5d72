"""In-memory implementation of SyncStore.

Used when no database is configured and throughout the test suite. Every
method runs without awaiting between its reads and writes, so each one is
atomic with respect to other coroutines on the same event loop.
"""

import itertools
import logging
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional, Set, Tuple

from tasksync.errors import LinkConflictError
from tasksync.store.models import (
    Installation,
    Integration,
    IssueLink,
    IssueTaskDraft,
    NewIssueLink,
    NewPullRequestLink,
    Project,
    PullRequestLink,
    StatusLane,
    Task,
    pick_lane,
)


logger = logging.getLogger(__name__)


class InMemorySyncStore:
    """Dictionary-backed store satisfying SyncStore and ProjectMembership.

    Besides the protocol methods it exposes add_* helpers to seed the
    records that the REST layer and the authorization flow would normally
    create.
    """

    def __init__(self) -> None:
        self._ids: Iterator[int] = itertools.count(1)
        self.projects: Dict[int, Project] = {}
        self.lanes: Dict[int, StatusLane] = {}
        self.tasks: Dict[int, Task] = {}
        self.members: Dict[int, Set[int]] = {}
        self.installations: Dict[int, Installation] = {}
        self.integrations: Dict[int, Integration] = {}
        self.issue_links: Dict[int, IssueLink] = {}
        self.pull_request_links: Dict[int, PullRequestLink] = {}

    def _next_id(self) -> int:
        return next(self._ids)

    # Seeding ----------------------------------------------------------------

    def add_project(
        self,
        name: str = "Project",
        lanes: Tuple[str, ...] = ("To do", "In progress", "Done"),
    ) -> Project:
        """Create a project whose first lane is open and last lane is done."""
        project = Project(id=self._next_id(), name=name)
        self.projects[project.id] = project
        for ordinal, lane_name in enumerate(lanes):
            lane = StatusLane(
                id=self._next_id(),
                project_id=project.id,
                name=lane_name,
                ordinal=ordinal,
                is_open=ordinal == 0,
                is_done=ordinal == len(lanes) - 1,
            )
            self.lanes[lane.id] = lane
        return project

    def add_member(self, project_id: int, user_id: int) -> None:
        self.members.setdefault(project_id, set()).add(user_id)

    def add_task(
        self,
        project_id: int,
        name: str = "Task",
        description: str = "",
        created_by: int = 1,
        done: bool = False,
        deleted: bool = False,
    ) -> Task:
        project = self.projects[project_id]
        lane = pick_lane(self._lanes_of(project_id), done)
        project.task_counter += 1
        task = Task(
            id=self._next_id(),
            project_id=project_id,
            number=project.task_counter,
            name=name,
            description=description,
            status_id=lane.id,
            created_by=created_by,
            deleted_at=datetime.now(timezone.utc) if deleted else None,
        )
        self.tasks[task.id] = task
        return task

    def add_installation(
        self,
        installation_id: int,
        user_id: int,
        github_login: str,
        suspended: bool = False,
    ) -> Installation:
        installation = Installation(
            id=self._next_id(),
            installation_id=installation_id,
            user_id=user_id,
            github_login=github_login,
            suspended=suspended,
        )
        self.installations[installation.id] = installation
        return installation

    def add_integration(
        self,
        project_id: int,
        installation_pk: int,
        repository_full_name: str,
    ) -> Integration:
        if any(
            i.repository_full_name == repository_full_name
            for i in self.integrations.values()
        ):
            raise LinkConflictError(
                f"Repository already integrated: {repository_full_name}"
            )
        integration = Integration(
            id=self._next_id(),
            project_id=project_id,
            installation_id=installation_pk,
            repository_full_name=repository_full_name,
        )
        self.integrations[integration.id] = integration
        return integration

    def _lanes_of(self, project_id: int) -> List[StatusLane]:
        return [lane for lane in self.lanes.values() if lane.project_id == project_id]

    # Membership -------------------------------------------------------------

    async def is_project_member(self, project_id: int, user_id: int) -> bool:
        return user_id in self.members.get(project_id, set())

    # Integrations -----------------------------------------------------------

    async def get_integration_by_repository(
        self, repository_full_name: str
    ) -> Optional[Integration]:
        for integration in self.integrations.values():
            if integration.repository_full_name == repository_full_name:
                return integration
        return None

    async def get_integration(self, integration_id: int) -> Optional[Integration]:
        return self.integrations.get(integration_id)

    async def get_integration_for_project(
        self, project_id: int
    ) -> Optional[Integration]:
        for integration in self.integrations.values():
            if integration.project_id == project_id:
                return integration
        return None

    async def delete_integration(self, integration_id: int) -> bool:
        if self.integrations.pop(integration_id, None) is None:
            return False
        # Links belong to the integration
        for links in (self.issue_links, self.pull_request_links):
            for link_id in [
                k for k, v in links.items() if v.integration_id == integration_id
            ]:
                del links[link_id]
        return True

    async def delete_integrations_for_installation(self, installation_pk: int) -> int:
        doomed = [
            i.id
            for i in self.integrations.values()
            if i.installation_id == installation_pk
        ]
        for integration_id in doomed:
            await self.delete_integration(integration_id)
        return len(doomed)

    # Installations ----------------------------------------------------------

    async def get_installation(self, installation_id: int) -> Optional[Installation]:
        for installation in self.installations.values():
            if installation.installation_id == installation_id:
                return installation
        return None

    async def find_installation_by_login(self, login: str) -> Optional[Installation]:
        for installation in self.installations.values():
            if installation.github_login == login:
                return installation
        return None

    async def set_installation_suspended(
        self, installation_pk: int, suspended: bool
    ) -> None:
        installation = self.installations.get(installation_pk)
        if installation is not None:
            self.installations[installation_pk] = installation.model_copy(
                update={"suspended": suspended}
            )

    async def delete_installation(self, installation_pk: int) -> bool:
        return self.installations.pop(installation_pk, None) is not None

    # Tasks ------------------------------------------------------------------

    async def get_task(self, task_id: int) -> Optional[Task]:
        task = self.tasks.get(task_id)
        return task.model_copy() if task is not None else None

    async def find_task_by_number(self, project_id: int, number: int) -> Optional[Task]:
        for task in self.tasks.values():
            if (
                task.project_id == project_id
                and task.number == number
                and not task.is_deleted
            ):
                return task.model_copy()
        return None

    async def update_task(self, task: Task) -> None:
        if task.id in self.tasks:
            self.tasks[task.id] = task.model_copy()

    async def get_lane(self, project_id: int, done: bool) -> Optional[StatusLane]:
        return pick_lane(self._lanes_of(project_id), done)

    async def create_task_for_issue(
        self, draft: IssueTaskDraft, status_id: int
    ) -> Optional[Tuple[Task, IssueLink]]:
        integration_id = draft.integration.id
        if self._find_issue_link(integration_id, draft.issue_number) is not None:
            return None

        project = self.projects[draft.integration.project_id]
        project.task_counter += 1
        task = Task(
            id=self._next_id(),
            project_id=project.id,
            number=project.task_counter,
            name=draft.name,
            description=draft.description,
            status_id=status_id,
            assignee_id=draft.assignee_id,
            created_by=draft.created_by,
        )
        link = IssueLink(
            id=self._next_id(),
            task_id=task.id,
            integration_id=integration_id,
            issue_number=draft.issue_number,
            url=draft.url,
            title=draft.name,
            body=draft.description,
        )
        self.tasks[task.id] = task
        self.issue_links[link.id] = link
        return task.model_copy(), link.model_copy()

    # Issue links ------------------------------------------------------------

    def _find_issue_link(
        self, integration_id: int, issue_number: int
    ) -> Optional[IssueLink]:
        for link in self.issue_links.values():
            if (
                link.integration_id == integration_id
                and link.issue_number == issue_number
            ):
                return link
        return None

    async def get_issue_link(
        self, integration_id: int, issue_number: int
    ) -> Optional[IssueLink]:
        link = self._find_issue_link(integration_id, issue_number)
        return link.model_copy() if link is not None else None

    async def get_issue_link_for_task(self, task_id: int) -> Optional[IssueLink]:
        for link in self.issue_links.values():
            if link.task_id == task_id:
                return link.model_copy()
        return None

    async def create_issue_link(self, link: NewIssueLink) -> IssueLink:
        if self._find_issue_link(link.integration_id, link.issue_number) is not None:
            raise LinkConflictError(
                f"Issue #{link.issue_number} is already linked",
                task_id=link.task_id,
                external_number=link.issue_number,
            )
        if any(existing.task_id == link.task_id for existing in self.issue_links.values()):
            raise LinkConflictError(
                f"Task {link.task_id} already has an issue link",
                task_id=link.task_id,
                external_number=link.issue_number,
            )
        created = IssueLink(id=self._next_id(), **link.model_dump())
        self.issue_links[created.id] = created
        return created.model_copy()

    async def update_issue_link(self, link: IssueLink) -> None:
        if link.id in self.issue_links:
            self.issue_links[link.id] = link.model_copy()

    async def delete_issue_link(self, link_id: int) -> bool:
        return self.issue_links.pop(link_id, None) is not None

    async def delete_issue_link_and_task(self, link: IssueLink) -> None:
        self.issue_links.pop(link.id, None)
        self.tasks.pop(link.task_id, None)
        for link_id in [
            k for k, v in self.pull_request_links.items() if v.task_id == link.task_id
        ]:
            del self.pull_request_links[link_id]

    # Pull request links -----------------------------------------------------

    def _find_pull_request_link(
        self, integration_id: int, pull_number: int
    ) -> Optional[PullRequestLink]:
        for link in self.pull_request_links.values():
            if link.integration_id == integration_id and link.pull_number == pull_number:
                return link
        return None

    async def get_pull_request_link(
        self, integration_id: int, pull_number: int
    ) -> Optional[PullRequestLink]:
        link = self._find_pull_request_link(integration_id, pull_number)
        return link.model_copy() if link is not None else None

    async def get_pull_request_link_for_task(
        self, task_id: int
    ) -> Optional[PullRequestLink]:
        for link in self.pull_request_links.values():
            if link.task_id == task_id:
                return link.model_copy()
        return None

    async def create_pull_request_link(
        self, link: NewPullRequestLink
    ) -> PullRequestLink:
        if self._find_pull_request_link(link.integration_id, link.pull_number) is not None:
            raise LinkConflictError(
                f"Pull request #{link.pull_number} is already linked",
                task_id=link.task_id,
                external_number=link.pull_number,
            )
        if any(
            existing.task_id == link.task_id
            for existing in self.pull_request_links.values()
        ):
            raise LinkConflictError(
                f"Task {link.task_id} already has a pull request link",
                task_id=link.task_id,
                external_number=link.pull_number,
            )
        created = PullRequestLink(id=self._next_id(), **link.model_dump())
        self.pull_request_links[created.id] = created
        return created.model_copy()

    async def update_pull_request_link(self, link: PullRequestLink) -> None:
        if link.id in self.pull_request_links:
            self.pull_request_links[link.id] = link.model_copy()

    async def delete_pull_request_link(self, link_id: int) -> bool:
        return self.pull_request_links.pop(link_id, None) is not None

    async def health_check(self) -> bool:
        return True
