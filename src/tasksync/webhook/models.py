"""GitHub webhook payload models.

Payloads from every supported event share one envelope model; each event
only populates the sections it needs. Unknown fields are ignored so new
GitHub payload fields never break deserialization.

GitHub Webhook Payload Structure (issues event, abridged):
{
  "action": "opened",
  "issue": {"number": 1, "title": "...", "body": "...", "state": "open"},
  "assignee": {"login": "octocat"},
  "repository": {"id": 1, "full_name": "org/repo"},
  "installation": {"id": 42}
}
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EventType(str, Enum):
    """Event types routed by the dispatcher (X-GitHub-Event header)."""

    INSTALLATION_REPOSITORIES = "installation_repositories"
    ISSUES = "issues"
    PUSH = "push"
    INSTALLATION = "installation"
    PULL_REQUEST = "pull_request"


class IssueAction(str, Enum):
    """Issue event actions with a synchronization effect."""

    OPENED = "opened"
    EDITED = "edited"
    CLOSED = "closed"
    REOPENED = "reopened"
    DELETED = "deleted"
    ASSIGNED = "assigned"
    UNASSIGNED = "unassigned"


class PullRequestAction(str, Enum):
    """Pull request event actions with a synchronization effect."""

    CLOSED = "closed"
    REOPENED = "reopened"
    ASSIGNED = "assigned"
    UNASSIGNED = "unassigned"
    EDITED = "edited"


class InstallationAction(str, Enum):
    """Installation lifecycle actions."""

    SUSPEND = "suspend"
    UNSUSPEND = "unsuspend"
    DELETED = "deleted"


class _GitHubModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class GitHubUser(_GitHubModel):
    id: Optional[int] = None
    login: str = Field(..., min_length=1)


class GitHubRepository(_GitHubModel):
    id: Optional[int] = None
    full_name: str = Field(..., min_length=1)
    private: bool = False


class GitHubIssue(_GitHubModel):
    """Issue section of an issues event."""

    number: int = Field(..., gt=0)
    title: str = ""
    body: str = ""
    state: str = "open"
    html_url: str = ""

    @field_validator("title", "body", mode="before")
    @classmethod
    def null_to_empty(cls, v: Optional[str]) -> str:
        """GitHub sends null for empty bodies."""
        return "" if v is None else v


class GitHubBranch(_GitHubModel):
    ref: str = ""


class GitHubPullRequest(_GitHubModel):
    """Pull request section of a pull_request event."""

    number: int = Field(..., gt=0)
    title: str = ""
    body: str = ""
    state: str = "open"
    merged: bool = False
    html_url: str = ""
    head: Optional[GitHubBranch] = None

    @field_validator("title", "body", mode="before")
    @classmethod
    def null_to_empty(cls, v: Optional[str]) -> str:
        return "" if v is None else v

    @field_validator("merged", mode="before")
    @classmethod
    def null_to_false(cls, v: Optional[bool]) -> bool:
        return bool(v)

    @property
    def is_open(self) -> bool:
        return self.state == "open"

    @property
    def branch(self) -> str:
        return self.head.ref if self.head is not None else ""


class GitHubCommit(_GitHubModel):
    id: str = ""
    message: str = ""


class GitHubInstallationRef(_GitHubModel):
    """Installation section present on app webhook deliveries."""

    id: int
    account: Optional[GitHubUser] = None


class WebhookPayload(_GitHubModel):
    """Envelope for every supported webhook event.

    Attributes:
        action: Event action, absent for push events.
        repository: Repository the event happened in.
        installation: App installation that delivered the event.
        issue: Issue section of issues events.
        pull_request: Pull request section of pull_request events.
        assignee: User (un)assigned by assigned/unassigned actions.
        commits: Commits of a push event, oldest first.
        repositories_removed: Repositories dropped from an installation.
    """

    action: Optional[str] = None
    repository: Optional[GitHubRepository] = None
    installation: Optional[GitHubInstallationRef] = None
    issue: Optional[GitHubIssue] = None
    pull_request: Optional[GitHubPullRequest] = None
    assignee: Optional[GitHubUser] = None
    commits: List[GitHubCommit] = Field(default_factory=list)
    repositories_removed: Optional[List[GitHubRepository]] = None

    @field_validator("commits", mode="before")
    @classmethod
    def null_commits(cls, v: Optional[list]) -> list:
        return [] if v is None else v

    @property
    def commit_messages(self) -> List[str]:
        return [commit.message for commit in self.commits]
