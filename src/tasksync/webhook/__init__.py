"""GitHub webhook authentication, payload models and event routing.

The dispatcher lives in ``tasksync.webhook.dispatcher``; it is not
re-exported here because the sync handlers it routes to import these
payload models.
"""

from tasksync.webhook.models import (
    EventType,
    GitHubBranch,
    GitHubCommit,
    GitHubInstallationRef,
    GitHubIssue,
    GitHubPullRequest,
    GitHubRepository,
    GitHubUser,
    InstallationAction,
    IssueAction,
    PullRequestAction,
    WebhookPayload,
)
from tasksync.webhook.signature import (
    SIGNATURE_PREFIX,
    compute_signature,
    parse_payload,
    verify_signature,
)

__all__ = [
    "EventType",
    "GitHubBranch",
    "GitHubCommit",
    "GitHubInstallationRef",
    "GitHubIssue",
    "GitHubPullRequest",
    "GitHubRepository",
    "GitHubUser",
    "InstallationAction",
    "IssueAction",
    "PullRequestAction",
    "WebhookPayload",
    "SIGNATURE_PREFIX",
    "compute_signature",
    "parse_payload",
    "verify_signature",
]
