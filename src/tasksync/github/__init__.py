"""GitHub REST client and outbound task notifications."""

from tasksync.github.client import GitHubAPIError, GitHubClient, RateLimitError
from tasksync.github.notifier import GitHubTaskPublisher, TaskNotifier, TaskPublisher

__all__ = [
    "GitHubAPIError",
    "GitHubClient",
    "RateLimitError",
    "GitHubTaskPublisher",
    "TaskNotifier",
    "TaskPublisher",
]
