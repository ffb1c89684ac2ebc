"""Core relay machinery: outbound pacing, pull request dedup, user metadata."""

from psdevbot.core.dedup import PullRequestDedup
from psdevbot.core.github_users import GitHubUser, GitHubUserCache
from psdevbot.core.outbound import OutboundQueue

__all__ = [
    "PullRequestDedup",
    "GitHubUser",
    "GitHubUserCache",
    "OutboundQueue",
]
