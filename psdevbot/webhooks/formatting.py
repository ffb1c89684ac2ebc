"""Render webhook events as Showdown ``addhtmlbox`` HTML."""

from __future__ import annotations

import re

from psdevbot.config import Settings
from psdevbot.core.github_users import GitHubUserCache
from psdevbot.models import OutboundMessage
from psdevbot.webhooks.models import Commit, PullRequestEvent, PushEvent, Repository

_ISSUE_RE = re.compile(r"#([0-9]+)")
_HTML_ESCAPES = str.maketrans({
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
    "/": "&#x2f;",
})
ELLIPSIS = "…"

PULL_REQUEST_ACTIONS = {
    "synchronize": "updated",
    "review_requested": "requested a review for",
}


def escape_html(text: str) -> str:
    return text.translate(_HTML_ESCAPES)


def first_line(text: str) -> tuple[str, bool]:
    """Return the first line and whether anything was cut off."""
    line, newline, rest = text.partition("\n")
    return line, bool(newline and rest.strip())


def format_title(message: str, url: str) -> str:
    """Escape ``message`` and turn ``#123`` into links to ``url``'s issues."""
    return _ISSUE_RE.sub(
        lambda m: f"<a href='{escape_html(url)}/issues/{m.group(1)}'>{m.group(0)}</a>",
        escape_html(message),
    )


def html_command(room: str, html: str) -> OutboundMessage:
    # "here" would be picked up as a chat command keyword by the server
    return OutboundMessage.room_command(room, html.replace("here", "her&#101;"))


class MessageFormatter:
    def __init__(self, settings: Settings, users: GitHubUserCache | None = None) -> None:
        self._settings = settings
        self._users = users

    def repository(self, repository: Repository) -> str:
        name = self._settings.repository_alias(repository.name)
        return (
            f"[<a href='{escape_html(repository.html_url)}'><font color=FF00FF>"
            f"{escape_html(name)}</font></a>]"
        )

    def user_link(self, login: str) -> str:
        alias = self._settings.username_alias(login)
        return (
            f"<a href='https://github.com/{escape_html(login)}'>"
            f"<font color='909090'>{escape_html(alias)}</font></a>"
        )

    async def push(self, event: PushEvent, simple: bool = False) -> str:
        pushed = "<font color='red'>force-pushed</font>" if event.forced else "pushed"
        count = len(event.commits)
        output = (
            f"addhtmlbox {self.repository(event.repository)} "
            f"{self.user_link(event.pusher.name)} {pushed} "
            f"<a href='{escape_html(event.compare)}'><b>{count}</b> new "
            f"commit{'' if count == 1 else 's'}</a>"
        )
        if simple:
            return output
        for commit in event.commits:
            output += f"<br>{await self.commit(commit, event.repository.html_url)}"
        return output

    async def commit(self, commit: Commit, repository_url: str) -> str:
        message, truncated = first_line(commit.message)
        formatted = format_title(message, repository_url)
        if truncated:
            formatted += ELLIPSIS
        return (
            f"<a href='{escape_html(commit.url)}'><font color=606060>"
            f"<kbd>{escape_html(commit.id[:6])}</kbd></font></a>\n"
            f"{await self.author(commit)}: "
            f"<span title='{escape_html(commit.message)}'>{formatted}</span>"
        )

    async def author(self, commit: Commit) -> str:
        author = commit.author
        if author.username is None:
            return f"<font color=909090>{escape_html(author.name)}</font>"
        username = escape_html(self._settings.username_alias(author.username))
        user = await self._users.fetch(author.username) if self._users is not None else None
        if user is not None:
            username = f"<a href='{escape_html(user.html_url)}'><font color=909090>{username}</font></a>"
        else:
            username = f"<font color=909090>{username}</font>"
        return f'<span title="{escape_html(author.name)}">{username}</span>'

    def pull_request(self, event: PullRequestEvent) -> str:
        action = PULL_REQUEST_ACTIONS.get(event.action, event.action)
        pull_request = event.pull_request
        title, truncated = first_line(pull_request.title)
        title = escape_html(title) + (ELLIPSIS if truncated else "")
        return (
            f"{self.repository(event.repository)} {self.user_link(event.sender.login)} "
            f"{escape_html(action)} pull request "
            f"<a href='{escape_html(pull_request.html_url)}'>#{pull_request.number}</a>: {title}"
        )
