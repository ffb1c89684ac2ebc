"""Tests for webhook message formatting."""

import httpx
import pytest

from psdevbot.config import Settings
from psdevbot.core.github_users import GitHubUserCache
from psdevbot.models import MessageKind
from psdevbot.webhooks.formatting import (
    MessageFormatter,
    escape_html,
    first_line,
    format_title,
    html_command,
)
from psdevbot.webhooks.models import (
    Author,
    Commit,
    PullRequest,
    PullRequestEvent,
    Pusher,
    PushEvent,
    Repository,
    Sender,
)


def _settings(**kwargs):
    return Settings(
        server="wss://localhost/showdown/websocket",
        user="",
        password="",
        room="development",
        **kwargs,
    )


@pytest.fixture
def formatter():
    return MessageFormatter(_settings())


def sample_commit(message="Hello, world!", username="xfix"):
    return Commit(
        id="0da2590a700d054fc2ce39ddc9c95f360329d9be",
        message=message,
        author=Author(name="Konrad Borowski", username=username),
        url="http://example.com",
    )


def sample_pull_request(title="Hello, world", action="created"):
    return PullRequestEvent(
        action=action,
        pull_request=PullRequest(number=1, html_url="http://example.com/pr/1", title=title),
        repository=Repository(
            name="ExampleCom",
            full_name="Super/ExampleCom",
            html_url="http://example.com/",
            default_branch="master",
        ),
        sender=Sender(login="Me"),
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class TestHelpers:
    def test_escape_html(self):
        assert escape_html("<a href='x'>\"&\"</a>") == (
            "&lt;a href=&#x27;x&#x27;&gt;&quot;&amp;&quot;&lt;&#x2f;a&gt;"
        )

    def test_first_line_single(self):
        assert first_line("Hello, world!") == ("Hello, world!", False)

    def test_first_line_multi(self):
        assert first_line("Subject\n\nBody") == ("Subject", True)

    def test_first_line_trailing_newline(self):
        assert first_line("Subject\n") == ("Subject", False)

    def test_format_title_links_issues(self):
        assert format_title("Fix #12 & #3", "https://github.com/smogon/sprites") == (
            "Fix <a href='https:&#x2f;&#x2f;github.com&#x2f;smogon&#x2f;sprites/issues/12'>#12</a>"
            " &amp; <a href='https:&#x2f;&#x2f;github.com&#x2f;smogon&#x2f;sprites/issues/3'>#3</a>"
        )

    def test_html_command_avoids_here_keyword(self):
        message = html_command("development", "addhtmlbox where is it")
        assert message.kind is MessageKind.ROOM_COMMAND
        assert message.room == "development"
        assert message.text == "addhtmlbox wher&#101; is it"


# ---------------------------------------------------------------------------
# Commits
# ---------------------------------------------------------------------------

class TestCommit:
    async def test_commit(self, formatter):
        view = await formatter.commit(sample_commit(), "shouldn't be used")
        assert view == (
            "<a href='http:&#x2f;&#x2f;example.com'>"
            "<font color=606060><kbd>0da259</kbd></font></a>\n"
            '<span title="Konrad Borowski"><font color=909090>xfix</font></span>: '
            "<span title='Hello, world!'>Hello, world!</span>"
        )
        assert "…" not in view

    async def test_multiline_commit_is_truncated(self, formatter):
        view = await formatter.commit(sample_commit("Fix #5\n\nDetails"), "https://x.test")
        assert view.endswith(
            "<span title='Fix #5\n\nDetails'>"
            "Fix <a href='https:&#x2f;&#x2f;x.test/issues/5'>#5</a>…</span>"
        )

    async def test_author_without_username(self, formatter):
        view = await formatter.commit(sample_commit(username=None), "")
        assert "<font color=909090>Konrad Borowski</font>: " in view

    async def test_author_alias(self):
        formatter = MessageFormatter(_settings(username_aliases={"XFIX": "Konrad"}))
        view = await formatter.commit(sample_commit(), "")
        assert "<font color=909090>Konrad</font>" in view

    async def test_author_with_github_profile(self):
        def handler(request):
            return httpx.Response(200, json={"login": "xfix", "html_url": "https://github.com/xfix"})

        client = httpx.AsyncClient(
            base_url="https://api.github.com",
            transport=httpx.MockTransport(handler),
        )
        users = GitHubUserCache(client)
        formatter = MessageFormatter(_settings(), users)
        view = await formatter.commit(sample_commit(), "")
        assert (
            '<span title="Konrad Borowski"><a href=\'https:&#x2f;&#x2f;github.com&#x2f;xfix\'>'
            "<font color=909090>xfix</font></a></span>"
        ) in view
        await users.close()

    async def test_profile_is_fetched_once_across_commits(self):
        requests = []

        def handler(request):
            requests.append(request.url.path)
            return httpx.Response(200, json={"login": "xfix", "html_url": "https://github.com/xfix"})

        client = httpx.AsyncClient(
            base_url="https://api.github.com",
            transport=httpx.MockTransport(handler),
        )
        users = GitHubUserCache(client)
        formatter = MessageFormatter(_settings(), users)
        for _ in range(3):
            view = await formatter.commit(sample_commit(), "")
            assert "<a href='https:&#x2f;&#x2f;github.com&#x2f;xfix'>" in view
        assert requests == ["/users/xfix"]
        assert "xfix" in users
        await users.close()

    async def test_escapes_user_text(self, formatter):
        commit = Commit(
            id="abcdef123",
            message="<script>alert(1)</script>",
            author=Author(name='"Bobby" <tables>', username=None),
            url="http://example.com",
        )
        view = await formatter.commit(commit, "")
        assert "<script>" not in view
        assert "&lt;script&gt;" in view
        assert "&quot;Bobby&quot; &lt;tables&gt;" in view


# ---------------------------------------------------------------------------
# Push events
# ---------------------------------------------------------------------------

def sample_push(commits, forced=False, name="pokemon-showdown"):
    return PushEvent(
        ref="refs/heads/master",
        forced=forced,
        commits=commits,
        compare="https://github.com/smogon/pokemon-showdown/compare/a...b",
        pusher=Pusher(name="xfix"),
        repository=Repository(
            name=name,
            full_name=f"smogon/{name}",
            html_url=f"https://github.com/smogon/{name}",
            default_branch="master",
        ),
    )


class TestPush:
    async def test_single_commit(self, formatter):
        message = await formatter.push(sample_push([sample_commit()]))
        assert message.startswith(
            "addhtmlbox [<a href='https:&#x2f;&#x2f;github.com&#x2f;smogon&#x2f;pokemon-showdown'>"
            "<font color=FF00FF>server</font></a>] "
            "<a href='https://github.com/xfix'><font color='909090'>xfix</font></a> pushed "
        )
        assert "<b>1</b> new commit</a><br>" in message
        assert "0da259" in message
        assert "Konrad Borowski" in message
        assert "Hello, world!" in message
        assert "…" not in message

    async def test_commits_in_order(self, formatter):
        commits = [sample_commit(f"Commit {i}") for i in range(3)]
        message = await formatter.push(sample_push(commits))
        assert "<b>3</b> new commits</a>" in message
        assert message.index("Commit 0") < message.index("Commit 1") < message.index("Commit 2")
        assert message.count("<br>") == 3

    async def test_force_push(self, formatter):
        message = await formatter.push(sample_push([sample_commit()], forced=True))
        assert "<font color='red'>force-pushed</font>" in message

    async def test_simple_format_omits_commits(self, formatter):
        message = await formatter.push(sample_push([sample_commit()]), simple=True)
        assert "<br>" not in message
        assert "<b>1</b> new commit</a>" in message

    async def test_unaliased_repository(self, formatter):
        message = await formatter.push(sample_push([], name="sprites"))
        assert "<font color=FF00FF>sprites</font>" in message


# ---------------------------------------------------------------------------
# Pull requests
# ---------------------------------------------------------------------------

class TestPullRequest:
    def test_pull_request(self, formatter):
        assert formatter.pull_request(sample_pull_request()) == (
            "[<a href='http:&#x2f;&#x2f;example.com&#x2f;'><font color=FF00FF>"
            "ExampleCom</font></a>] <a href='https://github.com/Me'><font "
            "color='909090'>Me</font></a> created pull request "
            "<a href='http:&#x2f;&#x2f;example.com&#x2f;pr&#x2f;1'>#1</a>: Hello, world"
        )

    def test_pull_request_with_an_alias(self):
        formatter = MessageFormatter(_settings(username_aliases={"mE": "Not me"}))
        assert formatter.pull_request(sample_pull_request()) == (
            "[<a href='http:&#x2f;&#x2f;example.com&#x2f;'><font color=FF00FF>"
            "ExampleCom</font></a>] <a href='https://github.com/Me'><font "
            "color='909090'>Not me</font></a> created pull request "
            "<a href='http:&#x2f;&#x2f;example.com&#x2f;pr&#x2f;1'>#1</a>: Hello, world"
        )

    def test_action_names(self, formatter):
        view = formatter.pull_request(sample_pull_request(action="synchronize"))
        assert " updated pull request " in view
        view = formatter.pull_request(sample_pull_request(action="review_requested"))
        assert " requested a review for pull request " in view

    def test_multiline_title(self, formatter):
        view = formatter.pull_request(sample_pull_request(title="Add <thing>\nmore"))
        assert view.endswith(": Add &lt;thing&gt;…")
