"""GitHub webhook payload schemas (only the fields the relay formats)."""

from __future__ import annotations

from pydantic import BaseModel, Field


class InitialRepository(BaseModel):
    full_name: str


class InitialPayload(BaseModel):
    """Just enough of any payload to pick the room route."""

    repository: InitialRepository


class Repository(BaseModel):
    name: str
    full_name: str = ""
    html_url: str
    default_branch: str = ""


class Pusher(BaseModel):
    name: str


class Author(BaseModel):
    name: str
    username: str | None = None


class Commit(BaseModel):
    id: str
    message: str
    author: Author
    url: str


class PushEvent(BaseModel):
    ref: str
    forced: bool = False
    commits: list[Commit] = Field(default_factory=list)
    compare: str
    pusher: Pusher
    repository: Repository

    @property
    def branch(self) -> str:
        return self.ref.rsplit("/", 1)[-1]


class PullRequest(BaseModel):
    number: int
    html_url: str
    title: str


class Sender(BaseModel):
    login: str


class PullRequestEvent(BaseModel):
    action: str
    pull_request: PullRequest
    repository: Repository
    sender: Sender
