"""
Data structures shared by the pipeline stages.

JSON documents consumed by the dashboard UI use camelCase keys; the
to_dict() helpers produce exactly that shape.
"""

from typing import Any, NamedTuple

UNKNOWN_AUTHOR = "unknown"


class RepoRegistryEntry(NamedTuple):
    """A tracked repository from the static registry."""

    name: str  # Full name: "owner/repo"
    category: str
    active: bool
    description: str

    @property
    def short_name(self) -> str:
        return get_repo_short_name(self.name)


class FetchWarning(NamedTuple):
    """A non-fatal problem recorded while processing one repository."""

    repo: str
    message: str


class RepoSummary(NamedTuple):
    """Summary metrics returned by the overview fetch for one repository."""

    name: str
    description: str | None
    is_archived: bool
    language: str | None
    open_issues: int
    open_prs: int
    last_release_tag: str | None
    last_release_at: str | None
    pushed_at: str | None
    commits_since_release: int = 0


class RepoOverview(NamedTuple):
    """One row of the overview snapshot."""

    name: str
    description: str | None
    language: str | None
    open_issues: int
    open_prs: int
    last_release: str | None
    last_release_tag: str | None
    commits_since_release: int
    last_push: str | None
    attention_score: float
    unengaged_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "language": self.language,
            "openIssues": self.open_issues,
            "openPRs": self.open_prs,
            "lastRelease": self.last_release,
            "lastReleaseTag": self.last_release_tag,
            "commitsSinceRelease": self.commits_since_release,
            "lastPush": self.last_push,
            "attentionScore": self.attention_score,
            "unengagedCount": self.unengaged_count,
        }


class UrgentItem(NamedTuple):
    """An open issue or PR that nobody has engaged with."""

    repo: str
    number: int
    title: str
    author: str
    created_at: str
    url: str
    type: str  # "issue" or "pr"

    def to_dict(self) -> dict[str, Any]:
        return {
            "repo": self.repo,
            "number": self.number,
            "title": self.title,
            "author": self.author,
            "createdAt": self.created_at,
            "url": self.url,
            "type": self.type,
        }


class RepoIssue(NamedTuple):
    title: str
    author: str
    labels: list[str]
    created_at: str
    comment_count: int
    url: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "author": self.author,
            "labels": list(self.labels),
            "createdAt": self.created_at,
            "commentCount": self.comment_count,
            "url": self.url,
        }


class RepoPR(NamedTuple):
    title: str
    author: str
    created_at: str
    review_count: int
    url: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "author": self.author,
            "createdAt": self.created_at,
            "reviewCount": self.review_count,
            "url": self.url,
        }


class RepoRelease(NamedTuple):
    tag_name: str
    published_at: str | None
    url: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "tagName": self.tag_name,
            "publishedAt": self.published_at,
            "url": self.url,
        }


class RepoDetail(NamedTuple):
    """The per-repository detail document."""

    name: str
    description: str | None
    language: str | None
    issues: list[RepoIssue]
    pull_requests: list[RepoPR]
    releases: list[RepoRelease]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "language": self.language,
            "issues": [issue.to_dict() for issue in self.issues],
            "pullRequests": [pr.to_dict() for pr in self.pull_requests],
            "releases": [release.to_dict() for release in self.releases],
        }


class RunResult(NamedTuple):
    """Everything a pipeline run produced."""

    fetched_at: str | None
    selected: list[RepoRegistryEntry]
    overviews: list[RepoOverview]
    urgent_items: list[UrgentItem]
    details: list[RepoDetail]
    warnings: list[FetchWarning]

    @property
    def skipped(self) -> bool:
        """True when no repository needed refreshing and nothing was written."""
        return not self.selected


def get_repo_short_name(full_name: str) -> str:
    """Extract the short name from a full name ("owner/repo" -> "repo")."""
    parts = full_name.split("/", 1)
    return parts[1] if len(parts) > 1 else full_name


def split_repo_name(full_name: str) -> tuple[str, str]:
    """
    Split "owner/repo" into its two parts.

    Raises:
        ValueError: If the name is not of the form owner/repo.
    """
    owner, sep, name = full_name.partition("/")
    if not sep or not owner or not name or "/" in name:
        raise ValueError(f"Invalid repository name: {full_name!r}. Use 'owner/repo'.")
    return owner, name
