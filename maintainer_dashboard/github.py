"""
GitHub GraphQL transport and query templates.

The pipeline only depends on GitHubClient.execute(); tests substitute any
object with a compatible coroutine.
"""

import os
from typing import Any, Protocol

import httpx
from dotenv import load_dotenv

from maintainer_dashboard.http_client import _get_async_http_client
from maintainer_dashboard.models import UNKNOWN_AUTHOR

# Load environment variables
load_dotenv()

# GitHub API endpoint
GITHUB_GRAPHQL_API = "https://api.github.com/graphql"


class GraphQLExecutor(Protocol):
    """Anything that can run a named GraphQL query."""

    async def execute(
        self, query: str, variables: dict[str, Any]
    ) -> dict[str, Any]: ...


class GitHubClient:
    """Executes GraphQL queries against the GitHub API with a bearer token."""

    def __init__(self, token: str | None = None):
        """
        Initialize the GitHub client.

        Args:
            token: GitHub Personal Access Token. If not provided, reads from
                   GITHUB_TOKEN environment variable.

        Raises:
            ValueError: If token is not provided and GITHUB_TOKEN env var is not set
        """
        self.token = token or os.getenv("GITHUB_TOKEN")
        if not self.token:
            raise ValueError(
                "GITHUB_TOKEN is required to fetch dashboard data.\n"
                "\n"
                "To get started:\n"
                "1. Create a GitHub Personal Access Token:\n"
                "   → https://github.com/settings/tokens/new\n"
                "2. Select scope: 'public_repo' (or 'repo' for private repositories)\n"
                "3. Set the token:\n"
                "   export GITHUB_TOKEN='your_token_here'  # Linux/macOS\n"
                "   or add to your .env file: GITHUB_TOKEN=your_token_here\n"
            )

    async def execute(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """
        Execute GraphQL query against GitHub API.

        Args:
            query: GraphQL query string
            variables: Query variables

        Returns:
            Response data dictionary

        Raises:
            httpx.HTTPStatusError: If API returns an error
        """
        headers = {
            "Authorization": f"bearer {self.token}",
            "Content-Type": "application/json",
        }
        client = await _get_async_http_client()
        response = await client.post(
            GITHUB_GRAPHQL_API,
            json={"query": query, "variables": variables},
            headers=headers,
        )
        response.raise_for_status()
        data = response.json()

        if "errors" in data:
            raise httpx.HTTPStatusError(
                f"GitHub API Errors: {data['errors']}",
                request=response.request,
                response=response,
            )

        return data.get("data") or {}


def get_repository_node(data: dict[str, Any], full_name: str) -> dict[str, Any]:
    """
    Return the repository object of a query response.

    Raises:
        ValueError: If repository not found or is inaccessible.
    """
    repository = data.get("repository")
    if repository is None:
        raise ValueError(f"Repository {full_name} not found or is inaccessible.")
    return repository


def get_author_login(node: dict[str, Any] | None) -> str:
    """Login of a node's author, or "unknown" for deleted accounts."""
    author = (node or {}).get("author")
    if not author or not author.get("login"):
        return UNKNOWN_AUTHOR
    return author["login"]


# --- GraphQL Query Templates ---

REPO_OVERVIEW_QUERY = """
query RepoOverview($owner: String!, $name: String!) {
  repository(owner: $owner, name: $name) {
    name
    description
    isArchived
    primaryLanguage { name }
    issues(states: OPEN) { totalCount }
    pullRequests(states: OPEN) { totalCount }
    releases(first: 1, orderBy: {field: CREATED_AT, direction: DESC}) {
      nodes {
        tagName
        publishedAt
      }
    }
    pushedAt
  }
}
"""

COMMITS_SINCE_QUERY = """
query CommitsSince($owner: String!, $name: String!, $since: GitTimestamp!) {
  repository(owner: $owner, name: $name) {
    defaultBranchRef {
      target {
        ... on Commit {
          history(since: $since) {
            totalCount
          }
        }
      }
    }
  }
}
"""

UNENGAGED_ISSUES_QUERY = """
query UnengagedIssues($searchQuery: String!, $cursor: String) {
  search(query: $searchQuery, type: ISSUE, first: 100, after: $cursor) {
    pageInfo {
      hasNextPage
      endCursor
    }
    nodes {
      ... on Issue {
        repository { nameWithOwner }
        number
        title
        author { login }
        createdAt
        url
      }
    }
  }
}
"""

UNENGAGED_PRS_QUERY = """
query UnengagedPullRequests($searchQuery: String!, $cursor: String) {
  search(query: $searchQuery, type: ISSUE, first: 100, after: $cursor) {
    pageInfo {
      hasNextPage
      endCursor
    }
    nodes {
      ... on PullRequest {
        repository { nameWithOwner }
        number
        title
        author { login }
        createdAt
        url
      }
    }
  }
}
"""

REPO_DETAIL_QUERY = """
query RepoDetail($owner: String!, $name: String!) {
  repository(owner: $owner, name: $name) {
    issues(first: 50, states: OPEN, orderBy: {field: CREATED_AT, direction: DESC}) {
      nodes {
        title
        author { login }
        labels(first: 10) { nodes { name } }
        createdAt
        comments { totalCount }
        url
      }
    }
    pullRequests(first: 50, states: OPEN, orderBy: {field: CREATED_AT, direction: DESC}) {
      nodes {
        title
        author { login }
        createdAt
        reviews { totalCount }
        url
      }
    }
    releases(first: 5, orderBy: {field: CREATED_AT, direction: DESC}) {
      nodes {
        tagName
        publishedAt
        url
      }
    }
  }
}
"""
