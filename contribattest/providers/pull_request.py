"""Pull-request event provider.

Builds descriptors from an already-fetched pull-request webhook payload and
the list of the pull request's commits, both in the source-control host's
REST JSON shape.  No remote calls are made.

Event payload (subset)::

    {"pull_request": {"number": 7, "merged": true},
     "repository": {"name": "repo", "full_name": "org/repo",
                    "description": "...", "html_url": "https://github.com/org/repo"}}

Commit entry (subset)::

    {"sha": "abc123",
     "commit": {"author": {"name": "Ada", "email": "ada@example.com"}},
     "author": {"login": "ada", "html_url": "...", "avatar_url": "..."}}
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict

from contribattest.core.errors import RemoteAPIError
from contribattest.models.descriptors import ContributorDescriptor, SubjectDescriptor
from contribattest.routing.dispatcher import EventDispatcher

logger = logging.getLogger(__name__)

PROFILE_URL_BASE = "https://github.com"
MALFORMED_PAYLOAD_STATUS = 422


class _CommitAuthor(BaseModel):
    """Working record for one unique author while commits are folded."""

    model_config = ConfigDict(frozen=True)

    name: str
    email: str
    username: str | None = None
    profile_url: str | None = None
    avatar_url: str | None = None
    commit_count: int = 0


class PullRequestEventProvider:
    """``DataProvider`` over a pull-request event and its commit list.

    Parameters
    ----------
    event:
        Decoded webhook payload of the pull-request event.
    commits:
        Decoded commit list of the pull request.
    observer:
        Dispatcher receiving skip and fallback warnings.
    """

    def __init__(
        self,
        event: dict[str, Any],
        commits: list[dict[str, Any]],
        observer: EventDispatcher | None = None,
    ) -> None:
        if not isinstance(event, dict):
            raise RemoteAPIError(
                "Event payload must be a JSON object", MALFORMED_PAYLOAD_STATUS
            )
        if not isinstance(commits, list):
            raise RemoteAPIError(
                "Commit payload must be a JSON array", MALFORMED_PAYLOAD_STATUS
            )
        self._event = event
        self._commits = commits
        self._observer = observer or EventDispatcher.with_logging()

    @classmethod
    def from_files(
        cls,
        event_path: Path,
        commits_path: Path,
        observer: EventDispatcher | None = None,
    ) -> PullRequestEventProvider:
        return cls(
            _load_json(event_path, "event"),
            _load_json(commits_path, "commits"),
            observer,
        )

    # ------------------------------------------------------------------
    # Event properties
    # ------------------------------------------------------------------

    @property
    def pull_request(self) -> dict[str, Any] | None:
        pr = self._event.get("pull_request")
        return pr if isinstance(pr, dict) else None

    @property
    def is_pull_request(self) -> bool:
        return self.pull_request is not None

    @property
    def is_merged(self) -> bool:
        return bool(self.pull_request and self.pull_request.get("merged"))

    @property
    def number(self) -> int | None:
        return self.pull_request.get("number") if self.pull_request else None

    # ------------------------------------------------------------------
    # DataProvider
    # ------------------------------------------------------------------

    def fetch_project_descriptor(self) -> SubjectDescriptor:
        repo = self._event.get("repository")
        if not isinstance(repo, dict):
            raise RemoteAPIError(
                "Failed to fetch repository data: event has no repository",
                MALFORMED_PAYLOAD_STATUS,
            )
        try:
            name = repo["name"]
            full_name = repo.get("full_name") or name
            url = repo["html_url"]
        except KeyError as exc:
            raise RemoteAPIError(
                f"Failed to fetch repository data: missing field {exc.args[0]!r}",
                MALFORMED_PAYLOAD_STATUS,
            ) from exc

        descriptor = SubjectDescriptor(
            name=full_name,
            description=repo.get("description") or f"Repository: {name}",
            url=url,
        )
        logger.info("Repository: %s", full_name)
        logger.debug("Description: %s", descriptor.description)
        return descriptor

    def fetch_contributors(self) -> list[ContributorDescriptor]:
        if not self.is_pull_request:
            raise RemoteAPIError(
                "This action must be run on a pull_request event",
                MALFORMED_PAYLOAD_STATUS,
            )
        logger.info(
            "Found %d commits in PR #%s", len(self._commits), self.number
        )

        authors: dict[str, _CommitAuthor] = {}
        for commit in self._commits:
            if not isinstance(commit, dict):
                raise RemoteAPIError(
                    "Failed to fetch contributors: commit entry is not an object",
                    MALFORMED_PAYLOAD_STATUS,
                )
            git_author = (commit.get("commit") or {}).get("author") or {}
            account = commit.get("author") or {}
            email = git_author.get("email")
            if not email:
                self._observer.warning(
                    f"Skipping commit {commit.get('sha', '<unknown>')}: no author email",
                    source="provider",
                    sha=commit.get("sha"),
                )
                continue

            key = email.lower()
            username = account.get("login")
            existing = authors.get(key)
            if existing is None:
                authors[key] = _CommitAuthor(
                    name=git_author.get("name") or "Unknown",
                    email=email,
                    username=username,
                    profile_url=account.get("html_url") if username else None,
                    avatar_url=account.get("avatar_url") if username else None,
                    commit_count=1,
                )
                continue

            update: dict[str, Any] = {"commit_count": existing.commit_count + 1}
            if username and not existing.username:
                # Username learned from a later commit.
                update.update(
                    username=username,
                    profile_url=account.get("html_url"),
                    avatar_url=account.get("avatar_url"),
                )
            authors[key] = existing.model_copy(update=update)

        logger.info("Found %d unique contributor(s)", len(authors))
        contributors = [self._to_descriptor(a) for a in authors.values()]
        for c in contributors:
            logger.info(
                "  - %s (%d commit(s)) -> %s", c.label, c.commit_count, c.profile_url
            )
        return contributors

    def _to_descriptor(self, author: _CommitAuthor) -> ContributorDescriptor:
        profile_url = author.profile_url
        if not profile_url:
            inferred = author.username or author.email.split("@")[0]
            profile_url = f"{PROFILE_URL_BASE}/{inferred}"
            self._observer.warning(
                f"Using fallback data for contributor: {author.name} ({author.email})",
                source="provider",
                profile_url=profile_url,
            )
        return ContributorDescriptor(
            display_name=author.name,
            contact_key=author.email,
            profile_url=profile_url,
            handle=author.username,
            image_url=author.avatar_url,
            commit_count=author.commit_count,
        )


def _load_json(path: Path, label: str) -> Any:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise RemoteAPIError(f"{label} payload not found: {path}", 404) from exc
    except OSError as exc:
        raise RemoteAPIError(f"Failed to read {label} payload {path}: {exc}") from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise RemoteAPIError(
            f"{label} payload {path} is not valid JSON: {exc}",
            MALFORMED_PAYLOAD_STATUS,
        ) from exc
