"""Data providers supplying the project and contributor descriptors of a run."""

from contribattest.providers.base import DataProvider
from contribattest.providers.pull_request import PullRequestEventProvider

__all__ = ["DataProvider", "PullRequestEventProvider"]
