"""Data provider protocol consumed by the CLI run."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from contribattest.models.descriptors import ContributorDescriptor, SubjectDescriptor


@runtime_checkable
class DataProvider(Protocol):
    """Source of the project and its contributors for one run.

    Failures surface as ``RemoteAPIError`` carrying the remote status code
    when one is known.
    """

    def fetch_project_descriptor(self) -> SubjectDescriptor:
        ...

    def fetch_contributors(self) -> list[ContributorDescriptor]:
        """Unique contributors in first-seen order."""
        ...
