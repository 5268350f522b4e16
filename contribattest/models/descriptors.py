"""Declarative payloads for the resources a run ensures on the ledger."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from contribattest.core.hasher import relationship_key, subject_key

# Predicate linking a contributor subject to a project subject
# ("was associated with").  Process-wide constant.
WAS_ASSOCIATED_WITH_PREDICATE_ID = (
    "0x4ca4033b5e5e3e274225a9145170a0183f0a9ebe6ba7c4b28cce5e8cf536674c"
)


class SubjectDescriptor(BaseModel):
    """Payload of a subject resource (project or contributor).

    Two descriptors name the same resource exactly when their URLs share a
    canonical form; name and description are not part of the identity.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    url: str
    image: str | None = None

    @property
    def key(self) -> str:
        return subject_key(self.url)


class RelationshipDescriptor(BaseModel):
    """A (subject, predicate, object) triple carrying an economic stake."""

    model_config = ConfigDict(frozen=True)

    subject_id: str
    object_id: str
    predicate_id: str = WAS_ASSOCIATED_WITH_PREDICATE_ID

    @property
    def key(self) -> str:
        return relationship_key(self.subject_id, self.predicate_id, self.object_id)

    def as_triple(self) -> tuple[str, str, str]:
        return (self.subject_id, self.predicate_id, self.object_id)


class ContributorDescriptor(BaseModel):
    """A commit author as reported by the data provider."""

    model_config = ConfigDict(frozen=True)

    display_name: str
    contact_key: str  # e-mail address, used for de-duplication
    profile_url: str
    handle: str | None = None
    image_url: str | None = None
    commit_count: int = Field(default=0, ge=0)

    @property
    def label(self) -> str:
        """Name used in progress messages."""
        return f"@{self.handle}" if self.handle else self.display_name

    def to_subject(self) -> SubjectDescriptor:
        return SubjectDescriptor(
            name=self.display_name,
            description=f"Contributor: {self.handle or self.contact_key}",
            url=self.profile_url,
            image=self.image_url,
        )
