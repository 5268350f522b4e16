"""contribattest data models, all frozen Pydantic v2 models."""

from contribattest.models.config import (
    NETWORK_DEFAULTS,
    FailureMode,
    NetworkConfig,
    NetworkName,
    RetryPolicy,
    get_network_config,
)
from contribattest.models.descriptors import (
    WAS_ASSOCIATED_WITH_PREDICATE_ID,
    ContributorDescriptor,
    RelationshipDescriptor,
    SubjectDescriptor,
)
from contribattest.models.events import EventLevel, ObservationEvent
from contribattest.models.results import (
    EMPTY_TX_REF,
    AttestationSummary,
    ContributorOutcome,
    ResourceOutcome,
)

__all__ = [
    # config
    "FailureMode",
    "NetworkName",
    "NetworkConfig",
    "NETWORK_DEFAULTS",
    "RetryPolicy",
    "get_network_config",
    # descriptors
    "WAS_ASSOCIATED_WITH_PREDICATE_ID",
    "SubjectDescriptor",
    "RelationshipDescriptor",
    "ContributorDescriptor",
    # events
    "EventLevel",
    "ObservationEvent",
    # results
    "EMPTY_TX_REF",
    "ResourceOutcome",
    "ContributorOutcome",
    "AttestationSummary",
]
