"""Freightline data models: all Pydantic v2."""

from freightline.models.freight import (
    ApprovedStage,
    Artifact,
    Chart,
    CurrentStage,
    Freight,
    FreightOrigin,
    FreightOriginKind,
    FreightStatus,
    GitCommit,
    Image,
    MetadataDecodeError,
    VerifiedStage,
)
from freightline.models.history import (
    MAX_HISTORY_DEPTH,
    AnalysisRunReference,
    FreightReference,
    FreightReferenceStack,
    HistoryStack,
    VerificationInfo,
    VerificationInfoStack,
    VerificationPhase,
)
from freightline.models.stage import (
    AvailabilityStrategy,
    FreightRequest,
    FreightSources,
    RepoSubscription,
    Stage,
    StageStatus,
    SubscriptionKind,
    Warehouse,
)

__all__ = [
    # freight
    "FreightOriginKind",
    "FreightOrigin",
    "GitCommit",
    "Image",
    "Chart",
    "Artifact",
    "CurrentStage",
    "VerifiedStage",
    "ApprovedStage",
    "FreightStatus",
    "Freight",
    "MetadataDecodeError",
    # history
    "MAX_HISTORY_DEPTH",
    "HistoryStack",
    "FreightReference",
    "FreightReferenceStack",
    "VerificationPhase",
    "AnalysisRunReference",
    "VerificationInfo",
    "VerificationInfoStack",
    # stage
    "AvailabilityStrategy",
    "SubscriptionKind",
    "RepoSubscription",
    "Warehouse",
    "FreightSources",
    "FreightRequest",
    "StageStatus",
    "Stage",
]
