"""TruthChain Core - shared primitives for the consensus engine."""

from .config import TruthChainSettings, clear_config_cache, get_config
from .enums import ClaimStatus, Rejection, Resolution, VoteDirection
from .exceptions import (
    ConfigException,
    NotFoundError,
    TruthChainException,
    ValidationException,
)
from .logging import configure_logging, correlation_context, get_logger, log_rejection
from .models import (
    SYSTEM_COLLUSION,
    SYSTEM_DECAY,
    SYSTEM_RECOVERY,
    VOTE_FEEDBACK,
    Claim,
    CollusionEdge,
    ConsensusResult,
    Participant,
    PenaltyInfo,
    TrustUpdate,
    Vote,
)
from .response import EngineResponse, ok, reject

__all__ = [
    # Config
    "TruthChainSettings",
    "get_config",
    "clear_config_cache",
    # Enums
    "ClaimStatus",
    "Rejection",
    "Resolution",
    "VoteDirection",
    # Exceptions
    "TruthChainException",
    "ValidationException",
    "ConfigException",
    "NotFoundError",
    # Logging
    "configure_logging",
    "correlation_context",
    "get_logger",
    "log_rejection",
    # Models
    "Participant",
    "Claim",
    "Vote",
    "TrustUpdate",
    "CollusionEdge",
    "PenaltyInfo",
    "ConsensusResult",
    "SYSTEM_DECAY",
    "SYSTEM_COLLUSION",
    "SYSTEM_RECOVERY",
    "VOTE_FEEDBACK",
    # Response
    "EngineResponse",
    "ok",
    "reject",
]
