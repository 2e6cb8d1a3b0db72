# SPDX-License-Identifier: MIT
# Copyright (c) 2026 TruthChain Contributors

"""TruthChain - trust-weighted anonymous consensus engine.

Participants are pseudonymous, one per real-world identifier. Votes are
weighted by the square root of earned trust, claims stabilize once enough
weight has accumulated over a full voting window, and the outcome feeds back
into every voter's trust. Coordinated voting is detected and damped.
"""

__version__ = "1.0.0"

from .core import (
    ClaimStatus,
    EngineResponse,
    Rejection,
    Resolution,
    TruthChainException,
    ValidationException,
    VoteDirection,
    configure_logging,
    get_config,
)
from .ledger import CollusionReport, Ledger, SystemMetrics, VoteReceipt

__all__ = [
    "__version__",
    "ClaimStatus",
    "CollusionReport",
    "EngineResponse",
    "Ledger",
    "Rejection",
    "Resolution",
    "SystemMetrics",
    "TruthChainException",
    "ValidationException",
    "VoteDirection",
    "VoteReceipt",
    "configure_logging",
    "get_config",
]
