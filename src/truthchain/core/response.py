# SPDX-License-Identifier: MIT
# Copyright (c) 2026 TruthChain Contributors

"""Standard response envelope for ledger operations.

Every public :class:`~truthchain.ledger.Ledger` operation returns an
``EngineResponse`` so hosts always receive a consistent
``{success, data, error, code}`` structure and can surface rejections to end
users verbatim.

Usage::

    from truthchain.core.response import ok, reject

    return ok(data=vote)
    return reject(Rejection.SELF_VOTE, "Authors cannot vote on their own claims.")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .enums import Rejection


@dataclass
class EngineResponse:
    """Unified response envelope.

    Attributes:
        success: True when the operation completed.
        data:    Payload returned on success. None for void operations.
        error:   Human-readable rejection message. None on success.
        code:    Machine-readable rejection code. None on success.
    """

    success: bool
    data: Any = None
    error: str | None = None
    code: Rejection | None = None

    @property
    def rejected(self) -> bool:
        return not self.success

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a plain dict; only keys carrying information are included."""
        d: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            d["data"] = self.data.to_dict() if hasattr(self.data, "to_dict") else self.data
        if self.error:
            d["error"] = self.error
        if self.code is not None:
            d["code"] = self.code.value
        return d


def ok(data: Any = None) -> EngineResponse:
    """Create a successful EngineResponse."""
    return EngineResponse(success=True, data=data)


def reject(code: Rejection, error: str) -> EngineResponse:
    """Create a rejected EngineResponse.

    Args:
        code:  Rejection code.
        error: Human-readable description of the rejection.
    """
    return EngineResponse(success=False, error=error, code=code)
