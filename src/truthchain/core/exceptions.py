# SPDX-License-Identifier: MIT
# Copyright (c) 2026 TruthChain Contributors

"""Exception hierarchy for TruthChain.

Exceptions signal programming and configuration errors (bad arguments,
broken settings, missing entities in pure helpers). Caller-recoverable
rejections such as a duplicate vote are *not* exceptions; they travel as
:class:`~truthchain.core.enums.Rejection` codes inside an
:class:`~truthchain.core.response.EngineResponse`.
"""

from __future__ import annotations

from typing import Any


class TruthChainException(Exception):  # noqa: N818
    """Base exception for all TruthChain errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(TruthChainException):
    """Exception for invalid arguments.

    Raised when:
    - A vote direction is not +1 or -1
    - A numeric input is outside its domain (negative trust, rounds <= 0)
    - Required fields are empty
    """

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, details)
        self.field = field
        self.value = value


class ConfigException(TruthChainException):
    """Exception for configuration errors.

    Raised when a setting is present but unusable, e.g. a non-positive
    claim-day length.
    """

    def __init__(self, message: str, setting: str | None = None):
        details = {}
        if setting:
            details["setting"] = setting
        super().__init__(message, details)
        self.setting = setting


class NotFoundError(TruthChainException):
    """Exception for resource not found errors.

    Raised by helpers that look up a participant or claim and have no
    response envelope to report through.
    """

    def __init__(self, resource_type: str, resource_id: str):
        message = f"{resource_type} not found: {resource_id}"
        details = {
            "resource_type": resource_type,
            "resource_id": resource_id,
        }
        super().__init__(message, details)
        self.resource_type = resource_type
        self.resource_id = resource_id
