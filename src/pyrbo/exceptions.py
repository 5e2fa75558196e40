"""Custom exception hierarchy for pyrbo."""

from __future__ import annotations


class RboError(Exception):
    """Base exception for all pyrbo errors."""


class RboConfigError(RboError):
    """Invalid or missing configuration."""


class RboEncodeError(RboError):
    """The live root could not be serialized to a JSON document."""


class RboStoreError(RboError):
    """Key-value store failure (connection lost, command rejected)."""

    def __init__(
        self,
        message: str,
        *,
        key: str = "",
        operation: str = "",
    ) -> None:
        self.key = key
        self.operation = operation
        super().__init__(message)


class RboDecodeError(RboStoreError):
    """The stored snapshot is not a usable JSON document.

    Raised during hydration when the value under the key is malformed or
    its top-level shape (object vs array) does not match the live root.
    This is never treated as "no stored data".
    """
