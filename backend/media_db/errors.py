"""Exception hierarchy raised by the Media DB core."""
from __future__ import annotations


class MediaDbError(RuntimeError):
    """Base class for failures reported to callers of the core."""


class UnsupportedMediaTypeError(MediaDbError):
    """Raised when no record variant exists for a requested media kind."""

    def __init__(self, media_type: object) -> None:
        super().__init__(f"Unsupported media type: {media_type!r}")
        self.media_type = media_type


class MissingIdentityError(MediaDbError):
    """Raised when note metadata lacks the fields identifying its source record."""


class PropertyMappingError(MediaDbError):
    """Raised when a property mapping edit would produce an invalid export."""


class LockedPropertyError(PropertyMappingError):
    """Raised when attempting to remap or remove an identity property."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Property {key!r} is locked and cannot be remapped or removed")
        self.key = key
