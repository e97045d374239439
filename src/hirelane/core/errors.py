from __future__ import annotations


class HirelaneError(Exception):
    """Base class for errors raised by hirelane services."""


class NotFoundError(HirelaneError):
    pass


class InvalidStateError(HirelaneError):
    pass


class ConflictError(HirelaneError):
    pass


class InvalidArgumentError(HirelaneError):
    pass


class StorageConfigurationError(HirelaneError):
    pass


class UpstreamFailureError(HirelaneError):
    """A storage provider call failed.

    ``message`` is the provider's own diagnostic, kept verbatim so quota,
    permission and disabled-API errors stay inspectable. ``kind`` is one of
    quota, auth, permission, not_found, network or provider.
    ``orphaned_provider_id`` names a file left behind on the provider when
    cleanup after a partial failure could not remove it.
    """

    def __init__(
        self,
        message: str,
        *,
        kind: str = "provider",
        status_code: int | None = None,
        orphaned_provider_id: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.status_code = status_code
        self.orphaned_provider_id = orphaned_provider_id
