"""Exception hierarchy for the session core."""

from __future__ import annotations


class SeedwatchError(Exception):
    """Base class for all seedwatch errors."""


class EngineUnavailableError(SeedwatchError):
    """The transfer engine bindings could not be loaded."""


class RegistrationError(SeedwatchError):
    """The engine rejected a transfer (bad reference, unreadable file, ...)."""


class MetadataTimeoutError(RegistrationError):
    """A registered transfer never produced its metadata."""


class NotFoundError(SeedwatchError, KeyError):
    """An operation referenced an id that is not in the session table."""

    def __init__(self, transfer_id: str) -> None:
        super().__init__(transfer_id)
        self.transfer_id = transfer_id

    def __str__(self) -> str:
        return f"No transfer with id {self.transfer_id!r}"


class DuplicateIDError(SeedwatchError):
    """An entry with the same id is already in the session table."""

    def __init__(self, transfer_id: str) -> None:
        super().__init__(f"Transfer {transfer_id!r} is already tracked")
        self.transfer_id = transfer_id


class InvalidHandleError(SeedwatchError):
    """A transfer handle is no longer usable."""


class SampleError(SeedwatchError):
    """Reading one handle's counters failed during a refresh cycle."""

    def __init__(self, transfer_id: str, cause: BaseException) -> None:
        super().__init__(f"Failed to sample {transfer_id}: {cause}")
        self.transfer_id = transfer_id
        self.cause = cause
