"""Error types shared by the server and the client."""


class SeedlingError(Exception):
    """Base class for all Seedling errors."""


class StorageError(SeedlingError):
    """The backing store is unreachable or a query failed."""


class AuthError(SeedlingError):
    """The supplied admin credential did not match."""


class ValidationError(SeedlingError):
    """Request data was rejected before any write."""


class TransportError(SeedlingError):
    """A client request failed at the network or protocol level."""
