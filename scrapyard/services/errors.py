class LifecycleError(Exception):
    """Base class for inventory lifecycle failures."""


class NotFound(LifecycleError):
    pass


class InvalidArgument(LifecycleError):
    pass


class StorageError(LifecycleError):
    """The database rejected or lost a read/write. The original error is chained."""
