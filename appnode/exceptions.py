"""Custom exception classes for the application node."""


class AppNodeException(Exception):
    """
    Base exception class for all application node errors.
    """
    pass


class CollectionNotFoundError(AppNodeException):
    """
    Raised when a collection name does not match any known collection.
    """
    pass


class RecordNotFoundError(AppNodeException):
    """
    Raised when a requested record does not exist.
    """
    pass


class RecordValidationError(AppNodeException):
    """
    Raised when record data is rejected by collection validation.
    """

    def __init__(self, message: str, errors=None):
        super().__init__(message)
        self.errors = errors or {}


class ReplicationError(AppNodeException):
    """
    Base class for write-propagation errors.
    """
    pass


class WireDecodeError(ReplicationError):
    """
    Raised when a replication frame does not match the typed wire grammar.
    """
    pass


class WireEncodeError(ReplicationError):
    """
    Raised when a notification cannot be serialized.
    """
    pass
