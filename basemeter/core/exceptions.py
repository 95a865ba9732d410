"""Shared exceptions module."""

from typing import Optional


class BasemeterException(Exception):
    """Base exception for basemeter services."""

    pass


class PermissionException(BasemeterException):
    """Exception raised when a caller does not have the right to perform an action."""

    def __init__(
        self,
        message: Optional[str] = "Caller does not have the right to perform this action",
    ):
        """Create a new PermissionException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class StorageException(BasemeterException):
    """Exception raised when the snapshot store cannot be read or written."""

    def __init__(self, message: Optional[str] = "Storage operation failed"):
        """Create a new StorageException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class StorageNotFoundError(StorageException):
    """Raised when the snapshot file does not exist."""

    pass
