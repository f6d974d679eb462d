"""Shared exceptions for service layer operations."""


class ValidationError(ValueError):
    """Raised for bad or missing input, always before any write is attempted."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class CascadePolicyRequiredError(ValidationError):
    """
    Raised when deleting a non-empty folder without choosing a cascade policy.

    Carries the member count so the caller can prompt for trash/root/delete.
    """

    def __init__(self, folder_id: str, bookmark_count: int) -> None:
        self.folder_id = folder_id
        self.bookmark_count = bookmark_count
        super().__init__(
            f"Folder contains {bookmark_count} bookmark(s); "
            "choose a cascade policy: trash, root or delete",
        )


class TagAlreadyExistsError(ValidationError):
    """Raised when renaming a tag to a name that is already in the tag set."""

    def __init__(self, tag_name: str) -> None:
        self.tag_name = tag_name
        super().__init__(f"Tag '{tag_name}' already exists")


class NotAuthenticatedError(PermissionError):
    """Raised when an operation is invoked without an authenticated user."""

    def __init__(self) -> None:
        super().__init__("You must be logged in to perform this action")


class NotFoundError(Exception):
    """Raised when a referenced entity does not exist or belongs to another user."""

    def __init__(self, entity_name: str, entity_id: str) -> None:
        self.entity_name = entity_name
        self.entity_id = entity_id
        super().__init__(f"{entity_name} '{entity_id}' not found")


class TransportError(Exception):
    """Raised when the database cannot be reached or a write fails remotely."""

    def __init__(self, message: str = "Something went wrong. Please try again.") -> None:
        super().__init__(message)


class NoOpError(Exception):
    """Raised when an operation is invoked with an empty selection; never fatal."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
