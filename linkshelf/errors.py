from __future__ import annotations


class LinkshelfError(Exception):
    """Base class for every error raised by the engine."""


class NotAuthenticatedError(LinkshelfError):
    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class AccessDeniedError(LinkshelfError):
    pass


class ValidationError(LinkshelfError):
    pass


class ConflictError(ValidationError):
    pass


class DuplicateTagError(ConflictError):
    def __init__(self, name: str):
        super().__init__(f"Tag with name '{name}' already exists")
        self.name = name


class NotFoundError(LinkshelfError):
    def __init__(self, entity_type: str, entity_id=None, message: str | None = None):
        super().__init__(message or f"{entity_type} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class RemoteServiceError(LinkshelfError):
    def __init__(self, status_code: int | None, message: str):
        super().__init__(message)
        self.status_code = status_code


class PartialCascadeError(LinkshelfError):
    """A pre-delete reassignment loop stopped partway through.

    The folder or tag being deleted still exists. ``reassigned`` lists the
    bookmarks already updated (they are not rolled back), ``failed_id`` the
    bookmark whose update raised and ``remaining`` the ones never attempted.
    The underlying exception is chained as ``__cause__``.
    """

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        reassigned: list[str],
        failed_id: str,
        remaining: list[str],
    ):
        super().__init__(
            f"Deleting {entity_type} {entity_id} stopped after reassigning "
            f"{len(reassigned)} bookmark(s); {entity_type} was not deleted"
        )
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reassigned = reassigned
        self.failed_id = failed_id
        self.remaining = remaining
