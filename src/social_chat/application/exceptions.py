from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class ValidationError(AppError):
    pass


class NotFoundError(AppError):
    pass


class ForbiddenError(AppError):
    pass


class AuthError(AppError):
    pass


class ConflictRetry(AppError):
    """A concurrent writer created the same row first; re-read instead of failing."""
