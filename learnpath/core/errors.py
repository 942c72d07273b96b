"""Domain exceptions.

Every exception the services raise on purpose derives from LearnPathError
and carries the HTTP status it maps to.  The API layer renders them all
the same way: ``{"error": str(exc)}`` with ``exc.http_status``.
"""

from __future__ import annotations


class LearnPathError(Exception):
    http_status: int = 500


class ValidationFailed(LearnPathError):
    """Rejected before any side effect (missing fields, incomplete quiz)."""

    http_status = 400


class NotFound(LearnPathError):
    http_status = 404


class MilestoneLocked(LearnPathError):
    http_status = 409


class CourseNotCompleted(LearnPathError):
    http_status = 409


class MissingCredential(LearnPathError):
    """The content-generation API key is not configured."""


class UpstreamError(LearnPathError):
    """The content-generation service answered with a non-OK status."""


class ContentParseError(LearnPathError):
    """The content-generation reply could not be parsed into a roadmap."""


class PersistenceError(LearnPathError):
    """A primary-path write failed."""


class DuplicateCertificate(PersistenceError):
    """Unique (user_id, course_id) constraint on certificates was hit."""
