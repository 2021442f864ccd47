"""Custom exceptions for the Gmail PDF Archiver."""


class ArchiverError(Exception):
    """Base exception for all Gmail PDF Archiver errors."""


class AuthenticationError(ArchiverError):
    """Failed to authenticate with Google APIs."""


class MailboxError(ArchiverError):
    """A Gmail API call failed."""


class RateLimitError(MailboxError):
    """Google API rate limit exceeded."""


class ParseError(ArchiverError):
    """Failed to parse email MIME content."""


class StorageError(ArchiverError):
    """Failed to read or write the destination file store."""


class RenderError(ArchiverError):
    """Failed to render an email to PDF."""
