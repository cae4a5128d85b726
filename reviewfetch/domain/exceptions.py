"""
Exceptions - Error Taxonomy for Review Fetch
============================================

Every error raised by the dispatch core or a vendor client derives from
ReviewFetchError, so callers can catch the whole family in one place and
still branch on the specific type (or on ApiError.status_code / vendor_code).

Messages are written for the person running the tool: each one says which
command or configuration change resolves it.
"""

from typing import Optional


class ReviewFetchError(Exception):
    """Base exception for all review fetch errors."""
    pass


class DispatchError(ReviewFetchError):
    """Generic failure: malformed vendor response, transport failure, etc."""
    pass


class CredentialsError(ReviewFetchError):
    """Credentials for a vendor are missing or incomplete."""
    pass


class NoCredentialsError(CredentialsError):
    """No vendor at all could be configured."""
    pass


class AuthError(ReviewFetchError):
    """Token minting or authentication with a vendor failed."""
    pass


class ApiError(ReviewFetchError):
    """
    The vendor returned a structured error response.

    Attributes:
        status_code: HTTP status returned by the vendor.
        vendor_code: Vendor specific error code (e.g. "NOT_FOUND").
        detail: Human readable detail from the vendor.
    """

    def __init__(
        self,
        status_code: int,
        vendor_code: str,
        detail: str,
        title: Optional[str] = None,
    ):
        self.status_code = status_code
        self.vendor_code = vendor_code
        self.detail = detail
        self.title = title or detail
        super().__init__(f"API Error ({vendor_code}, HTTP {status_code}): {self.title}")


class VendorNotConfiguredError(DispatchError):
    """The request targets a vendor whose credentials are not configured."""
    pass


class UnresolvableQueryError(DispatchError):
    """No vendor could be selected for an app query."""
    pass


class MalformedIdError(DispatchError, ValueError):
    """A review or response id is not of the form 'scheme:id'."""
    pass


class StorageError(ReviewFetchError):
    """The app directory could not be read or written."""
    pass


class NotSupportedError(ReviewFetchError):
    """The vendor does not support the requested operation."""
    pass
