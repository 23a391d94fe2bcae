"""
Structured error classes for access control and entitlement enforcement.

Policy denials are NOT errors: resolvers return False entries and the
evaluator returns an EntitlementCheck. The classes here cover caller misuse,
invalid configuration, and the HTTP translation done in middleware.py.
"""

from typing import Optional
from fastapi import HTTPException, status


class AccessControlError(Exception):
    """Base exception for access-control errors."""
    pass


class AccessCatalogError(AccessControlError):
    """Raised when a catalog configuration is malformed."""
    pass


class StudioContextRequiredError(AccessControlError):
    """
    Raised when a request reaches a gate without a resolved studio context.

    This is caller misuse (upstream auth did not run or did not resolve a
    studio) and is never retried.
    """

    def __init__(self, detail: str = "Studio context not resolved"):
        self.detail = detail
        super().__init__(detail)


class PaymentRequiredError(HTTPException):
    """HTTP 402 Payment Required exception carrying a machine-readable reason code."""

    def __init__(
        self,
        message: str,
        code: str,
        feature: Optional[str] = None,
        resource: Optional[str] = None,
    ):
        self.code = code
        super().__init__(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail={
                "error": "entitlement_required",
                "error_code": code,
                "message": message,
                "feature": feature,
                "resource": resource,
            },
        )


class AccessDeniedError(HTTPException):
    """HTTP 403 for role/permission denials."""

    def __init__(self, permission: str):
        self.permission = permission
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "access_denied",
                "message": "You do not have permission to perform this action",
                "permission": permission,
            },
        )
