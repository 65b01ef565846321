"""
Custom Exceptions for the Agri-Trust Engine
"""

from typing import Any, Dict

GENERIC_FAILURE_MESSAGE = "Unable to complete the request. Please try again later."

class AgriTrustException(Exception):
    """Base exception for all engine errors"""
    kind = "ComputationFailed"

    def __init__(self, message: str, error_code: str = None):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)

class NotFoundException(AgriTrustException):
    """Raised when a farmer, farm or loan identifier does not resolve"""
    kind = "NotFound"

class FarmerNotFoundException(NotFoundException):
    """Raised when referenced farmer does not exist"""
    pass

class FarmNotFoundException(NotFoundException):
    """Raised when referenced farm does not exist"""
    pass

class LoanNotFoundException(NotFoundException):
    """Raised when referenced loan does not exist"""
    pass

class InvalidAmountException(AgriTrustException):
    """Raised for non-positive, out-of-range or approved-exceeds-requested amounts"""
    kind = "InvalidAmount"

class InvalidTransitionException(AgriTrustException):
    """Raised when a loan state-machine guard is violated"""
    kind = "InvalidTransition"

class AlreadyRepaidException(AgriTrustException):
    """Raised when a repayment targets a loan that is already repaid"""
    kind = "AlreadyRepaid"

class UpstreamUnavailableException(AgriTrustException):
    """Raised when a vegetation or weather provider fails"""
    kind = "UpstreamUnavailable"

class ValidationException(AgriTrustException):
    """Raised when input validation fails"""
    kind = "InvalidInput"

class AuthorizationException(AgriTrustException):
    """Raised when the caller may not act on the record"""
    kind = "Unauthorized"

class DatabaseException(AgriTrustException):
    """Raised when database operations fail"""
    pass


def error_payload(exc: Exception) -> Dict[str, Any]:
    """Stable kind + human readable message for any failure.

    Store errors and unclassified exceptions never leak their details.
    """
    if isinstance(exc, AgriTrustException) and not isinstance(exc, DatabaseException):
        return {'kind': exc.kind, 'message': exc.message}
    return {'kind': AgriTrustException.kind, 'message': GENERIC_FAILURE_MESSAGE}
