"""Errors raised by the store, the chat relay and request parsing.

Each carries the HTTP status the API answers with.
"""


class TrekSafeError(Exception):
    """Internal error"""
    status_code = 500

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__


class ValidationError(TrekSafeError):
    """Invalid request"""
    status_code = 400


class NotFound(TrekSafeError):
    """Tourist not found"""
    status_code = 404


class ConstraintViolation(TrekSafeError):
    """Constraint violated"""
    status_code = 409


class RelayFailure(TrekSafeError):
    """Chatbot request failed"""
    status_code = 500


class StorageFailure(TrekSafeError):
    """Storage error"""
    status_code = 500
