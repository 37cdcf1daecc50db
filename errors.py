"""
Error types raised by the services and mapped to HTTP responses in main.py
"""


class PortfolioError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PortfolioError):
    """Rejected input: MissingField, InvalidEmail, FieldTooLong, InvalidStatus, SchemaViolation"""

    status_code = 400

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code


class NotFoundError(PortfolioError):
    status_code = 404


class StorageUnavailableError(PortfolioError):
    status_code = 500


class UpstreamFetchError(PortfolioError):
    status_code = 500
