"""Domain-specific exceptions for castpay-core.

This module defines custom exceptions that are part of the public API.
All exceptions inherit from CastPayError for easy catching.

Configuration gaps (no matching back rule, no sliding tier, nobody to credit)
are valid business states and never raise. Only unreadable inputs and
caller contract violations end up here.
"""


class CastPayError(Exception):
    """Base exception for all castpay-core errors.

    Users can catch this exception to handle any castpay-core error.
    """

    pass


class ConfigError(CastPayError):
    """Raised when there is a configuration error.

    This exception is raised when:
    - A policy or compensation file cannot be loaded or parsed
    - An enum-valued setting holds a value outside its closed set
    """

    pass


class DataQualityError(CastPayError):
    """Raised when input data is structurally unusable.

    This exception is raised when:
    - Required columns are missing from a receipt or back-rate frame
    - A monetary column cannot be read as integers
    """

    pass


class ValidationError(CastPayError):
    """Raised when the caller breaks an API contract.

    Most contract violations are reported as ValidationIssue records
    alongside a result (see castpay_core.validation). This exception is
    reserved for calls that cannot produce any result at all, such as
    selecting among zero evaluated compensation types.
    """

    pass
