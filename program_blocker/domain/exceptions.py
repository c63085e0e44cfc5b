"""Custom exceptions for the domain layer."""


class DomainException(Exception):
    """Base exception for domain layer."""
    pass


class ResolutionException(DomainException):
    """Raised when a target path cannot be resolved into executables."""

    def __init__(self, message: str, path: str = None):
        super().__init__(message)
        self.path = path


class PathNotFoundException(ResolutionException):
    """Raised when the target path does not exist or cannot be accessed."""
    pass


class NotExecutableException(ResolutionException):
    """Raised when a file target does not have an executable extension."""
    pass


class RuleStoreException(DomainException):
    """Base exception for rule store operations."""
    pass


class RuleStoreUnavailableException(RuleStoreException):
    """Raised when the rule store cannot be reached at all."""
    pass


class RuleStoreQueryException(RuleStoreException):
    """Raised when querying the rule store fails."""
    pass


class RuleStoreOperationException(RuleStoreException):
    """Raised when the rule store rejects a create or remove."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class RuleStoreTimeoutException(RuleStoreException):
    """Raised when a rule store call exceeds its timeout."""
    pass


class ConfigurationException(DomainException):
    """Raised when configuration is invalid."""
    pass
