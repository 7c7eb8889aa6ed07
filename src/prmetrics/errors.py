"""Custom exception types for the GitHub PR delivery metrics generator."""


class MetricsGeneratorError(Exception):
    """Base exception for all recoverable metrics generator errors."""


class ConfigurationError(MetricsGeneratorError):
    """Raised when runtime configuration values are missing or invalid."""


class AuthenticationError(MetricsGeneratorError):
    """Raised when GitHub authentication credentials are unavailable or invalid."""


class RemoteFetchError(MetricsGeneratorError):
    """Raised when a GitHub API request fails or returns an unexpected response."""


class DataValidationError(MetricsGeneratorError):
    """Raised when API payloads or computed metric data do not meet expected constraints."""


class MissingFieldError(DataValidationError):
    """Raised when a GitHub payload lacks a field the metrics depend on."""
