"""Exceptions raised by the aggregation layer."""


class ESGMetricsError(Exception):
    """Base exception for esgmetrics errors."""


class ConfigurationError(ESGMetricsError):
    """Invalid settings or benchmark configuration."""


class InvalidFilterError(ESGMetricsError, ValueError):
    """Report filters that can never match (inverted ranges)."""


class InvalidPeriodError(ESGMetricsError, ValueError):
    """Reporting period whose start is after its end."""


class TenantMismatchError(ESGMetricsError):
    """A row source returned rows of another tenant."""

    def __init__(self, expected: str, found: str):
        super().__init__(f"row source returned data of tenant {found!r} for tenant {expected!r}")
        self.expected = expected
        self.found = found


class RowSourceError(ESGMetricsError):
    """Reading rows from the backing store failed."""
