"""Exceptions raised by the profiling pipeline."""


class ProfileError(Exception):
    """Base class for all fatal profiling errors."""


class ConfigurationError(ProfileError):
    """Missing, conflicting or out-of-range run options."""


class ResourceError(ProfileError):
    """A dataset, database or output destination could not be opened or described."""


class QueryCardinalityError(ProfileError):
    """A selector did not match exactly the number of features required."""


class AllocationError(ProfileError):
    """The result set could not grow to hold another record."""


class OutputError(ProfileError):
    """Profile output could not be written to its destination."""


class AttributeLookupError(Exception):
    """A single attribute row lookup failed. Not fatal."""
