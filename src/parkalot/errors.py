"""Exception types shared across the service."""


class ParkalotError(Exception):
    """Base class for all service errors."""


class ConfigurationMissing(ParkalotError):
    """A required setting (such as the store connection string) is absent."""


class InferenceError(ParkalotError):
    """The image could not be read or the inference backend failed."""


class StoreUnavailable(ParkalotError):
    """The location store could not be reached, even after reconnecting."""
