class AssistantError(Exception):
    """Base error for a turn that could not produce an answer."""


class AssistantConfigurationError(AssistantError):
    """Model credentials are missing or were rejected."""


class AssistantRateLimitError(AssistantError):
    """The model provider is throttling requests."""


class AssistantModelError(AssistantError):
    """Any other model call failure."""


class BlobStorageError(Exception):
    """A blob storage read, write or delete failed."""
