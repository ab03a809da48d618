"""Error types shared across the pipeline."""


class InvalidArgument(ValueError):
    """Caller-supplied input failed validation (maps to HTTP 400)."""


class LLMError(Exception):
    """The remote text-completion service failed or returned garbage."""
