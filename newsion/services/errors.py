"""Exceptions raised by the pipeline services."""


class NewsionError(Exception):
    """Base class for pipeline errors."""


class PipelineSetupError(NewsionError):
    """Schema or feed setup failed; the whole request fails."""


class GenerationError(NewsionError):
    """An LLM call failed or produced no text."""


class ScrapeError(NewsionError):
    """A source page could not be fetched or parsed."""


class ProviderNotConfigured(ValueError):
    """An LLM provider was selected without credentials."""
