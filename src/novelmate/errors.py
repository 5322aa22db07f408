"""Exception types shared by the pipeline, services and API layers."""


class NovelmateError(Exception):
    """Base class for all novelmate errors."""


class NotFoundError(NovelmateError, ValueError):
    """A novel, chapter, name entry or detected name does not exist."""


class ConflictError(NovelmateError):
    """A uniqueness constraint was violated (e.g. duplicate original name)."""


class ParseError(NovelmateError):
    """Name extraction output could not be parsed.

    Internal only: detection always recovers via the heuristic detectors.
    """


class TranslationFailure(NovelmateError):
    """The translation capability failed; the chapter is left untouched."""


class SummarizationFailure(NovelmateError):
    """The summarization capability failed; the summary is simply omitted."""
