"""Error taxonomy for the guide search service.

Each class maps to one HTTP outcome in ``guide_api.api.errors``. Unresolvable
similarity matches are not represented here: they are dropped silently.
"""


class GuideServiceError(Exception):
    """Base exception for guide search errors."""

    pass


class InitializationError(GuideServiceError):
    """Startup could not complete (missing credential, bad data, model failure)."""

    pass


class NotReadyError(GuideServiceError):
    """A data-dependent operation ran before startup finished."""

    def __init__(self, details: str) -> None:
        super().__init__(details)
        self.details = details


class ValidationError(GuideServiceError):
    """The query payload is missing, not text, or blank."""

    pass


class SearchError(GuideServiceError):
    """The embedding or similarity index call failed."""

    pass
