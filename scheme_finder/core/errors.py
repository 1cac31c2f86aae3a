"""Error taxonomy for the search and eligibility pipeline."""


class SchemeFinderError(Exception):
    """Base class for all scheme-finder errors."""


class RetrievalError(SchemeFinderError):
    """The scheme corpus could not be queried. Fatal for a search request."""

    def __init__(self, message: str = "search unavailable") -> None:
        super().__init__(message)


class EmbeddingUnavailable(SchemeFinderError):
    """A query embedding could not be produced (quota, timeout, missing key)."""


class ProfileNotFound(SchemeFinderError):
    """No stored profile exists for the requested user."""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"No profile found for user '{user_id}'")
        self.user_id = user_id


class SchemeNotFound(SchemeFinderError):
    """No scheme exists with the requested id."""

    def __init__(self, scheme_id: int) -> None:
        super().__init__(f"Scheme {scheme_id} not found")
        self.scheme_id = scheme_id
