"""Error taxonomy for listing submission and persistence."""


class ListingWatchError(Exception):
    """Base class for errors scoped to a single user action."""


class InputError(ListingWatchError):
    """Unparseable URL, missing required field or invalid price."""


class DuplicateError(ListingWatchError):
    """Submission blocked because the listing or complaint already exists."""


class NotFoundError(ListingWatchError):
    """Referenced record does not exist in the store."""


class StoreError(ListingWatchError):
    """Insert, update or query rejected by the backing store."""


class ComplianceError(ListingWatchError, ValueError):
    """Compliance cannot be evaluated, e.g. a non-positive minimum price."""
