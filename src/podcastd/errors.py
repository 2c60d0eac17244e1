"""Error taxonomy shared across podcastd.

- PodcastdError: base class for everything raised on purpose
- SchedulingError: a schedule could not be built
  - ConfigurationError: persisted schedule data is malformed or invalid
  - StoreError: the entity store could not be read or written
- PodcastNotFoundError: a named podcast is not in the store
"""


class PodcastdError(Exception):
    """Base error for podcastd."""


class SchedulingError(PodcastdError):
    """A schedule could not be compiled or (re)built."""


class ConfigurationError(SchedulingError):
    """Persisted schedule data is malformed or fails validation."""


class StoreError(SchedulingError):
    """The entity store is unreachable or an individual operation failed."""


class PodcastNotFoundError(PodcastdError):
    """Requested podcast does not exist."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Podcast not found: {name}")
        self.name = name
