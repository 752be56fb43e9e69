"""Exception types shared by the store, the command surface and app setup."""


class ConfigError(RuntimeError):
    """A required setting is missing at startup."""


class StoreError(Exception):
    """Base class for failures talking to the game state store."""


class StateNotFound(StoreError):
    """The singleton game state row does not exist."""


class StoreUnavailable(StoreError):
    """The backing database could not be reached or queried."""


class WriteRejected(StoreError):
    """An update to the singleton was refused; the row is unchanged."""


class CommandError(Exception):
    """An admin command could not be issued."""
