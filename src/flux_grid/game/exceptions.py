"""
Exceptions raised by the flux-grid engine.

Every error here signals misuse by the caller (a host or an agent), never a
recoverable runtime condition: the engine performs no I/O.
"""


class FluxGridError(Exception):
    """Base class for all engine errors."""


class OutOfBoundsError(FluxGridError, IndexError):
    """A coordinate outside [0, size) was passed to a board query."""


class InvalidPlacementError(FluxGridError, ValueError):
    """A piece was committed where it does not fit, or the tray index is wrong."""


class GameStateError(FluxGridError):
    """The requested action is not allowed in the current session state."""


class AbilityError(FluxGridError):
    pass


class AbilityLockedError(AbilityError):
    pass


class InsufficientFluxError(AbilityError):
    pass


class SnapshotError(FluxGridError, ValueError):
    """A state snapshot has an unknown version or a malformed payload."""
