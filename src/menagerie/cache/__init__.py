from .roster import RosterCache

__all__ = ["RosterCache"]
