class MenagerieError(Exception):
    """Base error for Menagerie state engine exceptions."""


class ActionRejected(MenagerieError):
    """Raised inside a reducer handler when an action cannot be applied.

    The reducer never lets these escape: they are returned in the dispatch
    outcome and the state is left unchanged.
    """


class ValidationError(ActionRejected):
    """Raised when action arguments are invalid (unknown ids, negative quantities)."""


class UnknownParent(ValidationError):
    """Raised when a breeding parent id is not present in the creature roster."""


class InsufficientFunds(ActionRejected):
    """Raised when the player does not have enough gold for a purchase or breed."""


class InsufficientInventory(ActionRejected):
    """Raised when selling more units of an item than the player owns."""


class InventoryFull(ActionRejected):
    """Raised when a new item stack would exceed the inventory capacity."""


class BreedingCooldown(ActionRejected):
    """Raised when a breeding parent is still resting from a previous breed."""


class BreedingLimitReached(ActionRejected):
    """Raised when a parent is at the maximum generation or exhaustion level."""


class TradeUnavailable(ActionRejected):
    """Raised when an NPC trade is on cooldown or its requirements are unmet."""


class UnknownActionError(MenagerieError):
    """Raised in strict mode when an action has no registered handler."""


class PersistenceError(MenagerieError):
    """Base exception for save/load errors."""


class CorruptRecord(PersistenceError):
    """Raised when a persisted record cannot be decoded into a valid state."""


class PersistenceWriteFailure(PersistenceError):
    """Raised when the durable storage rejects a write."""
