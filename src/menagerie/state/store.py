from __future__ import annotations

import logging
import random
import time
from dataclasses import replace
from typing import Any, Callable, Optional, Sequence

from ..events import ACTION_REJECTED, STATE_CHANGED, Event, EventBus
from .actions import SEEDED_ACTIONS, TIMED_ACTIONS, Action
from .models import CanonicalState, default_state
from .reducer import Outcome, Reducer

logger = logging.getLogger(__name__)

Selector = Callable[[CanonicalState], Any]


class GameStore:
    """Holds the canonical state and routes every change through the reducer.

    Observers subscribe to the store's EventBus (or use ``watch``) to run side
    effects such as autosave after a dispatch; the reducer itself stays pure.
    """

    def __init__(
        self,
        reducer: Optional[Reducer] = None,
        state: Optional[CanonicalState] = None,
        clock: Callable[[], float] = time.time,
        events: Optional[EventBus] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.reducer = reducer or Reducer()
        self._state = state if state is not None else default_state(self.reducer.settings)
        self.clock = clock
        self.events = events or EventBus()
        self.rng = rng or random.Random()

    @property
    def state(self) -> CanonicalState:
        return self._state

    def dispatch(self, action: Action) -> Outcome:
        """Apply one action; runs to completion before returning."""
        if action.at is None and isinstance(action, TIMED_ACTIONS):
            action = replace(action, at=self.clock())
        if isinstance(action, SEEDED_ACTIONS) and action.rng_seed is None:
            action = replace(action, rng_seed=self.rng.getrandbits(32))
        previous = self._state
        outcome = self.reducer.apply(previous, action)
        if outcome.error is not None:
            logger.info("Rejected %s: %s", type(action).__name__, outcome.error)
            self.events.publish(ACTION_REJECTED, {"action": action, "error": outcome.error})
            return outcome
        if outcome.state is previous:
            logger.debug("Dispatched %s (no change)", type(action).__name__)
            return outcome
        self._state = outcome.state
        logger.debug("Dispatched %s", type(action).__name__)
        self.events.publish(STATE_CHANGED, {"previous": previous, "current": outcome.state, "action": action})
        return outcome

    def subscribe(self, callback: Callable[[Event], None]) -> Callable[[], None]:
        return self.events.subscribe(STATE_CHANGED, callback)

    def watch(
        self,
        selectors: Sequence[Selector],
        callback: Callable[[CanonicalState, CanonicalState], None],
    ) -> Callable[[], None]:
        """Call ``callback(previous, current)`` when any selected value changes."""
        def _on_change(event: Event) -> None:
            previous = event.payload["previous"]
            current = event.payload["current"]
            for select in selectors:
                before, after = select(previous), select(current)
                if before is not after and before != after:
                    callback(previous, current)
                    return

        return self.subscribe(_on_change)
