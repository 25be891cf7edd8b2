from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Tuple

from ..catalog import Catalog
from ..settings import Settings
from .models import Creature

# (parent1, parent2) -> (offspring species, offspring base stats)
OffspringFactory = Callable[[Creature, Creature], Tuple[str, Dict[str, float]]]


def default_offspring(parent1: Creature, parent2: Creature) -> Tuple[str, Dict[str, float]]:
    """Inherit the first parent's species and the mean of both parents' base stats."""
    names = list(parent1.base_stats) + [k for k in parent2.base_stats if k not in parent1.base_stats]
    stats: Dict[str, float] = {}
    for name in names:
        a = parent1.base_stats.get(name, parent2.base_stats.get(name, 0))
        b = parent2.base_stats.get(name, parent1.base_stats.get(name, 0))
        mean = (a + b) / 2
        stats[name] = int(round(mean)) if isinstance(a, int) and isinstance(b, int) else mean
    return parent1.species, stats


@dataclass(frozen=True)
class ReducerContext:
    """Read-only collaborators available to every reducer handler."""

    settings: Settings = field(default_factory=Settings)
    catalog: Catalog = field(default_factory=Catalog)
    offspring_factory: OffspringFactory = default_offspring
