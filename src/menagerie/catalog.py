from __future__ import annotations

import logging
from enum import Enum
from importlib import resources
from typing import Dict, Iterable, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .state.models import CanonicalState

logger = logging.getLogger(__name__)

DAY_SECONDS = 86_400.0
WEEK_SECONDS = 7 * DAY_SECONDS


class Repeatability(str, Enum):
    ONE_TIME = "one_time"
    REPEATABLE = "repeatable"
    DAILY = "daily"
    WEEKLY = "weekly"


class RequirementType(str, Enum):
    LEVEL = "level"
    QUEST = "quest"
    AREA = "area"
    STORY_FLAG = "story_flag"


class UnlockRequirement(BaseModel):
    type: RequirementType = Field(..., description="What the requirement checks")
    value: Union[int, str] = Field(..., description="Minimum level, or the quest/area/flag id")
    description: str = Field("", description="Human readable hint")


class ItemAmount(BaseModel):
    item_id: str
    quantity: int = Field(1, gt=0)
    consumed: bool = Field(True, description="Whether the trade takes the item away")


class TradeOffer(BaseModel):
    item_id: str
    quantity: int = Field(1, gt=0)
    chance: float = Field(1.0, ge=0.0, le=1.0, description="Drop chance of this offered item")


class TradeDefinition(BaseModel):
    id: str
    npc_name: str = ""
    repeatability: Repeatability = Repeatability.REPEATABLE
    required_items: List[ItemAmount] = Field(default_factory=list)
    gold_required: int = Field(0, ge=0)
    offered_items: List[TradeOffer] = Field(default_factory=list)
    gold_offered: int = Field(0, ge=0)
    cooldown: float = Field(0.0, ge=0.0, description="Seconds before the trade can be repeated")
    requirements: List[UnlockRequirement] = Field(default_factory=list)

    @property
    def effective_cooldown(self) -> float:
        """Cooldown in seconds; daily and weekly trades fall back to their period."""
        if self.cooldown > 0:
            return self.cooldown
        if self.repeatability is Repeatability.DAILY:
            return DAY_SECONDS
        if self.repeatability is Repeatability.WEEKLY:
            return WEEK_SECONDS
        return 0.0


class ShopDefinition(BaseModel):
    id: str
    name: str = ""
    location: str = ""
    unlock_requirements: List[UnlockRequirement] = Field(default_factory=list)


class Catalog(BaseModel):
    """Read-only trade and shop definitions keyed by id."""

    trades: Dict[str, TradeDefinition] = Field(default_factory=dict)
    shops: Dict[str, ShopDefinition] = Field(default_factory=dict)

    @field_validator("trades", "shops", mode="before")
    @classmethod
    def index_by_id(cls, v):
        # YAML files may list definitions instead of mapping them by id.
        if isinstance(v, list):
            return {entry["id"]: entry for entry in v}
        return v

    def get_trade(self, trade_id: str) -> Optional[TradeDefinition]:
        return self.trades.get(trade_id)

    def get_shop(self, shop_id: str) -> Optional[ShopDefinition]:
        return self.shops.get(shop_id)


def requirement_met(state: CanonicalState, requirement: UnlockRequirement) -> bool:
    if requirement.type is RequirementType.LEVEL:
        return state.player.level >= int(requirement.value)
    if requirement.type is RequirementType.AREA:
        return str(requirement.value) in state.unlocked_areas
    if requirement.type is RequirementType.STORY_FLAG:
        return str(requirement.value) in state.story_flags
    # Quest progress reports completion through a "quest:<id>" story flag.
    return f"quest:{requirement.value}" in state.story_flags


def requirements_met(state: CanonicalState, requirements: Iterable[UnlockRequirement]) -> bool:
    return all(requirement_met(state, r) for r in requirements)


def load_catalog(path: Optional[str] = None) -> Catalog:
    """Load the trade/shop catalog from YAML.

    If path is None, loads the embedded default resource at
    menagerie/config/catalog.yaml.
    """
    if path is None:
        text = resources.files("menagerie.config").joinpath("catalog.yaml").read_text(encoding="utf-8")
        logger.debug("Loaded embedded catalog resource")
    else:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
        logger.debug("Loaded catalog from path: %s", path)

    data = yaml.safe_load(text) or {}
    try:
        catalog = Catalog.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid catalog: {e}") from e
    logger.info("Catalog loaded: %d trades, %d shops", len(catalog.trades), len(catalog.shops))
    return catalog
