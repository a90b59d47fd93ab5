"""Static source category configuration.

Each category decomposes an aggregate run field (e.g. `damageDealt`) into the
fields expected to sum to it. The tables are immutable and validated when the
module is imported.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Final

from .categories import RunType
from .dto import CategoryDefinition, RunTypeFilter, SourceFieldDefinition
from .errors import UnknownCategoryError

DAMAGE_DEALT: Final[str] = "damageDealt"
COINS_EARNED: Final[str] = "coinsEarned"

DAMAGE_FIELDS: Final[tuple[SourceFieldDefinition, ...]] = (
    SourceFieldDefinition("projectilesDamage", "Projectiles", "#3b82f6"),
    SourceFieldDefinition("thornDamage", "Thorns", "#22d3ee"),
    SourceFieldDefinition("orbDamage", "Orb", "#f87171"),
    SourceFieldDefinition("landMineDamage", "Land Mine", "#9333ea"),
    SourceFieldDefinition("rendArmorDamage", "Rend Armor", "#f97316"),
    SourceFieldDefinition("deathRayDamage", "Death Ray", "#ff5722"),
    SourceFieldDefinition("smartMissileDamage", "Smart Missile", "#eab308"),
    SourceFieldDefinition("innerLandMineDamage", "Inner Land Mine", "#a855f7"),
    SourceFieldDefinition("chainLightningDamage", "Chain Lightning", "#60a5fa"),
    SourceFieldDefinition("deathWaveDamage", "Death Wave", "#ef4444"),
    SourceFieldDefinition("swampDamage", "Swamp", "#16a34a"),
    SourceFieldDefinition("blackHoleDamage", "Black Hole", "#4c1d95"),
    SourceFieldDefinition("electronsDamage", "Electrons", "#06b6d4"),
    SourceFieldDefinition("flameBotDamage", "Flame Bot", "#dc2626"),
    SourceFieldDefinition("damage", "Guardian Damage", "#10b981"),
)

COIN_FIELDS: Final[tuple[SourceFieldDefinition, ...]] = (
    SourceFieldDefinition("coinsFromDeathWave", "Death Wave", "#ef4444"),
    SourceFieldDefinition("coinsFromGoldenTower", "Golden Tower", "#fbbf24"),
    SourceFieldDefinition(
        "coinsFromBlackHole", "Black Hole", "#4c1d95", aliases=("coinsFromBlackhole",)
    ),
    SourceFieldDefinition("coinsFromSpotlight", "Spotlight", "#e2e8f0"),
    SourceFieldDefinition("coinsFromOrb", "Orbs", "#f87171", aliases=("coinsFromOrbs",)),
    SourceFieldDefinition("coinsFromCoinUpgrade", "Coin Upgrade", "#22c55e"),
    SourceFieldDefinition("coinsFromCoinBonuses", "Coin Bonuses", "#84cc16"),
    SourceFieldDefinition("goldenBotCoinsEarned", "Golden Bot", "#f59e0b"),
    SourceFieldDefinition("coinsFetched", "Coins Fetched", "#14b8a6"),
    SourceFieldDefinition("guardianCoinsStolen", "Guardian Stolen", "#10b981"),
    SourceFieldDefinition("coinsStolen", "Coins Stolen", "#64748b"),
)

DAMAGE_DEALT_CATEGORY: Final[CategoryDefinition] = CategoryDefinition(
    id=DAMAGE_DEALT,
    name="Damage Dealt",
    description="Breakdown of total damage dealt by source.",
    total_field="damageDealt",
    sources=DAMAGE_FIELDS,
)

COINS_EARNED_CATEGORY: Final[CategoryDefinition] = CategoryDefinition(
    id=COINS_EARNED,
    name="Coins Earned",
    description="Breakdown of coin income by source.",
    total_field="coinsEarned",
    sources=COIN_FIELDS,
    per_hour_field="coinsPerHour",
)


def build_field_alias_map(
    fields: Iterable[SourceFieldDefinition],
) -> Mapping[str, tuple[str, ...]]:
    """Return `field_name -> aliases` for fields that declare aliases."""

    return MappingProxyType(
        {field.field_name: field.aliases for field in fields if field.aliases}
    )


def _validate_categories(categories: Iterable[CategoryDefinition]) -> None:
    """Reject a category whose sources reuse a field name."""

    for category in categories:
        seen: set[str] = set()
        for source in category.sources:
            if source.field_name in seen:
                raise ValueError(
                    f"Duplicate source field {source.field_name!r} in category {category.id!r}."
                )
            seen.add(source.field_name)


SOURCE_CATEGORIES: Final[Mapping[str, CategoryDefinition]] = MappingProxyType(
    {category.id: category for category in (DAMAGE_DEALT_CATEGORY, COINS_EARNED_CATEGORY)}
)

_validate_categories(SOURCE_CATEGORIES.values())

COIN_FIELD_ALIASES: Final = build_field_alias_map(COIN_FIELDS)

_DEFAULT_RUN_TYPES: Final[Mapping[str, RunTypeFilter]] = MappingProxyType(
    {DAMAGE_DEALT: RunType.tournament, COINS_EARNED: RunType.farm}
)


def get_category(category_id: str) -> CategoryDefinition:
    """Return the category definition for an id.

    Raises:
        UnknownCategoryError: When the id is not configured.
    """

    try:
        return SOURCE_CATEGORIES[category_id]
    except KeyError:
        raise UnknownCategoryError(category_id) from None


def default_run_type_for_category(category_id: str) -> RunTypeFilter:
    """Return the run type a category is most meaningful for.

    Damage analysis defaults to tournament runs, coin analysis to farm runs.
    """

    if category_id not in SOURCE_CATEGORIES:
        raise UnknownCategoryError(category_id)
    return _DEFAULT_RUN_TYPES[category_id]
