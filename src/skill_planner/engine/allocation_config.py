"""Configuration knobs for the allocation engine.

Defaults match the stock skill calculator: tiers 1-5, two points per
earlier tier, and a flat ten-point gate on the capstone tier.
"""

from dataclasses import dataclass


@dataclass(slots=True)
class AllocationConfig:
    """Tier gating parameters that aren't stored in the skill data."""

    min_tier: int = 1
    max_tier: int = 5
    points_per_tier: int = 2       # Tier 2 needs 2, tier 3 needs 4, ...
    capstone_tier: int = 5
    capstone_threshold: int = 10   # Overrides points_per_tier for the capstone

    def tier_threshold(self, tier: int) -> int:
        """Points that must already be spent in the tree to unlock *tier*."""
        if tier == self.capstone_tier:
            return self.capstone_threshold
        return (tier - 1) * self.points_per_tier

    def is_valid_tier(self, tier: int) -> bool:
        return self.min_tier <= tier <= self.max_tier
