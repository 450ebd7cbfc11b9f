"""
Dinosaur Progression Module.

The pet dinosaur gains one experience point per step walked. Every 100
experience points is a level; appearance changes as the level grows and
feeding restores hunger up to 100.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)

EXPERIENCE_PER_LEVEL = 100
MAX_HUNGER = 100
DEFAULT_NUTRITION = 20


class Appearance(str, Enum):
    """Growth stage shown for the dinosaur."""

    BABY = "baby"
    CHILD = "child"
    ADULT = "adult"


def experience_for_steps(steps: int) -> int:
    """One experience point per step."""
    return max(0, steps)


def level_for_experience(experience: int) -> int:
    return experience // EXPERIENCE_PER_LEVEL + 1


def appearance_for_level(level: int) -> Appearance:
    if level > 10:
        return Appearance.ADULT
    if level > 5:
        return Appearance.CHILD
    return Appearance.BABY


@dataclass
class DinosaurProgress:
    """Experience, level and hunger of a user's dinosaur."""

    name: str = "My Dinosaur"
    species: str = "Triceratops"
    experience: int = 0
    hunger: int = MAX_HUNGER
    last_fed: Optional[datetime] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def level(self) -> int:
        return level_for_experience(self.experience)

    @property
    def appearance(self) -> Appearance:
        return appearance_for_level(self.level)

    @property
    def level_progress_percent(self) -> float:
        """Progress from the current level toward the next one."""
        into_level = self.experience - (self.level - 1) * EXPERIENCE_PER_LEVEL
        return min(100.0, max(0.0, into_level / EXPERIENCE_PER_LEVEL * 100))

    def apply_steps(self, added_steps: int) -> int:
        """
        Credit newly walked steps as experience.

        Args:
            added_steps: Steps walked since the last update

        Returns:
            Number of levels gained
        """
        if added_steps <= 0:
            return 0

        previous_level = self.level
        self.experience += experience_for_steps(added_steps)
        gained = self.level - previous_level

        if gained:
            logger.info(
                f"[DINO] {self.name} reached level {self.level} "
                f"({self.appearance.value})"
            )
        return gained

    def feed(self, nutrition: int = DEFAULT_NUTRITION) -> int:
        """Restore hunger by nutrition points, capped at 100."""
        self.hunger = min(MAX_HUNGER, max(0, self.hunger + nutrition))
        self.last_fed = datetime.now(timezone.utc)
        logger.info(f"[DINO] Fed {self.name} {nutrition} points, hunger={self.hunger}")
        return self.hunger

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "species": self.species,
            "level": self.level,
            "experience": self.experience,
            "next_level_experience": self.level * EXPERIENCE_PER_LEVEL,
            "level_progress_percent": self.level_progress_percent,
            "hunger": self.hunger,
            "appearance_state": self.appearance.value,
            "last_fed": self.last_fed.isoformat() if self.last_fed else None,
            "created_at": self.created_at.isoformat(),
        }
