"""
Match rule configuration and validation.
"""

from pydantic import BaseModel, Field, field_validator

from .constants import BOT_SEARCH_MAX_DEPTH, CARDS_PER_PLAYER


class RuleConfig(BaseModel):
    """Configuration for a single match."""

    deck_count: int = Field(
        default=1,
        ge=1,
        le=4,
        description="Number of 52-card decks shuffled together"
    )
    starting_player_index: int = Field(
        default=0,
        ge=0,
        description="Seat index of the player who takes the first turn"
    )
    cards_per_player: int = Field(
        default=CARDS_PER_PLAYER,
        ge=1,
        le=20,
        description="Cards dealt to each player"
    )
    min_players: int = Field(
        default=2,
        ge=2,
        description="Minimum number of players required to start"
    )
    max_players: int = Field(
        default=8,
        ge=2,
        description="Maximum number of players allowed"
    )
    bot_search_depth: int = Field(
        default=BOT_SEARCH_MAX_DEPTH,
        ge=1,
        le=20,
        description="Recursion limit for the bot table-rearrangement search"
    )

    @field_validator('max_players')
    @classmethod
    def validate_max_players(cls, v, info):
        """Validate maximum players doesn't undercut the minimum."""
        min_players = info.data.get('min_players', 2)
        if v < min_players:
            raise ValueError(f'max_players ({v}) must be >= min_players ({min_players})')
        return v

    def validate_player_count(self, player_count: int) -> bool:
        """Check if a player count is valid for this configuration."""
        return self.min_players <= player_count <= self.max_players

    def clamp_starting_player(self, player_count: int) -> int:
        return max(0, min(self.starting_player_index, player_count - 1))


# Default configuration instance
default_rules = RuleConfig()


def create_rules(**overrides) -> RuleConfig:
    """Create a RuleConfig with optional overrides."""
    config_dict = default_rules.model_dump()
    config_dict.update(overrides)
    return RuleConfig(**config_dict)
