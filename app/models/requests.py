"""
Request models for the relationship network API.

This module contains Pydantic models for validating incoming API requests.
"""

from typing import List, Optional

from app.utils.validators import (
    validate_guild_id,
    validate_unique_guild_ids,
    validate_user_id,
)
from pydantic import BaseModel, Field, field_validator


class GuildUsage(BaseModel):
    """A guild the target account uses, with how often it uses it."""

    guild_id: str = Field(..., description="Guild identifier (numeric snowflake)")
    usage_count: int = Field(
        ..., ge=0, description="How often the target account used the guild"
    )

    @field_validator("guild_id", mode="before")
    @classmethod
    def validate_guild_id_format(cls, v):
        return validate_guild_id(v)


class RelationshipNetworkRequest(BaseModel):
    """Request model for relationship network analysis."""

    user_id: str = Field(..., description="Account to analyze (numeric snowflake)")
    top_guilds: Optional[List[GuildUsage]] = Field(
        None,
        max_length=25,
        description="Guilds the account uses most; the top 3 by usage are correlated",
    )

    @field_validator("user_id", mode="before")
    @classmethod
    def validate_user_id_format(cls, v):
        return validate_user_id(v)

    @field_validator("top_guilds")
    @classmethod
    def validate_top_guilds(cls, v):
        if v:
            validate_unique_guild_ids([guild.guild_id for guild in v])
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": "123456789012345678",
                "top_guilds": [
                    {"guild_id": "987654321098765432", "usage_count": 42},
                    {"guild_id": "876543210987654321", "usage_count": 17},
                ],
            },
            "examples": {
                "network_only": {
                    "summary": "Network analysis without guild correlation",
                    "value": {"user_id": "123456789012345678"},
                },
            },
        }


class GuildCorrelationRequest(BaseModel):
    """Request model for guild correlation analysis."""

    user_id: str = Field(..., description="Account whose guilds are analyzed")
    guilds: List[GuildUsage] = Field(
        ...,
        min_length=1,
        max_length=25,
        description="Guilds the account uses, with usage counts",
    )

    @field_validator("user_id", mode="before")
    @classmethod
    def validate_user_id_format(cls, v):
        return validate_user_id(v)

    @field_validator("guilds")
    @classmethod
    def validate_guilds(cls, v):
        validate_unique_guild_ids([guild.guild_id for guild in v])
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": "123456789012345678",
                "guilds": [{"guild_id": "987654321098765432", "usage_count": 42}],
            }
        }
