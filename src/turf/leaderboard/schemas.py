"""Pydantic response models for leaderboard endpoints."""

from __future__ import annotations

from pydantic import BaseModel


class LeaderboardEntryResponse(BaseModel):
    rank: int
    user_id: int
    display_name: str
    color: str
    tiles_owned: int


class LeaderboardResponse(BaseModel):
    season_id: int | None = None
    entries: list[LeaderboardEntryResponse]
