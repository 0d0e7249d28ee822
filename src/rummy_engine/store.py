"""Registry of active matches, owned by one coordinating component"""

import asyncio
from collections import defaultdict
from typing import Dict, Iterator, Optional

from .models import MatchState


class MatchStore:
    """
    Holds one canonical MatchState per match code.

    The engine never synchronizes on its own; callers that act on a match
    concurrently take ``lock(match_id)`` around each action.
    """

    def __init__(self):
        self.matches: Dict[str, MatchState] = {}
        self.match_locks = defaultdict(asyncio.Lock)

    def get(self, match_id: str) -> Optional[MatchState]:
        return self.matches.get(match_id)

    def add(self, state: MatchState) -> MatchState:
        self.matches[state.id] = state
        return state

    def remove(self, match_id: str) -> Optional[MatchState]:
        self.match_locks.pop(match_id, None)
        return self.matches.pop(match_id, None)

    def lock(self, match_id: str) -> asyncio.Lock:
        return self.match_locks[match_id]

    def __contains__(self, match_id: str) -> bool:
        return match_id in self.matches

    def __iter__(self) -> Iterator[MatchState]:
        return iter(list(self.matches.values()))

    def __len__(self) -> int:
        return len(self.matches)
