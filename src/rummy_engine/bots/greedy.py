"""
Greedy bot implementation with basic heuristics.
"""

import logging
from typing import List

from .base import BaseBot, BotAction
from .heuristics import find_best_discard, find_possible_melds, is_discard_card_useful
from .search import try_bot_rearrangement
from ..constants import PHASE_DRAW, PHASE_PLAY, SOURCE_DECK, SOURCE_DISCARD
from ..errors import EMPTY_PILE, GameError
from ..validate import can_add_to_meld

logger = logging.getLogger(__name__)


class GreedyBot(BaseBot):
    """
    Bot that sheds as many cards as it can each turn.

    Strategy:
    - Take the discard only when it extends the table or completes a meld
    - Rebuild the table to absorb hand cards when the search finds a layout
    - Lay off single cards onto table melds, then lay down new melds
    - Discard the card the hand needs least
    """

    def take_turn(self, match_id: str) -> List[BotAction]:
        player = self.get_bot_player(match_id)
        if player is None:
            logger.debug(f"[BOT] No bot to move in match {match_id}")
            return []

        state = self.get_state(match_id)
        actions = []
        logger.info(f"[BOT] {player.name} ({player.id}) taking turn with {len(player.hand)} cards")

        if state.phase == PHASE_DRAW:
            actions.append(self._draw(match_id, player.id))

        if state.phase != PHASE_PLAY:
            return actions

        actions.extend(self._rearrange(match_id, player.id))
        actions.extend(self._lay_off(match_id, player.id))
        actions.extend(self._play_melds(match_id, player.id))

        if not player.hand:
            winner = self.engine.end_turn(match_id, player.id)
            actions.append(BotAction.win(player.id, winner))
            return actions

        card = find_best_discard(player.hand, state.melds)
        winner = self.engine.discard(match_id, player.id, card.id)
        actions.append(BotAction.discard(player.id, card))
        logger.info(f"[BOT] {player.name} discarded {card.label()}")

        if winner:
            actions.append(BotAction.win(player.id, winner))
        return actions

    def _draw(self, match_id: str, player_id: str) -> BotAction:
        state = self.get_state(match_id)
        player = state.get_player(player_id)
        top = state.discard_top

        source = SOURCE_DECK
        if top is not None and is_discard_card_useful(top, player.hand, state.melds):
            source = SOURCE_DISCARD

        try:
            card = self.engine.draw(match_id, player_id, source)
        except GameError as e:
            if e.code != EMPTY_PILE or source != SOURCE_DECK or not state.discard:
                raise
            source = SOURCE_DISCARD
            card = self.engine.draw(match_id, player_id, source)
        return BotAction.draw(player_id, source, card)

    def _rearrange(self, match_id: str, player_id: str) -> List[BotAction]:
        state = self.get_state(match_id)
        player = state.get_player(player_id)
        if not state.melds:
            return []

        plan = try_bot_rearrangement(state.melds, player.hand, state.rules.bot_search_depth)
        if plan is None:
            return []

        try:
            melds = self.engine.rearrange_table(match_id, player_id, plan.proposal(), plan.hand_card_ids)
        except GameError as e:
            logger.warning(f"[BOT] Rearrangement rejected for {player.name}: {e.message}")
            return []
        logger.info(f"[BOT] {player.name} rearranged the table with {len(plan.hand_card_ids)} hand card(s)")
        return [BotAction.rearrange(player_id, melds, plan.hand_card_ids)]

    def _lay_off(self, match_id: str, player_id: str) -> List[BotAction]:
        state = self.get_state(match_id)
        player = state.get_player(player_id)
        actions = []

        progress = True
        while progress and len(player.hand) > 1:
            progress = False
            for card in list(player.hand):
                if len(player.hand) <= 1:
                    break
                for meld in state.melds:
                    position = can_add_to_meld(card, meld.cards)
                    if position is None:
                        continue
                    self.engine.add_to_meld(match_id, player_id, card.id, meld.id, position)
                    actions.append(BotAction.add_to_meld(player_id, card, meld.id, position))
                    progress = True
                    break
        return actions

    def _play_melds(self, match_id: str, player_id: str) -> List[BotAction]:
        state = self.get_state(match_id)
        player = state.get_player(player_id)
        actions = []

        while True:
            playable = [
                cards for cards in find_possible_melds(player.hand)
                if len(player.hand) - len(cards) > 0
            ]
            if not playable:
                break
            meld = self.engine.play_meld(match_id, player_id, [c.id for c in playable[0]])
            actions.append(BotAction.play_meld(player_id, meld))
        return actions
