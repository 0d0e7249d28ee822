"""Match state machine: turn flow, melding, rearrangement, winning"""

import logging
import random
import uuid
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .bots.greedy import GreedyBot
from .constants import (
    PHASE_DRAW, PHASE_FINISHED, PHASE_PLAY, POSITION_END, POSITION_START,
    SOURCE_DECK, SOURCE_DISCARD
)
from .errors import (
    CARD_NOT_IN_HAND, EMPTY_PILE, HAND_NOT_EMPTY, INVALID_MELD, INVALID_REARRANGEMENT,
    INVALID_SOURCE, MATCH_EXISTS, MATCH_FINISHED, MATCH_NOT_FOUND, MELD_NOT_FOUND,
    MUST_KEEP_ONE_CARD, NOT_ENOUGH_PLAYERS, NOT_YOUR_TURN, PLAYER_NOT_FOUND, SESSION_IN_USE,
    WRONG_PHASE, raise_error
)
from .models import (
    Card, MatchState, Meld, Player, PlayerId, RosterEntry, SessionId, WinnerRecord
)
from .rules import RuleConfig
from .scoring import build_winner_record, check_win
from .serialization import player_view
from .shuffle import build_decks, deal, reshuffle_discards, shuffle
from .store import MatchStore
from .validate import is_valid_meld, splice, validate_rearrangement

logger = logging.getLogger(__name__)

Proposal = Union[Sequence[str], Dict[str, Any]]


def new_meld_id() -> str:
    return f"meld_{uuid.uuid4().hex[:9]}"


class RummyEngine:
    def __init__(self, store: Optional[MatchStore] = None, rng: Optional[random.Random] = None):
        self.store = store if store is not None else MatchStore()
        self.rng = rng
        self.bot = GreedyBot(self)

    # ----- lifecycle -----

    def start_match(
        self,
        match_id: str,
        roster: Sequence[RosterEntry],
        rules: Optional[RuleConfig] = None,
        rng: Optional[random.Random] = None
    ) -> MatchState:
        """Deal a new match for an ordered roster and register it in the store."""
        rules = rules or RuleConfig()
        if match_id in self.store:
            raise_error(MATCH_EXISTS, f"Match {match_id} already exists")
        if not rules.validate_player_count(len(roster)):
            raise_error(
                NOT_ENOUGH_PLAYERS,
                f"Need {rules.min_players} to {rules.max_players} players, got {len(roster)}"
            )

        pool = shuffle(build_decks(rules.deck_count), rng or self.rng)
        hands, deck, discard = deal(pool, len(roster), rules.cards_per_player)

        state = MatchState(id=match_id, rules=rules, deck=deck, discard=discard)
        for entry, hand in zip(roster, hands):
            player = Player(
                id=PlayerId(entry.id),
                name=entry.name,
                hand=hand,
                is_bot=entry.is_bot,
                session_id=SessionId(entry.session_id) if entry.session_id else None
            )
            state.players.append(player)
            if player.session_id:
                state.sessions[player.session_id] = player.id

        state.current_turn = rules.clamp_starting_player(len(roster))
        state.phase = PHASE_DRAW
        state.game_log.append(f"Game started! {state.current_player.name} goes first")
        self.store.add(state)
        logger.info(
            f"Match {match_id} started: {len(roster)} players, {rules.deck_count} deck(s), "
            f"{state.current_player.name} to play"
        )
        return state

    def get_match(self, match_id: str) -> MatchState:
        state = self.store.get(match_id)
        if state is None:
            raise_error(MATCH_NOT_FOUND, f"Match {match_id} not found")
        return state

    def remove_match(self, match_id: str) -> None:
        if self.store.remove(match_id) is not None:
            logger.info(f"Match {match_id} removed")

    def get_player(self, match_id: str, player_id: str) -> Tuple[MatchState, Player]:
        state = self.get_match(match_id)
        player = state.get_player(player_id)
        if player is None:
            raise_error(PLAYER_NOT_FOUND, f"Player {player_id} is not in match {match_id}")
        return state, player

    def current_player(self, match_id: str) -> Player:
        return self.get_match(match_id).current_player

    def is_bot_turn(self, match_id: str) -> bool:
        state = self.store.get(match_id)
        if state is None or state.phase == PHASE_FINISHED:
            return False
        return state.current_player.is_bot

    def get_view(self, match_id: str, player_id: str) -> Dict[str, Any]:
        state, player = self.get_player(match_id, player_id)
        return player_view(state, player.id)

    def _require_turn(self, match_id: str, player_id: str, phase: str) -> Tuple[MatchState, Player]:
        state, player = self.get_player(match_id, player_id)
        if state.phase == PHASE_FINISHED:
            raise_error(MATCH_FINISHED, "The match is over")
        if state.current_player.id != player.id:
            raise_error(NOT_YOUR_TURN, f"Not your turn (current turn: {state.current_player.name})")
        if state.phase != phase:
            if phase == PHASE_PLAY:
                raise_error(WRONG_PHASE, "Draw a card first")
            raise_error(WRONG_PHASE, "Already drew a card this turn")
        return state, player

    # ----- turn actions -----

    def draw(self, match_id: str, player_id: str, source: str = SOURCE_DECK) -> Card:
        """Draw from the deck or the top of the discard pile."""
        state, player = self._require_turn(match_id, player_id, PHASE_DRAW)
        if source not in (SOURCE_DECK, SOURCE_DISCARD):
            raise_error(INVALID_SOURCE, f"Invalid source: {source}")

        if source == SOURCE_DECK:
            if not state.deck:
                if len(state.discard) <= 1:
                    raise_error(EMPTY_PILE, "No cards left to draw")
                state.deck, state.discard = reshuffle_discards(state.discard, self.rng)
                state.reshuffle_count += 1
                state.game_log.append("Discard pile shuffled into a new deck")
                logger.info(f"Match {match_id}: reshuffled {len(state.deck)} discards into the deck")
            card = state.deck.pop(0)
        else:
            if not state.discard:
                raise_error(EMPTY_PILE, "Discard pile is empty")
            card = state.discard.pop()

        player.hand.append(card)
        state.phase = PHASE_PLAY
        state.version += 1
        if source == SOURCE_DISCARD:
            state.game_log.append(f"{player.name} took {card.label()} from the discard pile")
        else:
            state.game_log.append(f"{player.name} drew from the deck")
        return card

    def play_meld(self, match_id: str, player_id: str, card_ids: Sequence[str]) -> Meld:
        """Lay down a new meld from hand."""
        state, player = self._require_turn(match_id, player_id, PHASE_PLAY)

        if len(set(card_ids)) != len(card_ids):
            raise_error(CARD_NOT_IN_HAND, "Each card can only be used once")
        cards = [player.find_card(card_id) for card_id in card_ids]
        if any(card is None for card in cards):
            raise_error(CARD_NOT_IN_HAND, "Some cards not found in hand")
        if not is_valid_meld(cards):
            raise_error(INVALID_MELD, "Invalid meld. Must be 3+ consecutive same suit or 3+ same rank")
        if len(player.hand) - len(cards) == 0:
            raise_error(
                MUST_KEEP_ONE_CARD,
                "You cannot play all your cards. You must keep one card to discard to win."
            )

        used = set(card_ids)
        player.hand = [c for c in player.hand if c.id not in used]
        meld = Meld(id=new_meld_id(), cards=list(cards), player_id=player.id)
        state.melds.append(meld)
        state.version += 1
        state.game_log.append(f"{player.name} played: {', '.join(c.label() for c in cards)}")
        return meld

    def add_to_meld(
        self,
        match_id: str,
        player_id: str,
        card_id: str,
        meld_id: str,
        position: str = POSITION_END
    ) -> Meld:
        """Extend an existing table meld with one card from hand."""
        state, player = self._require_turn(match_id, player_id, PHASE_PLAY)

        card = player.find_card(card_id)
        if card is None:
            raise_error(CARD_NOT_IN_HAND, "Card not found in hand")
        meld = state.get_meld(meld_id)
        if meld is None:
            raise_error(MELD_NOT_FOUND, "Meld not found")
        if position not in (POSITION_START, POSITION_END):
            raise_error(INVALID_MELD, f"Invalid position: {position}")

        new_cards = splice(meld.cards, card, position)
        if not is_valid_meld(new_cards):
            raise_error(INVALID_MELD, "Adding this card would create an invalid meld")
        if len(player.hand) - 1 == 0:
            raise_error(MUST_KEEP_ONE_CARD, "You cannot play your last card. You must discard to win.")

        player.hand = [c for c in player.hand if c.id != card_id]
        meld.cards = new_cards
        meld.player_id = player.id
        state.version += 1
        state.game_log.append(f"{player.name} added {card.label()} to a meld")
        return meld

    def rearrange_table(
        self,
        match_id: str,
        player_id: str,
        proposed_melds: Sequence[Proposal],
        cards_from_hand: Optional[Sequence[str]] = None
    ) -> List[Meld]:
        """
        Replace the table with a new layout built from table cards plus hand cards.

        Args:
            proposed_melds: Each entry is a list of card ids, or a dict with
                ``cards`` and an optional existing meld ``id`` to keep
            cards_from_hand: Ids of the hand cards the layout uses; derived
                from the proposal when omitted

        Returns:
            The new table melds
        """
        state, player = self._require_turn(match_id, player_id, PHASE_PLAY)

        meld_ids, card_lists = self._normalize_proposal(proposed_melds)
        result = validate_rearrangement(state.melds, card_lists, player.hand)
        if not result.valid:
            raise_error(result.error_code, result.error_message)

        if cards_from_hand is not None:
            if (len(set(cards_from_hand)) != len(cards_from_hand)
                    or set(cards_from_hand) != set(result.hand_card_ids)):
                raise_error(
                    INVALID_REARRANGEMENT,
                    "Cards from hand do not match the new cards on the table"
                )
        if len(player.hand) - len(result.hand_card_ids) == 0:
            raise_error(
                MUST_KEEP_ONE_CARD,
                "You cannot play all your cards. You must keep one card to discard to win."
            )

        previous = {m.id: m for m in state.melds}
        new_melds = []
        kept_ids = set()
        non_empty = [(mid, cards) for mid, cards in zip(meld_ids, card_lists) if cards]
        for (requested_id, _), cards in zip(non_empty, result.melds):
            old = previous.get(requested_id) if requested_id not in kept_ids else None
            if old is not None:
                kept_ids.add(old.id)
                unchanged = old.card_ids() == [c.id for c in cards]
                new_melds.append(Meld(
                    id=old.id,
                    cards=cards,
                    player_id=old.player_id if unchanged else player.id
                ))
            else:
                new_melds.append(Meld(id=new_meld_id(), cards=cards, player_id=player.id))

        used = set(result.hand_card_ids)
        player.hand = [c for c in player.hand if c.id not in used]
        state.melds = new_melds
        state.version += 1
        state.game_log.append(
            f"{player.name} rearranged the table using {len(used)} card(s) from hand"
        )
        return new_melds

    @staticmethod
    def _normalize_proposal(proposed_melds: Sequence[Proposal]) -> Tuple[List[Optional[str]], List[List[str]]]:
        meld_ids = []
        card_lists = []
        for entry in proposed_melds:
            if isinstance(entry, dict):
                meld_ids.append(entry.get('id'))
                card_lists.append(list(entry.get('cards') or []))
            else:
                meld_ids.append(None)
                card_lists.append(list(entry))
        return meld_ids, card_lists

    def discard(self, match_id: str, player_id: str, card_id: str) -> Optional[WinnerRecord]:
        """Discard a card and end the turn; an emptied hand wins the match."""
        state, player = self._require_turn(match_id, player_id, PHASE_PLAY)

        card = player.find_card(card_id)
        if card is None:
            raise_error(CARD_NOT_IN_HAND, "Card not found in hand")

        player.hand = [c for c in player.hand if c.id != card_id]
        state.discard.append(card)
        state.game_log.append(f"{player.name} discarded {card.label()}")

        if check_win(player.hand):
            return self._declare_winner(state, player)

        self._advance_turn(state)
        state.version += 1
        return None

    def end_turn(self, match_id: str, player_id: str) -> WinnerRecord:
        """Go out without discarding."""
        state, player = self._require_turn(match_id, player_id, PHASE_PLAY)
        if not check_win(player.hand):
            raise_error(HAND_NOT_EMPTY, "You must discard a card or go out with no cards")
        return self._declare_winner(state, player)

    def _advance_turn(self, state: MatchState):
        state.current_turn = (state.current_turn + 1) % len(state.players)
        state.phase = PHASE_DRAW

    def _declare_winner(self, state: MatchState, player: Player) -> WinnerRecord:
        state.winner = build_winner_record(state, player)
        state.phase = PHASE_FINISHED
        state.version += 1
        state.game_log.append(f"{player.name} went out and wins!")
        logger.info(f"Match {state.id} won by {player.name} ({player.id})")
        return state.winner

    # ----- connection identity -----

    def resolve_session(self, match_id: str, session_id: str) -> PlayerId:
        state = self.get_match(match_id)
        player_id = state.sessions.get(SessionId(session_id))
        if player_id is None:
            raise_error(PLAYER_NOT_FOUND, f"Unknown session {session_id}")
        return player_id

    def disconnect(self, match_id: str, player_id: str) -> None:
        """Mark a player as disconnected; their hand and turn stay in place."""
        state, player = self.get_player(match_id, player_id)
        if player.connected:
            player.connected = False
            state.version += 1
            logger.info(f"Player {player.name} disconnected from match {match_id}")

    def disconnect_session(self, match_id: str, session_id: str) -> None:
        self.disconnect(match_id, self.resolve_session(match_id, session_id))

    def reconnect(
        self,
        match_id: str,
        player_id: Optional[str],
        new_session_id: str,
        old_session_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Bind a new transport session to an existing player.

        Lookup goes by persistent player id, then by the previous session id,
        then falls back to the only disconnected human. With several humans
        disconnected and no usable id the reconnect is refused.
        """
        state = self.get_match(match_id)
        player = state.get_player(player_id) if player_id else None

        if player is None and old_session_id:
            previous = state.sessions.get(SessionId(old_session_id))
            player = state.get_player(previous) if previous else None

        if player is None:
            candidates = [p for p in state.players if not p.connected and not p.is_bot]
            if len(candidates) == 1:
                player = candidates[0]
            elif len(candidates) > 1:
                logger.warning(
                    f"Match {match_id}: ambiguous reconnect, {len(candidates)} players disconnected"
                )

        if player is None:
            raise_error(PLAYER_NOT_FOUND, "Could not find a player to reconnect")

        holder = state.sessions.get(SessionId(new_session_id))
        if holder is not None and holder != player.id:
            raise_error(SESSION_IN_USE, f"Session {new_session_id} belongs to another player")

        for session, owner in list(state.sessions.items()):
            if owner == player.id:
                del state.sessions[session]
        player.session_id = SessionId(new_session_id)
        state.sessions[player.session_id] = player.id
        player.connected = True
        state.version += 1
        logger.info(f"Player {player.name} reconnected to match {match_id}")
        return player_view(state, player.id)

    # ----- bots -----

    def play_bot_turn(self, match_id: str) -> list:
        """Play one full turn for the current player if it is a bot."""
        if not self.is_bot_turn(match_id):
            return []
        return self.bot.take_turn(match_id)

    def run_bot_turns(self, match_id: str, max_turns: int = 100) -> list:
        """Chain bot turns until a human is up, the match ends, or the cap is hit."""
        actions = []
        turns = 0
        while turns < max_turns and self.is_bot_turn(match_id):
            actions.extend(self.play_bot_turn(match_id))
            turns += 1
        return actions
