"""Game constants and card helpers"""

SUITS = ['hearts', 'diamonds', 'clubs', 'spades']
RANKS = ['A', '2', '3', '4', '5', '6', '7', '8', '9', '10', 'J', 'Q', 'K']

SUIT_SYMBOLS = {'hearts': '♥', 'diamonds': '♦', 'clubs': '♣', 'spades': '♠'}

ACE_LOW = 1
ACE_HIGH = 14
KING_VALUE = 13

# Phases
PHASE_DRAW = 'draw'
PHASE_PLAY = 'play'
PHASE_FINISHED = 'finished'

# Draw sources
SOURCE_DECK = 'deck'
SOURCE_DISCARD = 'discard'

# Meld ends for add_to_meld
POSITION_START = 'start'
POSITION_END = 'end'

CARDS_PER_PLAYER = 10
BOT_SEARCH_MAX_DEPTH = 10


def get_rank_value(rank: str) -> int:
    if rank == 'A':
        return ACE_LOW
    if rank == 'J':
        return 11
    if rank == 'Q':
        return 12
    if rank == 'K':
        return KING_VALUE
    return int(rank)


def make_card_id(deck_index: int, rank: str, suit: str) -> str:
    return f"{deck_index}_{rank}_{suit}"
