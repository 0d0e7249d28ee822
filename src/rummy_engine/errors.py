# src/rummy_engine/errors.py

class GameError(Exception):
    """Base exception for game-related errors."""
    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")

# Specific error codes
MATCH_NOT_FOUND = "MATCH_NOT_FOUND"
MATCH_EXISTS = "MATCH_EXISTS"
MATCH_FINISHED = "MATCH_FINISHED"
PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
NOT_ENOUGH_PLAYERS = "NOT_ENOUGH_PLAYERS"
NOT_YOUR_TURN = "NOT_YOUR_TURN"
WRONG_PHASE = "WRONG_PHASE"
CARD_NOT_IN_HAND = "CARD_NOT_IN_HAND"
INVALID_MELD = "INVALID_MELD"
MUST_KEEP_ONE_CARD = "MUST_KEEP_ONE_CARD"
EMPTY_PILE = "EMPTY_PILE"
INVALID_SOURCE = "INVALID_SOURCE"
MELD_NOT_FOUND = "MELD_NOT_FOUND"
INVALID_REARRANGEMENT = "INVALID_REARRANGEMENT"
HAND_NOT_EMPTY = "HAND_NOT_EMPTY"
INSUFFICIENT_CARDS = "INSUFFICIENT_CARDS"
SESSION_IN_USE = "SESSION_IN_USE"

# Helper function to raise common errors
def raise_error(code: str, message: str):
    raise GameError(code, message)
