"""
Memory Model Constants and Enums

Rating scale, card states, card variants and default parameters in one place.
"""

from enum import Enum, IntEnum


# ---- Ratings ----

class Rating(IntEnum):
    """Learner's self-assessed recall quality."""
    AGAIN = 1   # Retrieval failed
    HARD = 2    # Retrieved with high effort
    GOOD = 3    # Retrieved normally
    EASY = 4    # Retrieved fluently


# ---- Card States ----

class CardState(IntEnum):
    """Coarse scheduling phase of a card."""
    NEW = 0
    LEARNING = 1
    REVIEW = 2
    RELEARNING = 3


# States whose `due` timestamp drives selection
SHORT_STEP_STATES = (CardState.LEARNING, CardState.RELEARNING)
SCHEDULED_STATES = (CardState.LEARNING, CardState.REVIEW, CardState.RELEARNING)

# Prior states in which an AGAIN rating counts as a lapse
LAPSE_STATES = (CardState.REVIEW, CardState.RELEARNING)


# ---- Card Variants ----

class CardType(str, Enum):
    """Kind of reviewable item sharing the cards table."""
    MCQ = "mcq"
    PASSAGE = "passage"
    FLASHCARD = "flashcard"


# ---- Defaults ----

DEFAULT_RETENTION = 0.9     # Target recall probability
LEECH_THRESHOLD = 8         # Lapses before a card is flagged
NEW_PER_SESSION = 20        # New cards introduced per calendar day
ACTIVITY_CAP = 200          # Trailing activity events kept per project
DEFAULT_PROJECT_ID = "default"
DEFAULT_SECTION_ID = "default"
