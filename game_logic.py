import logging
import os
import random
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional

logger = logging.getLogger(__name__)

WORD_LENGTH = 5
MAX_GUESSES = 6
DAILY_EPOCH = date(2025, 6, 1)
WORDS_FILE = os.path.join(os.path.dirname(__file__), "data", "words.txt")

KEYBOARD_ROWS = ["qwertyuiop", "asdfghjkl", "zxcvbnm"]


class LetterStatus(Enum):
    CORRECT = "correct"
    PRESENT = "present"
    ABSENT = "absent"


STATUS_SQUARES = {
    LetterStatus.CORRECT: "🟩",
    LetterStatus.PRESENT: "🟨",
    LetterStatus.ABSENT: "⬜",
}


class InvalidInput(ValueError):
    """Raised when a guess and the secret word differ in length."""


class GuessRejected(ValueError):
    """Raised when a guess cannot be played; the message is shown to the player."""


# Load the word list, keeping only alphabetic words of the requested length.
def load_words(path: str = WORDS_FILE, word_length: int = WORD_LENGTH) -> List[str]:
    with open(path, "r") as f:
        words = [line.strip().upper() for line in f if line.strip()]
    words = [w for w in words if w.isalpha() and len(w) == word_length]
    logger.debug("Loaded %d words of length %d from %s", len(words), word_length, path)
    return words


def _upper_letter(c: str) -> str:
    upper = c.upper()
    return upper if len(upper) == 1 else c


# Evaluate a guess against the secret word.
def evaluate_guess(guess: str, secret: str) -> List[LetterStatus]:
    # Compare raw lengths; upper() can expand a character (ß -> SS)
    if len(guess) != len(secret):
        raise InvalidInput(
            f"Guess has {len(guess)} letters but the secret word has {len(secret)}"
        )
    guess = "".join(_upper_letter(c) for c in guess)
    secret = "".join(_upper_letter(c) for c in secret)

    result = [LetterStatus.ABSENT] * len(secret)
    consumed = [False] * len(secret)

# First pass: exact matches consume the secret letter at the same position
    for i, (g, s) in enumerate(zip(guess, secret)):
        if g == s:
            result[i] = LetterStatus.CORRECT
            consumed[i] = True

# Second pass: claim the leftmost unconsumed occurrence for each remaining letter
    for i, g in enumerate(guess):
        if result[i] is LetterStatus.CORRECT:
            continue
        for j, s in enumerate(secret):
            if not consumed[j] and s == g:
                result[i] = LetterStatus.PRESENT
                consumed[j] = True
                break

    return result


def is_letter_usable(guesses: List[str], letter: str, secret: str) -> bool:
    letter = letter.upper()
    if letter in secret.upper():
        return True
    return not any(letter in guess.upper() for guess in guesses)


def eliminated_letters(guesses: List[str], secret: str) -> set:
    """Letters that were guessed and do not occur anywhere in the secret word."""
    secret = secret.upper()
    guessed = {letter for guess in guesses for letter in guess.upper()}
    return {letter for letter in guessed if letter not in secret}


def keyboard_rows(guesses: List[str], secret: str) -> List[List[dict]]:
    eliminated = eliminated_letters(guesses, secret)
    return [
        [{"letter": letter, "usable": letter.upper() not in eliminated} for letter in row]
        for row in KEYBOARD_ROWS
    ]


def render_row(statuses: List[LetterStatus]) -> str:
    return "".join(STATUS_SQUARES[status] for status in statuses)


# Whole days elapsed since the first daily puzzle.
def todays_word_index(today: Optional[date] = None) -> int:
    today = today or date.today()
    return (today - DAILY_EPOCH).days


def todays_word(words: List[str], today: Optional[date] = None) -> str:
    if not words:
        raise ValueError("Word list is empty")
    return words[todays_word_index(today) % len(words)]


def random_word(words: List[str]) -> str:
    if not words:
        raise ValueError("Word list is empty")
    return random.choice(words)


@dataclass
class GuessResult:
    guess: str
    statuses: List[LetterStatus]

    @property
    def solved(self) -> bool:
        return all(status is LetterStatus.CORRECT for status in self.statuses)

    def to_dict(self) -> dict:
        return {
            "guess": self.guess,
            "feedback": [status.value for status in self.statuses],
            "row": render_row(self.statuses),
        }


@dataclass
class WordleGame:
    """
    One player's puzzle: the secret word plus the guesses made so far.

    The game does not own any storage. Callers keep it wherever they like
    (the web app stores ``to_dict()`` in the user's session) and rebuild it
    with ``from_dict()`` before the next guess.
    """
    secret_word: str
    guesses: List[str] = field(default_factory=list)
    max_guesses: int = MAX_GUESSES

    def __post_init__(self):
        self.secret_word = self.secret_word.upper()
        self.guesses = [g.upper() for g in self.guesses]

    @property
    def word_length(self) -> int:
        return len(self.secret_word)

    @property
    def status(self) -> str:
        if self.guesses and self.guesses[-1] == self.secret_word:
            return "won"
        if len(self.guesses) >= self.max_guesses:
            return "lost"
        return "in_progress"

    @property
    def is_over(self) -> bool:
        return self.status != "in_progress"

    @property
    def remaining_guesses(self) -> int:
        return max(self.max_guesses - len(self.guesses), 0)

    def submit(self, guess: str) -> GuessResult:
        if self.status == "won":
            raise GuessRejected("You already solved today's word")
        if self.status == "lost":
            raise GuessRejected("No more guesses left!")

        guess = (guess or "").strip().upper()
        if len(guess) != self.word_length:
            raise GuessRejected(f"Guess must contain {self.word_length} letters")
        if not guess.isalpha():
            raise GuessRejected("Guess must contain only letters")
        if guess in self.guesses:
            raise GuessRejected("You have already guessed that word")

        statuses = evaluate_guess(guess, self.secret_word)
        self.guesses.append(guess)
        return GuessResult(guess, statuses)

    def history(self) -> List[GuessResult]:
        return [GuessResult(g, evaluate_guess(g, self.secret_word)) for g in self.guesses]

    def eliminated(self) -> List[str]:
        return sorted(eliminated_letters(self.guesses, self.secret_word))

    def share_grid(self) -> str:
        return "\n".join(render_row(result.statuses) for result in self.history())

    def to_dict(self) -> dict:
        return {
            "secret_word": self.secret_word,
            "guesses": list(self.guesses),
            "max_guesses": self.max_guesses,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WordleGame":
        return cls(
            secret_word=data["secret_word"],
            guesses=list(data.get("guesses", [])),
            max_guesses=int(data.get("max_guesses", MAX_GUESSES)),
        )
