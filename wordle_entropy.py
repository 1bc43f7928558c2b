#!/usr/bin/env python
"""
Wordle and Quordle solver.

Suggests guesses by an entropy objective. For a candidate guess, every word
that is still possible is treated as a potential hidden word; the possible
words are grouped by the feedback the guess would produce against each, and
the guess is scored as

.. code-block:: none

    sum(v * log2(v)) over the group sizes v

This is not normalized by the number of possibilities. Lower is better: a
guess that splits the possibilities into many small groups tells us most.

Quordle is four Wordle boards played at once, with one shared guess per round.
Each board keeps its own possibilities, and boards are retired as they are
solved. The guess is chosen to minimize the score summed across the boards
still in play.

Run self-tests with:

.. code-block:: bash

    pip install -e ".[test]"
    pytest wordle_entropy.py

Typical use:

.. code-block:: bash

    ./wordle_entropy.py make_wordlist --source_dict /usr/share/dict/words
    ./wordle_entropy.py solve
    ./wordle_entropy.py solve --quordle
    ./wordle_entropy.py test_performance --nwords 200
    ./wordle_entropy.py test_performance --quordle --ngames 50

Feedback is typed in as five characters, one per position:

- ``e``: exact match (green in Wordle);
- ``w``: present, but in the wrong position (yellow);
- ``n``: no match (grey).

For example, ``ennnn`` means an exact match in the first position and nothing
else.

"""  # noqa

# =============================================================================
# Imports
# =============================================================================

import argparse
from collections import Counter
from concurrent.futures import ProcessPoolExecutor
from contextlib import contextmanager
import csv
from enum import Enum
from functools import total_ordering
import logging
from multiprocessing import cpu_count
import os
import re
from statistics import median, mean
import tempfile
from timeit import default_timer as timer
from typing import (
    Any, Callable, Dict, Generator, Iterable, List, Optional, Sequence, Set,
    Tuple, Type
)
import unittest
from unittest import mock

from colors import color  # pip install ansicolors
from cardinal_pythonlib.lists import chunks
from cardinal_pythonlib.logs import (
    configure_logger_for_colour,
    main_only_quicksetup_rootlogger,
)
from cardinal_pythonlib.maths_py import round_sf
import numpy as np
import ray

rootlog = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Paths
THIS_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_OS_DICT = "/usr/share/dict/words"
DEFAULT_WORDLIST = os.path.join(THIS_DIR, "wordle_hidden_words.txt")

# Defining the game
WORDLEN = 5
N_QUORDLE_BOARDS = 4

# Regular expressions to read from files or the user. Dictionary words must be
# entirely lower case; capitalized words are likely proper nouns.
WORD_REGEX = re.compile(rf"^[a-z]{{{WORDLEN}}}$")
CHAR_EXACT = "e"
CHAR_MISPLACED = "w"
CHAR_ABSENT = "n"
_FEEDBACK_REGEX_STR = (
    rf"^[{CHAR_EXACT}{CHAR_MISPLACED}{CHAR_ABSENT}]{{{WORDLEN}}}$"
)
FEEDBACK_REGEX = re.compile(_FEEDBACK_REGEX_STR, re.IGNORECASE)

# Colours and styles for displaying guesses, via the ansicolors package
COLOUR_EXACT = dict(fg="white", bg="green", style="bold")
COLOUR_MISPLACED = dict(fg="white", bg="yellow", style="bold")
COLOUR_ABSENT = dict(fg="white", bg="black", style="bold")

# Defaults
DEFAULT_SHOW_THRESHOLD = 50
DEFAULT_ADVICE_TOP_N = 10
DEFAULT_NPROC = cpu_count()
DEFAULT_SIG_FIGURES = 3
DEFAULT_MAX_AUTOSOLVE_ROUNDS = 100
DEFAULT_N_QUORDLE_GAMES = 100
DEFAULT_SEED = 1234


# =============================================================================
# Enums
# =============================================================================

class Outcome(Enum):
    """
    Possible types of feedback about each character of a played word.
    """
    EXACT = 1
    MISPLACED = 2
    ABSENT = 3

    @property
    def plain_str(self) -> str:
        """
        Plain string representation, as typed by the user.
        """
        if self == Outcome.EXACT:
            return CHAR_EXACT
        elif self == Outcome.MISPLACED:
            return CHAR_MISPLACED
        elif self == Outcome.ABSENT:
            return CHAR_ABSENT
        else:
            raise AssertionError("bug")

    @property
    def colour_params(self) -> Dict[str, str]:
        if self == Outcome.EXACT:
            return COLOUR_EXACT
        elif self == Outcome.MISPLACED:
            return COLOUR_MISPLACED
        elif self == Outcome.ABSENT:
            return COLOUR_ABSENT
        else:
            raise AssertionError("bug")


class BoardState(Enum):
    """
    Where a single board stands.
    """
    ACTIVE = 1
    SOLVED = 2
    FAILED = 3  # no word in the dictionary is consistent with the feedback


class SessionStatus(Enum):
    """
    Terminal (or not) status of a whole game.
    """
    IN_PROGRESS = 1
    SOLVED = 2
    NO_MATCHING_WORDS = 3
    ABANDONED = 4  # gave up after too many rounds


# Types
Feedback = Tuple[Outcome, ...]
FeedbackProvider = Callable[[str, int], Feedback]

ALL_EXACT = (Outcome.EXACT, ) * WORDLEN  # type: Feedback


# =============================================================================
# Exceptions
# =============================================================================

class EmptyCandidatePool(ValueError):
    """
    Filtering has removed every possibility from a board: the feedback is
    inconsistent with the dictionary (or was mis-typed).
    """
    pass


class NoGuessAvailable(ValueError):
    """
    There is nothing left to guess.
    """
    pass


# =============================================================================
# Helper functions
# =============================================================================

# -----------------------------------------------------------------------------
# Formatting
# -----------------------------------------------------------------------------

def colourful_word(word: str, feedback: Feedback) -> str:
    """
    Returns a string with ANSI codes to colour each character of the word
    according to the feedback (and then reset afterwards).
    """
    return "".join(
        color(c.upper(), **f.colour_params)
        for c, f in zip(word, feedback)
    )


def bold(x: str) -> str:
    return color(x, style="bold")


def prettylist(words: Iterable[Any]) -> str:
    """
    Formats a wordlist.
    """
    return ", ".join(str(x) for x in words)


def convert_sf(x: Optional[float],
               sig_fig: int = DEFAULT_SIG_FIGURES) -> Optional[float]:
    """
    Formats a score to a certain number of significant figures. Zero is left
    alone (there are no significant figures to round to).
    """
    if x is None or x == 0:
        return x
    return round_sf(x, sig_fig)


# -----------------------------------------------------------------------------
# Feedback strings
# -----------------------------------------------------------------------------

def feedback_from_str(feedback_str: str) -> Feedback:
    """
    Create coded feedback from a string such as ``ewnnn``.
    """
    feedback_str = feedback_str.strip().lower()
    if not FEEDBACK_REGEX.match(feedback_str):
        raise ValueError(f"Bad feedback string: {feedback_str!r}")
    feedback = []  # type: List[Outcome]
    for f_char in feedback_str:
        if f_char == CHAR_EXACT:
            f = Outcome.EXACT
        elif f_char == CHAR_MISPLACED:
            f = Outcome.MISPLACED
        elif f_char == CHAR_ABSENT:
            f = Outcome.ABSENT
        else:
            raise AssertionError("bug in feedback_from_str")
        feedback.append(f)
    return tuple(feedback)


def feedback_str(feedback: Feedback) -> str:
    """
    Feedback in our plain string format.
    """
    return "".join(f.plain_str for f in feedback)


def is_solved(feedback: Feedback) -> bool:
    """
    Was the guess correct?
    """
    return tuple(feedback) == ALL_EXACT


# -----------------------------------------------------------------------------
# Reading word lists
# -----------------------------------------------------------------------------

def make_wordlist(from_filename: str,
                  to_filename: str) -> None:
    """
    Reads a dictionary file and creates a list of unique 5-letter lower-case
    words.
    """
    rootlog.info(f"Reading from {from_filename}")
    rootlog.info(f"Writing to {to_filename}")
    n_read = 0
    n_written = 0
    seen = set()  # type: Set[str]
    with open(from_filename, "rt") as f, open(to_filename, "wt") as t:
        for line in f:
            n_read += 1
            word = line.strip()
            if WORD_REGEX.match(word) and word not in seen:
                t.write(word + "\n")
                seen.add(word)
                n_written += 1
    rootlog.info(f"Read {n_read} words from {from_filename}")
    rootlog.info(f"Wrote {n_written} ({WORDLEN}-letter) words to {to_filename}")


def make_np_array_words(words: Iterable[str]) -> np.ndarray:
    """
    Converts to an appropriate Numpy array type. Ray passes these to workers
    as read-only objects without copying them.
    """
    return np.array(list(words), dtype=f"U{WORDLEN}")


def read_words(wordlist_filename: str,
               max_n: int = None) -> np.ndarray:
    """
    Read the dictionary. Lines that are not 5-letter lower-case words are
    skipped, as are duplicates. The result is sorted, which fixes the order in
    which guesses are considered (and thus how ties are broken).
    """
    words = []  # type: List[str]
    seen = set()  # type: Set[str]
    n_skipped = 0
    with open(wordlist_filename) as f:
        for line in f:
            word = line.strip()
            if not WORD_REGEX.match(word) or word in seen:
                n_skipped += 1
                continue
            words.append(word)
            seen.add(word)
            if max_n is not None and len(words) >= max_n:
                rootlog.warning(f"Reading only {len(words)} words")
                break
    if n_skipped:
        rootlog.debug(f"Skipped {n_skipped} lines from {wordlist_filename}")
    return make_np_array_words(sorted(words))


# -----------------------------------------------------------------------------
# Timing
# -----------------------------------------------------------------------------

@contextmanager
def time_section(name: str,
                 loglevel: int = logging.DEBUG) -> Generator[None, None, None]:
    start = timer()
    try:
        yield
    finally:
        end = timer()
        rootlog.log(loglevel, f"{name} took {end - start} s")


# =============================================================================
# Solving
# =============================================================================

# -----------------------------------------------------------------------------
# Feedback classification
# -----------------------------------------------------------------------------

def classify(played: str, hidden: str) -> Feedback:
    """
    The feedback that playing one word would give, if the other were the
    hidden word.

    Exact matches are claimed first. Each remaining letter of the hidden word
    can then mark at most one other letter of the played word as present in
    the wrong position, working from the start. So if the hidden word is
    PROXY, playing BROOM gives an exact match for the first O, and the second
    O is marked absent, not misplaced; and if the hidden word has one E and we
    play two Es in the wrong places, only the first is marked misplaced.
    """
    feedback = [Outcome.ABSENT] * WORDLEN  # type: List[Outcome]
    letters_available = []  # type: List[str]
    for pos in range(WORDLEN):
        if played[pos] == hidden[pos]:
            feedback[pos] = Outcome.EXACT
        else:
            letters_available.append(hidden[pos])
    for pos in range(WORDLEN):
        if feedback[pos] == Outcome.EXACT:
            continue
        p_char = played[pos]
        if p_char in letters_available:
            feedback[pos] = Outcome.MISPLACED
            letters_available.remove(p_char)
    return tuple(feedback)


def filter_pool(pool: np.ndarray, guess: str,
                feedback: Feedback) -> np.ndarray:
    """
    Returns the words in the pool that, had they been the hidden word, would
    have produced this feedback for this guess.
    """
    feedback = tuple(feedback)
    keep = np.array(
        [classify(guess, w) == feedback for w in pool],
        dtype=bool
    )
    return pool[keep]


# -----------------------------------------------------------------------------
# Entropy scoring
# -----------------------------------------------------------------------------

def feedback_groups(guess: str, pool: Iterable[str]) -> Counter:
    """
    Groups the pool by the feedback the guess would produce against each
    word. Returns a counter mapping feedback to group size.
    """
    return Counter(classify(guess, hidden) for hidden in pool)


def entropy_score(guess: str, pool: Iterable[str]) -> float:
    """
    Returns ``sum(v * log2(v))`` over the sizes ``v`` of the feedback groups
    that the guess would split the pool into. Lower is better.

    Group sizes are summed in sorted order, so the result doesn't depend on
    the order of the pool.
    """
    counter = feedback_groups(guess, pool)
    if not counter:
        return 0.0
    counts = np.array(sorted(counter.values()), dtype=np.float64)
    return float(np.sum(counts * np.log2(counts)))


def combined_entropy_score(guess: str, pools: Sequence[np.ndarray]) -> float:
    """
    Entropy score summed across several boards' pools, in board order.
    """
    return float(sum(entropy_score(guess, pool) for pool in pools))


# -----------------------------------------------------------------------------
# Scoring potential guesses
# -----------------------------------------------------------------------------

@total_ordering
class GuessScore:
    """
    Class to represent the score for a potential word guess.

    Ordering is by score (low first); ties go to words that might be the
    answer, and then to the word found earliest in the list of guesses.
    """
    def __init__(self, word: str, score: float, candidate: bool, index: int,
                 sig_fig: Optional[int] = DEFAULT_SIG_FIGURES) -> None:
        """
        Args:
            word: the potential guess
            score: its (combined) entropy score
            candidate: is the word still possible on at least one board?
            index: its position in the list of guesses considered
        """
        self.word = word
        self.score = score
        self.candidate = candidate
        self.index = index
        self.sig_fig = sig_fig

    def __str__(self) -> str:
        if self.sig_fig is not None:
            score_sf = convert_sf(self.score, self.sig_fig)
        else:
            score_sf = self.score
        return f"{self.word} ({score_sf})"

    def __repr__(self) -> str:
        return (
            f"GuessScore(word={self.word!r}, score={self.score!r}, "
            f"candidate={self.candidate!r}, index={self.index!r})"
        )

    @property
    def sort_key(self) -> Tuple[float, bool, int]:
        return self.score, not self.candidate, self.index

    def __eq__(self, other: "GuessScore") -> bool:
        return self.sort_key == other.sort_key

    def __lt__(self, other: "GuessScore") -> bool:
        return self.sort_key < other.sort_key


def score_guesses(guesses: Sequence[str],
                  first_index: int,
                  pools: Sequence[np.ndarray]) -> List[GuessScore]:
    """
    Scores a bunch of guesses (a subset of the full set, starting at position
    ``first_index`` of it) against the pools. Nothing is shared or modified,
    so this may run in any worker.
    """
    candidates = set()  # type: Set[str]
    for pool in pools:
        candidates.update(str(w) for w in pool)
    scores = []  # type: List[GuessScore]
    for offset, w in enumerate(guesses):
        word = str(w)
        scores.append(GuessScore(
            word=word,
            score=combined_entropy_score(word, pools),
            candidate=word in candidates,
            index=first_index + offset,
        ))
    return scores


@ray.remote
def score_guesses_ray(guesses: Sequence[str],
                      first_index: int,
                      pools: Sequence[np.ndarray]) -> List[GuessScore]:
    """
    Helper function for a parallel version. This worker task scores a bunch of
    words (a subset of the full set).
    """
    return score_guesses(guesses, first_index, pools)


def score_guesses_single_arg(
        args: Tuple[Sequence[str], int, Sequence[np.ndarray]]) \
        -> List[GuessScore]:
    """
    Version of :func:`score_guesses` that takes a single argument, for
    ``executor.map``.
    """
    guesses, first_index, pools = args
    return score_guesses(guesses, first_index, pools)


def flatten(x: Iterable[Any]) -> Iterable[Any]:
    """
    Flatten, for example, a list of lists to an iterable of the items.
    """
    for y in x:
        if isinstance(y, list):
            for item in y:
                yield item
        else:
            yield y


def rank_guesses(pools: Sequence[np.ndarray],
                 universe: np.ndarray,
                 nproc: int = 1,
                 use_ray: bool = False) -> List[GuessScore]:
    """
    Scores every word in the universe against the pools and returns them
    best first.

    Any word may be worth guessing, not just the possibilities: for example,
    if we know four letters early on, we might be better off with a guess that
    has lots of options for the final letter, rather than trying them one at a
    time.

    Args:
        pools: candidate pools of the boards still in play
        universe: words we may guess, in a fixed order
        nproc: number of parallel workers
        use_ray: use Ray for the workers (otherwise a process pool)
    """
    pools = list(pools)
    n_words = len(universe)
    if nproc > 1 and n_words > 1:
        words_per_chunk = max(1, -(-n_words // nproc))  # ceiling division
        arglist = [
            (chunk, i * words_per_chunk, pools)
            for i, chunk in enumerate(chunks(universe, words_per_chunk))
        ]
        if use_ray:
            wordgen = flatten(ray.get([
                score_guesses_ray.remote(guesses, first_index, p)
                for guesses, first_index, p in arglist
            ]))
        else:
            with ProcessPoolExecutor(nproc) as executor:
                wordgen = list(flatten(
                    executor.map(score_guesses_single_arg, arglist)
                ))
    else:
        wordgen = score_guesses(universe, 0, pools)
    # Worker completion order doesn't matter; the sort key is total.
    return sorted(wordgen)


def select_guess(pools: Sequence[np.ndarray],
                 universe: np.ndarray,
                 nproc: int = 1,
                 use_ray: bool = False,
                 top_n: int = DEFAULT_ADVICE_TOP_N,
                 silent: bool = False,
                 log: logging.Logger = None) -> Optional[str]:
    """
    What word should be guessed next?

    Returns the best guess, or ``None`` if there is nothing to guess (no
    words in the universe, or no possibilities left on any board).
    """
    log = log or rootlog
    live_pools = [p for p in pools if len(p) > 0]
    if len(universe) == 0 or not live_pools:
        return None
    with time_section(f"Scoring {len(universe)} guesses"):
        options = rank_guesses(live_pools, universe,
                               nproc=nproc, use_ray=use_ray)
    best = options[0]
    if not silent:
        top_words = [o.word for o in options if o.score == best.score]
        log.info(f"- Top {top_n} suggestions: {prettylist(options[:top_n])}\n"
                 f"- Best suggestion(s): {prettylist(top_words[:top_n])}")
        if log.isEnabledFor(logging.DEBUG):
            for i, pool in enumerate(live_pools, start=1):
                groups = feedback_groups(best.word, pool)
                pretty_groups = {
                    feedback_str(fb): n for fb, n in groups.most_common()
                }
                log.debug(f"Feedback groups for {best.word!r}, "
                          f"pool {i}: {pretty_groups}")
    return best.word


# =============================================================================
# Boards and sessions
# =============================================================================

# -----------------------------------------------------------------------------
# Board
# -----------------------------------------------------------------------------

class Board:
    """
    A single puzzle: the words still possible for its hidden word.
    """
    def __init__(self, dictionary: np.ndarray, number: int = 1) -> None:
        """
        Args:
            dictionary: all words in the game, the initial possibilities
            number: board number (1-based), for display
        """
        self.number = number
        self.pool = dictionary
        self.state = BoardState.ACTIVE
        self.solution = None  # type: Optional[str]

    def __str__(self) -> str:
        if self.state == BoardState.SOLVED:
            return f"Board {self.number}: solved ({self.solution})"
        elif self.state == BoardState.FAILED:
            return f"Board {self.number}: no matching words"
        return f"Board {self.number}: {self.n_possible} possible words"

    @property
    def active(self) -> bool:
        return self.state == BoardState.ACTIVE

    @property
    def n_possible(self) -> int:
        """
        Number of possibilities left.
        """
        return len(self.pool)

    @property
    def possible_words(self) -> List[str]:
        return [str(w) for w in self.pool]

    def update(self, guess: str, feedback: Feedback) -> None:
        """
        Applies the feedback for a guess. Solved and failed boards accept no
        more feedback.
        """
        assert self.active, f"Board {self.number} is no longer in play"
        if is_solved(feedback):
            self.state = BoardState.SOLVED
            self.solution = guess
            self.pool = make_np_array_words([guess])
            return
        self.pool = filter_pool(self.pool, guess, feedback)
        if self.n_possible == 0:
            self.state = BoardState.FAILED


# -----------------------------------------------------------------------------
# Session
# -----------------------------------------------------------------------------

class Session:
    """
    A game on one or more boards that share one guess per round. Subclasses
    define how many boards there are and which words may be guessed.
    """
    N_BOARDS = 1

    def __init__(self,
                 dictionary: np.ndarray,
                 first_guess: str = None,
                 nproc: int = 1,
                 use_ray: bool = False,
                 top_n: int = DEFAULT_ADVICE_TOP_N,
                 silent: bool = False,
                 log: logging.Logger = None) -> None:
        """
        Args:
            dictionary: all words in the game, in a fixed order
            first_guess: optional precomputed first guess (speedup)
            nproc: number of parallel workers for scoring guesses
            use_ray: use Ray rather than a process pool for those workers
            top_n: when showing advice, show this many top candidates
            silent: don't log advice
            log: logger to use
        """
        assert first_guess is None or first_guess in dictionary, (
            f"First guess {first_guess!r} is not in the dictionary"
        )
        self.dictionary = dictionary
        self.first_guess = first_guess
        self.nproc = nproc
        self.use_ray = use_ray
        self.top_n = top_n
        self.silent = silent
        self.log = log or rootlog
        self.boards = [
            Board(dictionary, number=n + 1) for n in range(self.N_BOARDS)
        ]
        self.guesses = []  # type: List[str]

    # -------------------------------------------------------------------------
    # Info
    # -------------------------------------------------------------------------

    @property
    def n_rounds(self) -> int:
        """
        Number of rounds played so far.
        """
        return len(self.guesses)

    @property
    def active_boards(self) -> List[Board]:
        return [b for b in self.boards if b.active]

    @property
    def finished(self) -> bool:
        return not self.active_boards

    @property
    def status(self) -> SessionStatus:
        if not self.finished:
            return SessionStatus.IN_PROGRESS
        if all(b.state == BoardState.SOLVED for b in self.boards):
            return SessionStatus.SOLVED
        return SessionStatus.NO_MATCHING_WORDS

    def describe(self, show_threshold: int = DEFAULT_SHOW_THRESHOLD) -> str:
        """
        Summary of where we stand, for the user.
        """
        lines = [f"- This is round {self.n_rounds + 1}."]
        for board in self.boards:
            prefix = f"Board {board.number}: " if self.N_BOARDS > 1 else ""
            if not board.active:
                lines.append(f"- {board}")
                continue
            line = f"- {prefix}There are {board.n_possible} possible words."
            if board.n_possible < show_threshold:
                line += f" Possible words: {prettylist(board.possible_words)}"
            lines.append(line)
        return "\n".join(lines)

    # -------------------------------------------------------------------------
    # Playing
    # -------------------------------------------------------------------------

    def guess_universe(self) -> np.ndarray:
        """
        Words that may be guessed this round.
        """
        raise NotImplementedError

    def suggest(self) -> str:
        """
        Chooses the word to play this round.
        """
        assert not self.finished, "Game is over"
        if self.n_rounds == 0 and self.first_guess:
            if not self.silent:
                self.log.info(f"- Initial suggestion: {self.first_guess}")
            return self.first_guess
        guess = select_guess(
            [b.pool for b in self.active_boards],
            self.guess_universe(),
            nproc=self.nproc,
            use_ray=self.use_ray,
            top_n=self.top_n,
            silent=self.silent,
            log=self.log,
        )
        if guess is None:
            raise NoGuessAvailable("There are no matching words.")
        return guess

    def advance(self, guess: str, feedbacks: Dict[int, Feedback]) -> None:
        """
        Applies one round's feedback.

        Args:
            guess: the word played
            feedbacks: feedback for each active board, by board number
        """
        raise NotImplementedError

    def _update_boards(self, guess: str,
                       feedbacks: Dict[int, Feedback]) -> None:
        missing = [
            b.number for b in self.active_boards if b.number not in feedbacks
        ]
        assert not missing, f"No feedback for board(s) {missing}"
        self.guesses.append(guess)
        for board in self.active_boards:
            feedback = feedbacks[board.number]
            board.update(guess, feedback)
            self.log.debug(f"{colourful_word(guess, feedback)}: {board}")


class SingleBoardSession(Session):
    """
    Ordinary Wordle.
    """
    N_BOARDS = 1

    def __init__(self, dictionary: np.ndarray,
                 amongst_possible: bool = False, **kwargs) -> None:
        """
        Args:
            dictionary: all words in the game
            amongst_possible: only guess words that are still possible
            kwargs: passed to :class:`Session`
        """
        super().__init__(dictionary, **kwargs)
        self.amongst_possible = amongst_possible

    @property
    def board(self) -> Board:
        return self.boards[0]

    def guess_universe(self) -> np.ndarray:
        if self.amongst_possible:
            return self.board.pool
        return self.dictionary

    def advance(self, guess: str, feedbacks: Dict[int, Feedback]) -> None:
        self._update_boards(guess, feedbacks)
        if self.board.state == BoardState.FAILED:
            raise EmptyCandidatePool("There are no matching words.")


class QuordleSession(Session):
    """
    Four boards sharing one guess per round. The words we may guess are
    pruned each round to those still possible on some board in play.
    """
    N_BOARDS = N_QUORDLE_BOARDS

    def __init__(self, dictionary: np.ndarray, **kwargs) -> None:
        super().__init__(dictionary, **kwargs)
        self.guessable = dictionary

    def guess_universe(self) -> np.ndarray:
        return self.guessable

    def advance(self, guess: str, feedbacks: Dict[int, Feedback]) -> None:
        was_active = self.active_boards
        self._update_boards(guess, feedbacks)
        for board in was_active:
            if board.state == BoardState.FAILED:
                self.log.warning(
                    f"Board {board.number}: there are no matching words; "
                    f"continuing with the other boards"
                )
        possible = [set(b.possible_words) for b in self.active_boards]
        keep = np.array([
            w != guess and any(w in p for p in possible)
            for w in self.guessable
        ], dtype=bool)
        self.guessable = self.guessable[keep]


# -----------------------------------------------------------------------------
# Running a session
# -----------------------------------------------------------------------------

class SessionOutcome:
    """
    How a game ended.
    """
    def __init__(self, status: SessionStatus, session: Session) -> None:
        self.status = status
        self.guesses = list(session.guesses)
        self.board_states = [b.state for b in session.boards]
        self.solutions = [b.solution for b in session.boards]

    def __str__(self) -> str:
        return (
            f"{self.status.name} after {self.n_rounds} rounds "
            f"({prettylist(self.guesses)})"
        )

    @property
    def n_rounds(self) -> int:
        return len(self.guesses)

    @property
    def solved(self) -> bool:
        return self.status == SessionStatus.SOLVED


def run_session(session: Session,
                feedback_provider: FeedbackProvider,
                max_rounds: int = None,
                show_threshold: int = DEFAULT_SHOW_THRESHOLD,
                silent: bool = False) -> SessionOutcome:
    """
    Plays rounds until the game is over.

    Args:
        session: the game
        feedback_provider: called as ``feedback_provider(guess, board_number)``
            for each board still in play; returns that board's feedback
        max_rounds: give up after this many rounds (``None`` for no limit)
        show_threshold: list the possible words when there are fewer
        silent: don't describe progress
    """
    log = session.log
    while not session.finished:
        if max_rounds is not None and session.n_rounds >= max_rounds:
            log.warning(f"Abandoning game after {session.n_rounds} rounds")
            return SessionOutcome(SessionStatus.ABANDONED, session)
        if not silent:
            log.info(f"State:\n{session.describe(show_threshold)}")
        try:
            guess = session.suggest()
        except NoGuessAvailable as e:
            log.info(str(e))
            return SessionOutcome(SessionStatus.NO_MATCHING_WORDS, session)
        if not silent:
            log.info(f"Play the word: {bold(guess.upper())}")
        feedbacks = {
            board.number: feedback_provider(guess, board.number)
            for board in session.active_boards
        }
        try:
            session.advance(guess, feedbacks)
        except EmptyCandidatePool as e:
            log.info(str(e))
            return SessionOutcome(SessionStatus.NO_MATCHING_WORDS, session)
        if not silent:
            for board in session.boards:
                if board.number in feedbacks:
                    fb = feedbacks[board.number]
                    log.info(f"{colourful_word(guess, fb)} -> {board}")
    status = session.status
    if status == SessionStatus.SOLVED:
        if not silent:
            log.info(f"You win! Solved in {session.n_rounds} rounds.")
    else:
        log.info("There are no matching words.")
    return SessionOutcome(status, session)


def solve_single(dictionary: np.ndarray,
                 feedback_provider: FeedbackProvider,
                 max_rounds: int = None,
                 show_threshold: int = DEFAULT_SHOW_THRESHOLD,
                 **kwargs) -> SessionOutcome:
    """
    Plays one Wordle game. Keyword arguments go to
    :class:`SingleBoardSession`.
    """
    session = SingleBoardSession(dictionary, **kwargs)
    return run_session(session, feedback_provider, max_rounds=max_rounds,
                       show_threshold=show_threshold, silent=session.silent)


def solve_quordle(dictionary: np.ndarray,
                  feedback_provider: FeedbackProvider,
                  max_rounds: int = None,
                  show_threshold: int = DEFAULT_SHOW_THRESHOLD,
                  **kwargs) -> SessionOutcome:
    """
    Plays one Quordle game. Keyword arguments go to :class:`QuordleSession`.
    """
    session = QuordleSession(dictionary, **kwargs)
    return run_session(session, feedback_provider, max_rounds=max_rounds,
                       show_threshold=show_threshold, silent=session.silent)


SESSION_CLASSES = {
    False: SingleBoardSession,
    True: QuordleSession,
}  # type: Dict[bool, Type[Session]]


# =============================================================================
# Feedback providers
# =============================================================================

def read_feedback_from_user(guess: str, board_number: int) -> Feedback:
    """
    Asks the user which letters of the played word matched (on the online
    game), re-prompting until the answer is well formed.
    """
    e = color(CHAR_EXACT, **COLOUR_EXACT)
    w = color(CHAR_MISPLACED, **COLOUR_MISPLACED)
    n = color(CHAR_ABSENT, **COLOUR_ABSENT)
    feedback_str_ = ""
    while not FEEDBACK_REGEX.match(feedback_str_):
        feedback_str_ = input(
            f"Feedback for {guess.upper()} on board {board_number} "
            f"(for each position: {e} exact, {w} wrong position, {n} no "
            f"match; e.g. {e}{n}{n}{n}{n}): "
        ).strip().lower()
    return feedback_from_str(feedback_str_)


class KnownTargets:
    """
    Feedback provider for when we know the hidden word(s): for automatic
    testing.
    """
    def __init__(self, targets: Sequence[str]) -> None:
        self.targets = [str(t) for t in targets]

    def __call__(self, guess: str, board_number: int) -> Feedback:
        return classify(guess, self.targets[board_number - 1])


# =============================================================================
# Interactive solver
# =============================================================================

def solve_interactive(wordlist_filename: str,
                      quordle: bool = False,
                      debug_nwords: int = None,
                      show_threshold: int = DEFAULT_SHOW_THRESHOLD,
                      advice_top_n: int = DEFAULT_ADVICE_TOP_N,
                      amongst_possible: bool = False,
                      first_guess: str = None,
                      nproc: int = 1,
                      use_ray: bool = False) -> Optional[SessionOutcome]:
    """
    Solve a game with the user relaying the feedback from the online game.

    Returns the outcome, or ``None`` if the user gave up.
    """
    dictionary = read_words(wordlist_filename, max_n=debug_nwords)
    rootlog.info(f"Read {len(dictionary)} words from {wordlist_filename}")
    kwargs = dict(
        first_guess=first_guess.strip().lower() if first_guess else None,
        nproc=nproc,
        use_ray=use_ray,
        top_n=advice_top_n,
        show_threshold=show_threshold,
    )  # type: Dict[str, Any]
    if not quordle:
        kwargs["amongst_possible"] = amongst_possible
    solver = solve_quordle if quordle else solve_single
    try:
        outcome = solver(dictionary, read_feedback_from_user, **kwargs)
    except (KeyboardInterrupt, EOFError):
        print()
        rootlog.info("Interrupted, giving up...")
        return None
    rootlog.info(f"Game over: {outcome}")
    return outcome


# =============================================================================
# Autosolver and performance testing framework
# =============================================================================

def autosolve(targets: Sequence[str],
              dictionary: np.ndarray,
              first_guess: str = None,
              max_rounds: int = DEFAULT_MAX_AUTOSOLVE_ROUNDS,
              log: logging.Logger = None) -> SessionOutcome:
    """
    Automatically solves a game whose hidden word(s) we know: one target for
    Wordle, four for Quordle. (This can go over the game's guess limit, to
    avoid sharp edges when comparing.)
    """
    log = log or rootlog
    session_class = SESSION_CLASSES[len(targets) > 1]
    assert len(targets) == session_class.N_BOARDS, "Wrong number of targets"
    session = session_class(
        dictionary,
        first_guess=first_guess,
        nproc=1,  # parallelize over games instead
        silent=True,
        log=log,
    )
    outcome = run_session(session, KnownTargets(targets),
                          max_rounds=max_rounds, silent=True)
    log.info(f"Targets {prettylist(targets)}: {outcome}")
    return outcome


def autosolve_single_arg(args: Tuple[Sequence[str], np.ndarray,
                                     Optional[str]]) -> Tuple[int, str]:
    """
    Version of :func:`autosolve` that takes a single argument, which is
    necessary for some of the parallel processing map functions.

    The argument is a tuple: targets, dictionary, first_guess.

    Returns a tuple: n_rounds, status name.
    """
    targets, dictionary, first_guess = args
    outcome = autosolve(targets, dictionary, first_guess=first_guess)
    return outcome.n_rounds, outcome.status.name


@ray.remote
def autosolve_ray(target_sets: List[Sequence[str]],
                  dictionary: np.ndarray,
                  first_guess: Optional[str],
                  loglevel: int = logging.INFO) \
        -> List[Tuple[Sequence[str], int, str]]:
    """
    Ray version. Batched.
    """
    # Every time the process is launched with a new chunk, we get an
    # additional logger; configure_logger_for_colour copes.
    raylog = logging.getLogger(__name__)
    configure_logger_for_colour(raylog, level=loglevel)
    results = []  # type: List[Tuple[Sequence[str], int, str]]
    for targets in target_sets:
        with time_section("Game"):
            outcome = autosolve(targets, dictionary, first_guess=first_guess,
                                log=raylog)
        results.append((targets, outcome.n_rounds, outcome.status.name))
    return results


def make_target_sets(test_words: Sequence[str],
                     all_words: np.ndarray,
                     quordle: bool = False,
                     ngames: int = DEFAULT_N_QUORDLE_GAMES,
                     seed: int = DEFAULT_SEED) -> List[Tuple[str, ...]]:
    """
    Hidden words for each test game: every test word for Wordle; random sets
    of four distinct words (reproducibly) for Quordle.
    """
    if not quordle:
        return [(str(w), ) for w in test_words]
    assert len(all_words) >= N_QUORDLE_BOARDS, "Not enough words for Quordle"
    rng = np.random.default_rng(seed)
    return [
        tuple(str(w) for w in rng.choice(all_words, size=N_QUORDLE_BOARDS,
                                         replace=False))
        for _ in range(ngames)
    ]


def measure_performance(
        wordlist_filename: str,
        output_filename: str,
        quordle: bool = False,
        nwords: int = None,
        ngames: int = DEFAULT_N_QUORDLE_GAMES,
        seed: int = DEFAULT_SEED,
        nproc: int = DEFAULT_NPROC,
        chunks_per_worker: int = 5,
        loglevel: int = logging.INFO,
        use_ray: bool = True) -> None:
    """
    Solve lots of games automatically and report performance statistics.
    """
    all_words = read_words(wordlist_filename)
    test_words = read_words(wordlist_filename, max_n=nwords)
    target_sets = make_target_sets(test_words, all_words, quordle=quordle,
                                   ngames=ngames, seed=seed)
    n_games = len(target_sets)
    assert n_games > 0, "No games!"
    mode = "quordle" if quordle else "wordle"
    if use_ray:
        rootlog.info("Starting Ray")
        ray.init(num_cpus=nproc, ignore_reinit_error=True)

    # The first guess is the same for every game, and is the slowest to find,
    # so work it out once.
    first_session = SESSION_CLASSES[quordle](all_words, nproc=nproc,
                                             use_ray=use_ray, silent=True)
    with time_section("First guess", loglevel=logging.INFO):
        first_guess = first_session.suggest()
    rootlog.info(f"First guess: {first_guess}")

    round_counts = []  # type: List[int]
    with open(output_filename, "wt") as f:
        writer = csv.writer(f)
        writer.writerow(["mode", "targets", "n_rounds", "status"])

        def record(targets_: Sequence[str], n_rounds_: int,
                   status_: str) -> None:
            writer.writerow([mode, " ".join(targets_), n_rounds_, status_])
            f.flush()  # nice to be able to follow the output live
            if status_ == SessionStatus.SOLVED.name:
                round_counts.append(n_rounds_)

        if use_ray:
            games_per_chunk = max(1, n_games // (nproc * chunks_per_worker))
            pending_jobs = [
                autosolve_ray.remote(target_chunk, all_words, first_guess,
                                     loglevel=loglevel)
                for target_chunk in chunks(target_sets, games_per_chunk)
            ]
            rootlog.info(f"Submitted {len(pending_jobs)} jobs, aiming for "
                         f"{games_per_chunk} games per job")
            while len(pending_jobs):
                rootlog.debug(f"Waiting for a job to complete "
                              f"({len(pending_jobs)} running)...")
                done_jobs, pending_jobs = ray.wait(pending_jobs)
                for done_job in done_jobs:
                    results = ray.get(done_job)
                    rootlog.debug(f"Retrieved {len(results)} results")
                    for targets, n_rounds, status in results:
                        record(targets, n_rounds, status)
        else:
            arglist = (
                (targets, all_words, first_guess)
                for targets in target_sets
            )
            n_chunks = nproc * chunks_per_worker
            chunksize = max(1, n_games // n_chunks)
            rootlog.debug(
                f"Aiming for {chunks_per_worker} chunks/worker with {nproc} "
                f"workers and thus {n_chunks} chunks: for {n_games} games, "
                f"chunksize = {chunksize} games/chunk"
            )
            with ProcessPoolExecutor(nproc) as executor:
                for targets, (n_rounds, status) in zip(
                        target_sets,
                        executor.map(autosolve_single_arg, arglist,
                                     chunksize=chunksize)):
                    record(targets, n_rounds, status)

    n_solved = len(round_counts)
    if not n_solved:
        rootlog.warning(f"Solved none of {n_games} {mode} games")
        return
    rootlog.info(
        f"Across {n_games} {mode} games, solved {n_solved} "
        f"({convert_sf(100 * n_solved / n_games)}%), taking: "
        f"min {min(round_counts)}, "
        f"median {median(round_counts)}, "
        f"mean {convert_sf(mean(round_counts))}, "
        f"max {max(round_counts)} rounds"
    )


# =============================================================================
# Self-testing
# =============================================================================

TEST_WORDS = make_np_array_words(sorted([
    "abide", "amble", "apple", "arena", "arise", "broom", "crane", "eerie",
    "fleas", "honor", "humor", "leper", "pause", "proxy", "rarer", "rates",
    "scion", "slate", "sweat", "tacit",
]))

E = Outcome.EXACT
M = Outcome.MISPLACED
A = Outcome.ABSENT


class TestClassify(unittest.TestCase):
    def _check(self, played: str, hidden: str, expected: str) -> None:
        actual = classify(played, hidden)
        assert actual == feedback_from_str(expected), (
            f"Playing {played} against {hidden} gives "
            f"{feedback_str(actual)}, not {expected}"
        )

    def test_simple(self) -> None:
        self._check("sweat", "fleas", "wneen")
        self._check("abide", "apple", "ennne")
        assert classify("abide", "apple") == (E, A, A, A, E)

    def test_duplicate_letters(self) -> None:
        # The second O of BROOM is absent, not in the wrong position.
        self._check("broom", "proxy", "neenn")
        # First O gets "no match", not "somewhere else".
        self._check("honor", "humor", "ennee")
        # Three Es, one correct.
        self._check("eerie", "pause", "nnnne")
        # Two Es in the wrong place: only the first is marked.
        self._check("leper", "pause", "nwwnn")
        # Extra letter either side of an exact match.
        self._check("reels", "rebus", "eenne")
        self._check("roars", "bears", "nneee")
        self._check("arias", "papas", "wnnee")
        self._check("alamo", "arias", "enwnn")

    def test_duplicate_letters_not_overcounted(self) -> None:
        feedback = classify("arena", "rarer")
        self.assertEqual(feedback, (M, M, M, A, A))
        n_r_hidden = "rarer".count("r")
        n_r_marked = sum(
            1 for c, f in zip("arena", feedback) if c == "r" and f != A
        )
        self.assertLessEqual(n_r_marked, n_r_hidden)
        n_a_marked = sum(
            1 for c, f in zip("arena", feedback) if c == "a" and f != A
        )
        self.assertEqual(n_a_marked, "rarer".count("a"))

    def test_exact_iff_same_letter(self) -> None:
        for p in TEST_WORDS:
            for h in TEST_WORDS:
                feedback = classify(p, h)
                for pos in range(WORDLEN):
                    self.assertEqual(feedback[pos] == E, p[pos] == h[pos])

    def test_identical_is_solved(self) -> None:
        for w in TEST_WORDS:
            self.assertTrue(is_solved(classify(w, w)))

    def test_feedback_strings(self) -> None:
        self.assertEqual(feedback_from_str("EWNNE\n"),
                         (E, M, A, A, E))
        self.assertEqual(feedback_str((E, M, A, A, E)), "ewnne")
        with self.assertRaises(ValueError):
            feedback_from_str("ewnx")


class TestFilterAndScore(unittest.TestCase):
    def test_filter_keeps_exactly_consistent_words(self) -> None:
        for hidden in TEST_WORDS:
            for guess in ("crane", "slate", "eerie"):
                feedback = classify(guess, hidden)
                pool = filter_pool(TEST_WORDS, guess, feedback)
                self.assertIn(hidden, pool)
                self.assertLessEqual(len(pool), len(TEST_WORDS))
                for w in pool:
                    self.assertEqual(classify(guess, w), feedback)

    def test_filter_idempotent(self) -> None:
        feedback = classify("crane", "arena")
        once = filter_pool(TEST_WORDS, "crane", feedback)
        twice = filter_pool(once, "crane", feedback)
        self.assertEqual(list(once), list(twice))

    def test_filter_to_nothing(self) -> None:
        pool = make_np_array_words(["abide", "amble", "apple"])
        self.assertEqual(len(filter_pool(pool, "apple", (A, ) * WORDLEN)), 0)

    def test_single_word_scores_zero(self) -> None:
        pool = make_np_array_words(["apple"])
        self.assertEqual(entropy_score("apple", pool), 0.0)
        self.assertEqual(entropy_score("crane", pool), 0.0)

    def test_uninformative_guess(self) -> None:
        pool = make_np_array_words(["abide", "amble", "apple"])
        # No letter in common with any of them: one group of three.
        self.assertAlmostEqual(entropy_score("zzzzz", pool), 3 * np.log2(3))
        # Splits all three apart.
        self.assertEqual(entropy_score("apple", pool), 0.0)

    def test_score_independent_of_order(self) -> None:
        rng = np.random.default_rng(0)
        shuffled = rng.permutation(TEST_WORDS)
        for guess in TEST_WORDS:
            self.assertEqual(entropy_score(guess, TEST_WORDS),
                             entropy_score(guess, shuffled))
            self.assertEqual(entropy_score(guess, TEST_WORDS),
                             entropy_score(guess, TEST_WORDS[::-1]))

    def test_combined_score(self) -> None:
        p1 = make_np_array_words(["abide", "amble", "apple"])
        p2 = make_np_array_words(["fleas", "sweat"])
        self.assertAlmostEqual(
            combined_entropy_score("zzzzz", [p1, p2]),
            3 * np.log2(3) + 2 * np.log2(2)
        )


class TestSelectGuess(unittest.TestCase):
    def test_nothing_to_guess(self) -> None:
        empty = make_np_array_words([])
        self.assertIsNone(select_guess([TEST_WORDS], empty, silent=True))
        self.assertIsNone(select_guess([empty], TEST_WORDS, silent=True))
        self.assertIsNone(select_guess([], TEST_WORDS, silent=True))

    def test_prefers_possible_word_on_tie(self) -> None:
        # Every guess scores 0 against a single possibility.
        pool = make_np_array_words(["proxy"])
        self.assertEqual(select_guess([pool], TEST_WORDS, silent=True),
                         "proxy")

    def test_tie_goes_to_earliest(self) -> None:
        pool = make_np_array_words(["abide", "amble", "apple"])
        ranked = rank_guesses([pool], TEST_WORDS)
        best = ranked[0]
        self.assertEqual(best.score, 0.0)
        self.assertTrue(best.candidate)
        # abide, amble and apple each split the pool completely.
        self.assertEqual(best.word, "abide")
        self.assertEqual([o.word for o in ranked[:3]],
                         ["abide", "amble", "apple"])

    def test_deterministic(self) -> None:
        first = select_guess([TEST_WORDS], TEST_WORDS, silent=True)
        for _ in range(3):
            self.assertEqual(
                select_guess([TEST_WORDS], TEST_WORDS, silent=True), first)

    def test_parallel_matches_serial(self) -> None:
        pools = [TEST_WORDS, filter_pool(TEST_WORDS, "crane",
                                         classify("crane", "rates"))]
        serial = rank_guesses(pools, TEST_WORDS)
        parallel = rank_guesses(pools, TEST_WORDS, nproc=3)
        self.assertEqual([o.word for o in serial],
                         [o.word for o in parallel])
        self.assertEqual([o.score for o in serial],
                         [o.score for o in parallel])


class TestSelectGuessRay(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        ray.init(num_cpus=2, include_dashboard=False,
                 ignore_reinit_error=True)

    @classmethod
    def tearDownClass(cls) -> None:
        ray.shutdown()

    def test_ray_matches_serial(self) -> None:
        serial = rank_guesses([TEST_WORDS], TEST_WORDS)
        parallel = rank_guesses([TEST_WORDS], TEST_WORDS, nproc=2,
                                use_ray=True)
        self.assertEqual([o.sort_key for o in serial],
                         [o.sort_key for o in parallel])


class TestSingleBoard(unittest.TestCase):
    def test_solves_every_word(self) -> None:
        for target in TEST_WORDS:
            outcome = autosolve([target], TEST_WORDS, max_rounds=20)
            self.assertTrue(outcome.solved, f"{target}: {outcome}")
            self.assertEqual(outcome.guesses[-1], target)
            self.assertEqual(outcome.solutions, [target])

    def test_small_dictionary(self) -> None:
        dictionary = make_np_array_words(["abide", "amble", "apple"])
        outcome = solve_single(dictionary, KnownTargets(["apple"]),
                               silent=True)
        self.assertEqual(outcome.status, SessionStatus.SOLVED)
        self.assertLessEqual(outcome.n_rounds, 2)

    def test_one_possibility_left(self) -> None:
        session = SingleBoardSession(TEST_WORDS, silent=True)
        session.board.pool = make_np_array_words(["tacit"])
        guess = session.suggest()
        self.assertEqual(guess, "tacit")
        self.assertEqual(entropy_score(guess, session.board.pool), 0.0)
        session.advance(guess, {1: ALL_EXACT})
        self.assertTrue(session.finished)
        self.assertEqual(session.status, SessionStatus.SOLVED)

    def test_pool_never_grows(self) -> None:
        session = SingleBoardSession(TEST_WORDS, silent=True)
        provider = KnownTargets(["leper"])
        while not session.finished:
            before = session.board.n_possible
            guess = session.suggest()
            session.advance(guess, {1: provider(guess, 1)})
            self.assertLessEqual(session.board.n_possible, before)

    def test_nothing_to_guess_ends_game(self) -> None:
        provider = mock.Mock(return_value=ALL_EXACT)
        outcome = solve_single(make_np_array_words([]), provider, silent=True)
        self.assertEqual(outcome.status, SessionStatus.NO_MATCHING_WORDS)
        self.assertEqual(outcome.n_rounds, 0)
        provider.assert_not_called()

    def test_inconsistent_feedback(self) -> None:
        dictionary = make_np_array_words(["abide", "amble", "apple"])
        outcome = solve_single(dictionary,
                               lambda guess, board: (A, ) * WORDLEN,
                               silent=True)
        self.assertEqual(outcome.status, SessionStatus.NO_MATCHING_WORDS)
        self.assertEqual(outcome.n_rounds, 1)
        self.assertEqual(outcome.board_states, [BoardState.FAILED])

    def test_advance_after_failure_raises(self) -> None:
        dictionary = make_np_array_words(["abide", "amble", "apple"])
        session = SingleBoardSession(dictionary, silent=True)
        with self.assertRaises(EmptyCandidatePool):
            session.advance("apple", {1: (A, ) * WORDLEN})
        with self.assertRaises(AssertionError):
            session.suggest()

    def test_amongst_possible(self) -> None:
        session = SingleBoardSession(TEST_WORDS, amongst_possible=True,
                                     silent=True)
        session.advance("crane", {1: classify("crane", "arena")})
        self.assertEqual(list(session.guess_universe()),
                         list(session.board.pool))
        self.assertIn(session.suggest(), session.board.possible_words)

    def test_first_guess(self) -> None:
        session = SingleBoardSession(TEST_WORDS, first_guess="slate",
                                     silent=True)
        self.assertEqual(session.suggest(), "slate")
        outcome = run_session(session, KnownTargets(["humor"]), silent=True)
        self.assertTrue(outcome.solved)
        self.assertEqual(outcome.guesses[0], "slate")


class TestQuordle(unittest.TestCase):
    def test_nothing_to_guess_ends_game(self) -> None:
        provider = mock.Mock(return_value=ALL_EXACT)
        outcome = solve_quordle(make_np_array_words([]), provider,
                                silent=True)
        self.assertEqual(outcome.status, SessionStatus.NO_MATCHING_WORDS)
        self.assertEqual(outcome.n_rounds, 0)
        provider.assert_not_called()

    def test_identical_feedback_gives_identical_pools(self) -> None:
        session = QuordleSession(TEST_WORDS, silent=True)
        guess = session.suggest()
        feedback = classify(guess, "honor")
        session.advance(guess, {n: feedback for n in range(1, 5)})
        pools = [b.possible_words for b in session.boards]
        for pool in pools[1:]:
            self.assertEqual(pool, pools[0])

    def test_solves(self) -> None:
        targets = ["apple", "scion", "rarer", "pause"]
        outcome = autosolve(targets, TEST_WORDS, max_rounds=30)
        self.assertTrue(outcome.solved, str(outcome))
        self.assertEqual(outcome.solutions, targets)
        for t in targets:
            self.assertIn(t, outcome.guesses)

    def test_guessable_words_pruned(self) -> None:
        session = QuordleSession(TEST_WORDS, silent=True)
        provider = KnownTargets(["apple", "scion", "rarer", "pause"])
        guess = session.suggest()
        session.advance(guess, {
            b.number: provider(guess, b.number) for b in session.boards
        })
        guessable = set(str(w) for w in session.guessable)
        self.assertNotIn(guess, guessable)
        possible = set()  # type: Set[str]
        for board in session.active_boards:
            possible.update(board.possible_words)
        self.assertEqual(guessable, possible - {guess})

    def test_solved_board_retired(self) -> None:
        session = QuordleSession(TEST_WORDS, first_guess="honor",
                                 silent=True)
        provider = KnownTargets(["honor", "scion", "rarer", "pause"])
        guess = session.suggest()
        session.advance(guess, {
            b.number: provider(guess, b.number) for b in session.boards
        })
        self.assertEqual(session.boards[0].state, BoardState.SOLVED)
        self.assertEqual(len(session.active_boards), 3)
        # A retired board wants no more feedback.
        guess = session.suggest()
        session.advance(guess, {
            b.number: provider(guess, b.number)
            for b in session.active_boards
        })
        self.assertEqual(session.boards[0].solution, "honor")

    def test_failed_board_does_not_stop_play(self) -> None:
        provider = KnownTargets(["apple", "scion", "rarer", "pause"])

        def lying_provider(guess: str, board_number: int) -> Feedback:
            if board_number == 2:
                return (A, ) * WORDLEN if "s" in guess else (E, E, E, E, A)
            return provider(guess, board_number)

        outcome = solve_quordle(TEST_WORDS, lying_provider, max_rounds=100,
                                silent=True)
        self.assertEqual(outcome.status, SessionStatus.NO_MATCHING_WORDS)
        self.assertEqual(outcome.board_states[1], BoardState.FAILED)
        for i in (0, 2, 3):
            self.assertEqual(outcome.board_states[i], BoardState.SOLVED)


class TestInteractive(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.wordlist = os.path.join(self.tmpdir.name, "words")
        with open(self.wordlist, "wt") as f:
            f.write("abide\namble\napple\n")

    def tearDown(self) -> None:
        self.tmpdir.cleanup()

    def test_solves_with_user_feedback(self) -> None:
        # A malformed answer is asked for again.
        with mock.patch("builtins.input",
                        side_effect=["xyz", "ENNNE", "eeeee"]) as m:
            outcome = solve_interactive(self.wordlist)
        self.assertEqual(m.call_count, 3)
        self.assertTrue(outcome.solved)
        self.assertEqual(outcome.guesses, ["abide", "apple"])

    def test_upper_case_first_guess(self) -> None:
        with mock.patch("builtins.input", side_effect=["ennee", "eeeee"]):
            outcome = solve_interactive(self.wordlist, first_guess="AMBLE")
        self.assertTrue(outcome.solved)
        self.assertEqual(outcome.guesses, ["amble", "apple"])

    def test_quordle(self) -> None:
        provider = KnownTargets(["apple", "abide", "amble", "apple"])
        prompts = []  # type: List[str]

        def fake_input(prompt: str) -> str:
            prompts.append(prompt)
            return feedback_str(provider(self._guess_from(prompt),
                                         self._board_from(prompt)))

        with mock.patch("builtins.input", side_effect=fake_input):
            outcome = solve_interactive(self.wordlist, quordle=True)
        self.assertTrue(outcome.solved)
        self.assertEqual(outcome.solutions, ["apple", "abide", "amble",
                                             "apple"])
        # Every board is asked about the first guess.
        self.assertEqual([self._board_from(p) for p in prompts[:4]],
                         [1, 2, 3, 4])

    @staticmethod
    def _guess_from(prompt: str) -> str:
        return re.search(r"Feedback for (\w+)", prompt).group(1).lower()

    @staticmethod
    def _board_from(prompt: str) -> int:
        return int(re.search(r"on board (\d+)", prompt).group(1))

    def test_interrupted(self) -> None:
        with mock.patch("builtins.input", side_effect=EOFError):
            self.assertIsNone(solve_interactive(self.wordlist))


class TestWordlists(unittest.TestCase):
    def test_make_and_read_wordlist(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            source = os.path.join(tmpdir, "words")
            wordlist = os.path.join(tmpdir, "five")
            with open(source, "wt") as f:
                f.write("apple\nApple\nzebra\nat\nzebra\nab-cd\nhello!\n"
                        "crane\nlonger\n")
            make_wordlist(source, wordlist)
            words = read_words(wordlist)
            self.assertEqual(list(words), ["apple", "crane", "zebra"])
            self.assertEqual(list(read_words(source, max_n=2)),
                             ["apple", "zebra"])

    def test_quordle_target_sets(self) -> None:
        sets1 = make_target_sets(TEST_WORDS, TEST_WORDS, quordle=True,
                                 ngames=5, seed=7)
        sets2 = make_target_sets(TEST_WORDS, TEST_WORDS, quordle=True,
                                 ngames=5, seed=7)
        self.assertEqual(sets1, sets2)
        for targets in sets1:
            self.assertEqual(len(set(targets)), N_QUORDLE_BOARDS)
        self.assertEqual(make_target_sets(["apple"], TEST_WORDS),
                         [("apple", )])


# =============================================================================
# Command-line entry point
# =============================================================================

def main() -> None:
    # -------------------------------------------------------------------------
    # Arguments
    # -------------------------------------------------------------------------
    parser = argparse.ArgumentParser(
        "Wordle and Quordle solver.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument(
        "--wordlist_filename", default=DEFAULT_WORDLIST,
        help=f"File containing all {WORDLEN}-letter words in lower case"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Be verbose"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    cmd_make = "make_wordlist"
    parser_make = subparsers.add_parser(
        cmd_make,
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser_make.add_argument(
        "--source_dict", default=DEFAULT_OS_DICT,
        help="File of all dictionary words."
    )

    cmd_solve = "solve"
    parser_solve = subparsers.add_parser(
        cmd_solve,
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser_solve.add_argument(
        "--quordle", action="store_true",
        help=f"Play {N_QUORDLE_BOARDS} boards at once"
    )
    parser_solve.add_argument(
        "--show_threshold", type=int, default=DEFAULT_SHOW_THRESHOLD,
        help="Show all possibilities when there are fewer than this many left"
    )
    parser_solve.add_argument(
        "--advice_top_n", type=int, default=DEFAULT_ADVICE_TOP_N,
        help="When showing advice, show this many top candidates"
    )
    parser_solve.add_argument(
        "--amongst_possible", action="store_true",
        help="Only suggest words that might be the answer (single board only)"
    )
    parser_solve.add_argument(
        "--first_guess", type=str,
        help="Start with this word rather than working out the best one"
    )
    parser_solve.add_argument(
        "--nproc", type=int, default=DEFAULT_NPROC,
        help="Number of parallel processes for scoring guesses"
    )
    parser_solve.add_argument(
        "--use_ray", action="store_true",
        help="Use Ray for parallel processing (otherwise, a process pool)"
    )
    parser_solve.add_argument(
        "--debug_nwords", type=int,
        help="Number of words to load (debugging only)"
    )

    cmd_test_performance = "test_performance"
    parser_test_performance = subparsers.add_parser(
        cmd_test_performance,
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser_test_performance.add_argument(
        "--quordle", action="store_true",
        help=f"Play {N_QUORDLE_BOARDS} boards at once"
    )
    parser_test_performance.add_argument(
        "--output", type=str, default=None,
        help="File for CSV-format output (if unspecified, a sensible default "
             "will be created based on the mode chosen)"
    )
    parser_test_performance.add_argument(
        "--nwords", type=int,
        help="Number of words to test, for Wordle (if unspecified, will test "
             "all)"
    )
    parser_test_performance.add_argument(
        "--ngames", type=int, default=DEFAULT_N_QUORDLE_GAMES,
        help="Number of random games to play, for Quordle"
    )
    parser_test_performance.add_argument(
        "--seed", type=int, default=DEFAULT_SEED,
        help="Random number seed for choosing Quordle words"
    )
    parser_test_performance.add_argument(
        "--nproc", type=int, default=DEFAULT_NPROC,
        help="Number of parallel processes"
    )
    parser_test_performance.add_argument(
        "--no_ray", action="store_true",
        help="Use a process pool rather than Ray"
    )

    args = parser.parse_args()

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    loglevel = logging.DEBUG if args.verbose else logging.INFO
    main_only_quicksetup_rootlogger(level=loglevel)

    # -------------------------------------------------------------------------
    # Act
    # -------------------------------------------------------------------------
    if args.command == cmd_make:
        make_wordlist(args.source_dict, args.wordlist_filename)
    elif args.command == cmd_solve:
        solve_interactive(
            wordlist_filename=args.wordlist_filename,
            quordle=args.quordle,
            debug_nwords=args.debug_nwords,
            show_threshold=args.show_threshold,
            advice_top_n=args.advice_top_n,
            amongst_possible=args.amongst_possible,
            first_guess=args.first_guess,
            nproc=args.nproc,
            use_ray=args.use_ray,
        )
    elif args.command == cmd_test_performance:
        mode = "quordle" if args.quordle else "wordle"
        output_filename = args.output or f"out_{mode}.csv"
        measure_performance(
            wordlist_filename=args.wordlist_filename,
            output_filename=output_filename,
            quordle=args.quordle,
            nwords=args.nwords,
            ngames=args.ngames,
            seed=args.seed,
            nproc=args.nproc,
            loglevel=loglevel,
            use_ray=not args.no_ray,
        )
    else:
        raise AssertionError("argument-parsing bug")


if __name__ == '__main__':
    main()
