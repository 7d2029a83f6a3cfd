"""Flip Cards table model.

Core classes for the flip-cards deduction game: a hidden permutation of
the values 1..N is laid out face-down on a table, and players must flip
the cards in ascending order. Each turn a player may look at one hidden
card, flip it if it holds the next required value, and must then move it
to any position on the table.

The ``Table`` is the sole arbiter of legality. Strategies read it through
its accessors and mutate it only through ``observe``, ``commit`` and
``relocate``.
"""

from __future__ import annotations

import dataclasses
import random
from typing import Any


# =============================================================================
# ANSI Color Constants
# =============================================================================

class _Colors:
    """ANSI escape codes for terminal coloring."""
    BLUE = "\033[94m"
    RED = "\033[91m"
    YELLOW = "\033[93m"
    GREEN = "\033[92m"
    DIM = "\033[2m"
    BOLD = "\033[1m"
    RESET = "\033[0m"


# =============================================================================
# Errors
# =============================================================================

class FlipCardsError(Exception):
    """Base class for all flip-cards errors."""


class RuleViolation(FlipCardsError):
    """A caller broke the per-turn table protocol.

    These are programming errors in a strategy, never recoverable game
    conditions. The subclass tells which rule was broken.
    """


class DoubleQueryError(RuleViolation):
    """A second hidden card was observed in the same turn."""


class NotObservedError(RuleViolation):
    """commit() or relocate() was called before observing a card."""


class NotEligibleError(RuleViolation):
    """commit() was called on a card that is not the next required value."""


class IndexOutOfRangeError(RuleViolation, IndexError):
    """A card index or relocation target is outside the table."""


class HiddenCardError(FlipCardsError, ValueError):
    """A hidden card's value was read without observing it."""


class StrategyError(FlipCardsError):
    """A strategy's own invariant failed while planning or acting."""


class RoundLimitError(FlipCardsError):
    """A game did not finish within the allowed number of rounds."""


# =============================================================================
# Card
# =============================================================================

@dataclasses.dataclass
class Card:
    """A single card on the table.

    Attributes:
        value: The card's value, 1..N.
        committed: Whether the card has been flipped face-up. Once True
            it never reverts.
    """
    value: int
    committed: bool = False

    def label(self, mask_hidden: bool = True) -> tuple[str, str]:
        """Return the display label and ANSI colored label for this card.

        Args:
            mask_hidden: If True, hidden cards are shown as 'X'. If False,
                their value is shown dimmed (god mode).

        Returns:
            A tuple of (plain_text_label, ansi_colored_label).
        """
        if self.committed:
            plain = str(self.value)
            return plain, f"{_Colors.GREEN}{plain}{_Colors.RESET}"
        if mask_hidden:
            return "X", f"{_Colors.DIM}X{_Colors.RESET}"
        plain = str(self.value)
        return plain, f"{_Colors.DIM}{plain}{_Colors.RESET}"

    def __str__(self) -> str:
        _, colored = self.label()
        return colored


# =============================================================================
# Turn Record
# =============================================================================

@dataclasses.dataclass
class TurnRecord:
    """Per-turn lock state, reset by ``Table.start_turn()``.

    Attributes:
        observed: Whether a hidden card has been observed this turn.
        observed_index: Current position of the observed card, or None.
        commit_eligible: Whether the observed card may be committed.
    """
    observed: bool = False
    observed_index: int | None = None
    commit_eligible: bool = False


# =============================================================================
# Notation Parsing
# =============================================================================

def _parse_card_token(token: str) -> Card:
    """Parse a single card token.

    ``N`` is a committed card of value N, ``?N`` a hidden card of value N.

    Raises:
        ValueError: If the token is not valid notation.
    """
    hidden = token.startswith("?")
    digits = token[1:] if hidden else token
    if not digits.isdigit():
        raise ValueError(f"Invalid card token: {token!r}")
    return Card(value=int(digits), committed=not hidden)


def _validate_cards(cards: list[Card]) -> None:
    """Check that cards form a legal table arrangement.

    Raises:
        ValueError: If values are not a permutation of 1..N, or the
            committed values are not exactly 1..k.
    """
    n_cards = len(cards)
    if n_cards == 0:
        raise ValueError("A table needs at least one card")
    values = sorted(c.value for c in cards)
    if values != list(range(1, n_cards + 1)):
        raise ValueError(
            f"Card values must be a permutation of 1-{n_cards}, got {values}"
        )
    committed = sorted(c.value for c in cards if c.committed)
    if committed != list(range(1, len(committed) + 1)):
        raise ValueError(
            f"Committed values must be 1-{len(committed)}, got {committed}"
        )


# =============================================================================
# Snapshot
# =============================================================================

@dataclasses.dataclass(frozen=True)
class TableSnapshot:
    """Immutable copy of everything that determines future play.

    Attributes:
        values: Card values in table order.
        committed: Committed flag per position.
        frontier: Highest committed value (0 if none).
        terminal: Whether the game is over.
    """
    values: tuple[int, ...]
    committed: tuple[bool, ...]
    frontier: int
    terminal: bool

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-compatible mapping of this snapshot."""
        return {
            "values": list(self.values),
            "committed": list(self.committed),
            "frontier": self.frontier,
            "terminal": self.terminal,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TableSnapshot:
        """Rebuild a snapshot from ``to_dict()`` output.

        Raises:
            ValueError: If fields are missing or inconsistent.
        """
        try:
            values = tuple(int(v) for v in data["values"])
            committed = tuple(bool(c) for c in data["committed"])
            frontier = int(data["frontier"])
            terminal = bool(data["terminal"])
        except KeyError as exc:
            raise ValueError(f"Snapshot is missing field {exc}") from exc
        if len(values) != len(committed):
            raise ValueError(
                f"Snapshot has {len(values)} values but "
                f"{len(committed)} committed flags"
            )
        scanned = max(
            (v for v, c in zip(values, committed) if c), default=0,
        )
        if scanned != frontier:
            raise ValueError(
                f"Snapshot frontier {frontier} does not match cards ({scanned})"
            )
        if terminal != (frontier == len(values)):
            raise ValueError("Snapshot terminal flag does not match frontier")
        return cls(
            values=values, committed=committed,
            frontier=frontier, terminal=terminal,
        )


# =============================================================================
# Table
# =============================================================================

class Table:
    """The sequence engine: an ordered row of cards plus the turn lock.

    The table enforces the restricted oracle. Within one turn a player
    may observe at most one hidden card, may commit it only if its value
    is ``frontier + 1``, and may relocate it anywhere. Committed cards
    can be read freely at any time.

    Attributes:
        verbose: If True, every observe/commit/relocate prints a trace.
    """

    def __init__(
        self,
        n_cards: int,
        seed: int | None = None,
        rng: random.Random | None = None,
        verbose: bool = False,
    ) -> None:
        """Create a table with a freshly shuffled permutation of 1..n_cards.

        Args:
            n_cards: Number of cards (N >= 1).
            seed: Seed for a new random source. Ignored if ``rng`` is given.
            rng: Random source used for every shuffle of this table.
            verbose: Print a trace of every table action.
        """
        self._rng = rng if rng is not None else random.Random(seed)
        self.verbose = verbose
        self._cards: list[Card] = []
        self._terminal = False
        self._rec = TurnRecord()
        self.reset(n_cards)

    # -----------------------------------------------------------------
    # Factories
    # -----------------------------------------------------------------

    @classmethod
    def from_cards(cls, cards: list[Card], verbose: bool = False) -> Table:
        """Create a table with an explicit card arrangement.

        Args:
            cards: Cards in table order. They are copied.
            verbose: Print a trace of every table action.

        Returns:
            A new Table in a fresh turn.

        Raises:
            ValueError: If the arrangement is not a legal game state.
        """
        copied = [Card(c.value, c.committed) for c in cards]
        _validate_cards(copied)
        table = cls.__new__(cls)
        table._rng = random.Random()
        table.verbose = verbose
        table._cards = copied
        table._rec = TurnRecord()
        table._terminal = table.frontier == len(copied)
        return table

    @classmethod
    def from_values(cls, values: list[int], verbose: bool = False) -> Table:
        """Create a table of hidden cards in the given value order.

        Example::

            Table.from_values([3, 1, 4, 2])
        """
        return cls.from_cards([Card(v) for v in values], verbose=verbose)

    @classmethod
    def from_string(cls, notation: str, verbose: bool = False) -> Table:
        """Create a table from shorthand notation.

        Tokens are separated by whitespace. ``N`` is a committed card,
        ``?N`` a hidden card of value N::

            Table.from_string("?3 1 ?4 ?2")

        Raises:
            ValueError: If the notation is empty or malformed.
        """
        tokens = notation.split()
        if not tokens:
            raise ValueError("Notation string contains no tokens")
        cards = [_parse_card_token(t) for t in tokens]
        return cls.from_cards(cards, verbose=verbose)

    @classmethod
    def from_snapshot(
        cls, snapshot: TableSnapshot, verbose: bool = False,
    ) -> Table:
        """Restore a table from a snapshot, in a fresh turn."""
        cards = [
            Card(v, c) for v, c in zip(snapshot.values, snapshot.committed)
        ]
        return cls.from_cards(cards, verbose=verbose)

    # -----------------------------------------------------------------
    # Turn protocol
    # -----------------------------------------------------------------

    def reset(self, n_cards: int) -> None:
        """Deal a new random permutation of 1..n_cards.

        Raises:
            ValueError: If n_cards < 1.
        """
        if n_cards < 1:
            raise ValueError(f"Card count must be >= 1, got {n_cards}")
        self._cards = [Card(i + 1) for i in range(n_cards)]
        self._rng.shuffle(self._cards)
        self._terminal = False
        self._rec = TurnRecord()

    def start_turn(self) -> None:
        """Clear the turn record. Called once before every decision."""
        self._rec = TurnRecord()

    def observe(self, index: int) -> int:
        """Reveal the value of the card at ``index``.

        Observing a committed card is always free. Observing a hidden
        card uses up the turn's single query.

        Returns:
            The card's value.

        Raises:
            IndexOutOfRangeError: If index is outside the table.
            DoubleQueryError: If a hidden card was already observed
                this turn.
        """
        card = self._card_at(index)
        if card.committed:
            return card.value
        if self._rec.observed:
            raise DoubleQueryError(
                "Cannot observe a second hidden card in one turn "
                f"(already observed index {self._rec.observed_index})"
            )
        self._rec.observed = True
        self._rec.observed_index = index
        self._rec.commit_eligible = card.value == self.frontier + 1
        if self.verbose:
            print(f"cards[{index}] = {card.value}, ", end="")
        return card.value

    def commit(self) -> None:
        """Flip the observed card face-up.

        Raises:
            NotObservedError: If no hidden card was observed this turn.
            NotEligibleError: If the observed card is not frontier + 1.
        """
        self._check_observed()
        if not self._rec.commit_eligible:
            raise NotEligibleError(
                f"Cannot commit a card whose value is not {self.frontier + 1}"
            )
        assert self._rec.observed_index is not None
        card = self._cards[self._rec.observed_index]
        card.committed = True
        self._rec.commit_eligible = False
        if self.verbose:
            print("flip, ", end="")
        if card.value == len(self._cards):
            self._terminal = True

    def relocate(self, target_index: int) -> None:
        """Move the observed card to ``target_index``.

        Standard remove-then-insert: the target is evaluated against the
        table after the card has been removed.

        Raises:
            NotObservedError: If no hidden card was observed this turn.
            IndexOutOfRangeError: If target_index is outside [0, N-1].
        """
        self._check_observed()
        if not 0 <= target_index < len(self._cards):
            raise IndexOutOfRangeError(
                f"Relocation target {target_index} out of range "
                f"(0-{len(self._cards) - 1})"
            )
        assert self._rec.observed_index is not None
        card = self._cards.pop(self._rec.observed_index)
        self._cards.insert(target_index, card)
        self._rec.observed_index = target_index
        self._rec.commit_eligible = False
        if self.verbose:
            print(f"insert to pos {target_index}.", end="")

    # -----------------------------------------------------------------
    # Read accessors
    # -----------------------------------------------------------------

    def is_committed(self, index: int) -> bool:
        """Whether the card at ``index`` has been flipped."""
        return self._card_at(index).committed

    def peek_value(self, index: int) -> int:
        """Read a committed card's value without using the turn's query.

        Raises:
            IndexOutOfRangeError: If index is outside the table.
            HiddenCardError: If the card is still hidden.
        """
        card = self._card_at(index)
        if not card.committed:
            raise HiddenCardError(f"Card {index} is hidden; observe it first")
        return card.value

    def visible_values(self) -> list[int | None]:
        """Committed value per position, None for hidden cards."""
        return [c.value if c.committed else None for c in self._cards]

    @property
    def frontier(self) -> int:
        """Highest committed value, or 0 if nothing is committed."""
        return max((c.value for c in self._cards if c.committed), default=0)

    @property
    def size(self) -> int:
        """Number of cards on the table."""
        return len(self._cards)

    @property
    def is_terminal(self) -> bool:
        """Whether the card with the highest value has been committed."""
        return self._terminal

    @property
    def turn_record(self) -> TurnRecord:
        """A copy of the current turn record."""
        return dataclasses.replace(self._rec)

    def __len__(self) -> int:
        return len(self._cards)

    # -----------------------------------------------------------------
    # Serialization
    # -----------------------------------------------------------------

    def snapshot(self) -> TableSnapshot:
        """Capture the table state (cards, frontier, terminal flag)."""
        return TableSnapshot(
            values=tuple(c.value for c in self._cards),
            committed=tuple(c.committed for c in self._cards),
            frontier=self.frontier,
            terminal=self._terminal,
        )

    def to_string(self) -> str:
        """Return the table in ``from_string`` notation."""
        return " ".join(
            str(c.value) if c.committed else f"?{c.value}"
            for c in self._cards
        )

    # -----------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------

    def _card_at(self, index: int) -> Card:
        if not 0 <= index < len(self._cards):
            raise IndexOutOfRangeError(
                f"Card index {index} out of range (0-{len(self._cards) - 1})"
            )
        return self._cards[index]

    def _check_observed(self) -> None:
        if not self._rec.observed:
            raise NotObservedError("You did not observe a card this turn")

    # -----------------------------------------------------------------
    # Display
    # -----------------------------------------------------------------

    def table_line(self, mask_hidden: bool = True) -> str:
        """Return the cards as one colored line, hidden cards as 'X'.

        Args:
            mask_hidden: If False, hidden values are shown dimmed.
        """
        width = len(str(len(self._cards)))
        parts: list[str] = []
        for card in self._cards:
            plain, colored = card.label(mask_hidden=mask_hidden)
            parts.append(" " * (width - len(plain)) + colored)
        return " ".join(parts)

    def __str__(self) -> str:
        return self.table_line()

    def __repr__(self) -> str:
        return f"Table.from_string({self.to_string()!r})"
