"""Player strategies for Flip Cards.

Each strategy inspects the table through its free read accessors, plans
a single action for the current turn, and applies it. Planning is a pure
function of the visible table state, so strategies keep nothing between
turns.

Architecture:
    ``Strategy.plan()`` returns an ``Action`` (or None when there is
    nothing to do). ``Action.apply()`` performs the observe, optional
    commit, and relocation on the table. ``Strategy.decide()`` does both.

Strategies:
    RandomStrategy: observe a random hidden card. O(N^2) turns.
    AlwaysFirstStrategy: cycle the first hidden card to the back. O(N^2).
    PartitionSearchStrategy: recursive divide and conquer. O(N log N).
    LinearPartitionSearchStrategy: single-pass divide and conquer that
        reads partition structure off the arrangement. O(N log N).
"""

from __future__ import annotations

import dataclasses
import enum
import random

import flip_cards


# =============================================================================
# Actions
# =============================================================================

@dataclasses.dataclass(frozen=True)
class Action:
    """Base class for a planned turn.

    Attributes:
        index: Table position of the hidden card to observe.
    """
    index: int

    def apply(self, table: flip_cards.Table) -> int:
        """Carry out the action on the table.

        Returns:
            The observed card's value.
        """
        raise NotImplementedError

    def describe(self) -> str:
        """Human-readable description for display."""
        raise NotImplementedError


@dataclasses.dataclass(frozen=True)
class FlipAction(Action):
    """Observe a card that must be the next value, and commit it.

    Attributes:
        expected_value: The value the card is known to hold.
    """
    expected_value: int

    def apply(self, table: flip_cards.Table) -> int:
        value = table.observe(self.index)
        if value != self.expected_value:
            raise flip_cards.StrategyError(
                f"Card {self.index} holds {value}, "
                f"expected {self.expected_value}"
            )
        table.commit()
        return value

    def describe(self) -> str:
        return f"Flip [{self.index}] = {self.expected_value}"


@dataclasses.dataclass(frozen=True)
class ProbeAction(Action):
    """Observe a card, commit it if it matches, then optionally move it.

    Attributes:
        target_value: Value that is committed when observed.
        insert_index: Where to relocate the card afterwards, or None to
            leave it in place.
    """
    target_value: int
    insert_index: int | None = None

    def apply(self, table: flip_cards.Table) -> int:
        value = table.observe(self.index)
        if value == self.target_value:
            table.commit()
        if self.insert_index is not None:
            table.relocate(self.insert_index)
        return value

    def describe(self) -> str:
        move = (
            f" -> [{self.insert_index}]"
            if self.insert_index is not None else ""
        )
        return f"Probe [{self.index}] for {self.target_value}{move}"


@dataclasses.dataclass(frozen=True)
class SplitAction(Action):
    """Observe a card and send it to one side of a divider.

    Cards with a value above ``split_value`` go to ``right_index``, the
    rest to ``left_index``. If ``commit_value`` is set and the card holds
    it, the card is committed and moved to ``commit_index`` instead.

    Attributes:
        split_value: Largest value that belongs on the left side.
        right_index: Relocation target just after the divider.
        left_index: Relocation target just before the divider.
        commit_value: Value to commit on sight, or None.
        commit_index: Relocation target for a committed card.
    """
    split_value: int
    right_index: int
    left_index: int
    commit_value: int | None = None
    commit_index: int = 0

    def apply(self, table: flip_cards.Table) -> int:
        value = table.observe(self.index)
        if self.commit_value is not None and value == self.commit_value:
            table.commit()
            table.relocate(self.commit_index)
        elif value > self.split_value:
            table.relocate(self.right_index)
        else:
            table.relocate(self.left_index)
        return value

    def describe(self) -> str:
        return (
            f"Split [{self.index}] at {self.split_value}: "
            f"left [{self.left_index}] / right [{self.right_index}]"
        )


# =============================================================================
# Strategy Base
# =============================================================================

class Strategy:
    """Base class for turn strategies.

    Subclasses implement ``plan()``. A strategy holds no card state
    between turns; everything it needs is read from the table.
    """

    name = "strategy"

    def plan(self, table: flip_cards.Table) -> Action | None:
        """Choose this turn's action from the visible table state."""
        raise NotImplementedError

    def decide(self, table: flip_cards.Table) -> Action | None:
        """Plan and apply one turn on the table.

        Args:
            table: The table, after ``start_turn()``.

        Returns:
            The action taken, or None if the game is over or the
            strategy found nothing to do.
        """
        if table.is_terminal:
            return None
        action = self.plan(table)
        if action is not None:
            action.apply(table)
        return action

    def __str__(self) -> str:
        return self.name


def _first_hidden_index(visible: list[int | None]) -> int:
    """Index of the first hidden card, or len(visible) if none."""
    for i, value in enumerate(visible):
        if value is None:
            return i
    return len(visible)


# =============================================================================
# Reference Strategies
# =============================================================================

class RandomStrategy(Strategy):
    """Observe a uniformly random hidden card and flip it if possible.

    The card is never moved, so expected play time is quadratic.
    """

    name = "random"

    def __init__(
        self, seed: int | None = None, rng: random.Random | None = None,
    ) -> None:
        self._rng = rng if rng is not None else random.Random(seed)

    def plan(self, table: flip_cards.Table) -> Action | None:
        hidden = [
            i for i, v in enumerate(table.visible_values()) if v is None
        ]
        if not hidden:
            return None
        return ProbeAction(
            index=self._rng.choice(hidden),
            target_value=table.frontier + 1,
        )


class AlwaysFirstStrategy(Strategy):
    """Observe the first hidden card, flip it if possible, move it last."""

    name = "always_first"

    def plan(self, table: flip_cards.Table) -> Action | None:
        index = _first_hidden_index(table.visible_values())
        if index == table.size:
            return None
        return ProbeAction(
            index=index,
            target_value=table.frontier + 1,
            insert_index=table.size - 1,
        )


# =============================================================================
# Partition Search (recursive divide and conquer)
# =============================================================================

def _max_committed(cards: list[int | None]) -> tuple[int, int]:
    """Return (value, index) of the largest committed card, or (0, -1)."""
    best_value, best_index = 0, -1
    for i, value in enumerate(cards):
        if value is not None and value > best_value:
            best_value, best_index = value, i
    return best_value, best_index


def _divider_index(cards: list[int | None], value_offset: int) -> int:
    """Index of the committed card holding ``value_offset + 1``, or -1."""
    index = -1
    for i, value in enumerate(cards):
        if value == value_offset + 1:
            index = i
    return index


class PartitionSearchStrategy(Strategy):
    """Quicksort-style divide and conquer over the table.

    A block is a contiguous run of cards ``[index_offset, index_offset +
    n)`` holding exactly the values ``value_offset + 1 ..
    value_offset + n``. The smallest value of the block, once committed,
    is the divider: the block is rebalanced one card per turn until the
    floor(n / 2) largest values sit right of it, then the left and right
    sub-blocks are solved recursively. A block with no committed card is
    scanned linearly until its smallest value is found and flipped; it
    lands at the block's end, which makes it the divider.

    Each turn the recursion descends only far enough to find the first
    block that needs a card moved.
    """

    name = "partition_search"

    def plan(self, table: flip_cards.Table) -> Action | None:
        return self._plan_block(table.visible_values(), 0, 0)

    def _plan_block(
        self,
        cards: list[int | None],
        index_offset: int,
        value_offset: int,
    ) -> Action | None:
        """Plan an action within one block.

        Args:
            cards: Committed value or None for each card in the block.
            index_offset: Table position of the block's first card.
            value_offset: The block holds values above this.

        Returns:
            The first action found in this block, or None if the block
            is already solved.
        """
        n_cards = len(cards)
        if n_cards == 0 or all(v is not None for v in cards):
            return None

        if n_cards == 1:
            # A singleton block can only hold its smallest value.
            return FlipAction(index=index_offset, expected_value=value_offset + 1)

        max_value, _ = _max_committed(cards)
        if max_value == 0:
            return ProbeAction(
                index=index_offset,
                target_value=value_offset + 1,
                insert_index=index_offset + n_cards - 1,
            )

        min_index = _divider_index(cards, value_offset)
        if min_index < 0:
            raise flip_cards.StrategyError(
                f"Block at {index_offset} has no divider {value_offset + 1}"
            )
        target_right = n_cards // 2
        cur_right = n_cards - 1 - min_index

        if cur_right < target_right:
            return SplitAction(
                index=index_offset,
                split_value=value_offset + n_cards - target_right,
                right_index=index_offset + min_index,
                left_index=index_offset + min_index - 1,
            )

        action = self._plan_block(
            cards[:min_index], index_offset, value_offset + 1,
        )
        if action is not None:
            return action
        return self._plan_block(
            cards[min_index + 1:],
            index_offset + min_index + 1,
            value_offset + min_index + 1,
        )


# =============================================================================
# Linear Partition Search (single pass)
# =============================================================================

class LinearPartitionSearchStrategy(Strategy):
    """Divide and conquer without recursion.

    After the first flip, cards flipped next to a divider are moved to
    the front, so the table reads as: flipped prefix, the interval being
    divided, its divider, and the unresolved rest. One scan finds ``interval_start``
    (first hidden card), ``divider_loc`` (next committed card) and
    ``interval_end`` (card before the committed card after that). The
    divider's value tells where it would sit once its interval is fully
    partitioned; if it is already there the interval shrinks to the
    cards left of it and is probed linearly.
    """

    name = "linear_partition_search"

    def plan(self, table: flip_cards.Table) -> Action | None:
        visible = table.visible_values()
        n_cards = len(visible)
        frontier = table.frontier

        interval_start = _first_hidden_index(visible)
        if interval_start == n_cards:
            return None
        divider_loc = next(
            (i for i in range(interval_start + 1, n_cards)
             if visible[i] is not None),
            max(interval_start + 1, n_cards),
        )
        interval_end = next(
            (i for i in range(divider_loc + 1, n_cards)
             if visible[i] is not None),
            max(divider_loc + 1, n_cards),
        ) - 1
        interval_end = min(interval_end, n_cards - 1)

        if divider_loc <= n_cards - 1:
            divider_value = visible[divider_loc]
            assert divider_value is not None
            # Flipped values of this interval already moved to the front.
            ahead_count = frontier - divider_value
            half_value = (divider_value + interval_end + 1) // 2
            correct_loc = (
                interval_start + (half_value - divider_value) - ahead_count
            )
            if divider_loc != correct_loc:
                return SplitAction(
                    index=interval_start,
                    split_value=half_value,
                    right_index=divider_loc,
                    left_index=divider_loc - 1,
                    commit_value=frontier + 1,
                    commit_index=0,
                )
            interval_end = divider_loc - 1

        return ProbeAction(
            index=interval_start,
            target_value=frontier + 1,
            insert_index=interval_end,
        )


# =============================================================================
# Registry
# =============================================================================

class StrategyKind(enum.Enum):
    """Available strategies, by command-line name."""
    RANDOM = "random"
    ALWAYS_FIRST = "always_first"
    PARTITION_SEARCH = "partition_search"
    LINEAR_PARTITION_SEARCH = "linear_partition_search"

    @classmethod
    def from_name(cls, name: str) -> StrategyKind:
        """Parse a strategy name (case-insensitive, '-' or '_').

        Raises:
            ValueError: If the name is unknown.
        """
        key = name.strip().lower().replace("-", "_")
        for kind in cls:
            if kind.value == key:
                return kind
        choices = ", ".join(k.value for k in cls)
        raise ValueError(f"Unknown strategy {name!r} (choose from {choices})")


def create_strategy(
    kind: StrategyKind | str, seed: int | None = None,
) -> Strategy:
    """Create a strategy instance.

    Args:
        kind: Strategy kind or its name.
        seed: Seed for strategies that use randomness.

    Returns:
        A new Strategy.
    """
    if isinstance(kind, str):
        kind = StrategyKind.from_name(kind)
    if kind == StrategyKind.RANDOM:
        return RandomStrategy(seed=seed)
    if kind == StrategyKind.ALWAYS_FIRST:
        return AlwaysFirstStrategy()
    if kind == StrategyKind.PARTITION_SEARCH:
        return PartitionSearchStrategy()
    return LinearPartitionSearchStrategy()
