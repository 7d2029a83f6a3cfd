"""Trace a single Flip Cards game turn by turn.

Plays the four-card arrangement ``3 1 4 2`` with each divide-and-conquer
strategy and prints every action with the table after it. Hidden cards
are shown dimmed so the sorting progress is visible.
"""

import pathlib
import sys

sys.path.insert(0, str(pathlib.Path(__file__).resolve().parent.parent))

import flip_cards
import flip_strategies

_C = flip_cards._Colors

START = [3, 1, 4, 2]


def trace(strategy: flip_strategies.Strategy) -> int:
    """Play START to the end with one strategy, printing each turn."""
    table = flip_cards.Table.from_values(START)
    print(f"{_C.BOLD}{strategy}{_C.RESET}")
    print(f"  start    {table.table_line(mask_hidden=False)}")
    turns = 0
    while not table.is_terminal:
        table.start_turn()
        action = strategy.decide(table)
        turns += 1
        label = action.describe() if action is not None else "(no action)"
        print(f"  turn {turns:>2}  {table.table_line(mask_hidden=False)}   {label}")
    print(f"  {_C.GREEN}done in {turns} turns{_C.RESET}")
    print()
    return turns


def main() -> None:
    trace(flip_strategies.PartitionSearchStrategy())
    trace(flip_strategies.LinearPartitionSearchStrategy())


if __name__ == "__main__":
    main()
