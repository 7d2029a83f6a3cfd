"""Unit tests for the flip_strategies module."""

import itertools
import json
import math
import random
import unittest

import flip_cards
import flip_strategies
from flip_strategies import (
    AlwaysFirstStrategy,
    FlipAction,
    LinearPartitionSearchStrategy,
    PartitionSearchStrategy,
    ProbeAction,
    RandomStrategy,
    SplitAction,
    StrategyKind,
    create_strategy,
)

DIVIDE_AND_CONQUER = [PartitionSearchStrategy, LinearPartitionSearchStrategy]


def _play(
    table: flip_cards.Table,
    strategy: flip_strategies.Strategy,
    max_turns: int,
) -> list[str]:
    """Play a table to the end, returning its notation after each turn.

    Fails if the game is not over after ``max_turns`` turns.
    """
    states: list[str] = []
    while not table.is_terminal:
        if len(states) >= max_turns:
            raise AssertionError(
                f"{strategy} did not finish in {max_turns} turns: "
                f"{table.to_string()}"
            )
        table.start_turn()
        strategy.decide(table)
        states.append(table.to_string())
    return states


def _mean_turns(
    strategy: flip_strategies.Strategy, n_cards: int, seeds: range,
) -> float:
    total = 0
    for seed in seeds:
        table = flip_cards.Table(n_cards, seed=seed)
        total += len(_play(table, strategy, max_turns=n_cards * n_cards))
    return total / len(seeds)


class TestActions(unittest.TestCase):
    """Tests for the Action records."""

    def test_flip_action(self) -> None:
        table = flip_cards.Table.from_string("?2 1 ?3")
        table.start_turn()
        self.assertEqual(FlipAction(0, 2).apply(table), 2)
        self.assertEqual(table.to_string(), "2 1 ?3")

    def test_flip_action_wrong_value(self) -> None:
        table = flip_cards.Table.from_values([2, 1])
        table.start_turn()
        with self.assertRaises(flip_cards.StrategyError):
            FlipAction(0, 1).apply(table)
        self.assertFalse(table.is_committed(0))

    def test_probe_commits_and_moves(self) -> None:
        table = flip_cards.Table.from_values([1, 2, 3])
        table.start_turn()
        ProbeAction(0, target_value=1, insert_index=2).apply(table)
        self.assertEqual(table.to_string(), "?2 ?3 1")

    def test_probe_without_move(self) -> None:
        table = flip_cards.Table.from_values([2, 1, 3])
        table.start_turn()
        ProbeAction(0, target_value=1).apply(table)
        self.assertEqual(table.to_string(), "?2 ?1 ?3")

    def test_split_right(self) -> None:
        table = flip_cards.Table.from_string("?4 ?2 1 ?3")
        table.start_turn()
        SplitAction(0, split_value=2, right_index=2, left_index=1).apply(table)
        self.assertEqual(table.to_string(), "?2 1 ?4 ?3")

    def test_split_left(self) -> None:
        table = flip_cards.Table.from_string("?2 ?4 1 ?3")
        table.start_turn()
        SplitAction(0, split_value=2, right_index=2, left_index=1).apply(table)
        self.assertEqual(table.to_string(), "?4 ?2 1 ?3")

    def test_split_commit_to_front(self) -> None:
        table = flip_cards.Table.from_string("1 ?2 ?3")
        table.start_turn()
        SplitAction(
            1, split_value=2, right_index=2, left_index=1,
            commit_value=2, commit_index=0,
        ).apply(table)
        self.assertEqual(table.to_string(), "2 1 ?3")

    def test_describe(self) -> None:
        self.assertIn("Flip", FlipAction(0, 1).describe())
        self.assertIn("[3]", ProbeAction(0, 1, insert_index=3).describe())
        self.assertIn("Split", SplitAction(0, 2, 3, 2).describe())


class TestReferenceStrategies(unittest.TestCase):
    """Tests for RandomStrategy and AlwaysFirstStrategy."""

    def test_always_first_moves_card_last(self) -> None:
        table = flip_cards.Table.from_values([2, 1, 3])
        table.start_turn()
        action = AlwaysFirstStrategy().decide(table)
        self.assertEqual(action, ProbeAction(0, target_value=1, insert_index=2))
        self.assertEqual(table.to_string(), "?1 ?3 ?2")

    def test_always_first_skips_committed(self) -> None:
        table = flip_cards.Table.from_string("1 ?3 ?2")
        table.start_turn()
        action = AlwaysFirstStrategy().plan(table)
        self.assertEqual(action, ProbeAction(1, target_value=2, insert_index=2))

    def test_random_never_moves(self) -> None:
        strategy = RandomStrategy(seed=3)
        table = flip_cards.Table.from_values([3, 2, 4, 1])
        while not table.is_terminal:
            table.start_turn()
            action = strategy.decide(table)
            assert isinstance(action, ProbeAction)
            self.assertIsNone(action.insert_index)
        self.assertEqual(
            [c for c in table.to_string().replace("?", "").split()],
            ["3", "2", "4", "1"],
        )

    def test_random_picks_hidden_cards(self) -> None:
        strategy = RandomStrategy(rng=random.Random(0))
        table = flip_cards.Table.from_string("1 ?3 2 ?4")
        for _ in range(20):
            action = strategy.plan(table)
            assert action is not None
            self.assertIn(action.index, (1, 3))

    def test_reference_strategies_finish(self) -> None:
        for strategy in [RandomStrategy(seed=1), AlwaysFirstStrategy()]:
            with self.subTest(strategy=str(strategy)):
                table = flip_cards.Table(8, seed=11)
                _play(table, strategy, max_turns=10_000)
                self.assertEqual(table.frontier, 8)


class TestPartitionSearch(unittest.TestCase):
    """Tests for the recursive divide-and-conquer strategy."""

    def test_example_first_two_turns(self) -> None:
        table = flip_cards.Table.from_values([3, 1, 4, 2])
        strategy = PartitionSearchStrategy()

        # Nothing committed: linear probe of the first card.
        table.start_turn()
        action = strategy.decide(table)
        self.assertEqual(action, ProbeAction(0, target_value=1, insert_index=3))
        self.assertEqual(table.to_string(), "?1 ?4 ?2 ?3")

        table.start_turn()
        action = strategy.plan(table)
        self.assertEqual(action, ProbeAction(0, target_value=1, insert_index=3))
        self.assertEqual(table.observe(0), 1)
        table.commit()
        self.assertEqual(table.frontier, 1)
        self.assertTrue(table.is_committed(0))
        table.relocate(3)
        self.assertEqual(table.to_string(), "?4 ?2 ?3 1")

    def test_example_full_game(self) -> None:
        table = flip_cards.Table.from_values([3, 1, 4, 2])
        states = _play(table, PartitionSearchStrategy(), max_turns=3 * 4)
        self.assertEqual(states, [
            "?1 ?4 ?2 ?3",
            "?4 ?2 ?3 1",
            "?2 ?3 1 ?4",   # rebalance: 4 goes right of the divider
            "?3 ?2 1 ?4",   # rebalance: 2 stays left
            "?2 1 ?3 ?4",   # rebalance: 3 goes right
            "2 1 ?3 ?4",    # left singleton
            "2 1 ?4 3",     # right block probe
            "2 1 3 ?4",
            "2 1 3 4",
        ])
        self.assertTrue(table.is_terminal)

    def test_singleton_block_flips(self) -> None:
        table = flip_cards.Table.from_string("1 ?2")
        table.start_turn()
        action = PartitionSearchStrategy().plan(table)
        self.assertEqual(action, FlipAction(1, expected_value=2))

    def test_rebalance_plan(self) -> None:
        table = flip_cards.Table.from_string("?2 ?3 1 ?4")
        action = PartitionSearchStrategy().plan(table)
        self.assertEqual(
            action,
            SplitAction(0, split_value=2, right_index=2, left_index=1),
        )

    def test_recurses_into_right_block(self) -> None:
        table = flip_cards.Table.from_string("2 1 ?3 ?4")
        action = PartitionSearchStrategy().plan(table)
        self.assertEqual(action, ProbeAction(2, target_value=3, insert_index=3))

    def test_single_card(self) -> None:
        table = flip_cards.Table.from_values([1])
        self.assertEqual(len(_play(table, PartitionSearchStrategy(), 1)), 1)

    def test_terminal_table_no_action(self) -> None:
        table = flip_cards.Table.from_string("2 1 3")
        table.start_turn()
        self.assertIsNone(PartitionSearchStrategy().decide(table))
        self.assertIsNone(PartitionSearchStrategy().plan(table))


class TestLinearPartitionSearch(unittest.TestCase):
    """Tests for the single-pass divide-and-conquer strategy."""

    def test_example_full_game(self) -> None:
        table = flip_cards.Table.from_values([3, 1, 4, 2])
        states = _play(table, LinearPartitionSearchStrategy(), max_turns=3 * 4)
        self.assertEqual(states, [
            "?1 ?4 ?2 ?3",
            "?4 ?2 ?3 1",
            "?2 ?3 1 ?4",
            "2 ?3 1 ?4",
            "3 2 1 ?4",
            "3 2 1 4",
        ])

    def test_no_divider_probes_to_end(self) -> None:
        table = flip_cards.Table.from_values([3, 1, 2])
        action = LinearPartitionSearchStrategy().plan(table)
        self.assertEqual(action, ProbeAction(0, target_value=1, insert_index=2))

    def test_divider_in_interval(self) -> None:
        table = flip_cards.Table.from_string("?4 ?2 ?3 1")
        action = LinearPartitionSearchStrategy().plan(table)
        self.assertEqual(action, SplitAction(
            0, split_value=2, right_index=3, left_index=2,
            commit_value=2, commit_index=0,
        ))

    def test_settled_divider_shrinks_interval(self) -> None:
        # Divider 1 sits where a full partition of 2..5 puts it.
        table = flip_cards.Table.from_string("?3 ?2 1 ?4 ?5")
        action = LinearPartitionSearchStrategy().plan(table)
        self.assertEqual(action, ProbeAction(0, target_value=2, insert_index=1))

    def test_flip_goes_to_front(self) -> None:
        table = flip_cards.Table.from_string("?2 ?3 1 ?4")
        table.start_turn()
        LinearPartitionSearchStrategy().decide(table)
        self.assertEqual(table.to_string(), "2 ?3 1 ?4")

    def test_single_card(self) -> None:
        table = flip_cards.Table.from_values([1])
        self.assertEqual(
            len(_play(table, LinearPartitionSearchStrategy(), 1)), 1,
        )

    def test_terminal_table_no_action(self) -> None:
        table = flip_cards.Table.from_string("1 2")
        self.assertIsNone(LinearPartitionSearchStrategy().plan(table))


class TestTermination(unittest.TestCase):
    """Both divide-and-conquer strategies finish from any arrangement."""

    def test_every_permutation_small(self) -> None:
        for strategy_cls in DIVIDE_AND_CONQUER:
            strategy = strategy_cls()
            for n_cards in range(1, 7):
                for values in itertools.permutations(range(1, n_cards + 1)):
                    with self.subTest(strategy=str(strategy), values=values):
                        table = flip_cards.Table.from_values(list(values))
                        _play(table, strategy, max_turns=4 * n_cards * n_cards)
                        self.assertEqual(table.frontier, n_cards)

    def test_random_permutations(self) -> None:
        for strategy_cls in DIVIDE_AND_CONQUER:
            strategy = strategy_cls()
            for n_cards in [7, 10, 16, 33]:
                for seed in range(10):
                    with self.subTest(
                        strategy=str(strategy), n_cards=n_cards, seed=seed,
                    ):
                        table = flip_cards.Table(n_cards, seed=seed)
                        _play(table, strategy, max_turns=4 * n_cards * n_cards)
                        self.assertTrue(table.is_terminal)

    def test_n_log_n_growth(self) -> None:
        for strategy_cls in DIVIDE_AND_CONQUER:
            strategy = strategy_cls()
            with self.subTest(strategy=str(strategy)):
                small = _mean_turns(strategy, 32, range(10))
                large = _mean_turns(strategy, 128, range(10))
                # Quadratic growth would be a factor of 16.
                self.assertLess(large / small, 8.0)
                self.assertLess(large, 5 * 128 * math.log2(128))


class TestTurnInvariants(unittest.TestCase):
    """Per-turn properties observed while strategies play."""

    def test_conservation_and_monotonic_frontier(self) -> None:
        strategies = [
            PartitionSearchStrategy(),
            LinearPartitionSearchStrategy(),
            AlwaysFirstStrategy(),
        ]
        for strategy in strategies:
            with self.subTest(strategy=str(strategy)):
                table = flip_cards.Table(20, seed=5)
                values = sorted(table.snapshot().values)
                for _ in range(5_000):
                    if table.is_terminal:
                        break
                    before = table.frontier
                    table.start_turn()
                    strategy.decide(table)
                    self.assertEqual(table.size, 20)
                    self.assertEqual(sorted(table.snapshot().values), values)
                    self.assertIn(table.frontier - before, (0, 1))
                    record = table.turn_record
                    self.assertTrue(record.observed)
                self.assertTrue(table.is_terminal)

    def test_strategies_only_read_visible_state(self) -> None:
        # Two tables that look the same get the same plan.
        a = flip_cards.Table.from_string("?4 ?2 1 ?3 ?5")
        b = flip_cards.Table.from_string("?5 ?3 1 ?2 ?4")
        for strategy_cls in DIVIDE_AND_CONQUER:
            strategy = strategy_cls()
            with self.subTest(strategy=str(strategy)):
                self.assertEqual(strategy.plan(a), strategy.plan(b))


class TestSnapshotReplay(unittest.TestCase):
    """A restored table plays exactly like the original."""

    def test_restore_mid_game(self) -> None:
        for strategy_cls in DIVIDE_AND_CONQUER:
            strategy = strategy_cls()
            with self.subTest(strategy=str(strategy)):
                original = flip_cards.Table(25, seed=9)
                for _ in range(30):
                    original.start_turn()
                    strategy.decide(original)
                data = json.loads(json.dumps(original.snapshot().to_dict()))
                restored = flip_cards.Table.from_snapshot(
                    flip_cards.TableSnapshot.from_dict(data),
                )
                while not original.is_terminal:
                    original.start_turn()
                    restored.start_turn()
                    self.assertEqual(
                        strategy.decide(original), strategy.decide(restored),
                    )
                    self.assertEqual(original.to_string(), restored.to_string())
                self.assertTrue(restored.is_terminal)


class TestRegistry(unittest.TestCase):
    """Tests for StrategyKind and create_strategy."""

    def test_from_name(self) -> None:
        self.assertEqual(
            StrategyKind.from_name("partition_search"),
            StrategyKind.PARTITION_SEARCH,
        )
        self.assertEqual(
            StrategyKind.from_name(" Linear-Partition-Search "),
            StrategyKind.LINEAR_PARTITION_SEARCH,
        )

    def test_from_name_unknown(self) -> None:
        with self.assertRaises(ValueError):
            StrategyKind.from_name("bogosort")

    def test_create_strategy(self) -> None:
        expected = {
            StrategyKind.RANDOM: RandomStrategy,
            StrategyKind.ALWAYS_FIRST: AlwaysFirstStrategy,
            StrategyKind.PARTITION_SEARCH: PartitionSearchStrategy,
            StrategyKind.LINEAR_PARTITION_SEARCH: LinearPartitionSearchStrategy,
        }
        for kind, cls in expected.items():
            with self.subTest(kind=kind):
                strategy = create_strategy(kind, seed=0)
                self.assertIsInstance(strategy, cls)
                self.assertEqual(str(strategy), kind.value)

    def test_create_strategy_by_name(self) -> None:
        self.assertIsInstance(
            create_strategy("always_first"), AlwaysFirstStrategy,
        )


if __name__ == "__main__":
    unittest.main()
