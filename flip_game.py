"""Flip Cards game loop and Monte Carlo runner.

``Game`` is the turn scheduler: players take turns round robin, each
turn is one ``start_turn()`` followed by one strategy decision, and the
round counter counts turns until the table is terminal.
``run_monte_carlo()`` plays many games and summarizes the round counts.
"""

from __future__ import annotations

import dataclasses
import random
import statistics

import tqdm

import flip_cards
import flip_strategies

_C = flip_cards._Colors


# =============================================================================
# Configuration
# =============================================================================

@dataclasses.dataclass
class GameConfig:
    """Setup for a game or a batch of games.

    Attributes:
        n_players: Number of players taking turns (all share one strategy).
        n_cards: Number of cards N on the table.
        strategy: The strategy every player uses. A name is accepted and
            converted to a ``StrategyKind``.
        seed: Seed for the table shuffle and any strategy randomness.
            None draws fresh entropy.
        verbose: Print the table after every round.
    """
    n_players: int = 1
    n_cards: int = 13
    strategy: flip_strategies.StrategyKind | str = (
        flip_strategies.StrategyKind.PARTITION_SEARCH
    )
    seed: int | None = None
    verbose: bool = False

    def __post_init__(self) -> None:
        """Validate counts and normalize the strategy."""
        if self.n_players < 1:
            raise ValueError(f"Player count must be >= 1, got {self.n_players}")
        if self.n_cards < 1:
            raise ValueError(f"Card count must be >= 1, got {self.n_cards}")
        if isinstance(self.strategy, str):
            self.strategy = flip_strategies.StrategyKind.from_name(self.strategy)


# =============================================================================
# Player
# =============================================================================

@dataclasses.dataclass
class Player:
    """A seat at the table.

    Attributes:
        name: The player's name.
        strategy: The strategy deciding this player's turns.
    """
    name: str
    strategy: flip_strategies.Strategy

    def take_turn(
        self, table: flip_cards.Table,
    ) -> flip_strategies.Action | None:
        """Make this player's single decision for the turn."""
        return self.strategy.decide(table)

    def __str__(self) -> str:
        return f"{_C.BOLD}{self.name}{_C.RESET} ({self.strategy})"


# =============================================================================
# Game
# =============================================================================

class Game:
    """Round-robin turn scheduler around one table.

    Attributes:
        config: The game setup.
        table: The shared table.
        players: Seated players, in turn order.
        current_player_index: Whose turn is next.
        n_rounds: Turns played since the last reset.
    """

    def __init__(self, config: GameConfig) -> None:
        self.config = config
        rng = random.Random(config.seed)
        self.table = flip_cards.Table(
            config.n_cards, rng=rng, verbose=config.verbose,
        )
        # One seed drives both the shuffles and the strategy.
        strategy = flip_strategies.create_strategy(
            config.strategy, seed=rng.randrange(2 ** 32),
        )
        self.players = [
            Player(name=f"P{i}", strategy=strategy)
            for i in range(config.n_players)
        ]
        self.current_player_index = 0
        self.n_rounds = 0
        self.reset()

    @classmethod
    def create(
        cls,
        n_players: int,
        n_cards: int,
        strategy: flip_strategies.StrategyKind | str,
        seed: int | None = None,
        verbose: bool = False,
    ) -> Game:
        """Create a game from keyword settings."""
        return cls(GameConfig(
            n_players=n_players,
            n_cards=n_cards,
            strategy=strategy,
            seed=seed,
            verbose=verbose,
        ))

    @classmethod
    def from_table(
        cls,
        table: flip_cards.Table,
        strategy: flip_strategies.StrategyKind | str,
        n_players: int = 1,
        verbose: bool = False,
    ) -> Game:
        """Create a game around an existing table without reshuffling."""
        game = cls.__new__(cls)
        game.config = GameConfig(
            n_players=n_players,
            n_cards=table.size,
            strategy=strategy,
            verbose=verbose,
        )
        game.table = table
        strategy_obj = flip_strategies.create_strategy(game.config.strategy)
        game.players = [
            Player(name=f"P{i}", strategy=strategy_obj)
            for i in range(n_players)
        ]
        game.current_player_index = 0
        game.n_rounds = 0
        return game

    @property
    def current_player(self) -> Player:
        return self.players[self.current_player_index]

    def reset(self) -> None:
        """Reshuffle the table and zero the counters."""
        self.current_player_index = 0
        self.n_rounds = 0
        self.table.reset(self.config.n_cards)
        if self.config.verbose:
            print(self.table.table_line(mask_hidden=False))

    def play_round(self) -> bool:
        """Play one turn for the current player.

        Returns:
            True if the game is over after this turn.
        """
        self.table.start_turn()
        self.current_player.take_turn(self.table)
        self.n_rounds += 1

        if self.config.verbose:
            print()
            print(self.table)

        if self.table.is_terminal:
            if self.config.verbose:
                print(
                    f"{_C.GREEN}{_C.BOLD}Game over, "
                    f"#rounds = {self.n_rounds}{_C.RESET}"
                )
            return True

        self.current_player_index = (
            (self.current_player_index + 1) % len(self.players)
        )
        return False

    def play(self, max_rounds: int | None = None) -> int:
        """Play until the table is terminal.

        Args:
            max_rounds: Give up after this many turns.

        Returns:
            The number of rounds played.

        Raises:
            RoundLimitError: If max_rounds turns pass without finishing.
        """
        if self.table.is_terminal:
            return self.n_rounds
        while not self.play_round():
            if max_rounds is not None and self.n_rounds >= max_rounds:
                raise flip_cards.RoundLimitError(
                    f"Game not finished after {self.n_rounds} rounds "
                    f"({self.config.strategy}, {self.config.n_cards} cards)"
                )
        return self.n_rounds

    def __str__(self) -> str:
        lines = [
            f"{_C.BOLD}=== Flip Cards ==={_C.RESET}",
            f"Round: {self.n_rounds}",
            f"Frontier: {self.table.frontier}/{self.table.size}",
            "",
        ]
        for i, player in enumerate(self.players):
            if i == self.current_player_index:
                lines.append(f"{_C.BOLD}>>> {player}{_C.RESET}")
            else:
                lines.append(f"    {player}")
        lines.append("")
        lines.append(str(self.table))
        return "\n".join(lines)


# =============================================================================
# Monte Carlo
# =============================================================================

@dataclasses.dataclass(frozen=True)
class MonteCarloResult:
    """Round counts from a batch of games.

    Attributes:
        config: The setup every game used.
        rounds: Rounds taken by each game, in play order.
    """
    config: GameConfig
    rounds: tuple[int, ...]

    @property
    def n_games(self) -> int:
        return len(self.rounds)

    @property
    def mean(self) -> float:
        """Average number of rounds per game."""
        return statistics.mean(self.rounds)

    @property
    def stdev(self) -> float:
        return statistics.stdev(self.rounds) if len(self.rounds) > 1 else 0.0

    @property
    def min(self) -> int:
        return min(self.rounds)

    @property
    def max(self) -> int:
        return max(self.rounds)

    def __str__(self) -> str:
        return (
            f"{self.config.strategy.value}: "
            f"Average #rounds = {self.mean:.3f} "
            f"(min {self.min}, max {self.max}, "
            f"stdev {self.stdev:.2f}, n={self.n_games})"
        )


def run_monte_carlo(
    config: GameConfig,
    n_games: int = 1_000,
    max_rounds: int | None = None,
    show_progress: bool = False,
) -> MonteCarloResult:
    """Play ``n_games`` games with one setup and collect round counts.

    The table is reshuffled between games from the game's own random
    source, so a fixed ``config.seed`` reproduces the whole batch.

    Args:
        config: Game setup.
        n_games: Number of games to play (>= 1).
        max_rounds: Per-game round limit, passed to ``Game.play()``.
        show_progress: If True, display a tqdm progress bar.

    Returns:
        A MonteCarloResult with one round count per game.

    Raises:
        ValueError: If n_games < 1.
    """
    if n_games < 1:
        raise ValueError(f"Game count must be >= 1, got {n_games}")
    game = Game(config)
    rounds: list[int] = []

    pbar = None
    if show_progress:
        pbar = tqdm.tqdm(
            total=n_games,
            desc=str(config.strategy.value),
            unit=" games",
            dynamic_ncols=True,
        )
    for i in range(n_games):
        if i > 0:
            game.reset()
        rounds.append(game.play(max_rounds=max_rounds))
        if pbar is not None:
            pbar.update(1)
    if pbar is not None:
        pbar.close()

    return MonteCarloResult(config=config, rounds=tuple(rounds))
