"""Monte Carlo simulation script for Flip Cards.

Plays many games with a fixed number of players and cards and prints
the average number of rounds each strategy needs to flip every card.

Usage::

    python simulate.py                          # partition search, 13 cards
    python simulate.py --strategy linear_partition_search --cards 32
    python simulate.py --all --games 200        # compare every strategy
    python simulate.py --verbose --games 1      # trace a single game
"""

import argparse
import sys

import flip_game
import flip_strategies

# Defaults match the reference setup: one player, 13 cards, 1000 games.
N_PLAYERS = 1
N_CARDS = 13
N_MONTE_CARLO_GAMES = 1000


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Average rounds to flip every card, per strategy.",
    )
    parser.add_argument(
        "--strategy",
        default=flip_strategies.StrategyKind.PARTITION_SEARCH.value,
        choices=[k.value for k in flip_strategies.StrategyKind],
        help="Strategy every player uses.",
    )
    parser.add_argument(
        "--all", action="store_true",
        help="Run every strategy and print one line each.",
    )
    parser.add_argument("--players", type=int, default=N_PLAYERS)
    parser.add_argument("--cards", type=int, default=N_CARDS)
    parser.add_argument("--games", type=int, default=N_MONTE_CARLO_GAMES)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument(
        "--max-rounds", type=int, default=None,
        help="Abort a game that runs longer than this.",
    )
    parser.add_argument(
        "--verbose", action="store_true",
        help="Print the table after every round.",
    )
    parser.add_argument(
        "--no-progress", action="store_true",
        help="Hide the progress bar.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.games < 1:
        print(f"ERROR: --games must be >= 1, got {args.games}", file=sys.stderr)
        return 2

    if args.all:
        kinds = list(flip_strategies.StrategyKind)
    else:
        kinds = [flip_strategies.StrategyKind.from_name(args.strategy)]

    try:
        configs = [
            flip_game.GameConfig(
                n_players=args.players,
                n_cards=args.cards,
                strategy=kind,
                seed=args.seed,
                verbose=args.verbose,
            )
            for kind in kinds
        ]
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    print(
        f"{args.players} player(s), {args.cards} cards, "
        f"{args.games} games per strategy"
    )
    for config in configs:
        result = flip_game.run_monte_carlo(
            config,
            n_games=args.games,
            max_rounds=args.max_rounds,
            show_progress=not (args.no_progress or args.verbose),
        )
        print(result)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
