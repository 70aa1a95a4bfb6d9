#!/usr/bin/env python3
"""
Territory Conquest - Command Line Interface

Train the learning agent, watch scripted games and inspect checkpoints.

Usage:
    python cli.py train --episodes 100 --speed 10
    python cli.py train --config training.json --resume
    python cli.py simulate --seconds 300 --seed 7
    python cli.py simulate --neural --weights-dir checkpoints
    python cli.py status --weights-dir checkpoints
"""

import argparse
import asyncio
import logging
import random
import sys
import time

from conquest.config import RulesConfig, TrainingConfig
from conquest.grid import Grid
from conquest.renderer import GameRenderer
from conquest.session import GameSession
from conquest_ai.approximator import ApproximatorError, WeightStore
from conquest_ai.player import NeuralPlayer
from conquest_ai.trainer import SelfPlayTrainer


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='conquest',
        description='Territory Conquest game core and self-play trainer'
    )
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Verbose output')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Train command
    train_parser = subparsers.add_parser('train', help='Run self-play training')
    train_parser.add_argument('--episodes', '-e', type=int, default=None,
                              help='Number of episodes (default: from config)')
    train_parser.add_argument('--speed', '-s', type=float, default=None,
                              help='Simulation speed, 0.1 to 10')
    train_parser.add_argument('--config', '-c', type=str, default=None,
                              help='Training config JSON file')
    train_parser.add_argument('--weights-dir', '-w', type=str, default=None,
                              help='Directory for saved weights')
    train_parser.add_argument('--resume', action='store_true',
                              help='Load saved weights before training')
    train_parser.add_argument('--seed', type=int, default=None,
                              help='Random seed')

    # Simulate command
    sim_parser = subparsers.add_parser('simulate',
                                       help='Watch an interactive session play out')
    sim_parser.add_argument('--seconds', type=float, default=300.0,
                            help='Simulated seconds to run')
    sim_parser.add_argument('--width', type=int, default=20)
    sim_parser.add_argument('--height', type=int, default=15)
    sim_parser.add_argument('--seed', type=int, default=None,
                            help='Random seed')
    sim_parser.add_argument('--neural', action='store_true',
                            help='Seat the saved neural model in the first AI seat')
    sim_parser.add_argument('--weights-dir', '-w', type=str,
                            default='checkpoints')

    # Status command
    status_parser = subparsers.add_parser('status', help='Show saved checkpoints')
    status_parser.add_argument('--weights-dir', '-w', type=str,
                               default='checkpoints')

    return parser


async def cmd_train(args):
    """Run self-play training"""
    config = TrainingConfig.load(args.config) if args.config else TrainingConfig.from_env()
    if args.speed is not None:
        config.simulation_speed = args.speed
    if args.weights_dir:
        config.weights_dir = args.weights_dir
    if args.seed is not None:
        config.seed = args.seed

    print("=" * 70)
    print("TERRITORY CONQUEST - Self-Play Training")
    print("=" * 70)

    store = WeightStore(config.weights_dir)
    trainer = SelfPlayTrainer(config, RulesConfig.from_env(), store=store)

    if args.resume and store.exists(config.model_key):
        print(f"\nResuming from: {config.weights_dir}/{config.model_key}")
        trainer.agent.load(store)

    start_time = time.time()
    try:
        results = await trainer.run(args.episodes)
    except KeyboardInterrupt:
        trainer.stop()
        print("\nTraining interrupted")
        return 1
    except ApproximatorError as e:
        print(f"\nTraining failed: {e}")
        return 1
    elapsed = time.time() - start_time

    status = trainer.get_status()
    print("\n" + "=" * 70)
    print("TRAINING COMPLETE")
    print("=" * 70)
    print(f"  Episodes:       {len(results)}")
    print(f"  Win rate:       {status['win_rate']:.1%}")
    print(f"  Avg reward:     {status['avg_reward']:.2f}")
    print(f"  Epsilon:        {status['epsilon']:.3f}")
    print(f"  Replay memory:  {status['memory']}")
    print(f"  Elapsed time:   {elapsed:.1f}s")
    return 0


async def cmd_simulate(args):
    """Watch AI players run an interactive session"""
    rng = random.Random(args.seed)
    grid = Grid.create_random(args.width, args.height, rng=rng)
    neural_player = None
    if args.neural:
        config = TrainingConfig.from_env()
        config.map_width, config.map_height = args.width, args.height
        neural_player = NeuralPlayer(config, WeightStore(args.weights_dir))
    session = GameSession(grid=grid, rng=rng, neural_player=neural_player)

    # Claim the first land cell nearest the middle for the idle human
    cx, cy = args.width // 2, args.height // 2
    land = [t for t in grid if not t.is_water]
    start = min(land, key=lambda t: (t.x - cx) ** 2 + (t.y - cy) ** 2)
    session.click(start.x, start.y)

    last_day = session.day
    elapsed = 0.0
    while elapsed < args.seconds and not session.game_over:
        session.advance(0.1)
        elapsed += 0.1
        if session.day != last_day:
            last_day = session.day
            print(GameRenderer.render_compact(grid, session.players, session.day))

    print()
    print(GameRenderer.render(grid, session.players, day=session.day))
    print(f"\n{session.status}")
    winner = session.winner or session.determine_winner()
    if winner:
        print(f"Leader: {session.players[winner].name}")
    return 0


async def cmd_status(args):
    """Show saved checkpoints"""
    store = WeightStore(args.weights_dir)
    keys = store.keys()
    print("Checkpoint Status")
    print("=" * 50)
    if not keys:
        print(f"No checkpoints in {args.weights_dir}")
        return 0
    for key in keys:
        weights = store.load(key)
        params = sum(v.size for v in weights.values())
        print(f"  {key}: {len(weights)} arrays, {params} values")
    return 0


def main():
    parser = create_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(name)s %(levelname)s %(message)s',
    )

    if not args.command:
        parser.print_help()
        return 0

    commands = {
        'train': cmd_train,
        'simulate': cmd_simulate,
        'status': cmd_status,
    }

    if args.command in commands:
        return asyncio.run(commands[args.command](args))
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main() or 0)
