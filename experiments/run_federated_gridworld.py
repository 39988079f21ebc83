#!/usr/bin/env python3
"""Federated Q-learning demo on a grid world.

Trains several independent agents, merges their Q-tables with FedAvg
whenever the trigger fires, evaluates the global policy greedily and
saves the global model.

Usage:
    python experiments/run_federated_gridworld.py --clients 4 --episodes 300
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import argparse
import logging
from datetime import datetime

from fedq.config import FedQConfig, STRATEGY_LABELS
from fedq.envs import GridWorld
from fedq.federated.serialization import save_model
from fedq.federated.trainer import FederatedTrainer


def parse_args():
    parser = argparse.ArgumentParser(description="Federated tabular Q-learning on a grid world")
    parser.add_argument("--config", type=str, default=None, help="JSON config file")
    parser.add_argument("--clients", type=int, default=None)
    parser.add_argument("--episodes", type=int, default=None)
    parser.add_argument("--size", type=int, default=5, help="Grid side length")
    parser.add_argument("--interval", type=int, default=None, help="Episodes between rounds")
    parser.add_argument("--strategy", choices=sorted(STRATEGY_LABELS), default=None)
    parser.add_argument("--weighted", action="store_true", help="Weight clients by transitions")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--output-dir", type=str, default=None)
    parser.add_argument("--quiet", action="store_true")
    return parser.parse_args()


def build_config(args) -> FedQConfig:
    config = FedQConfig.from_json(args.config) if args.config else FedQConfig()
    config.agent.n_actions = GridWorld.n_actions
    config.federation.auto_federate = True
    if args.clients is not None:
        config.training.n_clients = args.clients
    if args.episodes is not None:
        config.training.n_episodes = args.episodes
    if args.interval is not None:
        config.federation.federation_interval = args.interval
    if args.strategy is not None:
        config.federation.strategy = args.strategy
    if args.seed is not None:
        config.training.seed = args.seed
    if args.output_dir is not None:
        config.training.output_dir = args.output_dir
    return config


def main():
    args = parse_args()
    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )
    config = build_config(args)

    print("=" * 60)
    print("FedQ: Federated Tabular Q-Learning")
    print("=" * 60)
    print(f"  Clients:  {config.training.n_clients}")
    print(f"  Episodes: {config.training.n_episodes}")
    print(f"  Grid:     {args.size}x{args.size}")
    print(f"  Strategy: {STRATEGY_LABELS[config.federation.strategy]}")
    print()

    trainer = FederatedTrainer(
        lambda: GridWorld(size=args.size, max_steps=config.training.max_steps),
        config,
        weighted=args.weighted,
    )
    result = trainer.train(verbose=not args.quiet)

    print()
    print(f"Rounds:    {len(result.rounds)}")
    print(f"States:    {len(result.global_model)}")
    print(f"Converged: {result.converged}")
    print(f"Runtime:   {result.runtime_seconds:.2f}s")
    if result.evaluation is not None:
        print(f"Greedy reward: {result.evaluation.avg_reward:.2f}  "
              f"consistency: {result.evaluation.consistency:.2f}")

    output_dir = Path(config.training.output_dir)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    model_path = output_dir / f"global_model_{timestamp}.json"
    if save_model(model_path, result.global_model, metadata={
        "clients": config.training.n_clients,
        "episodes": result.n_episodes,
        "rounds": len(result.rounds),
    }):
        config.to_json(output_dir / f"config_{timestamp}.json")
        print(f"Saved global model to {model_path}")
    else:
        print("Could not save global model")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
