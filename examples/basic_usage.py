"""
Basic Usage Example for the DOMINOES Solver.

This example demonstrates how to:
1. Generate a synthetic data set
2. Create a simulation configuration
3. Run the solver
4. Examine the assigned start times
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from data_generator import generate_data_set
from dominoes import (
    OptimizerConfig,
    SimulationConfig,
    Solver,
    TimeInterval,
    calculate_schedule_statistics,
)


def main():
    print("=" * 60)
    print("DOMINOES Basic Usage Example")
    print("=" * 60)

    # Step 1: Generate data
    print("\n1. Generating a data set...")
    directory = Path("example_data")
    generate_data_set(directory, n_households=4, seed=42)

    # Step 2: Create configuration
    print("\n2. Creating simulation configuration...")
    config = SimulationConfig(
        production_file="production.csv",
        consumers_file="consumers.csv",
        directory=str(directory),
        solar_day=TimeInterval(1770876000, 1770919200),  # 06:00 to 18:00 UTC
        seed=42,
        enable_logging=True,
        optimizer=OptimizerConfig(max_evaluations=500, max_time=60.0),
    )
    print(f"   Optimizer: {config.optimizer.method}, "
          f"{config.optimizer.max_evaluations} evaluations max")

    # Step 3: Run the solver
    print("\n3. Assigning start times...")
    with Solver(config) as solver:
        windows = {agent.consumer_id: agent.start_interval for agent in solver.consumers}
        result = solver.assign_start_times()

    # Step 4: Examine results
    print("\n4. Schedule Results:")
    for assignment in result.assignments:
        window = windows[assignment.consumer_id]
        print(f"   {assignment.consumer_id:<25} {assignment.start_time} "
              f"(window {window.lower} - {window.upper})")

    stats = calculate_schedule_statistics(result, windows)
    print("\n5. Statistics:")
    print(f"   Grid energy: {stats['total_grid_energy']:.3f}")
    print(f"   Mean delay: {stats['mean_delay'] / 3600:.2f} h")
    print(f"   Starts at window bounds: {stats['starts_at_bounds']}")
    print(f"   Status: {stats['status']} after {stats['evaluations']} evaluations")
    print(f"\n   Result written to {config.result_path}")


if __name__ == "__main__":
    main()
