"""
Scenario Comparison Example for DOMINOES.

This example compares the grid energy of the schedules found with different
interpolation methods for the consumption profiles and different optimizers.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from data_generator import generate_data_set
from dominoes import (
    InterpolationType,
    OptimizerConfig,
    SimulationConfig,
    Solver,
)


def run_scenario(directory: Path, kind: InterpolationType, method: str):
    """Run the solver with one interpolation type and optimizer method."""
    config = SimulationConfig(
        production_file="production.csv",
        consumers_file="consumers.csv",
        result_file=f"AST_{kind.value}_{method}.csv",
        directory=str(directory),
        interpolation_type=kind,
        seed=42,
        optimizer=OptimizerConfig(method=method, max_evaluations=300),
    )
    with Solver(config) as solver:
        result = solver.assign_start_times()

    return {
        'interpolation': kind.value,
        'method': method,
        'grid_energy': result.total_grid_energy,
        'status': result.status,
        'evaluations': result.evaluations,
    }


def main():
    print("=" * 70)
    print("DOMINOES Scenario Comparison")
    print("=" * 70)

    directory = Path("comparison_data")
    generate_data_set(directory, n_households=6, seed=7)

    results = []
    for kind in (InterpolationType.LINEAR, InterpolationType.STEFFEN,
                 InterpolationType.CUBIC_SPLINE):
        for method in ("Powell", "Nelder-Mead"):
            print(f"\nRunning {kind.value} / {method}...")
            results.append(run_scenario(directory, kind, method))

    print("\n" + "=" * 70)
    print(f"{'Interpolation':<15} {'Method':<12} {'Grid energy':>12} "
          f"{'Status':>14} {'Evals':>6}")
    print("-" * 70)
    for r in results:
        print(f"{r['interpolation']:<15} {r['method']:<12} {r['grid_energy']:>12.3f} "
              f"{r['status']:>14} {r['evaluations']:>6}")


if __name__ == "__main__":
    main()
