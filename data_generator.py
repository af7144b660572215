import pandas as pd
import numpy as np
from pathlib import Path

def generate_data_set(directory="data", day="2026-02-12", n_households=6,
                      pv_peak=4.0, seed=42):
    """
    Generates a synthetic data set for the DOMINOES solver.
    :param directory: Output directory for the CSV files
    :param day: Simulated day (UTC)
    :param n_households: Number of households, each with one or two loads
    :param pv_peak: Peak PV power in kW
    :param seed: Seed for the random start windows
    """
    rng = np.random.default_rng(seed)
    out = Path(directory)
    out.mkdir(parents=True, exist_ok=True)

    # 1. PV production (bell curve between 06:00 and 18:00, 15-min steps)
    time_steps = pd.date_range(f"{day} 00:00", periods=97, freq='15min', tz='UTC')
    posix = np.asarray((time_steps - pd.Timestamp("1970-01-01", tz='UTC')) // pd.Timedelta(seconds=1), dtype=np.int64)
    hours = np.asarray(time_steps.hour + time_steps.minute / 60)
    power = pv_peak * np.maximum(0, np.sin(np.pi * (hours - 6) / 12))

    # Cumulative kWh: trapezoids over the 15-min intervals
    energy = np.concatenate(([0.0], np.cumsum((power[1:] + power[:-1]) / 2 * 0.25)))
    pd.DataFrame({'time': posix, 'energy': energy}).to_csv(
        out / "production.csv", header=False, index=False)

    # 2. Appliance profiles (cumulative kWh relative to the start, 5-min steps)
    appliances = {
        'washing_machine': {'duration_h': 2.0, 'power': [2.0, 0.3, 0.3, 0.5]},
        'dishwasher': {'duration_h': 1.5, 'power': [1.8, 0.1, 1.8]},
        'ev_charger': {'duration_h': 3.0, 'power': [3.7]},
    }

    for name, props in appliances.items():
        steps = int(props['duration_h'] * 12)
        phases = np.array_split(np.arange(steps), len(props['power']))
        step_power = np.concatenate([np.full(len(p), kw) for p, kw in zip(phases, props['power'])])
        cumulative = np.concatenate(([0.0], np.cumsum(step_power / 12)))
        relative = np.arange(steps + 1) * 300
        pd.DataFrame({'time': relative, 'energy': cumulative}).to_csv(
            out / f"{name}.csv", header=False, index=False)

    # 3. Consumer events: start windows opening in the morning
    rows = []
    names = list(appliances)
    for household in range(n_households):
        for k in range(1 + household % 2):
            appliance = names[(household + k) % len(names)]
            earliest = posix[0] + int(rng.integers(6, 11)) * 3600
            latest = earliest + int(rng.integers(3, 8)) * 3600
            rows.append({
                'id': f'H{household}_{appliance}',
                'earliest': earliest,
                'latest': latest,
                'file': f'{appliance}.csv',
            })

    pd.DataFrame(rows).to_csv(out / "consumers.csv", header=False, index=False)

    print(f"Data set with {len(rows)} consumers generated in {out}")

if __name__ == "__main__":
    generate_data_set()
