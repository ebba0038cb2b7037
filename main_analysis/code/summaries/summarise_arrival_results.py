"""
MAIN ANALYSIS: SUMMARISE ARRIVAL RESULTS
---------------------------------------

Purpose
-------
Post-processes the arrival simulation outputs of every scenario into
cumulative arrival-probability curves and a table of milestones (median and
95th percentile arrival dates, predicted worldwide cases at the 95th
percentile, share of runs without arrival, most common origin).

These tables are the inputs for downstream plotting and reporting.

Inputs
------
Simulation outputs produced by:
    main_analysis/code/simulations/run_sims.py

This script reads every arrivals_*.joblib in:
    main_analysis/Outputs/simulations/

Outputs
-------
Writes CSV files to:
    main_analysis/Outputs/results_summaries/
- arrival_curves.csv     : scenario, date, probability
- arrival_milestones.csv : one row per scenario

Notes
-----
This is a post-processing script; it does not run simulations.
"""

import sys
from pathlib import Path
THIS_FILE = Path(__file__).resolve()
PROJECT_ROOT = THIS_FILE.parents[3]  # main_analysis/code/summaries/ -> repo root
sys.path.insert(0, str(PROJECT_ROOT))

# USER: if auto-detection fails:
# PROJECT_ROOT = Path(r"/path/to/your/repository")

import pandas as pd
from joblib import load
from simulation import cumulative_arrival_probability, arrival_summary
from CONSTANT import UNKNOWN_ORIGIN

cwd = PROJECT_ROOT / "main_analysis" / "Outputs"
dir_sims = cwd / "simulations"
dir_data_output = cwd / "results_summaries"
dir_data_output.mkdir(parents=True, exist_ok=True)

"""Read simulations ========================================="""
filenames = sorted(f for f in dir_sims.iterdir() if f.name.startswith('arrivals_') and f.suffix == '.joblib')
print([f.name for f in filenames], flush=True)

curves = []
milestones = []
for f in filenames:
    scenario_name = f.stem[len('arrivals_'):]
    result = load(f)
    distribution = result['distribution']

    curve = cumulative_arrival_probability(distribution)
    curve.insert(0, 'scenario', scenario_name)
    curves.append(curve)

    summary = arrival_summary(distribution, result['scenario'])
    origins = summary.pop('origin_counts')
    arrived_origins = {k: v for k, v in origins.items() if k != UNKNOWN_ORIGIN}
    summary['main_origin'] = max(arrived_origins, key=arrived_origins.get) if arrived_origins else None
    summary['runs'] = distribution.runs
    milestones.append({'scenario': scenario_name, **summary})

"""Write summaries ========================================="""
if curves:
    pd.concat(curves, ignore_index=True).to_csv(dir_data_output / "arrival_curves.csv", index=False)
pd.DataFrame(milestones).to_csv(dir_data_output / "arrival_milestones.csv", index=False)
print(f'wrote {len(milestones)} scenario summaries to {dir_data_output}', flush=True)
