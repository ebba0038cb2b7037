"""
MAIN ANALYSIS: RUN ARRIVAL SIMULATIONS
-------------------------------------

Purpose
-------
Fits a worldwide growth curve to the confirmed-case series, turns it into
active cases per simulated day and runs stochastic simulations of infected
visitors arriving at the destination. The resulting arrival distributions are
later summarised by main_analysis/code/summaries/summarise_arrival_results.py.

Inputs
------
Pre-cleaned CSV tables in data/:
- country_population.csv                    : country, population, urban_fraction
- galapagos_visitation_2017.csv             : country, annual_visitor_projection
                                              (includes one 'Other' row)
- galapagos_monthly_visitation_2015_2017.csv: month, visitor_count
- confirmed_cases_by_country.csv            : country, cases
- cumulative_cases.csv                      : date, cumulative_cases

Command-line arguments
----------------------
MODEL_KIND_JA   : 'exp', 'log' or 'lin'
ASYMPTOTE_JA    : logistic asymptote, or 'auto' to fit it
NO_CHINA_JA     : 1 to stop all visitors from China, else 0
REDUCE_VISIT_JA : 1 to halve all visitation, else 0
URBAN_JA        : 1 to compute prevalence over the urban population, else 0

Example:
    python run_sims.py log auto 1 0 1

Outputs
-------
- main_analysis/Outputs/simulations/ (joblib files containing ArrivalDistribution
  and Scenario objects)

Notes
-----
The simulation starts on the last day of the case series.
"""

import os
os.environ["OMP_NUM_THREADS"] = "1"  # limit each process to 1 thread
import sys
from pathlib import Path
# --- PATH SETUP: make local modules importable ---
THIS_FILE = Path(__file__).resolve()
PROJECT_ROOT = THIS_FILE.parents[3]  # main_analysis/code/simulations/run_sims.py -> repo root
sys.path.insert(0, str(PROJECT_ROOT))

# USER: if auto-detection fails, uncomment and set manually:
# PROJECT_ROOT = Path(r"/path/to/your/repository")

MODEL_KIND_JA = sys.argv[1]
ASYMPTOTE_JA = sys.argv[2]
NO_CHINA_JA = sys.argv[3] == '1'
REDUCE_VISIT_JA = sys.argv[4] == '1'
URBAN_JA = sys.argv[5] == '1'

import datetime
import pandas as pd
from joblib import dump
from data_clean import load_case_series, build_country_profiles, monthly_visitation_profile
from growth import fit_growth_curve, scenario_active_cases
from simulation import Scenario, PolicyOverrides, run_simulations, arrival_summary
from CONSTANT import LOOKBACK_DAYS, NUM_SIMULATIONS, DAY_HORIZON, MASTER_SEED

if __name__ == '__main__':

    dir_data = PROJECT_ROOT / "data"
    cwd = PROJECT_ROOT / "main_analysis" / "Outputs" / "simulations"
    cwd.mkdir(parents=True, exist_ok=True)

    asymptote = ASYMPTOTE_JA if ASYMPTOTE_JA == 'auto' else float(ASYMPTOTE_JA)
    scenario_name = f'{MODEL_KIND_JA}_K{ASYMPTOTE_JA}_nochina{int(NO_CHINA_JA)}_reduce{int(REDUCE_VISIT_JA)}_urban{int(URBAN_JA)}'
    filename_simdata = f'arrivals_{scenario_name}.joblib'

    ### read data
    series = load_case_series(pd.read_csv(dir_data / "cumulative_cases.csv"))
    profiles = build_country_profiles(population=pd.read_csv(dir_data / "country_population.csv"),
                                      visitation=pd.read_csv(dir_data / "galapagos_visitation_2017.csv"),
                                      case_counts=pd.read_csv(dir_data / "confirmed_cases_by_country.csv"),
                                      total_cases=series.cumulative_cases[-1])
    monthly_profile = monthly_visitation_profile(pd.read_csv(dir_data / "galapagos_monthly_visitation_2015_2017.csv"))

    ### fit the growth curve; a ConvergenceError stops the scenario
    params = fit_growth_curve(series, model_kind=MODEL_KIND_JA, asymptote=asymptote)
    print(f'scenario: {scenario_name}, fitted {params}', flush=True)

    sim_start = series.end_date
    active, cumulative = scenario_active_cases(params, series.start_date, sim_start, DAY_HORIZON, LOOKBACK_DAYS)
    scenario = Scenario(active_cases=active, start_date=sim_start, day_horizon=DAY_HORIZON,
                        profiles=profiles, monthly_profile=monthly_profile,
                        overrides=PolicyOverrides(no_china=NO_CHINA_JA, reduce_visit=REDUCE_VISIT_JA),
                        use_urban=URBAN_JA, cumulative_cases=cumulative)

    print(f'num of sims:{NUM_SIMULATIONS}, horizon: {DAY_HORIZON} days from {sim_start}, lookback: {LOOKBACK_DAYS} days', flush=True)
    ### parallel processing with timing
    start_time = datetime.datetime.now()
    print("Start time:", start_time, flush=True)

    ### parallel processing ======================================================================
    distribution = run_simulations(scenario, runs=NUM_SIMULATIONS, seed=MASTER_SEED, n_jobs=os.cpu_count() or 1)
    #=============================================================================================

    end_time = datetime.datetime.now()
    print("End time:", end_time, flush=True)
    print("Time taken for simulation:", end_time - start_time, flush=True)

    summary = arrival_summary(distribution, scenario)
    print(f"median arrival: {summary['median_date']}, 95th percentile: {summary['p95_date']}, "
          f"cases at 95th percentile: {summary['cases_at_p95']}, "
          f"not arrived: {summary['not_arrived_percent']:.1f}%", flush=True)

    ### write data
    dump({'scenario': scenario, 'params': params, 'distribution': distribution}, cwd / filename_simdata)
