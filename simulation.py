"""
SIMULATION MODULE: Infected visitor arrival model
=================================================

This file defines the core stochastic arrival model used throughout the project.

It contains functions that:
- Distribute the worldwide active cases across countries
- Turn country allocations into infection prevalence
- Compute the expected daily number of visitors from each country
- Sample, day by day, whether any arriving visitor is infected
- Repeat that over many independent runs and summarise the arrival times

Key functions:
--------------
- allocate_cases(...), prevalence(...)
    Per-country active cases and prevalence.

- daily_visitors(...)
    Expected visitors per country for a calendar month, with policy overrides.

- sample_arrival_day(...)
    One simulated day: the country of the first infected visitor, or None.

- run_simulations(...)
    Many independent runs, in parallel if requested, returning an
    ArrivalDistribution.

- cumulative_arrival_probability(...), percentile_milestone(...), arrival_summary(...)
    Aggregate statistics of an ArrivalDistribution.

This module does NOT read or write files.

Instead, it is imported by:
- main_analysis scripts (running and summarising arrival simulations)

"""

from dataclasses import dataclass, field
from multiprocessing import Pool
import datetime

import numpy as np
import pandas as pd
from tqdm import tqdm

from CONSTANT import (DAYS_IN_MONTH, EXCLUDED_COUNTRY, MASTER_SEED, NOT_ARRIVED, NUM_SIMULATIONS,
                      REDUCE_VISIT_FACTOR, UNKNOWN_ORIGIN)
from errors import DataShapeError, InvalidProfileError


def _ceil(values):
    ### round away float noise first so 0.3 * 100 stays 30
    return np.ceil(np.round(values, 9)).astype(np.int64)


#  ================== Country allocation ==================
def _allocate(total_active, shares):
    if total_active < 0:    # extrapolation artefact
        total_active = 1
    return _ceil(shares * total_active)


def allocate_cases(total_active, profiles):
    """
    Distribute the worldwide active cases across countries.
    Inputs:
        - total_active: worldwide active cases on a day (negative values are clamped to 1)
        - profiles: sequence of CountryProfile, shares summing to 1
    Output: {country: ceiling(total_active * baseline_case_share)}
    """
    shares = np.array([p.baseline_case_share for p in profiles], dtype=float)
    return dict(zip([p.name for p in profiles], _allocate(total_active, shares).tolist()))


def population_at_risk(profile, use_urban=False):
    denominator = profile.urban_population if use_urban else profile.population
    if not denominator > 0:
        raise InvalidProfileError(profile.name)
    return denominator


def prevalence(allocation, profile, use_urban=False):
    """ Fraction of the country's (urban or total) population currently infected. """
    return allocation[profile.name] / population_at_risk(profile, use_urban)


#  ================== Visitors ==================
@dataclass(frozen=True)
class PolicyOverrides:
    """
    - no_china: no visitors from excluded_country
    - reduce_visit: every country sends REDUCE_VISIT_FACTOR of its visitors
    """
    no_china: bool = False
    reduce_visit: bool = False
    excluded_country: str = EXCLUDED_COUNTRY


def daily_share(month, monthly_profile):
    return monthly_profile.share(month) / DAYS_IN_MONTH[month - 1]


def _daily_visitors(month, profiles, monthly_profile, overrides):
    yearly = np.array([p.gal_visitors_per_year for p in profiles], dtype=float)
    visitors = _ceil(daily_share(month, monthly_profile) * yearly)
    if overrides.no_china:
        visitors[[p.name == overrides.excluded_country for p in profiles]] = 0
    if overrides.reduce_visit:
        visitors = np.rint(visitors * REDUCE_VISIT_FACTOR).astype(np.int64)
    return visitors


def daily_visitors(month, profiles, monthly_profile, overrides=None):
    """
    Expected number of visitors arriving per day from each country.
    Inputs:
        - month: calendar month, 1-12
        - profiles: sequence of CountryProfile
        - monthly_profile: MonthlyVisitationProfile
        - overrides: PolicyOverrides, applied after the base computation
    Output: {country: visitors}
    """
    overrides = overrides or PolicyOverrides()
    visitors = _daily_visitors(month, profiles, monthly_profile, overrides)
    return dict(zip([p.name for p in profiles], visitors.tolist()))


def day_to_date(start_date, day_index):
    return start_date + datetime.timedelta(days=int(day_index))


#  ================== Scenario ==================
@dataclass(frozen=True)
class Scenario:
    """
    Everything one batch of runs needs.
        - active_cases: worldwide active cases, element k is simulated day k+1
        - start_date: simulated day d falls on start_date + d days
        - cumulative_cases: optional cumulative prediction aligned like
          active_cases, only used for reporting
    """
    active_cases: np.ndarray
    start_date: datetime.date
    day_horizon: int
    profiles: tuple
    monthly_profile: object
    overrides: PolicyOverrides = field(default_factory=PolicyOverrides)
    use_urban: bool = False
    cumulative_cases: np.ndarray = None

    def __post_init__(self):
        if self.day_horizon < 1:
            raise ValueError('day_horizon must be >= 1')
        if len(self.active_cases) < self.day_horizon:
            raise DataShapeError(f'{len(self.active_cases)} days of active cases for a '
                                 f'{self.day_horizon} day horizon')
        names = [p.name for p in self.profiles]
        if len(set(names)) != len(names):
            raise DataShapeError('country names must be unique')


@dataclass(frozen=True)
class DailyExposure:
    """
    Per-day, per-country sampling inputs for days first_day..first_day + len - 1.
    Columns follow the canonical country order, minus excluded countries.
    """
    countries: tuple
    prevalence: np.ndarray     # days x countries
    visitors: np.ndarray       # days x countries
    first_day: int = 1
    excluded: tuple = ()

    @property
    def last_day(self):
        return self.first_day + self.prevalence.shape[0] - 1

    def row(self, day_index):
        if not self.first_day <= day_index <= self.last_day:
            raise IndexError(f'day {day_index} outside {self.first_day}..{self.last_day}')
        return day_index - self.first_day


def build_daily_exposure(scenario, first_day=1, last_day=None, verbose=True):
    """
    Precompute prevalence and visitors for each simulated day and country.
    Countries without a usable population denominator are excluded from
    sampling (and reported when verbose) rather than failing the batch.
    """
    last_day = scenario.day_horizon if last_day is None else last_day
    kept, excluded = [], []
    for p in scenario.profiles:
        try:
            population_at_risk(p, scenario.use_urban)
            kept.append(p)
        except InvalidProfileError as err:
            excluded.append(p.name)
            if verbose:
                print(f'excluding {p.name} from sampling: {err}', flush=True)

    shares = np.array([p.baseline_case_share for p in kept], dtype=float)
    denominators = np.array([population_at_risk(p, scenario.use_urban) for p in kept], dtype=float)
    visitors_by_month = {}

    days = range(first_day, last_day + 1)
    prev = np.zeros((len(days), len(kept)))
    visitors = np.zeros((len(days), len(kept)), dtype=np.int64)
    for i, day in enumerate(days):
        prev[i] = _allocate(scenario.active_cases[day - 1], shares) / denominators
        month = day_to_date(scenario.start_date, day).month
        if month not in visitors_by_month:
            visitors_by_month[month] = _daily_visitors(month, kept, scenario.monthly_profile, scenario.overrides)
        visitors[i] = visitors_by_month[month]

    return DailyExposure(countries=tuple(p.name for p in kept), prevalence=prev, visitors=visitors,
                         first_day=first_day, excluded=tuple(excluded))


#  ================== Arrival sampling ==================
def first_infected_country(countries, prevalences, visitors, rng):
    """
    Check countries in order; the first one with an infected visitor wins and
    the rest are not sampled.
    Inputs:
        - countries, prevalences, visitors: aligned sequences in canonical order
        - rng: numpy Generator
    Output: country name, or None if no visitor is infected.
    """
    for country, prev, n in zip(countries, prevalences, visitors):
        if n <= 0 or not 0 < prev <= 1:
            continue
        if np.any(rng.random(n) <= prev):
            return country
    return None


def sample_arrival_day(day_index, scenario, rng, exposure=None):
    """
    Sample one simulated day.
    Inputs:
        - day_index: simulated day, 1..scenario.day_horizon
        - scenario: Scenario
        - rng: numpy Generator
        - exposure: precomputed DailyExposure covering day_index (built on the fly if None)
    Output: country of the first infected visitor, or None.
    """
    if exposure is None:
        exposure = build_daily_exposure(scenario, first_day=day_index, last_day=day_index, verbose=False)
    row = exposure.row(day_index)
    return first_infected_country(exposure.countries, exposure.prevalence[row], exposure.visitors[row], rng)


def run_single_trial(exposure, seed):
    """ Days until the first infected visitor arrives: (arrival_day, origin) or (NOT_ARRIVED, UNKNOWN_ORIGIN). """
    rng = np.random.default_rng(seed)
    for day in range(exposure.first_day, exposure.last_day + 1):
        row = day - exposure.first_day
        country = first_infected_country(exposure.countries, exposure.prevalence[row], exposure.visitors[row], rng)
        if country is not None:
            return day, country
    return NOT_ARRIVED, UNKNOWN_ORIGIN


#  ================== Arrival distribution ==================
@dataclass(frozen=True)
class ArrivalDistribution:
    arrival_day: np.ndarray      # NOT_ARRIVED for runs without an arrival
    origin_country: tuple
    start_date: datetime.date
    day_horizon: int

    @property
    def runs(self):
        return len(self.arrival_day)

    @property
    def arrived(self):
        return self.arrival_day != NOT_ARRIVED

    def to_frame(self):
        frame = pd.DataFrame({'arrival_day': self.arrival_day, 'origin_country': list(self.origin_country)})
        frame['arrival_date'] = [day_to_date(self.start_date, d) if d != NOT_ARRIVED else None
                                 for d in self.arrival_day]
        return frame


def trial_seeds(runs, seed=MASTER_SEED):
    """ One independent seed per run, drawn from the master seed. """
    rng = np.random.default_rng(seed)
    return rng.choice(2**31 - 1, size=runs, replace=False).tolist()


def run_simulations(scenario, runs=NUM_SIMULATIONS, seed=MASTER_SEED, n_jobs=1, progress=False):
    """
    Run independent arrival trials for a scenario.
    Inputs:
        - scenario: Scenario
        - runs: number of trials
        - seed: master seed; the same seed gives the same distribution for any n_jobs
        - n_jobs: worker processes (1 runs in this process)
        - progress: show a progress bar (serial runs only)
    Output: ArrivalDistribution
    """
    if runs < 1:
        raise ValueError('runs must be >= 1')
    exposure = build_daily_exposure(scenario)
    seeds = trial_seeds(runs, seed)

    if n_jobs > 1:
        params_list = [(exposure, s) for s in seeds]
        with Pool(n_jobs) as p:
            result = p.starmap(run_single_trial, params_list)
    else:
        result = [run_single_trial(exposure, s) for s in tqdm(seeds, disable=not progress)]

    arrival_day = np.array([r[0] for r in result], dtype=np.int64)
    return ArrivalDistribution(arrival_day=arrival_day, origin_country=tuple(r[1] for r in result),
                               start_date=scenario.start_date, day_horizon=scenario.day_horizon)


def cumulative_arrival_probability(distribution):
    """
    Percentage of runs with an arrival on or before each arrival date.
    Runs without an arrival count in the denominator only.
    Output: DataFrame with columns date, probability (0-100), chronological.
    """
    days = pd.Series(distribution.arrival_day[distribution.arrived])
    counts = days.value_counts().sort_index()
    return pd.DataFrame({
        'date': [day_to_date(distribution.start_date, d) for d in counts.index],
        'probability': counts.cumsum().to_numpy() / distribution.runs * 100,
    })


def percentile_milestone(distribution, p):
    """ First date at which the cumulative arrival probability exceeds p (0-100), else None. """
    curve = cumulative_arrival_probability(distribution)
    reached = curve[curve['probability'] > p]
    if reached.empty:
        return None
    return reached['date'].iloc[0]


def arrival_summary(distribution, scenario=None):
    """
    Milestones of a batch: median and 95th percentile arrival dates, predicted
    cumulative worldwide cases on the 95th percentile date (needs a scenario
    with cumulative_cases), share of runs without arrival, runs per origin.
    """
    median_date = percentile_milestone(distribution, 50)
    p95_date = percentile_milestone(distribution, 95)

    cases_at_p95 = None
    if p95_date is not None and scenario is not None and scenario.cumulative_cases is not None:
        day = (p95_date - scenario.start_date).days
        cases_at_p95 = float(scenario.cumulative_cases[day - 1])

    origins = pd.Series(distribution.origin_country).value_counts()
    return {
        'median_date': median_date,
        'p95_date': p95_date,
        'cases_at_p95': cases_at_p95,
        'not_arrived_percent': float((~distribution.arrived).mean() * 100),
        'origin_counts': origins.to_dict(),
    }
