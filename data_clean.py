"""
DATA MODULE: Input contracts
============================

This file turns the pre-cleaned input tables into the value objects used by the
growth and simulation modules.

It contains functions that:
- Build and validate the cumulative confirmed-case time series
- Join population, visitation and case tables into per-country profiles,
  including the remainder bucket that stands for every unlisted country
- Average historical monthly visitation into a monthly share profile

Key functions:
--------------
- cumulative_from_daily(...)
    Sums daily confirmed counts into a cumulative series.

- load_case_series(...)
    Validates a (date, cumulative_cases) table into a CaseTimeSeries.

- build_country_profiles(...)
    Produces the canonical, ordered tuple of CountryProfile records.

- monthly_visitation_profile(...)
    Produces the MonthlyVisitationProfile from visitation history.

This module does NOT read files. Scripts in main_analysis/code/ read the CSV
tables with pandas and pass the frames in.

"""

from dataclasses import dataclass
import datetime

import numpy as np
import pandas as pd

from CONSTANT import (CASE_BASELINE, CASE_SHARE_OFFSET, REMAINDER_COUNTRY,
                      WORLD_POPULATION, WORLD_URBAN_POPULATION)
from errors import DataShapeError


@dataclass(frozen=True)
class CaseTimeSeries:
    """Cumulative cases, one value per day starting at day_index 1 on start_date."""
    start_date: datetime.date
    cumulative_cases: np.ndarray

    @property
    def days(self):
        return np.arange(1, len(self.cumulative_cases) + 1)

    @property
    def end_date(self):
        return self.start_date + datetime.timedelta(days=len(self.cumulative_cases) - 1)

    def __len__(self):
        return len(self.cumulative_cases)


@dataclass(frozen=True)
class CountryProfile:
    name: str
    population: int
    urban_population_fraction: float
    baseline_case_share: float
    gal_visitors_per_year: int
    is_remainder: bool = False

    @property
    def urban_population(self):
        return self.population * self.urban_population_fraction


@dataclass(frozen=True)
class MonthlyVisitationProfile:
    """Share of the yearly visitors arriving in each month (index 0 = January)."""
    monthly_share: tuple

    def share(self, month):
        if not 1 <= month <= 12:
            raise ValueError(f'month must be in 1..12, got {month}')
        return self.monthly_share[month - 1]


def _require_columns(frame, columns, table):
    missing = [c for c in columns if c not in frame.columns]
    if missing:
        raise DataShapeError(f'{table} table is missing column(s): {", ".join(missing)}')


#  ================== Case time series ==================
def cumulative_from_daily(frame, baseline=CASE_BASELINE):
    """
    Build a cumulative (date, cumulative_cases) table from daily new counts.
    Inputs:
        - frame: rows of {date, cases} and optionally {type}. Only rows with
          type == 'confirmed' are kept when a type column is present.
        - baseline: cases already confirmed before the first row's date.
    Output: DataFrame with columns date, cumulative_cases.
    """
    _require_columns(frame, ['date', 'cases'], 'daily case')
    daily = frame
    if 'type' in frame.columns:
        daily = frame[frame['type'] == 'confirmed']
    daily = (daily.assign(date=pd.to_datetime(daily['date']))
                  .groupby('date', as_index=False)['cases'].sum()
                  .sort_values('date'))
    daily['cumulative_cases'] = daily['cases'].cumsum() + baseline
    return daily[['date', 'cumulative_cases']].reset_index(drop=True)


def load_case_series(frame):
    """
    Validate a cumulative confirmed-case table and convert it to a CaseTimeSeries.
    Rows must be chronological, one per day, with no gaps and no negative or
    missing counts.
    """
    _require_columns(frame, ['date', 'cumulative_cases'], 'case')
    if len(frame) == 0:
        raise DataShapeError('case table is empty')
    try:
        dates = pd.to_datetime(frame['date'])
    except (ValueError, TypeError) as err:
        raise DataShapeError(f'case table has unparseable dates: {err}') from err

    cases = pd.to_numeric(frame['cumulative_cases'], errors='coerce')
    if cases.isna().any():
        raise DataShapeError('case table has missing or non-numeric cumulative_cases')
    if (cases < 0).any():
        raise DataShapeError('case table has negative cumulative_cases')

    steps = dates.diff().dropna().dt.days
    if (steps <= 0).any():
        raise DataShapeError('case table dates must be strictly chronological')
    if (steps > 1).any():
        first_gap = dates.iloc[int(np.argmax(steps.to_numpy() > 1))]
        raise DataShapeError(f'case table has a gap after {first_gap.date()}')

    return CaseTimeSeries(start_date=dates.iloc[0].date(),
                          cumulative_cases=cases.to_numpy(dtype=float))


#  ================== Country profiles ==================
def build_country_profiles(population, visitation, case_counts, total_cases,
                           remainder_country=REMAINDER_COUNTRY,
                           world_population=WORLD_POPULATION,
                           world_urban_population=WORLD_URBAN_POPULATION,
                           case_offset=CASE_SHARE_OFFSET):
    """
    Join the input tables into per-country profiles.
    Inputs:
        - population: rows of {country, population, urban_fraction}
        - visitation: rows of {country, annual_visitor_projection}. Row order is
          the canonical country order. Must contain the remainder_country row.
        - case_counts: rows of {country, cases}, current confirmed cases.
          Countries without a row count as 0.
        - total_cases: confirmed cases worldwide. Whatever the listed countries
          do not account for is assigned to the remainder bucket.
        - case_offset: added to every country before normalising the shares.
    Output: tuple of CountryProfile in visitation-table order.
    """
    _require_columns(population, ['country', 'population', 'urban_fraction'], 'population')
    _require_columns(visitation, ['country', 'annual_visitor_projection'], 'visitation')
    _require_columns(case_counts, ['country', 'cases'], 'case count')

    if visitation['country'].duplicated().any():
        raise DataShapeError('visitation table lists a country more than once')
    if remainder_country not in set(visitation['country']):
        raise DataShapeError(f'visitation table has no {remainder_country!r} row')

    if population['country'].duplicated().any():
        raise DataShapeError('population table lists a country more than once')

    listed = visitation[visitation['country'] != remainder_country]
    data = listed.merge(population, on='country', how='left')
    missing = data.loc[data['population'].isna(), 'country'].tolist()
    if missing:
        raise DataShapeError(f'no population row for: {", ".join(missing)}')
    if ((data['urban_fraction'] < 0) | (data['urban_fraction'] > 1)).any():
        raise DataShapeError('urban_fraction must lie in [0, 1]')

    cases = case_counts.groupby('country')['cases'].sum()
    data['cases'] = data['country'].map(cases).fillna(0).astype(float)
    data['urban_pop'] = data['population'] * data['urban_fraction']

    ### the remainder bucket takes whatever the listed countries leave over
    remaining_pop = world_population - data['population'].sum()
    remaining_urban_pop = world_urban_population - data['urban_pop'].sum()
    remaining_cases = max(total_cases - data['cases'].sum(), 0)

    cases_by_country = dict(zip(data['country'], data['cases']))
    cases_by_country[remainder_country] = remaining_cases
    adjusted = {c: n + case_offset for c, n in cases_by_country.items()}
    total_adjusted = sum(adjusted.values())

    rows = data.set_index('country')
    profiles = []
    for _, row in visitation.iterrows():
        name = row['country']
        share = adjusted[name] / total_adjusted
        visitors = int(row['annual_visitor_projection'])
        if name == remainder_country:
            urban_fraction = remaining_urban_pop / remaining_pop if remaining_pop > 0 else 0.0
            profiles.append(CountryProfile(name, int(remaining_pop), float(urban_fraction),
                                           share, visitors, is_remainder=True))
        else:
            profiles.append(CountryProfile(name, int(rows.at[name, 'population']),
                                           float(rows.at[name, 'urban_fraction']),
                                           share, visitors))
    return tuple(profiles)


#  ================== Monthly visitation ==================
def monthly_visitation_profile(history):
    """
    Average visitor counts per month over the historical years and normalise
    them to shares of the year.
    Inputs:
        - history: rows of {month (1-12), visitor_count}, one row per month per year.
    """
    _require_columns(history, ['month', 'visitor_count'], 'monthly visitation')
    mean_num = history.groupby('month')['visitor_count'].mean()
    missing = sorted(set(range(1, 13)) - set(mean_num.index))
    if missing or len(mean_num) != 12:
        raise DataShapeError(f'monthly visitation history must cover months 1-12, missing {missing}')
    if (mean_num < 0).any() or mean_num.sum() <= 0:
        raise DataShapeError('monthly visitation counts must be non-negative with a positive total')
    monthly_prop = mean_num / mean_num.sum()
    return MonthlyVisitationProfile(tuple(float(monthly_prop[m]) for m in range(1, 13)))
