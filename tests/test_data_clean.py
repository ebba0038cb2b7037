"""Tests for data_clean: input tables to validated value objects."""

import datetime

import numpy as np
import pandas as pd
import pytest

from data_clean import (
    build_country_profiles,
    cumulative_from_daily,
    load_case_series,
    monthly_visitation_profile,
)
from errors import DataShapeError


# ═══════════════════════════════════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════════════════════════════════

@pytest.fixture
def population() -> pd.DataFrame:
    return pd.DataFrame({
        'country': ['China', 'USA', 'Ecuador'],
        'population': [1_400_000_000, 330_000_000, 17_000_000],
        'urban_fraction': [0.6, 0.8, 0.64],
    })


@pytest.fixture
def visitation() -> pd.DataFrame:
    return pd.DataFrame({
        'country': ['Ecuador', 'USA', 'Other', 'China'],
        'annual_visitor_projection': [90_000, 60_000, 100_000, 5_000],
    })


@pytest.fixture
def case_counts() -> pd.DataFrame:
    return pd.DataFrame({'country': ['China', 'USA'], 'cases': [78_000, 59]})


# ═══════════════════════════════════════════════════════════════════════
# CASE SERIES
# ═══════════════════════════════════════════════════════════════════════

class TestCaseSeries:
    def test_valid_series(self):
        frame = pd.DataFrame({'date': ['2020-01-22', '2020-01-23', '2020-01-24'],
                              'cumulative_cases': [555, 653, 941]})
        series = load_case_series(frame)
        assert series.start_date == datetime.date(2020, 1, 22)
        assert series.end_date == datetime.date(2020, 1, 24)
        np.testing.assert_array_equal(series.days, [1, 2, 3])
        np.testing.assert_array_equal(series.cumulative_cases, [555, 653, 941])

    def test_gap_rejected(self):
        frame = pd.DataFrame({'date': ['2020-01-22', '2020-01-23', '2020-01-25'],
                              'cumulative_cases': [1, 2, 3]})
        with pytest.raises(DataShapeError, match='gap'):
            load_case_series(frame)

    def test_unordered_rejected(self):
        frame = pd.DataFrame({'date': ['2020-01-23', '2020-01-22'], 'cumulative_cases': [1, 2]})
        with pytest.raises(DataShapeError):
            load_case_series(frame)

    def test_negative_rejected(self):
        frame = pd.DataFrame({'date': ['2020-01-22', '2020-01-23'], 'cumulative_cases': [1, -2]})
        with pytest.raises(DataShapeError):
            load_case_series(frame)

    def test_missing_column(self):
        with pytest.raises(DataShapeError, match='cumulative_cases'):
            load_case_series(pd.DataFrame({'date': ['2020-01-22']}))

    def test_cumulative_from_daily(self):
        daily = pd.DataFrame({
            'date': ['2020-01-23', '2020-01-22', '2020-01-22', '2020-01-23', '2020-01-23'],
            'cases': [10, 5, 3, 4, 100],
            'type': ['confirmed', 'confirmed', 'confirmed', 'confirmed', 'death'],
        })
        cumulative = cumulative_from_daily(daily, baseline=555)
        assert cumulative['cumulative_cases'].tolist() == [563, 577]
        series = load_case_series(cumulative)
        assert series.start_date == datetime.date(2020, 1, 22)


# ═══════════════════════════════════════════════════════════════════════
# COUNTRY PROFILES
# ═══════════════════════════════════════════════════════════════════════

class TestCountryProfiles:
    def test_order_follows_visitation(self, population, visitation, case_counts):
        profiles = build_country_profiles(population, visitation, case_counts, total_cases=80_000)
        assert [p.name for p in profiles] == ['Ecuador', 'USA', 'Other', 'China']

    def test_shares_sum_to_one_and_are_positive(self, population, visitation, case_counts):
        profiles = build_country_profiles(population, visitation, case_counts, total_cases=80_000)
        shares = [p.baseline_case_share for p in profiles]
        assert sum(shares) == pytest.approx(1.0)
        assert all(s > 0 for s in shares)

    def test_remainder_bucket(self, population, visitation, case_counts):
        profiles = build_country_profiles(population, visitation, case_counts, total_cases=80_000,
                                          world_population=7.53e9, world_urban_population=4.2e9)
        other = {p.name: p for p in profiles}['Other']
        assert other.is_remainder
        listed_pop = 1_400_000_000 + 330_000_000 + 17_000_000
        listed_urban = 1_400_000_000 * 0.6 + 330_000_000 * 0.8 + 17_000_000 * 0.64
        assert other.population == int(7.53e9 - listed_pop)
        assert other.urban_population == pytest.approx(4.2e9 - listed_urban)
        # remainder holds the cases the listed countries do not: 80000 - 78059 = 1941, plus offset
        total = (78_000 + 1) + (59 + 1) + (0 + 1) + (1941 + 1)
        assert other.baseline_case_share == pytest.approx(1942 / total)

    def test_missing_population_row(self, population, visitation, case_counts):
        with pytest.raises(DataShapeError, match='Ecuador'):
            build_country_profiles(population[population['country'] != 'Ecuador'],
                                   visitation, case_counts, total_cases=80_000)

    def test_missing_remainder_row(self, population, visitation, case_counts):
        with pytest.raises(DataShapeError):
            build_country_profiles(population, visitation[visitation['country'] != 'Other'],
                                   case_counts, total_cases=80_000)


# ═══════════════════════════════════════════════════════════════════════
# MONTHLY VISITATION
# ═══════════════════════════════════════════════════════════════════════

class TestMonthlyVisitation:
    def test_averages_years_and_normalises(self):
        history = pd.DataFrame({
            'month': list(range(1, 13)) * 2,
            'visitor_count': [100] * 12 + [300] * 11 + [500],
        })
        profile = monthly_visitation_profile(history)
        assert sum(profile.monthly_share) == pytest.approx(1.0)
        # means are 200 for Jan-Nov and 300 for Dec
        assert profile.share(12) == pytest.approx(300 / (200 * 11 + 300))

    def test_missing_month(self):
        history = pd.DataFrame({'month': range(1, 12), 'visitor_count': [10] * 11})
        with pytest.raises(DataShapeError):
            monthly_visitation_profile(history)

    def test_month_out_of_range(self):
        profile = monthly_visitation_profile(pd.DataFrame({'month': range(1, 13), 'visitor_count': [1] * 12}))
        with pytest.raises(ValueError):
            profile.share(13)
