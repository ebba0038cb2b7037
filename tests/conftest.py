"""Shared fixtures: small synthetic countries and visitation profiles."""

import datetime

import pytest

from data_clean import CountryProfile, MonthlyVisitationProfile


@pytest.fixture
def uniform_months() -> MonthlyVisitationProfile:
    """Every month gets 1/12 of the yearly visitors."""
    return MonthlyVisitationProfile(tuple([1 / 12] * 12))


@pytest.fixture
def three_countries() -> tuple:
    return (
        CountryProfile('China', 1000, 0.5, 0.5, 36500),
        CountryProfile('USA', 2000, 0.8, 0.3, 73000),
        CountryProfile('Other', 7_527_000_000, 0.55, 0.2, 3650, is_remainder=True),
    )


@pytest.fixture
def start_date() -> datetime.date:
    return datetime.date(2020, 2, 27)
