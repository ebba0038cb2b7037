"""
GROWTH MODULE: Global case growth and active infections
=======================================================

This file defines how the worldwide cumulative case count is projected forward
and turned into a count of currently active (contagious) cases.

It contains functions that:
- Fit exponential, logistic or linear curves to a cumulative case series
- Evaluate a fitted curve on any day index, including extrapolation
- Convert a cumulative prediction into a rolling-window active-case series
- Align that series with the first day of an arrival simulation

Key functions:
--------------
- fit_growth_curve(...)
    Least-squares fit of one of the three curve families.

- daily_prediction(...)
    Cumulative cases for day indices 1..horizon.

- active_cases(...)
    Rolling sum of new daily cases over a fixed lookback window.

- scenario_active_cases(...)
    Active and cumulative cases for each simulated day.

This module does NOT run simulations. Its outputs are consumed by
simulation.py.

"""

from dataclasses import dataclass
from typing import ClassVar
import warnings

import numpy as np
from scipy.optimize import curve_fit, OptimizeWarning

from CONSTANT import LOGISTIC_ASYMPTOTE_SEED, LOOKBACK_DAYS, MAX_FIT_EVALUATIONS, WORLD_POPULATION
from errors import ConvergenceError, DataShapeError

MODEL_KINDS = ('exp', 'log', 'lin')


#  ================== Curve families ==================
def exponential(days, alpha, beta, theta):
    return alpha * np.exp(beta * days) - theta


def logistic(days, asymptote, midpoint, scale):
    return asymptote / (1 + np.exp((midpoint - np.log(days)) / scale))


def linear(days, slope, intercept):
    return slope * days + intercept


@dataclass(frozen=True)
class ExponentialCurve:
    alpha: float
    beta: float
    theta: float
    kind: ClassVar[str] = 'exp'

    def predict(self, days):
        with np.errstate(over='ignore'):
            return exponential(days, self.alpha, self.beta, self.theta)


@dataclass(frozen=True)
class LogisticCurve:
    asymptote: float
    midpoint: float
    scale: float
    kind: ClassVar[str] = 'log'

    def predict(self, days):
        with np.errstate(over='ignore'):
            return logistic(days, self.asymptote, self.midpoint, self.scale)


@dataclass(frozen=True)
class LinearCurve:
    slope: float
    intercept: float
    kind: ClassVar[str] = 'lin'

    def predict(self, days):
        return linear(days, self.slope, self.intercept)


#  ================== Fitting ==================
def _nls(func, days, cases, p0, max_evaluations, label):
    """ Nonlinear least squares. Any failure to converge becomes a ConvergenceError. """
    try:
        with warnings.catch_warnings():
            warnings.simplefilter('ignore', OptimizeWarning)
            with np.errstate(over='ignore', invalid='ignore', divide='ignore'):
                popt, _ = curve_fit(func, days, cases, p0=p0, maxfev=max_evaluations)
    except (RuntimeError, ValueError) as err:
        raise ConvergenceError(f'{label} fit did not converge: {err}') from err
    if not np.all(np.isfinite(popt)):
        raise ConvergenceError(f'{label} fit produced non-finite parameters {popt}')
    return popt


def _fit_exponential(days, cases, max_evaluations):
    ### theta must be lower than min(cases) and greater than zero
    theta0 = 0.5 * np.min(cases)
    shifted = cases - theta0
    if np.any(shifted <= 0):
        raise DataShapeError('exponential fit needs strictly positive cumulative cases')

    ### starting values from a log-linear model
    beta0, log_alpha0 = np.polyfit(days, np.log(shifted), 1)
    alpha, beta, theta = _nls(exponential, days, cases, (np.exp(log_alpha0), beta0, theta0),
                              max_evaluations, 'exponential')
    return ExponentialCurve(alpha=alpha, beta=beta, theta=theta)


def _logistic_start(days, cases, asymptote):
    """ midpoint and scale from the logit transform: log(K/y - 1) = (midpoint - log(day)) / scale """
    keep = cases > 0
    if keep.sum() < 2:
        raise DataShapeError('logistic fit needs at least two positive cumulative case values')
    frac = np.clip(cases[keep] / asymptote, 1e-9, 1 - 1e-9)
    slope, intercept = np.polyfit(np.log(days[keep]), np.log(1 / frac - 1), 1)
    scale0 = -1 / slope if slope < 0 else 1.0
    return intercept * scale0, scale0


def _fit_logistic(days, cases, asymptote, max_evaluations):
    if asymptote == 'auto':
        K0 = max(LOGISTIC_ASYMPTOTE_SEED, 1.5 * np.max(cases))
        midpoint0, scale0 = _logistic_start(days, cases, K0)
        K, midpoint, scale = _nls(logistic, days, cases, (K0, midpoint0, scale0),
                                  max_evaluations, 'logistic')
        return LogisticCurve(asymptote=K, midpoint=midpoint, scale=scale)

    K = float(asymptote)
    if K <= 0:
        raise ValueError(f'logistic asymptote must be positive, got {asymptote}')
    midpoint0, scale0 = _logistic_start(days, cases, K)
    midpoint, scale = _nls(lambda d, m, s: logistic(d, K, m, s), days, cases, (midpoint0, scale0),
                           max_evaluations, 'logistic')
    return LogisticCurve(asymptote=K, midpoint=midpoint, scale=scale)


def fit_growth_curve(series, model_kind='exp', asymptote='auto', max_evaluations=MAX_FIT_EVALUATIONS):
    """
    Fit a cumulative case curve to a case time series.
    Inputs:
        - series: CaseTimeSeries
        - model_kind: 'exp' (alpha * exp(beta * day) - theta),
                      'log' (asymptote / (1 + exp((midpoint - log(day)) / scale))),
                      'lin' (slope * day + intercept)
        - asymptote: fixed logistic asymptote, or 'auto' to fit it. Ignored
          by the other curve families.
        - max_evaluations: optimiser budget for the nonlinear fits.
    Output: ExponentialCurve, LogisticCurve or LinearCurve.
    Raises ConvergenceError when the nonlinear fit does not converge; the fit is
    not retried.
    """
    if model_kind not in MODEL_KINDS:
        raise ValueError(f'model_kind must be one of {MODEL_KINDS}, got {model_kind!r}')
    days = series.days.astype(float)
    cases = np.asarray(series.cumulative_cases, dtype=float)
    if len(cases) < 4:
        raise DataShapeError(f'need at least 4 days of cases to fit a curve, got {len(cases)}')

    if model_kind == 'lin':
        slope, intercept = np.polyfit(days, cases, 1)
        return LinearCurve(slope=slope, intercept=intercept)
    if model_kind == 'exp':
        return _fit_exponential(days, cases, max_evaluations)
    return _fit_logistic(days, cases, asymptote, max_evaluations)


#  ================== Prediction ==================
def predict_cases(params, day_index):
    """ Cumulative cases on day_index (scalar or array, every value >= 1). """
    days = np.asarray(day_index, dtype=float)
    if np.any(days < 1):
        raise ValueError('day_index must be >= 1')
    return params.predict(days)


def daily_prediction(params, horizon):
    return predict_cases(params, np.arange(1, horizon + 1))


#  ================== Active cases ==================
def active_cases(prediction, lookback_days=LOOKBACK_DAYS):
    """
    Number of active cases per day from a cumulative prediction.
    Inputs:
        - prediction: cumulative cases for days 1..n
        - lookback_days: active[i] sums new cases over days max(1, i - lookback_days)..i
    Output: integer array of length n. Values can be negative when the curve
    decreases; consumers clamp.
    """
    prediction = np.asarray(prediction, dtype=float)
    if lookback_days < 0:
        raise ValueError('lookback_days must be >= 0')
    with np.errstate(invalid='ignore'):
        new_cases = np.ceil(np.diff(prediction, prepend=0.0))
    ### an extrapolated curve can blow up; no day has more new cases than people
    new_cases = np.clip(np.nan_to_num(new_cases, nan=0.0, posinf=WORLD_POPULATION, neginf=-WORLD_POPULATION),
                        -WORLD_POPULATION, WORLD_POPULATION)

    cum_new = np.cumsum(new_cases)
    active = cum_new.copy()
    active[lookback_days + 1:] -= cum_new[:-(lookback_days + 1)]
    return np.rint(active).astype(np.int64)


def scenario_active_cases(params, series_start, sim_start, day_horizon, lookback_days=LOOKBACK_DAYS):
    """
    Active and cumulative cases for simulated days 1..day_horizon, where
    simulated day d falls on sim_start + d days and fit day 1 is series_start.
    Output: (active, cumulative), both of length day_horizon.
    """
    offset = (sim_start - series_start).days + 1
    if offset < 0:
        raise ValueError('simulation cannot start before the case series')
    prediction = daily_prediction(params, offset + day_horizon)
    active = active_cases(prediction, lookback_days)
    return active[offset:offset + day_horizon], prediction[offset:offset + day_horizon]
