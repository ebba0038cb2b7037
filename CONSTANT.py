"""
MODEL PARAMETERS (CONSTANTS)
===========================

This file defines baseline parameter values used throughout the arrival
modelling framework.

These parameters include (but are not limited to):
- Growth-curve fitting settings (asymptote seed, optimiser budget)
- The active-case lookback window
- World population totals used to size the remainder country bucket
- Visitation policy settings and simulation defaults

Values defined here are imported by:
- growth.py, data_clean.py, simulation.py
- main_analysis scripts (running and summarising simulations)

This file provides a single central location for model settings so that
parameter values are consistent across workflows.

Changing values in this file will affect all downstream simulations and
summaries.

"""

### growth curve params
LOOKBACK_DAYS=15                 # days a case counts as active
LOGISTIC_ASYMPTOTE_SEED=2e6      # starting value when the logistic asymptote is fitted ("auto")
MAX_FIT_EVALUATIONS=10000        # function-evaluation budget for nonlinear least squares

### country params
WORLD_POPULATION=7.53e9
WORLD_URBAN_POPULATION=4.2e9
CASE_SHARE_OFFSET=1              # added to every country's cases so nobody has a zero share
CASE_BASELINE=555                # confirmed cases worldwide on the first reported day (2020-01-22)
REMAINDER_COUNTRY='Other'        # bucket for every country not listed in the visitation table

### visitation params
DAYS_IN_MONTH=(31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)
EXCLUDED_COUNTRY='China'
REDUCE_VISIT_FACTOR=0.5

### simulation params
NOT_ARRIVED=-1
UNKNOWN_ORIGIN='Unknown'
NUM_SIMULATIONS=1000
DAY_HORIZON=365
MASTER_SEED=0
