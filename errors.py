"""
Error types raised by the arrival model.

- DataShapeError: malformed or misaligned input tables.
- ConvergenceError: a nonlinear growth-curve fit did not converge.
- InvalidProfileError: a country profile has no usable population denominator.
"""


class ArrivalModelError(ValueError):
    pass


class DataShapeError(ArrivalModelError):
    pass


class ConvergenceError(ArrivalModelError):
    pass


class InvalidProfileError(ArrivalModelError):
    def __init__(self, country, message=None):
        self.country = country
        super().__init__(message or f'invalid population denominator for {country!r}')
