"""
US Housing Vacancy Explorer — Error Kinds
Every failure the pipeline reports is a VacancyMapError. They subclass
ValueError so callers catching the loaders' historical ValueError keep working.
"""


class VacancyMapError(ValueError):
    """Base class for all pipeline failures shown to the user."""


class InvalidIdentifier(VacancyMapError):
    """A state/county/tract id is missing or malformed."""


class UpstreamUnavailable(VacancyMapError):
    """The Census statistical API failed or returned a non-tabular response."""


class GeometryUnavailable(VacancyMapError):
    """The boundary service failed or returned no features."""


class UnsupportedLevel(VacancyMapError):
    """A geography level outside state/county/tract/block."""


class PreconditionNotMet(VacancyMapError):
    """A selection change needs a parent selection that is not set."""
