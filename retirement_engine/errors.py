class PlannerError(Exception):
    """Base class for errors raised by the retirement engine."""


class ConfigurationError(PlannerError, ValueError):
    """
    Raised when an assumption set cannot produce a meaningful plan,
    e.g. retirement age not after current age.
    """
