class ChemoflowError(Exception):
    """Base class for errors raised by chemoflow."""


class ConfigurationError(ChemoflowError, ValueError):
    """Invalid or incomplete model construction arguments."""


class DimensionMismatch(ConfigurationError):
    """Domain extent and microbe positions have different dimensionality."""


class IntegratorSignatureError(ChemoflowError, TypeError):
    """Field step function cannot be called as step_function(du, u, p, t)."""


class FieldIntegrationError(ChemoflowError, RuntimeError):
    """The field solver failed to reach the requested time."""


class ReinsertionExhausted(ChemoflowError, RuntimeError):
    """No encounter-free position was found within the retry budget."""
