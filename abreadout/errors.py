from __future__ import annotations


class ConfigurationError(ValueError):
    """Invalid business assumption or policy parameter."""


class DataQualityWarning(UserWarning):
    """Raw records were mismatched or duplicated and had to be dropped."""
