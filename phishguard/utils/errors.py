"""
Exception hierarchy for the phishing scorer.

Only MalformedUrlError is meant to reach callers of the scoring pipeline;
ModelCorruptError is caught per model and replaced by a fallback probability.
"""


class PhishGuardError(Exception):
    """Base class for all scorer errors."""


class MalformedUrlError(PhishGuardError, ValueError):
    """The page URL cannot be split into scheme / host / path."""

    def __init__(self, url, reason: str = "unparsable URL"):
        super().__init__(f"{reason}: {url!r}")
        self.url = url
        self.reason = reason


class ModelCorruptError(PhishGuardError):
    """A tree's node arrays are structurally invalid (bad child id, cycle, ...)."""


class FeatureSchemaError(PhishGuardError, ValueError):
    """A feature vector carries names the model was not trained on."""

    def __init__(self, unknown, feature_names):
        names = ", ".join(sorted(unknown))
        super().__init__(f"unknown feature(s) for this model: {names}")
        self.unknown = frozenset(unknown)
        self.feature_names = tuple(feature_names)
