# oddsdesk/domain/errors.py
from __future__ import annotations


class OddsDeskError(Exception):
    pass


class InvalidOddsError(OddsDeskError, ValueError):
    """Odds or probability outside the domain of the conversion (decimal <= 1, American 0, p <= 0)."""


class MalformedInputError(OddsDeskError):
    """A bookmaker outcome could not be classified to a known side."""


class MissingLineError(OddsDeskError):
    """A spread/total pick carries no line; settles as void."""


class UnsettleableError(OddsDeskError):
    """No automatic settlement path for the pick (player props); stays pending."""


class SettlementConflictError(OddsDeskError):
    """A terminal pick was asked to move to a different terminal status."""
