"""Synthetic data generators for cooperative lending."""

from coop_lending.generators.base import BaseGenerator
from coop_lending.generators.contributions import ContributionDraft, ContributionGenerator
from coop_lending.generators.loans import LoanRequestGenerator
from coop_lending.generators.members import MemberGenerator, MemberProfile

__all__ = [
    "BaseGenerator",
    "ContributionDraft",
    "ContributionGenerator",
    "LoanRequestGenerator",
    "MemberGenerator",
    "MemberProfile",
]
