"""Scenarios for simulating cooperative lending portfolios."""

from coop_lending.scenarios.cooperative_portfolio import CooperativePortfolioScenario

__all__ = ["CooperativePortfolioScenario"]
