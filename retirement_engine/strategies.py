from typing import Dict
from abc import ABC, abstractmethod

from .rate_config import (
    IncomeStrategy,
    SAFE_WITHDRAWAL_RATE,
    SAFE_NET_GROWTH_RATE,
    SAFE_CORPUS_MULTIPLE,
)
from .scenario import ResolvedScenario


class WithdrawalStrategy(ABC):
    """
    One way of living off the corpus. Each strategy defines the income it
    pays, how the corpus evolves under it, and the inverse: the corpus
    needed to fund a given yearly expense. Income projection and gap
    analysis both go through the same instance, so the two stay consistent.
    """
    tag: IncomeStrategy

    @abstractmethod
    def monthly_income(self, corpus: float, corpus_at_retirement: float, remaining_years: int, scenario: ResolvedScenario) -> float:
        ...

    @abstractmethod
    def next_year_corpus(self, corpus: float, monthly_income: float, scenario: ResolvedScenario) -> float:
        ...

    @abstractmethod
    def required_corpus(self, yearly_expense: float, scenario: ResolvedScenario) -> float:
        ...

    @abstractmethod
    def display_name(self, scenario: ResolvedScenario) -> str:
        ...

    @abstractmethod
    def explanation(self, scenario: ResolvedScenario) -> str:
        ...


class SimpleDepletion(WithdrawalStrategy):
    """Spend the corpus evenly down to zero over the remaining years; no growth."""
    tag = IncomeStrategy.SIMPLE_DEPLETION

    def monthly_income(self, corpus, corpus_at_retirement, remaining_years, scenario):
        if remaining_years <= 0:
            return 0.0
        return corpus / remaining_years / 12

    def next_year_corpus(self, corpus, monthly_income, scenario):
        return max(0.0, corpus - monthly_income * 12)

    def required_corpus(self, yearly_expense, scenario):
        # Sum of every retirement year's expense, still inflating
        total = 0.0
        for year in range(scenario.retirement_years):
            total += yearly_expense * (1 + scenario.inflation_rate / 100) ** year
        return total

    def display_name(self, scenario):
        return "Simple Depletion"

    def explanation(self, scenario):
        return f"Corpus depletes over {scenario.retirement_years} years"


class SafeFourPercent(WithdrawalStrategy):
    """Withdraw 4% of the starting corpus every year; the rest grows 2% net."""
    tag = IncomeStrategy.SAFE_4_PERCENT

    def monthly_income(self, corpus, corpus_at_retirement, remaining_years, scenario):
        return corpus_at_retirement * SAFE_WITHDRAWAL_RATE / 12

    def next_year_corpus(self, corpus, monthly_income, scenario):
        return max(0.0, corpus * (1 + SAFE_NET_GROWTH_RATE))

    def required_corpus(self, yearly_expense, scenario):
        return SAFE_CORPUS_MULTIPLE * yearly_expense

    def display_name(self, scenario):
        return "4% Safe Withdrawal"

    def explanation(self, scenario):
        return "25x yearly expenses (4% rule)"


class Sustainable(WithdrawalStrategy):
    """Withdraw a fixed share of the current corpus; the corpus keeps earning its return."""
    tag = IncomeStrategy.SUSTAINABLE

    def monthly_income(self, corpus, corpus_at_retirement, remaining_years, scenario):
        return corpus * scenario.withdrawal_rate / 100 / 12

    def next_year_corpus(self, corpus, monthly_income, scenario):
        growth = corpus * (1 + scenario.corpus_return_rate / 100)
        withdrawal = corpus * scenario.withdrawal_rate / 100
        return max(0.0, growth - withdrawal)

    def required_corpus(self, yearly_expense, scenario):
        withdrawal = scenario.withdrawal_rate / 100
        if withdrawal <= 0:
            # Falls back to the 4% rule
            return SAFE_CORPUS_MULTIPLE * yearly_expense
        return yearly_expense / withdrawal

    def display_name(self, scenario):
        return "Sustainable ({}% return, {}% withdrawal)".format(
            round(scenario.corpus_return_rate), round(scenario.withdrawal_rate)
        )

    def explanation(self, scenario):
        return f"Yearly expense ÷ {round(scenario.withdrawal_rate)}% withdrawal"


STRATEGIES: Dict[IncomeStrategy, WithdrawalStrategy] = {
    IncomeStrategy.SIMPLE_DEPLETION: SimpleDepletion(),
    IncomeStrategy.SAFE_4_PERCENT: SafeFourPercent(),
    IncomeStrategy.SUSTAINABLE: Sustainable(),
}

def get_strategy(tag: IncomeStrategy) -> WithdrawalStrategy:
    return STRATEGIES[tag]
