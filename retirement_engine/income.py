from typing import List

from .rate_config import (
    IncomeStrategy,
    INCOME_PROJECTION_INTERVAL_YEARS,
    INCOME_PROJECTION_MAX_YEARS,
)
from .scenario import ResolvedScenario
from .schemas import RetirementIncome, IncomeProjectionRow
from .strategies import get_strategy


def project_income(final_corpus: float, scenario: ResolvedScenario) -> List[IncomeProjectionRow]:
    """
    Sustainability table for the selected strategy: corpus and monthly
    income every 5 years into retirement, up to 30 years or life
    expectancy, whichever comes first.
    """
    strategy = get_strategy(scenario.income_strategy)
    retirement_years = scenario.retirement_years
    horizon = min(retirement_years, INCOME_PROJECTION_MAX_YEARS)

    rows = []
    corpus = final_corpus
    for year in range(0, horizon + 1, INCOME_PROJECTION_INTERVAL_YEARS):
        monthly = strategy.monthly_income(corpus, final_corpus, retirement_years - year, scenario)
        rows.append(IncomeProjectionRow(
            year=year,
            age=scenario.retirement_age + year,
            corpus=round(corpus, 2),
            monthly_income=round(monthly, 2),
        ))
        # Evolve through the interval, stopping at the end of retirement
        for m in range(INCOME_PROJECTION_INTERVAL_YEARS):
            if year + m >= retirement_years:
                break
            corpus = strategy.next_year_corpus(corpus, monthly, scenario)
    return rows

def calculate_retirement_income(final_corpus: float, scenario: ResolvedScenario) -> RetirementIncome:
    """
    Monthly income from the corpus at retirement under every strategy,
    plus the selected strategy's sustainability table.
    """
    retirement_years = scenario.retirement_years
    depletion = get_strategy(IncomeStrategy.SIMPLE_DEPLETION)
    safe = get_strategy(IncomeStrategy.SAFE_4_PERCENT)
    sustainable = get_strategy(IncomeStrategy.SUSTAINABLE)
    selected = get_strategy(scenario.income_strategy)

    monthly_depletion = depletion.monthly_income(final_corpus, final_corpus, retirement_years, scenario)
    monthly_safe = safe.monthly_income(final_corpus, final_corpus, retirement_years, scenario)
    monthly_sustainable = sustainable.monthly_income(final_corpus, final_corpus, retirement_years, scenario)
    monthly_selected = selected.monthly_income(final_corpus, final_corpus, retirement_years, scenario)

    return RetirementIncome(
        final_corpus=round(final_corpus, 2),
        retirement_years=retirement_years,
        monthly_retirement_income=round(monthly_depletion, 2),
        monthly_income_4_percent=round(monthly_safe, 2),
        monthly_income_from_corpus=round(monthly_sustainable, 2),
        yearly_income_from_corpus=round(monthly_sustainable * 12, 2),
        income_strategy=scenario.income_strategy.value,
        selected_monthly_income=round(monthly_selected, 2),
        selected_strategy_name=selected.display_name(scenario),
        corpus_return_rate=scenario.corpus_return_rate,
        withdrawal_rate=scenario.withdrawal_rate,
        retirement_income_projection=project_income(final_corpus, scenario),
    )
