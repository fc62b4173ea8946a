import logging
from typing import Iterable, List, Optional
from datetime import date

from .models import (
    InsuranceRecord,
    InsuranceType,
    HealthInsuranceType,
    GoalRecord,
    ExpenseRecord,
    IncomeRecord,
    LoanRecord,
    InvestmentRecord,
)
from .rate_config import (
    GAP_SIP_ASSUMED_RETURN,
    DISCRETIONARY_CUT_PERCENT,
    DELAY_RETIREMENT_MAX_YEARS,
    FREED_UP_EXPENSE_RETURN,
    EXPENSE_PROJECTION_INTERVAL_YEARS,
    EXPENSE_PROJECTION_MAX_YEARS,
)
from .scenario import ResolvedScenario
from .strategies import get_strategy
from .financial_math import required_sip, inflated_value, sip_future_value
from .schemas import GapAnalysisResult, Suggestion, ExpenseProjectionRow, ContinuingPolicy, EndingExpense

logger = logging.getLogger(__name__)


def continues_after_retirement(policy: InsuranceRecord) -> bool:
    """
    Whether a policy's premium is still payable after retirement.

    - An explicit continues_after_retirement value always wins
    - Term life: yes
    - Health: no for employer group cover, yes for personal / family floater
    - ULIP, endowment, money-back: no, they mature
    - Vehicle, other, unknown: no
    """
    if policy.continues_after_retirement is not None:
        return policy.continues_after_retirement

    if policy.type == InsuranceType.TERM_LIFE:
        return True
    if policy.type == InsuranceType.HEALTH:
        return policy.health_type != HealthInsuranceType.GROUP
    return False

def _suggestions(corpus_gap: float, additional_sip: float, current_monthly_expenses: float, years_to_retirement: int) -> List[Suggestion]:
    if corpus_gap <= 0:
        return [Suggestion(
            rank=1,
            icon="✅",
            title="You're On Track!",
            description="Your projected corpus exceeds your retirement needs. Great job!",
            impact="positive",
        )]

    items = [
        ("💰", "Increase Monthly SIP",
         "Increase your monthly SIP by ₹{:,} to close the gap".format(round(additional_sip)), "high"),
        ("✂️", "Reduce Discretionary Expenses",
         "Cutting ₹{:,}/month from expenses and investing it can help".format(
             round(current_monthly_expenses * DISCRETIONARY_CUT_PERCENT / 100)), "medium"),
    ]
    if years_to_retirement < DELAY_RETIREMENT_MAX_YEARS:
        items.append(("⏰", "Consider Delayed Retirement",
                      "Working 2-3 more years can significantly boost your corpus", "high"))
    items.append(("📈", "Review Asset Allocation",
                  "Higher equity allocation early on may provide better returns", "medium"))

    return [
        Suggestion(rank=rank, icon=icon, title=title, description=description, impact=impact)
        for rank, (icon, title, description, impact) in enumerate(items, start=1)
    ]

def _expense_projection(household: float, premiums: float, inflation_rate: float, years_to_retirement: int) -> List[ExpenseProjectionRow]:
    def row(year, label=None):
        h = inflated_value(household, inflation_rate, year)
        p = inflated_value(premiums, inflation_rate, year)
        return ExpenseProjectionRow(
            year=year,
            label=label,
            monthly_expense=round(h + p, 2),
            yearly_expense=round((h + p) * 12, 2),
            household_expense=round(h, 2),
            insurance_premium=round(p, 2),
        )

    rows = [row(0, "Current")]
    last = min(years_to_retirement, EXPENSE_PROJECTION_MAX_YEARS)
    for year in range(EXPENSE_PROJECTION_INTERVAL_YEARS, last + 1, EXPENSE_PROJECTION_INTERVAL_YEARS):
        rows.append(row(year))
    rows.append(row(years_to_retirement, "At Retirement"))
    return rows

def _ends_before(expense: ExpenseRecord, current_year: int, retirement_year: int) -> bool:
    if expense.calculate_end_year(current_year) is None:
        return False
    return not expense.continues_after(retirement_year, current_year)

def _ending_expenses(expenses: List[ExpenseRecord], current_year: int, retirement_year: int) -> List[EndingExpense]:
    """Time-bound expenses whose last year falls before retirement."""
    ending = []
    for expense in expenses:
        if not _ends_before(expense, current_year, retirement_year):
            continue
        end_year = expense.calculate_end_year(current_year)
        ending.append(EndingExpense(
            name=expense.name,
            category=expense.category.value if expense.category else None,
            monthly_amount=round(expense.monthly_amount, 2),
            yearly_amount=round(expense.yearly_amount, 2),
            end_year=end_year,
            dependent_name=expense.dependent_name,
            years_remaining=end_year - current_year,
            potential_corpus_if_invested=round(
                sip_future_value(expense.monthly_amount, FREED_UP_EXPENSE_RETURN, retirement_year - end_year), 2
            ),
        ))
    return ending

def analyze_gap(
    projected_corpus: float,
    scenario: ResolvedScenario,
    goals: Iterable[GoalRecord] = (),
    expenses: Iterable[ExpenseRecord] = (),
    insurance: Iterable[InsuranceRecord] = (),
    incomes: Iterable[IncomeRecord] = (),
    loans: Iterable[LoanRecord] = (),
    investments: Iterable[InvestmentRecord] = (),
    current_year: Optional[int] = None
) -> GapAnalysisResult:
    """
    Compare the projected corpus with what retirement will cost.

    Required corpus = corpus needed for inflated expenses (same strategy
    as the income calculation) + undiscounted goal targets.
    A shortfall is expressed as an extra monthly SIP at a flat 10% return.

    Time-bound expenses ending before retirement are reported with the
    corpus their freed-up cash could build, but stay in the required
    corpus figure.
    """
    years = scenario.years_to_retirement
    strategy = get_strategy(scenario.income_strategy)
    if current_year is None:
        current_year = date.today().year
    retirement_year = current_year + years
    expenses = list(expenses)

    # 1. Today's monthly outgoings, including premiums that outlive employment
    current_monthly_expenses = sum(e.monthly_amount for e in expenses)
    continuing = []
    monthly_premiums = 0.0
    for policy in insurance:
        if not continues_after_retirement(policy) or policy.annual_premium is None:
            continue
        monthly_premiums += policy.monthly_premium
        continuing.append(ContinuingPolicy(
            name=policy.policy_name,
            type=policy.type.value if policy.type else None,
            health_type=policy.health_type.value if policy.health_type else None,
            annual_premium=policy.annual_premium,
            monthly_premium=round(policy.monthly_premium, 2),
            coverage_end_age=policy.coverage_end_age,
        ))
    total_monthly = current_monthly_expenses + monthly_premiums

    # 2. Inflate to retirement and size the corpus with the selected strategy
    inflated_monthly = inflated_value(total_monthly, scenario.inflation_rate, years)
    yearly_at_retirement = inflated_monthly * 12
    required_for_expenses = strategy.required_corpus(yearly_at_retirement, scenario)

    total_goal_amount = sum(g.target_amount or 0.0 for g in goals)
    required_corpus = required_for_expenses + total_goal_amount

    # 3. Gap
    corpus_gap = max(0.0, required_corpus - projected_corpus)
    surplus = max(0.0, projected_corpus - required_corpus)
    gap_percent = corpus_gap / required_corpus * 100 if required_corpus > 0 else 0.0
    additional_sip = required_sip(corpus_gap, GAP_SIP_ASSUMED_RETURN, years) if corpus_gap > 0 else 0.0

    # 4. Cash flow today
    monthly_income = sum(i.monthly_amount or 0.0 for i in incomes)
    monthly_emi = sum(
        loan.emi or 0.0 for loan in loans
        if loan.outstanding_amount is not None and loan.outstanding_amount > 0
    )
    monthly_sip = sum(inv.monthly_sip or 0.0 for inv in investments)
    net_monthly_savings = monthly_income - total_monthly - monthly_emi

    # 5. Expenses that stop before retirement
    continuing_expenses = sum(
        e.monthly_amount for e in expenses if e.continues_after(retirement_year, current_year)
    )
    ending = _ending_expenses(expenses, current_year, retirement_year)
    monthly_freed_up = sum(
        e.monthly_amount for e in expenses if _ends_before(e, current_year, retirement_year)
    )
    time_bound_count = sum(1 for e in expenses if e.is_time_bound)

    logger.debug(
        "Gap analysis: required %.0f, projected %.0f, gap %.0f",
        required_corpus, projected_corpus, corpus_gap
    )

    return GapAnalysisResult(
        monthly_income=round(monthly_income, 2),
        current_monthly_expenses=round(current_monthly_expenses, 2),
        monthly_insurance_premiums=round(monthly_premiums, 2),
        total_current_monthly_expenses=round(total_monthly, 2),
        monthly_emi=round(monthly_emi, 2),
        monthly_sip=round(monthly_sip, 2),
        net_monthly_savings=round(net_monthly_savings, 2),
        available_monthly_savings=round(net_monthly_savings - monthly_sip, 2),
        inflated_monthly_expenses=round(inflated_monthly, 2),
        yearly_expense_at_retirement=round(yearly_at_retirement, 2),
        required_corpus=round(required_corpus, 2),
        required_corpus_for_expenses=round(required_for_expenses, 2),
        projected_corpus=round(projected_corpus, 2),
        corpus_gap=round(corpus_gap, 2),
        surplus=round(surplus, 2),
        gap_percent=round(gap_percent, 1),
        is_on_track=corpus_gap <= 0,
        additional_sip_required=round(additional_sip, 2),
        total_goal_amount=round(total_goal_amount, 2),
        continuing_insurance=continuing,
        income_strategy=scenario.income_strategy.value,
        strategy_explanation=strategy.explanation(scenario),
        corpus_return_rate=scenario.corpus_return_rate,
        withdrawal_rate=scenario.withdrawal_rate,
        suggestions=_suggestions(corpus_gap, additional_sip, current_monthly_expenses, years),
        expense_projection=_expense_projection(current_monthly_expenses, monthly_premiums, scenario.inflation_rate, years),
        monthly_expenses_continuing_after_retirement=round(continuing_expenses + monthly_premiums, 2),
        ending_expenses_before_retirement=ending,
        monthly_freed_up_by_retirement=round(monthly_freed_up, 2),
        yearly_freed_up_by_retirement=round(monthly_freed_up * 12, 2),
        potential_corpus_from_freed_up_expenses=round(sum(e.potential_corpus_if_invested for e in ending), 2),
        time_bound_expense_count=time_bound_count,
        recurring_expense_count=len(expenses) - time_bound_count,
    )
