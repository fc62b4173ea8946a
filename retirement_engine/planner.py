import logging
from typing import List, Optional, Sequence
from datetime import date
from concurrent.futures import ThreadPoolExecutor
from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, Field

from .models import (
    InvestmentRecord,
    InsuranceRecord,
    GoalRecord,
    ExpenseRecord,
    IncomeRecord,
    LoanRecord,
    ScenarioAssumptions,
)
from .rate_config import AssetClass, EXCLUDED_FROM_CORPUS_NOTE, MONTE_CARLO_DEFAULT_SIMULATIONS
from .scenario import resolve_scenario
from .cash_events import track_maturities, schedule_goal_outflows
from .simulation import aggregate_positions, run_projection, optimize_sip_step_up, annotate_step_up
from .income import calculate_retirement_income
from .gap_analysis import analyze_gap
from .monte_carlo import run_portfolio_monte_carlo
from .analysis import generate_recommendations
from .cash_flow_calendar import generate_year_calendar
from .schemas import (
    RetirementPlan,
    PlanSummary,
    StartingBalances,
    MonteCarloResult,
    RecommendationReport,
    YearCalendar,
)

logger = logging.getLogger(__name__)


class PlannerSnapshot(BaseModel):
    """Everything the engine needs about one user, already loaded into memory."""
    assumptions: ScenarioAssumptions = Field(default_factory=ScenarioAssumptions)
    investments: List[InvestmentRecord] = []
    insurance: List[InsuranceRecord] = []
    goals: List[GoalRecord] = []
    expenses: List[ExpenseRecord] = []
    incomes: List[IncomeRecord] = []
    loans: List[LoanRecord] = []


def _starting_balances(positions) -> StartingBalances:
    b = {c: p.balance for c, p in positions.items()}
    other_liquid = b[AssetClass.FD] + b[AssetClass.RD] + b[AssetClass.STOCK] + b[AssetClass.CASH]
    return StartingBalances(
        ppf=round(b[AssetClass.PPF], 2),
        epf=round(b[AssetClass.EPF], 2),
        mutual_funds=round(b[AssetClass.MUTUAL_FUND], 2),
        nps=round(b[AssetClass.NPS], 2),
        fd=round(b[AssetClass.FD], 2),
        rd=round(b[AssetClass.RD], 2),
        stocks=round(b[AssetClass.STOCK], 2),
        cash=round(b[AssetClass.CASH], 2),
        other_liquid_total=round(other_liquid, 2),
        total_starting=round(sum(b.values()), 2),
    )

def generate_retirement_plan(snapshot: PlannerSnapshot, today: Optional[date] = None) -> RetirementPlan:
    """
    Full retirement plan for one snapshot: projection matrix, income
    summary, gap analysis and maturities before retirement.

    Raises:
        ConfigurationError: if the assumptions are inconsistent
    """
    if today is None:
        today = date.today()

    # 1. Resolve assumptions once
    scenario = resolve_scenario(snapshot.assumptions, snapshot.investments)
    start_year = today.year
    retirement_date = today + relativedelta(years=scenario.years_to_retirement)

    # 2. Cash events
    maturity_events, maturity_report = track_maturities(
        snapshot.investments, snapshot.insurance, today, retirement_date
    )
    goal_events = schedule_goal_outflows(snapshot.goals, scenario.inflation_rate, start_year)

    # 3. Year-by-year projection
    positions = aggregate_positions(snapshot.investments)
    rows = run_projection(positions, scenario, maturity_events + goal_events, start_year)
    final_corpus = rows[-1].net_corpus

    # 4. Income and gap, both off the same strategy
    income = calculate_retirement_income(final_corpus, scenario)
    gap = analyze_gap(
        final_corpus,
        scenario,
        goals=snapshot.goals,
        expenses=snapshot.expenses,
        insurance=snapshot.insurance,
        incomes=snapshot.incomes,
        loans=snapshot.loans,
        investments=snapshot.investments,
        current_year=start_year,
    )

    # 5. How long the SIP step-up has to run
    mf = positions[AssetClass.MUTUAL_FUND]
    optimization = optimize_sip_step_up(
        mf.balance, mf.monthly_contribution, scenario, gap.required_corpus, final_corpus
    )
    rows = annotate_step_up(rows, optimization, scenario.effective_from_year, start_year)

    # Income figures sit at the top level of the summary
    summary = PlanSummary(
        **dict(income),
        scenario=scenario.name,
        current_age=scenario.current_age,
        retirement_age=scenario.retirement_age,
        years_to_retirement=scenario.years_to_retirement,
        life_expectancy=scenario.life_expectancy,
        effective_from_year=scenario.effective_from_year,
        starting_balances=_starting_balances(positions),
        excluded_from_corpus=EXCLUDED_FROM_CORPUS_NOTE,
        sip_step_up_optimization=optimization,
    )
    logger.info(
        "Generated plan '%s': %d rows, final corpus %.0f, gap %.0f",
        scenario.name, len(rows), final_corpus, gap.corpus_gap
    )

    return RetirementPlan(
        matrix=rows,
        summary=summary,
        gap_analysis=gap,
        maturing_before_retirement=maturity_report,
    )

def generate_retirement_plans(
    snapshots: Sequence[PlannerSnapshot],
    today: Optional[date] = None,
    max_workers: int = 4
) -> List[RetirementPlan]:
    """
    Plans for independent snapshots, run concurrently. Results are in the
    same order as the input. The first failure is raised to the caller.
    """
    if not snapshots:
        return []
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(lambda s: generate_retirement_plan(s, today), snapshots))

def run_snapshot_monte_carlo(
    snapshot: PlannerSnapshot,
    simulations: int = MONTE_CARLO_DEFAULT_SIMULATIONS,
    years: Optional[int] = None,
    seed: Optional[int] = None
) -> MonteCarloResult:
    scenario = resolve_scenario(snapshot.assumptions, snapshot.investments)
    return run_portfolio_monte_carlo(snapshot.investments, scenario, simulations=simulations, years=years, seed=seed)

def snapshot_recommendations(snapshot: PlannerSnapshot) -> RecommendationReport:
    return generate_recommendations(snapshot.investments, snapshot.insurance, snapshot.expenses, snapshot.incomes)

def snapshot_calendar(snapshot: PlannerSnapshot, year: Optional[int] = None) -> YearCalendar:
    return generate_year_calendar(snapshot.investments, snapshot.insurance, snapshot.loans, year=year)
