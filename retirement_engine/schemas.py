from typing import Optional, List, Dict
from datetime import date
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .rate_config import AssetClass


class CamelModel(BaseModel):
    """
    Base for every result type. Fields are snake_case in Python and
    serialize to the camelCase keys the reporting layer expects
    (model_dump(by_alias=True)). Results are immutable once built.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# -----------------------------------------------------------------------------
# Loans
# -----------------------------------------------------------------------------
class AmortizationRow(CamelModel):
    month: int
    emi: float
    principal: float
    interest: float
    balance: float
    total_principal_paid: float
    total_interest_paid: float


# -----------------------------------------------------------------------------
# Maturities
# -----------------------------------------------------------------------------
class MaturingInvestment(CamelModel):
    name: str
    type: Optional[str] = None
    maturity_date: date
    years_to_maturity: int
    expected_maturity_value: float
    current_value: float = 0.0

class MaturingPolicy(CamelModel):
    name: str
    type: Optional[str] = None
    maturity_date: date
    years_to_maturity: int
    expected_maturity_value: float
    current_fund_value: float = 0.0

class MaturityReport(CamelModel):
    maturing_investments: List[MaturingInvestment] = []
    maturing_insurance: List[MaturingPolicy] = []
    total_maturing_before_retirement: float = 0.0
    investment_count: int = 0
    insurance_count: int = 0
    retirement_date: date


# -----------------------------------------------------------------------------
# Projection matrix
# -----------------------------------------------------------------------------
class ProjectionRow(CamelModel):
    sno: int
    year: int
    year_offset: int
    age: int

    # Per-bucket state after this year's growth + contributions
    balances: Dict[AssetClass, float]
    rates: Dict[AssetClass, float]

    ppf_balance: float
    ppf_rate: float
    epf_balance: float
    epf_rate: float
    mf_balance: float
    mf_rate: float
    mf_sip: float
    nps_balance: float
    nps_rate: float
    other_liquid_balance: float    # FD + RD + STOCK + CASH
    total_corpus: float            # buckets + inflows

    insurance_maturity: float = 0.0
    investment_maturity: float = 0.0
    total_inflow: float = 0.0
    maturing_policies: List[str] = []
    maturing_investments: List[str] = []
    goal_outflow: float = 0.0
    total_outflow: float = 0.0
    goals_this_year: List[str] = []
    net_corpus: float

    sip_step_up_active: Optional[bool] = None
    sip_step_up_stop_year: Optional[int] = None

class StepUpScenario(CamelModel):
    stop_year: int
    projected_corpus: float
    meets_target: bool
    surplus: float
    final_sip_at_stop: float

class StepUpOptimization(CamelModel):
    optimal_stop_year: Optional[int] = None
    can_stop_early: bool = False
    reason: Optional[str] = None
    current_projected_corpus: float
    required_corpus: float
    deficit: Optional[float] = None
    corpus_at_optimal_stop: Optional[float] = None
    sip_at_start: Optional[float] = None
    sip_at_full_step_up: Optional[float] = None
    sip_at_optimal_stop: Optional[float] = None
    monthly_relief_from_stopping_early: Optional[float] = None
    years_of_step_up: Optional[int] = None
    years_without_step_up: Optional[int] = None
    scenarios: List[StepUpScenario] = []
    recommendation: Optional[str] = None


# -----------------------------------------------------------------------------
# Retirement income
# -----------------------------------------------------------------------------
class IncomeProjectionRow(CamelModel):
    year: int
    age: int
    corpus: float
    monthly_income: float

class RetirementIncome(CamelModel):
    final_corpus: float
    retirement_years: int
    monthly_retirement_income: float       # simple depletion
    monthly_income_4_percent: float = Field(alias="monthlyIncome4Percent")
    monthly_income_from_corpus: float      # sustainable
    yearly_income_from_corpus: float
    income_strategy: str
    selected_monthly_income: float
    selected_strategy_name: str
    corpus_return_rate: float
    withdrawal_rate: float
    retirement_income_projection: List[IncomeProjectionRow] = []


# -----------------------------------------------------------------------------
# Gap analysis
# -----------------------------------------------------------------------------
class Suggestion(CamelModel):
    rank: int
    icon: str
    title: str
    description: str
    impact: str

class ExpenseProjectionRow(CamelModel):
    year: int
    label: Optional[str] = None
    monthly_expense: float
    yearly_expense: float
    household_expense: float
    insurance_premium: float

class ContinuingPolicy(CamelModel):
    name: str
    type: Optional[str] = None
    health_type: Optional[str] = None
    annual_premium: float
    monthly_premium: float
    coverage_end_age: Optional[int] = None

class EndingExpense(CamelModel):
    """A time-bound expense that stops before retirement, freeing cash to invest."""
    name: str
    category: Optional[str] = None
    monthly_amount: float
    yearly_amount: float
    end_year: int
    dependent_name: Optional[str] = None
    years_remaining: int
    potential_corpus_if_invested: float

class GapAnalysisResult(CamelModel):
    monthly_income: float = 0.0
    current_monthly_expenses: float = 0.0
    monthly_insurance_premiums: float = 0.0
    total_current_monthly_expenses: float = 0.0
    monthly_emi: float = Field(default=0.0, alias="monthlyEMI")
    monthly_sip: float = Field(default=0.0, alias="monthlySIP")
    net_monthly_savings: float = 0.0
    available_monthly_savings: float = 0.0

    inflated_monthly_expenses: float
    yearly_expense_at_retirement: float
    required_corpus: float
    required_corpus_for_expenses: float
    projected_corpus: float
    corpus_gap: float                  # never negative
    surplus: float = 0.0
    gap_percent: float
    is_on_track: bool
    additional_sip_required: float = Field(alias="additionalSIPRequired")
    total_goal_amount: float = 0.0

    continuing_insurance: List[ContinuingPolicy] = []
    income_strategy: str
    strategy_explanation: str
    corpus_return_rate: float
    withdrawal_rate: float
    suggestions: List[Suggestion] = []
    expense_projection: List[ExpenseProjectionRow] = []

    # Time-bound expenses. required_corpus still counts every current expense
    monthly_expenses_continuing_after_retirement: float = 0.0
    ending_expenses_before_retirement: List[EndingExpense] = []
    monthly_freed_up_by_retirement: float = 0.0
    yearly_freed_up_by_retirement: float = 0.0
    potential_corpus_from_freed_up_expenses: float = 0.0
    time_bound_expense_count: int = 0
    recurring_expense_count: int = 0

class GoalFunding(CamelModel):
    name: str
    target_year: Optional[int] = None
    years_away: int
    target_amount: float
    inflated_amount: float
    projected_corpus: float
    allocation: float
    funding_percent: float
    status: str                        # FUNDED / PARTIAL / UNFUNDED
    gap: float

class GoalAnalysis(CamelModel):
    goals: List[GoalFunding] = []
    total_goals_value: float = 0.0
    total_inflated_value: float = 0.0

class NetWorth(CamelModel):
    total_assets: float
    total_investments: float
    insurance_fund_value: float
    illiquid_assets: float = 0.0       # excluded from the retirement corpus
    total_liabilities: float
    net_worth: float
    asset_breakdown: Dict[str, float] = {}

class Recommendation(CamelModel):
    type: str                          # danger / warning / tip / success
    icon: str
    title: str
    description: str

class RecommendationReport(CamelModel):
    recommendations: List[Recommendation] = []
    savings_rate: float
    monthly_income: float
    monthly_expenses: float
    monthly_savings: float


# -----------------------------------------------------------------------------
# Monte Carlo
# -----------------------------------------------------------------------------
class Percentiles(CamelModel):
    p10: float
    p25: float
    p50: float
    p75: float
    p90: float

class MonteCarloResult(CamelModel):
    simulations: int
    years: int
    starting_corpus: float
    monthly_contribution: float
    mean_return: float
    std_dev: float
    percentiles: Percentiles
    average: float
    success_rate: float                # fraction of paths >= target multiple of start
    target_value: float


# -----------------------------------------------------------------------------
# Cash-flow calendar
# -----------------------------------------------------------------------------
class CalendarEntry(CamelModel):
    description: str
    category: str                      # SIP / RD / EMI / INSURANCE / PPF
    day_of_month: Optional[int] = None
    months: Dict[str, float]           # JAN .. DEC
    yearly_total: float

class YearCalendar(CamelModel):
    year: int
    entries: List[CalendarEntry] = []
    monthly_totals: Dict[str, float]
    yearly_grand_total: float

class MonthPayment(CamelModel):
    description: str
    category: str
    amount: float
    day_of_month: Optional[int] = None

class MonthCalendar(CamelModel):
    month: int
    month_name: str
    entries: List[MonthPayment] = []
    total: float


# -----------------------------------------------------------------------------
# Full plan
# -----------------------------------------------------------------------------
class StartingBalances(CamelModel):
    ppf: float
    epf: float
    mutual_funds: float
    nps: float
    fd: float
    rd: float
    stocks: float
    cash: float
    other_liquid_total: float
    total_starting: float

class PlanSummary(RetirementIncome):
    """Scenario facts plus the retirement income figures, all at the top level."""
    scenario: str
    current_age: int
    retirement_age: int
    years_to_retirement: int
    life_expectancy: int
    effective_from_year: int
    starting_balances: StartingBalances
    excluded_from_corpus: str
    sip_step_up_optimization: StepUpOptimization

class RetirementPlan(CamelModel):
    matrix: List[ProjectionRow]
    summary: PlanSummary
    gap_analysis: GapAnalysisResult
    maturing_before_retirement: MaturityReport
