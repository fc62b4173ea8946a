from typing import Iterable, List, Optional
from collections import defaultdict

from .models import (
    InvestmentRecord,
    InsuranceRecord,
    InsuranceType,
    LoanRecord,
    GoalRecord,
    ExpenseRecord,
    IncomeRecord,
)
from .rate_config import (
    AssetClass,
    EMERGENCY_FUND_MONTHS,
    TARGET_SAVINGS_RATE,
    get_default_return_rate,
    is_excluded_from_corpus,
)
from .financial_math import future_value, sip_future_value, inflated_value
from .schemas import GoalAnalysis, GoalFunding, NetWorth, Recommendation, RecommendationReport

# Goal funding status thresholds (percent funded)
FUNDED_THRESHOLD = 100.0
PARTIAL_THRESHOLD = 50.0


def projected_portfolio_value(investments: Iterable[InvestmentRecord], years: int, default_return: Optional[float] = None) -> float:
    """
    Value of all holdings after `years`, each growing at its own expected
    return (default: the mutual-fund default) with its SIP continuing.
    """
    if default_return is None:
        default_return = get_default_return_rate(AssetClass.MUTUAL_FUND)
    total = 0.0
    for inv in investments:
        rate = inv.expected_return if inv.expected_return is not None else default_return
        total += future_value(inv.effective_value, rate, years)
        if inv.monthly_sip and inv.monthly_sip > 0:
            total += sip_future_value(inv.monthly_sip, rate, years)
    return total

def analyze_goals(
    goals: Iterable[GoalRecord],
    investments: Iterable[InvestmentRecord],
    inflation_rate: float,
    current_year: int
) -> GoalAnalysis:
    """
    Check how well each goal is funded.

    Each goal gets a share of the portfolio projected to its target year,
    proportional to its target amount. If no goal has an amount, each is
    measured against the whole projected portfolio.
    """
    goals = sorted(
        [g for g in goals if g.target_year is not None],
        key=lambda g: g.target_year
    )
    investments = list(investments)
    total_goals_value = sum(g.target_amount or 0.0 for g in goals)

    rows: List[GoalFunding] = []
    total_inflated = 0.0
    for goal in goals:
        years_away = goal.target_year - current_year
        target = goal.target_amount or 0.0
        inflated = inflated_value(target, inflation_rate, years_away)
        projected = projected_portfolio_value(investments, years_away)

        if total_goals_value > 0:
            allocation = target / total_goals_value * projected
        else:
            allocation = projected

        funding_percent = min(100.0, allocation / inflated * 100) if inflated > 0 else 0.0
        if funding_percent >= FUNDED_THRESHOLD:
            status = "FUNDED"
        elif funding_percent >= PARTIAL_THRESHOLD:
            status = "PARTIAL"
        else:
            status = "UNFUNDED"

        rows.append(GoalFunding(
            name=goal.name,
            target_year=goal.target_year,
            years_away=years_away,
            target_amount=round(target, 2),
            inflated_amount=round(inflated, 2),
            projected_corpus=round(projected, 2),
            allocation=round(allocation, 2),
            funding_percent=round(funding_percent, 1),
            status=status,
            gap=round(max(0.0, inflated - allocation), 2),
        ))
        total_inflated += inflated

    return GoalAnalysis(
        goals=rows,
        total_goals_value=round(total_goals_value, 2),
        total_inflated_value=round(total_inflated, 2),
    )

def calculate_net_worth(
    investments: Iterable[InvestmentRecord],
    insurance: Iterable[InsuranceRecord] = (),
    loans: Iterable[LoanRecord] = ()
) -> NetWorth:
    """Holdings plus insurance fund values, less outstanding loans."""
    breakdown = defaultdict(float)
    total_investments = 0.0
    illiquid = 0.0
    for inv in investments:
        value = inv.effective_value
        total_investments += value
        if is_excluded_from_corpus(inv.type):
            illiquid += value
        breakdown[inv.type.value if inv.type else AssetClass.OTHER.value] += value

    insurance_fund_value = sum(p.fund_value or 0.0 for p in insurance)
    total_liabilities = sum(loan.outstanding_amount or 0.0 for loan in loans)
    total_assets = total_investments + insurance_fund_value

    return NetWorth(
        total_assets=round(total_assets, 2),
        total_investments=round(total_investments, 2),
        insurance_fund_value=round(insurance_fund_value, 2),
        illiquid_assets=round(illiquid, 2),
        total_liabilities=round(total_liabilities, 2),
        net_worth=round(total_assets - total_liabilities, 2),
        asset_breakdown=dict(breakdown),
    )

def generate_recommendations(
    investments: Iterable[InvestmentRecord] = (),
    insurance: Iterable[InsuranceRecord] = (),
    expenses: Iterable[ExpenseRecord] = (),
    incomes: Iterable[IncomeRecord] = ()
) -> RecommendationReport:
    """
    Basic financial-health checks on today's position: emergency fund,
    health and term cover, savings rate and whether any SIP is running.
    """
    investments = list(investments)
    insurance = list(insurance)

    monthly_income = sum(i.monthly_amount or 0.0 for i in incomes)
    monthly_expenses = sum(e.monthly_amount for e in expenses)
    cash = sum(inv.effective_value for inv in investments if inv.type == AssetClass.CASH)
    monthly_sip = sum(inv.monthly_sip or 0.0 for inv in investments)

    items = []
    emergency_fund = monthly_expenses * EMERGENCY_FUND_MONTHS
    if cash < emergency_fund:
        items.append(("danger", "🆘", "Build Emergency Fund",
                      "Maintain at least {} months of expenses (₹{:,}) in liquid savings. Current: ₹{:,}".format(
                          EMERGENCY_FUND_MONTHS, round(emergency_fund), round(cash))))

    if not any(p.type == InsuranceType.HEALTH for p in insurance):
        items.append(("danger", "🏥", "Get Health Insurance",
                      "Medical emergencies can deplete savings quickly. Get a family floater with adequate coverage."))

    if monthly_income > 0 and not any(p.type == InsuranceType.TERM_LIFE for p in insurance):
        items.append(("warning", "🛡️", "Consider Term Insurance",
                      "Term life insurance provides high coverage at low cost. Aim for 10-15x annual income."))

    savings_rate = (monthly_income - monthly_expenses) / monthly_income * 100 if monthly_income > 0 else 0.0
    if monthly_income > 0 and savings_rate < TARGET_SAVINGS_RATE:
        items.append(("warning", "💰", "Increase Savings Rate",
                      "Your savings rate is {:.0f}%. Aim for at least 20-30% of income.".format(savings_rate)))

    if monthly_sip == 0:
        items.append(("tip", "📈", "Start SIP Investments",
                      "Begin systematic investments in mutual funds. Even ₹5,000/month grows significantly over time."))

    if not items:
        items.append(("success", "✅", "Well Planned!",
                      "Your financial foundation looks solid. Keep monitoring and adjusting as life changes."))

    return RecommendationReport(
        recommendations=[
            Recommendation(type=kind, icon=icon, title=title, description=description)
            for kind, icon, title, description in items
        ],
        savings_rate=round(savings_rate, 1),
        monthly_income=round(monthly_income, 2),
        monthly_expenses=round(monthly_expenses, 2),
        monthly_savings=round(monthly_income - monthly_expenses, 2),
    )
