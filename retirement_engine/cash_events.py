import logging
from typing import Iterable, List, Tuple
from datetime import date
from enum import Enum
from dateutil.relativedelta import relativedelta

from .schemas import CamelModel, MaturingInvestment, MaturingPolicy, MaturityReport
from .models import InvestmentRecord, InsuranceRecord, InsuranceType, GoalRecord
from .rate_config import AssetClass, DEFAULT_MATURITY_RETURN, ULIP_FUND_RETURN, get_default_return_rate
from .financial_math import future_value, sip_future_value, inflated_value

logger = logging.getLogger(__name__)

# Policies that pay out a lumpsum at the end of the term
MATURING_POLICY_TYPES = (InsuranceType.ULIP, InsuranceType.ENDOWMENT, InsuranceType.MONEY_BACK)


class CashEventKind(str, Enum):
    INVESTMENT_MATURITY = "INVESTMENT_MATURITY"
    INSURANCE_MATURITY = "INSURANCE_MATURITY"
    GOAL = "GOAL"

class CashEvent(CamelModel):
    """
    A one-off cash movement in a calendar year.
    Positive amounts are inflows (maturities), negative are outflows (goals).
    """
    year: int
    amount: float
    source: str
    kind: CashEventKind

    @property
    def is_inflow(self) -> bool:
        return self.amount > 0


def years_between(start: date, end: date) -> int:
    """Whole years from start to end (negative if end is earlier)."""
    return relativedelta(end, start).years

def expected_maturity_value(inv: InvestmentRecord, today: date) -> float:
    """
    Value of an instrument on its maturity date.

    - FD: lumpsum at its interest rate (default 7%)
    - RD: lumpsum plus its monthly deposits, both at its interest rate (default 6.5%)
    - PPF: lumpsum plus yearly deposits (spread monthly) at its expected return
    - anything else: lumpsum at its expected return (default 7%)
    """
    current_value = inv.effective_value
    if inv.maturity_date is None:
        return current_value

    years = years_between(today, inv.maturity_date)
    if years <= 0:
        return current_value

    if inv.type == AssetClass.FD:
        rate = inv.interest_rate if inv.interest_rate is not None else get_default_return_rate(AssetClass.FD)
        return future_value(current_value, rate, years)

    if inv.type == AssetClass.RD:
        rate = inv.interest_rate if inv.interest_rate is not None else get_default_return_rate(AssetClass.RD)
        value = future_value(current_value, rate, years)
        if inv.monthly_sip:
            value += sip_future_value(inv.monthly_sip, rate, years)
        return value

    if inv.type == AssetClass.PPF:
        rate = inv.expected_return if inv.expected_return is not None else get_default_return_rate(AssetClass.PPF)
        value = future_value(current_value, rate, years)
        if inv.yearly_contribution:
            value += sip_future_value(inv.yearly_contribution / 12, rate, years)
        return value

    rate = inv.expected_return if inv.expected_return is not None else DEFAULT_MATURITY_RETURN
    return future_value(current_value, rate, years)

def expected_policy_maturity_value(policy: InsuranceRecord, today: date) -> float:
    """
    Payout of an insurance policy at maturity: the stated maturity benefit,
    else a ULIP's fund value grown at 8%, else the sum assured, else the fund value.
    """
    if policy.maturity_benefit is not None:
        return policy.maturity_benefit
    if policy.type == InsuranceType.ULIP and policy.fund_value is not None:
        years = years_between(today, policy.maturity_date) if policy.maturity_date else 0
        return future_value(policy.fund_value, ULIP_FUND_RETURN, years)
    if policy.sum_assured is not None:
        return policy.sum_assured
    return policy.fund_value or 0.0

def _matures_within(maturity_date, today: date, horizon: date) -> bool:
    return maturity_date is not None and today < maturity_date < horizon

def track_maturities(
    investments: Iterable[InvestmentRecord],
    insurance: Iterable[InsuranceRecord],
    today: date,
    horizon: date
) -> Tuple[List[CashEvent], MaturityReport]:
    """
    Turn every instrument maturing strictly between today and horizon into
    an inflow event dated to its maturity year.

    Returns:
        (events, report) where report lists the maturing instruments
        sorted by maturity date, with totals.
    """
    events = []
    maturing_investments = []
    maturing_policies = []

    for inv in investments:
        if not _matures_within(inv.maturity_date, today, horizon):
            continue
        value = expected_maturity_value(inv, today)
        type_name = inv.type.value if inv.type else AssetClass.OTHER.value
        events.append(CashEvent(
            year=inv.maturity_date.year,
            amount=value,
            source=f"{inv.name} ({type_name})",
            kind=CashEventKind.INVESTMENT_MATURITY,
        ))
        maturing_investments.append(MaturingInvestment(
            name=inv.name,
            type=type_name,
            maturity_date=inv.maturity_date,
            years_to_maturity=years_between(today, inv.maturity_date),
            expected_maturity_value=round(value, 2),
            current_value=inv.current_value or 0.0,
        ))

    for policy in insurance:
        if policy.type not in MATURING_POLICY_TYPES:
            continue
        if not _matures_within(policy.maturity_date, today, horizon):
            continue
        value = expected_policy_maturity_value(policy, today)
        events.append(CashEvent(
            year=policy.maturity_date.year,
            amount=value,
            source=policy.policy_name,
            kind=CashEventKind.INSURANCE_MATURITY,
        ))
        maturing_policies.append(MaturingPolicy(
            name=policy.policy_name,
            type=policy.type.value,
            maturity_date=policy.maturity_date,
            years_to_maturity=years_between(today, policy.maturity_date),
            expected_maturity_value=round(value, 2),
            current_fund_value=policy.fund_value or 0.0,
        ))

    maturing_investments.sort(key=lambda item: item.maturity_date)
    maturing_policies.sort(key=lambda item: item.maturity_date)

    report = MaturityReport(
        maturing_investments=maturing_investments,
        maturing_insurance=maturing_policies,
        total_maturing_before_retirement=round(sum(e.amount for e in events), 2),
        investment_count=len(maturing_investments),
        insurance_count=len(maturing_policies),
        retirement_date=horizon,
    )
    logger.debug("Found %d maturities before %s", len(events), horizon)
    return events, report

def schedule_goal_outflows(goals: Iterable[GoalRecord], inflation_rate: float, current_year: int) -> List[CashEvent]:
    """
    One negative event per goal in its target year, inflated from today's
    money. Goals without a year or amount are skipped.
    """
    events = []
    for goal in goals:
        if goal.target_year is None or goal.target_amount is None:
            continue
        amount = inflated_value(goal.target_amount, inflation_rate, goal.target_year - current_year)
        events.append(CashEvent(
            year=goal.target_year,
            amount=-amount,
            source=goal.name,
            kind=CashEventKind.GOAL,
        ))
    return events
