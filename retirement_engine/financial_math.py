from typing import List, Sequence
from datetime import date

from .schemas import AmortizationRow
from .models import LoanRecord
from .errors import PlannerError

# All rates are annual percentages (12.0 means 12%) unless the name says otherwise.

def future_value(principal: float, annual_rate: float, years: float) -> float:
    """Lumpsum compounded annually. No growth for years <= 0."""
    if years <= 0:
        return principal
    return principal * (1 + annual_rate / 100) ** years

def sip_future_value(monthly_amount: float, annual_rate: float, years: float) -> float:
    """
    Future value of a monthly contribution stream, paid at the start of
    each month (annuity-due), compounded monthly at annual_rate / 12.
    """
    if years <= 0 or monthly_amount <= 0:
        return 0.0
    monthly_rate = annual_rate / 1200
    months = years * 12
    if monthly_rate == 0:
        return monthly_amount * months
    return monthly_amount * (((1 + monthly_rate) ** months - 1) / monthly_rate) * (1 + monthly_rate)

def required_sip(target_amount: float, annual_rate: float, years: float) -> float:
    """
    Monthly contribution needed to reach target_amount; the inverse of
    sip_future_value. With no time left the whole target is due now.
    """
    if years <= 0:
        return target_amount
    monthly_rate = annual_rate / 1200
    months = years * 12
    if monthly_rate == 0:
        return target_amount / months
    factor = (((1 + monthly_rate) ** months - 1) / monthly_rate) * (1 + monthly_rate)
    return target_amount / factor

def inflated_value(amount: float, inflation_rate: float, years: float) -> float:
    return future_value(amount, inflation_rate, years)

def cagr(initial_value: float, final_value: float, years: float) -> float:
    """Compound annual growth rate, as a percentage."""
    if years <= 0 or initial_value <= 0:
        return 0.0
    return ((final_value / initial_value) ** (1 / years) - 1) * 100

def absolute_returns(invested: float, current_value: float) -> float:
    if invested <= 0:
        return 0.0
    return (current_value - invested) / invested * 100

def emi(principal: float, annual_rate: float, months: int) -> float:
    """
    Equated monthly installment:
    EMI = P * r * (1+r)^n / ((1+r)^n - 1), r = monthly rate
    """
    if months <= 0:
        return principal
    monthly_rate = annual_rate / 1200
    if monthly_rate == 0:
        return principal / months
    growth = (1 + monthly_rate) ** months
    return principal * monthly_rate * growth / (growth - 1)

def amortization_schedule(principal: float, monthly_rate_percent: float, emi_amount: float, months: int) -> List[AmortizationRow]:
    """
    Month-by-month split of each EMI into interest and principal.

    Args:
        principal: Outstanding amount at month 0
        monthly_rate_percent: Interest per month in percent (annual / 12)
        emi_amount: Fixed payment per month
        months: Maximum number of months to schedule

    Stops early once the balance is paid off.
    """
    schedule = []
    monthly_rate = monthly_rate_percent / 100
    balance = principal
    total_interest = 0.0
    total_principal = 0.0

    month = 1
    while month <= months and balance > 0:
        interest_component = balance * monthly_rate
        principal_component = min(emi_amount - interest_component, balance)
        balance -= principal_component

        total_interest += interest_component
        total_principal += principal_component

        schedule.append(AmortizationRow(
            month=month,
            emi=round(emi_amount, 2),
            principal=round(principal_component, 2),
            interest=round(interest_component, 2),
            balance=round(max(0.0, balance), 2),
            total_principal_paid=round(total_principal, 2),
            total_interest_paid=round(total_interest, 2),
        ))
        month += 1

    return schedule

def loan_amortization(loan: LoanRecord) -> List[AmortizationRow]:
    """Schedule for a loan record; missing fields count as 0, missing EMI is derived."""
    principal = loan.outstanding_amount or 0.0
    annual_rate = loan.interest_rate or 0.0
    months = loan.remaining_months or 0
    payment = loan.emi if loan.emi is not None else emi(principal, annual_rate, months)
    return amortization_schedule(principal, annual_rate / 12, payment, months)

def ppf_maturity(current_balance: float, yearly_contribution: float, annual_rate: float, remaining_years: int) -> float:
    """PPF balance with each year's deposit made at the start of the year."""
    balance = current_balance
    for _ in range(remaining_years):
        balance += yearly_contribution
        balance *= (1 + annual_rate / 100)
    return balance

def step_up_sip_future_value(initial_monthly: float, annual_rate: float, step_up_percent: float, years: int) -> float:
    """
    Future value of a SIP that increases by step_up_percent every year.
    Each monthly payment compounds until the end of the whole period.
    """
    total = 0.0
    current_sip = initial_monthly
    monthly_rate = annual_rate / 1200

    for year in range(1, years + 1):
        months_remaining = (years - year + 1) * 12
        for month in range(1, 13):
            months_to_grow = months_remaining - month + 1
            total += current_sip * (1 + monthly_rate) ** months_to_grow
        current_sip *= (1 + step_up_percent / 100)

    return total

# Newton steps are kept above a -100% return so (1 + rate) stays positive
XIRR_MIN_RATE = -0.9999

def xirr(cash_flows: Sequence[float], dates: Sequence[date], guess: float = 0.1, max_iterations: int = 100, tolerance: float = 1e-4) -> float:
    """
    Annualised internal rate of return for irregular cash flows,
    solved with Newton-Raphson. Returns a percentage.

    Outflows (investments) are negative, inflows positive.

    Raises:
        PlannerError: if the flows have no sign change or the solver does not converge
    """
    if len(cash_flows) != len(dates):
        raise ValueError("cash_flows and dates must be the same length")
    if not cash_flows:
        return 0.0
    if not (any(a > 0 for a in cash_flows) and any(a < 0 for a in cash_flows)):
        raise PlannerError("XIRR needs at least one inflow and one outflow")

    first_date = dates[0]
    offsets = [(d - first_date).days / 365.25 for d in dates]

    rate = guess
    try:
        for _ in range(max_iterations):
            f = 0.0
            df = 0.0
            for amount, years in zip(cash_flows, offsets):
                f += amount / (1 + rate) ** years
                df -= years * amount / (1 + rate) ** (years + 1)
            if df == 0:
                break
            new_rate = max(rate - f / df, XIRR_MIN_RATE)
            if abs(new_rate - rate) < tolerance:
                return new_rate * 100
            rate = new_rate
    except OverflowError as e:
        raise PlannerError("XIRR diverged from guess {}".format(guess)) from e

    raise PlannerError("XIRR did not converge in {} iterations".format(max_iterations))
