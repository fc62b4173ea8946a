from typing import Optional
from datetime import date
from sqlmodel import Field, SQLModel
from enum import Enum

# Import AssetClass / IncomeStrategy from rate_config to avoid circular imports
from .rate_config import AssetClass, IncomeStrategy

class InsuranceType(str, Enum):
    TERM_LIFE = "TERM_LIFE"
    HEALTH = "HEALTH"
    ULIP = "ULIP"                  # Unit-linked, has a fund value and a maturity
    ENDOWMENT = "ENDOWMENT"
    MONEY_BACK = "MONEY_BACK"
    ANNUITY = "ANNUITY"            # Pension policies: pay for N years, receive monthly
    VEHICLE = "VEHICLE"
    OTHER = "OTHER"

class HealthInsuranceType(str, Enum):
    GROUP = "GROUP"                # Employer-provided, ends with employment
    PERSONAL = "PERSONAL"
    FAMILY_FLOATER = "FAMILY_FLOATER"

class PremiumFrequency(str, Enum):
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    HALF_YEARLY = "HALF_YEARLY"
    YEARLY = "YEARLY"
    SINGLE = "SINGLE"

class ExpenseFrequency(str, Enum):
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    HALF_YEARLY = "HALF_YEARLY"
    YEARLY = "YEARLY"
    ONE_TIME = "ONE_TIME"

# Months covered by one payment; ONE_TIME has no monthly equivalent
EXPENSE_FREQUENCY_MONTHS = {
    ExpenseFrequency.MONTHLY: 1,
    ExpenseFrequency.QUARTERLY: 3,
    ExpenseFrequency.HALF_YEARLY: 6,
    ExpenseFrequency.YEARLY: 12,
    ExpenseFrequency.ONE_TIME: 0,
}

class ExpenseCategory(str, Enum):
    RENT = "RENT"
    UTILITIES = "UTILITIES"
    GROCERIES = "GROCERIES"
    TRANSPORT = "TRANSPORT"
    ENTERTAINMENT = "ENTERTAINMENT"
    HEALTHCARE = "HEALTHCARE"
    SHOPPING = "SHOPPING"
    DINING = "DINING"
    TRAVEL = "TRAVEL"
    SUBSCRIPTIONS = "SUBSCRIPTIONS"
    SCHOOL_FEE = "SCHOOL_FEE"
    COLLEGE_FEE = "COLLEGE_FEE"
    TUITION = "TUITION"
    COACHING = "COACHING"
    BOOKS_SUPPLIES = "BOOKS_SUPPLIES"
    HOSTEL = "HOSTEL"
    CHILDCARE = "CHILDCARE"
    DAYCARE = "DAYCARE"
    ELDERLY_CARE = "ELDERLY_CARE"
    MAINTENANCE = "MAINTENANCE"
    SOCIETY_CHARGES = "SOCIETY_CHARGES"
    INSURANCE_PREMIUM = "INSURANCE_PREMIUM"
    OTHER = "OTHER"

class GoalPriority(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class InvestmentRecord(SQLModel):
    name: str = "Investment"
    type: Optional[AssetClass] = None
    current_value: Optional[float] = None
    invested_amount: Optional[float] = None
    monthly_sip: Optional[float] = None
    sip_day: Optional[int] = Field(default=None, ge=1, le=31)
    yearly_contribution: Optional[float] = None   # PPF style deposits
    interest_rate: Optional[float] = None         # FD / RD contractual rate
    expected_return: Optional[float] = None
    maturity_date: Optional[date] = None

    @property
    def effective_value(self) -> float:
        """Current value, falling back to the invested amount, then 0."""
        if self.current_value is not None:
            return self.current_value
        if self.invested_amount is not None:
            return self.invested_amount
        return 0.0

class InsuranceRecord(SQLModel):
    policy_name: str = "Policy"
    type: Optional[InsuranceType] = None
    health_type: Optional[HealthInsuranceType] = None
    annual_premium: Optional[float] = None
    premium_frequency: Optional[PremiumFrequency] = None
    sum_assured: Optional[float] = None
    fund_value: Optional[float] = None            # ULIP only
    maturity_benefit: Optional[float] = None
    maturity_date: Optional[date] = None
    continues_after_retirement: Optional[bool] = None  # explicit override
    coverage_end_age: Optional[int] = None
    renewal_month: Optional[int] = Field(default=None, ge=1, le=12)

    @property
    def monthly_premium(self) -> float:
        return (self.annual_premium or 0.0) / 12

class GoalRecord(SQLModel):
    name: str = "Goal"
    target_amount: Optional[float] = None
    target_year: Optional[int] = None
    priority: Optional[GoalPriority] = None

class ExpenseRecord(SQLModel):
    name: str = "Expense"
    category: Optional[ExpenseCategory] = None
    amount: Optional[float] = None
    frequency: Optional[ExpenseFrequency] = None

    # Time-bound expenses stop at end_date, or when the dependent reaches end_age
    is_time_bound: bool = False
    end_date: Optional[date] = None
    end_age: Optional[int] = None
    dependent_name: Optional[str] = None
    dependent_current_age: Optional[int] = None
    dependent_dob: Optional[date] = None
    continues_after_retirement: Optional[bool] = None  # explicit override

    @property
    def monthly_amount(self) -> float:
        if self.amount is None:
            return 0.0
        if self.frequency is None or self.frequency == ExpenseFrequency.MONTHLY:
            return self.amount
        months = EXPENSE_FREQUENCY_MONTHS[self.frequency]
        if months == 0:
            return 0.0
        return self.amount / months

    @property
    def yearly_amount(self) -> float:
        if self.amount is None:
            return 0.0
        if self.frequency == ExpenseFrequency.ONE_TIME:
            return self.amount
        return self.monthly_amount * 12

    def calculate_end_year(self, current_year: int) -> Optional[int]:
        """
        Last year a time-bound expense is paid. None for open-ended
        expenses and for time-bound ones with nothing to date them by.
        """
        if not self.is_time_bound:
            return None
        if self.end_date is not None:
            return self.end_date.year
        if self.end_age is not None and self.dependent_current_age is not None:
            return current_year + self.end_age - self.dependent_current_age
        if self.end_age is not None and self.dependent_dob is not None:
            return self.dependent_dob.year + self.end_age
        return None

    def continues_after(self, retirement_year: int, current_year: int) -> bool:
        if self.continues_after_retirement is not None:
            return self.continues_after_retirement
        end_year = self.calculate_end_year(current_year)
        return end_year is None or end_year >= retirement_year

class IncomeRecord(SQLModel):
    name: str = "Income"
    monthly_amount: Optional[float] = None

class LoanRecord(SQLModel):
    name: str = "Loan"
    outstanding_amount: Optional[float] = None
    interest_rate: Optional[float] = None        # annual, percent
    emi: Optional[float] = None
    remaining_months: Optional[int] = None
    emi_day: Optional[int] = Field(default=None, ge=1, le=31)


class ScenarioAssumptions(SQLModel):
    """
    A possibly-partial set of planning assumptions. Every field left as
    None is filled with a system default by resolve_scenario().
    Rates are annual percentages.
    """
    name: Optional[str] = None
    current_age: Optional[int] = None
    retirement_age: Optional[int] = None
    life_expectancy: Optional[int] = None
    inflation_rate: Optional[float] = None

    ppf_return: Optional[float] = None
    epf_return: Optional[float] = None
    mf_return: Optional[float] = None
    nps_return: Optional[float] = None
    fd_return: Optional[float] = None
    rd_return: Optional[float] = None
    stock_return: Optional[float] = None
    cash_return: Optional[float] = None

    sip_step_up_percent: Optional[float] = None
    lumpsum_amount: Optional[float] = None
    effective_from_year: Optional[int] = None

    income_strategy: Optional[str] = None
    corpus_return_rate: Optional[float] = None
    withdrawal_rate: Optional[float] = None

    enable_rate_reduction: Optional[bool] = None
    rate_reduction_percent: Optional[float] = None
    rate_reduction_years: Optional[int] = None
    rate_floor: Optional[float] = None

# Scenario override field for each projected bucket
RETURN_OVERRIDE_FIELDS = {
    AssetClass.PPF: "ppf_return",
    AssetClass.EPF: "epf_return",
    AssetClass.MUTUAL_FUND: "mf_return",
    AssetClass.NPS: "nps_return",
    AssetClass.FD: "fd_return",
    AssetClass.RD: "rd_return",
    AssetClass.STOCK: "stock_return",
    AssetClass.CASH: "cash_return",
}

