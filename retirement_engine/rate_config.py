from typing import Dict, FrozenSet, Optional
from pydantic import BaseModel
from enum import Enum

class AssetClass(str, Enum):
    PPF = "PPF"                    # Public Provident Fund (statutory, yearly deposits)
    EPF = "EPF"                    # Employee Provident Fund (monthly payroll deduction)
    MUTUAL_FUND = "MUTUAL_FUND"
    NPS = "NPS"                    # National Pension System
    FD = "FD"                      # Fixed deposit
    RD = "RD"                      # Recurring deposit
    STOCK = "STOCK"
    CASH = "CASH"
    REAL_ESTATE = "REAL_ESTATE"
    GOLD = "GOLD"
    CRYPTO = "CRYPTO"
    OTHER = "OTHER"

class IncomeStrategy(str, Enum):
    SUSTAINABLE = "SUSTAINABLE"
    SAFE_4_PERCENT = "SAFE_4_PERCENT"
    SIMPLE_DEPLETION = "SIMPLE_DEPLETION"


class RateReductionDefaults(BaseModel):
    """
    Decay applied to administered (government-set) and deposit rates
    as the projection moves further out.
    """
    enabled: bool
    reduction_percent: float
    period_years: int
    floor_rate: float

# -----------------------------------------------------------------------------
# 1. Return rates (annual, percent)
# -----------------------------------------------------------------------------
DEFAULT_RETURN_RATES: Dict[AssetClass, float] = {
    AssetClass.PPF: 7.1,
    AssetClass.EPF: 10.0,
    AssetClass.MUTUAL_FUND: 12.0,
    AssetClass.NPS: 10.0,
    AssetClass.FD: 7.0,
    AssetClass.RD: 6.5,
    AssetClass.STOCK: 12.0,
    AssetClass.CASH: 3.5,
    AssetClass.GOLD: 8.0,
    AssetClass.REAL_ESTATE: 7.0,
    AssetClass.CRYPTO: 15.0,
}

# Used for maturity valuation when an instrument carries no rate of its own
DEFAULT_MATURITY_RETURN = 7.0
ULIP_FUND_RETURN = 8.0

# Buckets tracked year by year in the projection matrix
PROJECTED_CLASSES = (
    AssetClass.PPF,
    AssetClass.EPF,
    AssetClass.MUTUAL_FUND,
    AssetClass.NPS,
    AssetClass.FD,
    AssetClass.RD,
    AssetClass.STOCK,
    AssetClass.CASH,
)

# Administered and deposit rates decay over time; market-linked ones never do
RATE_REDUCED_CLASSES: FrozenSet[AssetClass] = frozenset({
    AssetClass.PPF,
    AssetClass.EPF,
    AssetClass.FD,
    AssetClass.RD,
})

# Illiquid holdings are reported but never counted towards the retirement corpus
EXCLUDED_FROM_CORPUS: FrozenSet[AssetClass] = frozenset({
    AssetClass.REAL_ESTATE,
    AssetClass.GOLD,
    AssetClass.CRYPTO,
})
EXCLUDED_FROM_CORPUS_NOTE = "Gold, Real Estate, Crypto (illiquid assets)"

# -----------------------------------------------------------------------------
# 2. Scenario defaults
# -----------------------------------------------------------------------------
DEFAULT_CURRENT_AGE = 35
DEFAULT_RETIREMENT_AGE = 60
DEFAULT_LIFE_EXPECTANCY = 85
DEFAULT_INFLATION_RATE = 6.0
DEFAULT_SIP_STEP_UP_PERCENT = 10.0
DEFAULT_LUMPSUM_AMOUNT = 0.0
DEFAULT_EFFECTIVE_FROM_YEAR = 1
DEFAULT_INCOME_STRATEGY = IncomeStrategy.SUSTAINABLE
DEFAULT_CORPUS_RETURN_RATE = 10.0
DEFAULT_WITHDRAWAL_RATE = 8.0

DEFAULT_RATE_REDUCTION = RateReductionDefaults(
    enabled=True,
    reduction_percent=0.5,
    period_years=5,
    floor_rate=4.0,
)

# -----------------------------------------------------------------------------
# 3. Strategy and analysis constants
# -----------------------------------------------------------------------------
SAFE_WITHDRAWAL_RATE = 0.04
# 6% assumed growth less the 4% withdrawal
SAFE_NET_GROWTH_RATE = 0.02
SAFE_CORPUS_MULTIPLE = 25.0

INCOME_PROJECTION_INTERVAL_YEARS = 5
INCOME_PROJECTION_MAX_YEARS = 30

EXPENSE_PROJECTION_INTERVAL_YEARS = 5
EXPENSE_PROJECTION_MAX_YEARS = 15

# The "additional SIP" figure always assumes this return, whatever the scenario says
GAP_SIP_ASSUMED_RETURN = 10.0
DISCRETIONARY_CUT_PERCENT = 10.0
DELAY_RETIREMENT_MAX_YEARS = 25
# Cash freed by an expense that ends before retirement is assumed to go into equity SIPs
FREED_UP_EXPENSE_RETURN = 12.0

EMERGENCY_FUND_MONTHS = 6
TARGET_SAVINGS_RATE = 20.0

MONTE_CARLO_STD_DEV = 8.0
MONTE_CARLO_SUCCESS_MULTIPLE = 2.0
MONTE_CARLO_DEFAULT_SIMULATIONS = 1000
MONTE_CARLO_DEFAULT_WORKERS = 4


def get_default_return_rate(asset_class: Optional[AssetClass]) -> float:
    """
    Get the system default return for an asset class.
    Unknown or missing classes fall back to the maturity default (7%).
    """
    if asset_class is None:
        return DEFAULT_MATURITY_RETURN
    return DEFAULT_RETURN_RATES.get(asset_class, DEFAULT_MATURITY_RETURN)

def is_rate_reduced(asset_class: AssetClass) -> bool:
    return asset_class in RATE_REDUCED_CLASSES

def is_excluded_from_corpus(asset_class: Optional[AssetClass]) -> bool:
    return asset_class in EXCLUDED_FROM_CORPUS

def parse_income_strategy(tag: Optional[str]) -> Optional[IncomeStrategy]:
    """
    Map a strategy tag to the enum. Returns None for missing or unknown tags;
    the caller decides what the fallback is.
    """
    if tag is None:
        return None
    if isinstance(tag, IncomeStrategy):
        return tag
    try:
        return IncomeStrategy(str(tag).strip().upper())
    except ValueError:
        return None
