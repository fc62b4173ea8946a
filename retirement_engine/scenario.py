import logging
from typing import Dict, Iterable, Optional
from pydantic import BaseModel, ConfigDict

from .errors import ConfigurationError
from .models import InvestmentRecord, ScenarioAssumptions, RETURN_OVERRIDE_FIELDS
from .rate_config import (
    AssetClass,
    IncomeStrategy,
    PROJECTED_CLASSES,
    DEFAULT_CURRENT_AGE,
    DEFAULT_RETIREMENT_AGE,
    DEFAULT_LIFE_EXPECTANCY,
    DEFAULT_INFLATION_RATE,
    DEFAULT_SIP_STEP_UP_PERCENT,
    DEFAULT_LUMPSUM_AMOUNT,
    DEFAULT_EFFECTIVE_FROM_YEAR,
    DEFAULT_INCOME_STRATEGY,
    DEFAULT_CORPUS_RETURN_RATE,
    DEFAULT_WITHDRAWAL_RATE,
    DEFAULT_RATE_REDUCTION,
    get_default_return_rate,
    is_rate_reduced,
    parse_income_strategy,
)

logger = logging.getLogger(__name__)


class RateReductionPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool
    reduction_percent: float
    period_years: int
    floor_rate: float

    def apply(self, rate: float, year: int) -> float:
        """
        Reduce rate by one step per completed period, never below the floor.
        Year 0 (the opening state) is never reduced.
        """
        if not self.enabled or year <= 0 or self.period_years <= 0:
            return rate
        periods = year // self.period_years
        return max(self.floor_rate, rate - periods * self.reduction_percent)


class ResolvedScenario(BaseModel):
    """
    Fully populated, immutable planning assumptions. Built once per
    request by resolve_scenario() and read everywhere else.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    current_age: int
    retirement_age: int
    life_expectancy: int
    inflation_rate: float
    return_rates: Dict[AssetClass, float]
    default_return_rates: Dict[AssetClass, float]
    sip_step_up_percent: float
    lumpsum_amount: float
    effective_from_year: int
    income_strategy: IncomeStrategy
    corpus_return_rate: float
    withdrawal_rate: float
    rate_reduction: RateReductionPolicy

    @property
    def years_to_retirement(self) -> int:
        return self.retirement_age - self.current_age

    @property
    def retirement_years(self) -> int:
        return self.life_expectancy - self.retirement_age

    def base_rate(self, asset_class: AssetClass, year: int) -> float:
        """
        Rate for a bucket before any reduction. Scenario changes only
        take effect from effective_from_year; earlier years use defaults.
        """
        if year < self.effective_from_year:
            return self.default_return_rates[asset_class]
        return self.return_rates[asset_class]

    def rate_for_year(self, asset_class: AssetClass, year: int) -> float:
        rate = self.base_rate(asset_class, year)
        if is_rate_reduced(asset_class):
            rate = self.rate_reduction.apply(rate, year)
        return rate


def _pick(value, default):
    return default if value is None else value

def weighted_average_rate(investments: Iterable[InvestmentRecord], asset_class: AssetClass, default_rate: float) -> float:
    """
    Value-weighted average of the instruments' own rates (interest rate,
    then expected return). Falls back to default_rate when nothing is held.
    """
    total_value = 0.0
    weighted = 0.0
    for inv in investments:
        if inv.type != asset_class:
            continue
        value = inv.effective_value
        if inv.interest_rate is not None:
            rate = inv.interest_rate
        elif inv.expected_return is not None:
            rate = inv.expected_return
        else:
            rate = default_rate
        total_value += value
        weighted += value * rate
    if total_value <= 0:
        return default_rate
    return weighted / total_value

def resolve_scenario(
    assumptions: Optional[ScenarioAssumptions] = None,
    investments: Iterable[InvestmentRecord] = ()
) -> ResolvedScenario:
    """
    Fill every unset assumption with its system default and validate ages.

    FD and RD rates without an explicit override follow what the user
    actually holds (value-weighted), since those rates are contractual.

    Raises:
        ConfigurationError: retirement age not after current age, or
            life expectancy not after retirement age.
    """
    if assumptions is None:
        assumptions = ScenarioAssumptions()
    investments = list(investments)

    current_age = _pick(assumptions.current_age, DEFAULT_CURRENT_AGE)
    retirement_age = _pick(assumptions.retirement_age, DEFAULT_RETIREMENT_AGE)
    life_expectancy = _pick(assumptions.life_expectancy, DEFAULT_LIFE_EXPECTANCY)

    if retirement_age <= current_age:
        raise ConfigurationError(
            f"Retirement age ({retirement_age}) must be greater than current age ({current_age})"
        )
    if life_expectancy <= retirement_age:
        raise ConfigurationError(
            f"Life expectancy ({life_expectancy}) must be greater than retirement age ({retirement_age})"
        )

    default_rates = {}
    for asset_class in PROJECTED_CLASSES:
        default_rates[asset_class] = get_default_return_rate(asset_class)
    for asset_class in (AssetClass.FD, AssetClass.RD):
        default_rates[asset_class] = weighted_average_rate(investments, asset_class, default_rates[asset_class])

    return_rates = {}
    for asset_class in PROJECTED_CLASSES:
        override = getattr(assumptions, RETURN_OVERRIDE_FIELDS[asset_class])
        return_rates[asset_class] = _pick(override, default_rates[asset_class])

    strategy = parse_income_strategy(assumptions.income_strategy)
    if strategy is None:
        if assumptions.income_strategy is not None:
            logger.warning(
                "Unknown income strategy %r, falling back to %s",
                assumptions.income_strategy, DEFAULT_INCOME_STRATEGY.value
            )
        strategy = DEFAULT_INCOME_STRATEGY

    reduction = RateReductionPolicy(
        enabled=_pick(assumptions.enable_rate_reduction, DEFAULT_RATE_REDUCTION.enabled),
        reduction_percent=_pick(assumptions.rate_reduction_percent, DEFAULT_RATE_REDUCTION.reduction_percent),
        period_years=_pick(assumptions.rate_reduction_years, DEFAULT_RATE_REDUCTION.period_years),
        floor_rate=_pick(assumptions.rate_floor, DEFAULT_RATE_REDUCTION.floor_rate),
    )
    if reduction.enabled and reduction.period_years <= 0:
        logger.warning("Rate reduction period is %s years; reduction will not be applied", reduction.period_years)

    resolved = ResolvedScenario(
        name=assumptions.name or "Default",
        current_age=current_age,
        retirement_age=retirement_age,
        life_expectancy=life_expectancy,
        inflation_rate=_pick(assumptions.inflation_rate, DEFAULT_INFLATION_RATE),
        return_rates=return_rates,
        default_return_rates=default_rates,
        sip_step_up_percent=_pick(assumptions.sip_step_up_percent, DEFAULT_SIP_STEP_UP_PERCENT),
        lumpsum_amount=_pick(assumptions.lumpsum_amount, DEFAULT_LUMPSUM_AMOUNT),
        effective_from_year=_pick(assumptions.effective_from_year, DEFAULT_EFFECTIVE_FROM_YEAR),
        income_strategy=strategy,
        corpus_return_rate=_pick(assumptions.corpus_return_rate, DEFAULT_CORPUS_RETURN_RATE),
        withdrawal_rate=_pick(assumptions.withdrawal_rate, DEFAULT_WITHDRAWAL_RATE),
        rate_reduction=reduction,
    )
    logger.debug(
        "Resolved scenario %s: age %s -> %s, life expectancy %s, strategy %s",
        resolved.name, current_age, retirement_age, life_expectancy, strategy.value
    )
    return resolved
