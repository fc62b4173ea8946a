import logging
from typing import Dict, Iterable, List, Optional
from collections import defaultdict
from pydantic import BaseModel

from .errors import ConfigurationError
from .models import InvestmentRecord
from .rate_config import AssetClass, PROJECTED_CLASSES
from .scenario import ResolvedScenario
from .cash_events import CashEvent, CashEventKind
from .financial_math import sip_future_value
from .schemas import ProjectionRow, StepUpOptimization, StepUpScenario

logger = logging.getLogger(__name__)

# Buckets rolled up into otherLiquidBalance in the matrix
OTHER_LIQUID_CLASSES = (AssetClass.FD, AssetClass.RD, AssetClass.STOCK, AssetClass.CASH)


class BucketPosition(BaseModel):
    """Starting state of one asset bucket, summed over all holdings of that class."""
    balance: float = 0.0
    monthly_contribution: float = 0.0
    yearly_contribution: float = 0.0

def aggregate_positions(investments: Iterable[InvestmentRecord]) -> Dict[AssetClass, BucketPosition]:
    """
    Sum holdings by asset class. Only the projected buckets are returned;
    illiquid classes (real estate, gold, crypto) never enter the corpus.
    """
    totals = {asset_class: {"balance": 0.0, "monthly": 0.0, "yearly": 0.0} for asset_class in PROJECTED_CLASSES}
    for inv in investments:
        if inv.type not in totals:
            continue
        t = totals[inv.type]
        t["balance"] += inv.effective_value
        t["monthly"] += inv.monthly_sip or 0.0
        t["yearly"] += inv.yearly_contribution or 0.0

    return {
        asset_class: BucketPosition(
            balance=t["balance"],
            monthly_contribution=t["monthly"],
            yearly_contribution=t["yearly"],
        )
        for asset_class, t in totals.items()
    }

def _group_events_by_year(events: Iterable[CashEvent]) -> Dict[int, List[CashEvent]]:
    by_year = defaultdict(list)
    for event in events:
        by_year[event.year].append(event)
    return by_year

def run_projection(
    positions: Dict[AssetClass, BucketPosition],
    scenario: ResolvedScenario,
    events: Iterable[CashEvent],
    start_year: int,
    years: Optional[int] = None
) -> List[ProjectionRow]:
    """
    Step every bucket forward one year at a time from today (year 0) to
    retirement, producing years + 1 rows.

    Row 0 is the opening state: no growth and no contributions. Each later
    row depends only on the previous row's balances plus the event schedule.

    Contributions per bucket:
        PPF: yearly deposit
        EPF, NPS: monthly * 12
        Mutual fund: one year of SIP (annuity-due) + yearly lumpsum; SIP steps up
        RD: one year of its monthly deposit (no step-up)
        FD, stock, cash: none

    Args:
        positions: Opening balances and contributions per bucket
        scenario: Resolved assumptions
        events: Maturity inflows and goal outflows
        start_year: Calendar year of row 0
        years: Override for the horizon (defaults to years to retirement)
    """
    if years is None:
        years = scenario.years_to_retirement
    if years < 0:
        raise ConfigurationError(f"Projection horizon cannot be negative (got {years})")

    events_by_year = _group_events_by_year(events)
    balances = {c: positions.get(c, BucketPosition()).balance for c in PROJECTED_CLASSES}
    current_sip = positions.get(AssetClass.MUTUAL_FUND, BucketPosition()).monthly_contribution
    rd_sip = positions.get(AssetClass.RD, BucketPosition()).monthly_contribution
    ppf_yearly = positions.get(AssetClass.PPF, BucketPosition()).yearly_contribution
    epf_monthly = positions.get(AssetClass.EPF, BucketPosition()).monthly_contribution
    nps_monthly = positions.get(AssetClass.NPS, BucketPosition()).monthly_contribution

    logger.debug(
        "Projecting %d years from %d; opening balances %s",
        years, start_year, {c.value: round(b) for c, b in balances.items()}
    )

    rows = []
    for k in range(years + 1):
        calendar_year = start_year + k

        # 1-2. Rates for this year (defaults before effective year, then reduction policy)
        rates = {c: scenario.rate_for_year(c, k) for c in PROJECTED_CLASSES}

        # 3-4. Growth + contributions; opening row is left untouched
        if k > 0:
            grown = {c: balances[c] * (1 + rates[c] / 100) for c in PROJECTED_CLASSES}
            grown[AssetClass.PPF] += ppf_yearly
            grown[AssetClass.EPF] += epf_monthly * 12
            grown[AssetClass.NPS] += nps_monthly * 12
            grown[AssetClass.MUTUAL_FUND] += sip_future_value(current_sip, rates[AssetClass.MUTUAL_FUND], 1)
            grown[AssetClass.MUTUAL_FUND] += scenario.lumpsum_amount
            grown[AssetClass.RD] += sip_future_value(rd_sip, rates[AssetClass.RD], 1)
            balances = {c: max(0.0, v) for c, v in grown.items()}

            if k >= scenario.effective_from_year:
                current_sip = current_sip * (1 + scenario.sip_step_up_percent / 100)

        # 5. Cash events landing in this calendar year
        insurance_maturity = 0.0
        investment_maturity = 0.0
        goal_outflow = 0.0
        maturing_policies = []
        maturing_investments = []
        goals_this_year = []
        for event in events_by_year.get(calendar_year, []):
            if event.kind == CashEventKind.INSURANCE_MATURITY:
                insurance_maturity += event.amount
                maturing_policies.append(event.source)
            elif event.kind == CashEventKind.INVESTMENT_MATURITY:
                investment_maturity += event.amount
                maturing_investments.append(event.source)
            else:
                goal_outflow += abs(event.amount)
                goals_this_year.append(event.source)
        total_inflow = insurance_maturity + investment_maturity

        # 6. Net corpus
        bucket_total = sum(balances.values())
        total_corpus = bucket_total + total_inflow
        net_corpus = max(0.0, total_corpus - goal_outflow)

        rows.append(ProjectionRow(
            sno=k + 1,
            year=calendar_year,
            year_offset=k,
            age=scenario.current_age + k,
            balances={c: round(b, 2) for c, b in balances.items()},
            rates=rates,
            ppf_balance=round(balances[AssetClass.PPF], 2),
            ppf_rate=rates[AssetClass.PPF],
            epf_balance=round(balances[AssetClass.EPF], 2),
            epf_rate=rates[AssetClass.EPF],
            mf_balance=round(balances[AssetClass.MUTUAL_FUND], 2),
            mf_rate=rates[AssetClass.MUTUAL_FUND],
            mf_sip=round(current_sip, 2),
            nps_balance=round(balances[AssetClass.NPS], 2),
            nps_rate=rates[AssetClass.NPS],
            other_liquid_balance=round(sum(balances[c] for c in OTHER_LIQUID_CLASSES), 2),
            total_corpus=round(total_corpus, 2),
            insurance_maturity=round(insurance_maturity, 2),
            investment_maturity=round(investment_maturity, 2),
            total_inflow=round(total_inflow, 2),
            maturing_policies=maturing_policies,
            maturing_investments=maturing_investments,
            goal_outflow=round(goal_outflow, 2),
            total_outflow=round(goal_outflow, 2),
            goals_this_year=goals_this_year,
            net_corpus=round(net_corpus, 2),
        ))

    return rows


# -----------------------------------------------------------------------------
# SIP step-up optimisation
# -----------------------------------------------------------------------------
def simulate_corpus_with_step_up_stop(
    mf_balance: float,
    monthly_sip: float,
    mf_return: float,
    step_up_percent: float,
    years_to_retirement: int,
    stop_year: int,
    effective_from_year: int
) -> float:
    """Mutual-fund bucket at retirement if SIP step-up halts at stop_year."""
    corpus = mf_balance
    current_sip = monthly_sip
    for year in range(1, years_to_retirement + 1):
        corpus = corpus * (1 + mf_return / 100)
        corpus += sip_future_value(current_sip, mf_return, 1)
        if effective_from_year <= year < stop_year:
            current_sip = current_sip * (1 + step_up_percent / 100)
    return corpus

def _stepped_sip(monthly_sip: float, step_up_percent: float, from_year: int, to_year: int) -> float:
    sip = monthly_sip
    for _ in range(from_year, to_year):
        sip = sip * (1 + step_up_percent / 100)
    return sip

def optimize_sip_step_up(
    mf_balance: float,
    monthly_sip: float,
    scenario: ResolvedScenario,
    required_corpus: float,
    projected_corpus: float
) -> StepUpOptimization:
    """
    Find the earliest year the SIP step-up can stop while the projection
    still meets required_corpus.

    Every stop year from the effective year to retirement is simulated;
    the recommendation is the first one that meets the target.
    """
    years = scenario.years_to_retirement
    step_up = scenario.sip_step_up_percent
    effective_from = scenario.effective_from_year
    mf_return = scenario.return_rates[AssetClass.MUTUAL_FUND]

    if step_up <= 0 or years <= 0 or monthly_sip <= 0:
        return StepUpOptimization(
            reason="No SIP step-up configured or no SIP investments",
            current_projected_corpus=round(projected_corpus, 2),
            required_corpus=round(required_corpus, 2),
        )

    if projected_corpus < required_corpus:
        return StepUpOptimization(
            reason="Current projection already below required corpus - continue step-up",
            current_projected_corpus=round(projected_corpus, 2),
            required_corpus=round(required_corpus, 2),
            deficit=round(required_corpus - projected_corpus, 2),
        )

    scenarios = []
    first_meeting_year = None
    corpus_at_optimal_stop = projected_corpus
    for stop_year in range(effective_from, years + 1):
        corpus = simulate_corpus_with_step_up_stop(
            mf_balance, monthly_sip, mf_return, step_up, years, stop_year, effective_from
        )
        meets_target = corpus >= required_corpus
        scenarios.append(StepUpScenario(
            stop_year=stop_year,
            projected_corpus=round(corpus, 2),
            meets_target=meets_target,
            surplus=round(corpus - required_corpus, 2),
            final_sip_at_stop=round(_stepped_sip(monthly_sip, step_up, effective_from, stop_year), 2),
        ))
        if meets_target and first_meeting_year is None:
            first_meeting_year = stop_year
            corpus_at_optimal_stop = corpus

    optimal_stop = first_meeting_year if first_meeting_year is not None else years
    sip_at_full = _stepped_sip(monthly_sip, step_up, effective_from, years)
    sip_at_optimal = _stepped_sip(monthly_sip, step_up, effective_from, optimal_stop)
    monthly_relief = sip_at_full - sip_at_optimal
    can_stop_early = first_meeting_year is not None and first_meeting_year < years

    if can_stop_early:
        recommendation = (
            "You can stop SIP step-up after year {} (age {}) and still meet your target. "
            "This saves {} years of step-up, reducing monthly SIP burden by ₹{:,} in final years."
        ).format(
            first_meeting_year,
            scenario.current_age + first_meeting_year,
            years - first_meeting_year,
            round(monthly_relief),
        )
    else:
        recommendation = "Continue SIP step-up until retirement to meet your target corpus."

    return StepUpOptimization(
        optimal_stop_year=first_meeting_year,
        can_stop_early=can_stop_early,
        current_projected_corpus=round(projected_corpus, 2),
        corpus_at_optimal_stop=round(corpus_at_optimal_stop, 2),
        required_corpus=round(required_corpus, 2),
        sip_at_start=round(monthly_sip, 2),
        sip_at_full_step_up=round(sip_at_full, 2),
        sip_at_optimal_stop=round(sip_at_optimal, 2),
        monthly_relief_from_stopping_early=round(monthly_relief, 2),
        years_of_step_up=optimal_stop - effective_from,
        years_without_step_up=years - first_meeting_year if first_meeting_year is not None else 0,
        scenarios=scenarios,
        recommendation=recommendation,
    )

def annotate_step_up(
    rows: List[ProjectionRow],
    optimization: StepUpOptimization,
    effective_from_year: int,
    start_year: int
) -> List[ProjectionRow]:
    """New rows carrying whether step-up is still active that year; the input rows are untouched."""
    stop = optimization.optimal_stop_year
    stop_calendar_year = start_year + stop if stop is not None else None
    annotated = []
    for row in rows:
        active = (stop is None or row.year_offset < stop) and row.year_offset >= effective_from_year
        annotated.append(row.model_copy(update={
            "sip_step_up_active": active,
            "sip_step_up_stop_year": stop_calendar_year,
        }))
    return annotated
