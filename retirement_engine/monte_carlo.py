import logging
from typing import Dict, Iterable, Optional
from concurrent.futures import ThreadPoolExecutor
import numpy as np

from .errors import ConfigurationError
from .models import InvestmentRecord
from .rate_config import (
    AssetClass,
    MONTE_CARLO_STD_DEV,
    MONTE_CARLO_SUCCESS_MULTIPLE,
    MONTE_CARLO_DEFAULT_SIMULATIONS,
    MONTE_CARLO_DEFAULT_WORKERS,
)
from .scenario import ResolvedScenario
from .schemas import MonteCarloResult, Percentiles

logger = logging.getLogger(__name__)

PERCENTILE_RANKS: Dict[str, float] = {
    "p10": 0.10,
    "p25": 0.25,
    "p50": 0.50,
    "p75": 0.75,
    "p90": 0.90,
}


def simulate_paths(
    n_paths: int,
    starting_corpus: float,
    monthly_contribution: float,
    mean_return: float,
    std_dev: float,
    years: int,
    seed
) -> np.ndarray:
    """
    Final corpus of n_paths independent paths. Every year draws one
    Gaussian return per path; the year's contributions earn half that
    return (mid-year approximation).
    """
    rng = np.random.default_rng(seed)
    values = np.full(n_paths, float(starting_corpus))
    yearly_contribution = monthly_contribution * 12
    for _ in range(years):
        r = rng.normal(mean_return, std_dev, size=n_paths)
        values = values * (1 + r / 100) + yearly_contribution * (1 + r / 200)
    return values

def run_monte_carlo(
    starting_corpus: float,
    monthly_contribution: float,
    mean_return: float,
    simulations: int = MONTE_CARLO_DEFAULT_SIMULATIONS,
    years: int = 10,
    std_dev: float = MONTE_CARLO_STD_DEV,
    seed: Optional[int] = None,
    workers: int = MONTE_CARLO_DEFAULT_WORKERS
) -> MonteCarloResult:
    """
    Distribution of the corpus after `years` of random returns.

    Paths are split into chunks simulated on a thread pool, each chunk with
    its own child stream of the seed, then merged and sorted. The same seed
    and worker count always give the same result; seed=None draws fresh
    entropy.

    Raises:
        ConfigurationError: simulations <= 0 or years < 0
    """
    if simulations <= 0:
        raise ConfigurationError(f"Simulation count must be positive (got {simulations})")
    if years < 0:
        raise ConfigurationError(f"Simulation years cannot be negative (got {years})")

    n_chunks = max(1, min(workers, simulations))
    chunk_sizes = [len(chunk) for chunk in np.array_split(np.arange(simulations), n_chunks)]
    child_seeds = np.random.SeedSequence(seed).spawn(n_chunks)
    logger.debug("Monte Carlo: %d paths x %d years in %d chunks", simulations, years, n_chunks)

    with ThreadPoolExecutor(max_workers=n_chunks) as executor:
        futures = [
            executor.submit(
                simulate_paths, size, starting_corpus, monthly_contribution,
                mean_return, std_dev, years, child_seed
            )
            for size, child_seed in zip(chunk_sizes, child_seeds)
        ]
        final_values = np.sort(np.concatenate([f.result() for f in futures]))

    percentiles = {
        name: float(final_values[int(simulations * rank)])
        for name, rank in PERCENTILE_RANKS.items()
    }
    target_value = starting_corpus * MONTE_CARLO_SUCCESS_MULTIPLE
    success_rate = float(np.count_nonzero(final_values >= target_value)) / simulations

    return MonteCarloResult(
        simulations=simulations,
        years=years,
        starting_corpus=starting_corpus,
        monthly_contribution=monthly_contribution,
        mean_return=mean_return,
        std_dev=std_dev,
        percentiles=Percentiles(**percentiles),
        average=float(final_values.mean()),
        success_rate=success_rate,
        target_value=target_value,
    )

def run_portfolio_monte_carlo(
    investments: Iterable[InvestmentRecord],
    scenario: ResolvedScenario,
    simulations: int = MONTE_CARLO_DEFAULT_SIMULATIONS,
    years: Optional[int] = None,
    seed: Optional[int] = None,
    workers: int = MONTE_CARLO_DEFAULT_WORKERS
) -> MonteCarloResult:
    """
    Monte Carlo over the whole portfolio: all current values, all monthly
    SIPs, at the scenario's mutual-fund return. Years default to years to
    retirement.
    """
    investments = list(investments)
    starting = sum(inv.current_value or 0.0 for inv in investments)
    monthly = sum(inv.monthly_sip or 0.0 for inv in investments)
    if years is None:
        years = scenario.years_to_retirement
    return run_monte_carlo(
        starting_corpus=starting,
        monthly_contribution=monthly,
        mean_return=scenario.return_rates[AssetClass.MUTUAL_FUND],
        simulations=simulations,
        years=years,
        seed=seed,
        workers=workers,
    )
