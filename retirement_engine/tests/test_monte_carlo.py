import unittest

from retirement_engine.errors import ConfigurationError
from retirement_engine.monte_carlo import run_monte_carlo, run_portfolio_monte_carlo, simulate_paths
from retirement_engine.scenario import resolve_scenario
from retirement_engine.tests.test_helpers import make_assumptions, sample_investments

class TestMonteCarlo(unittest.TestCase):

    def test_zero_volatility_is_deterministic(self):
        """With no spread every path earns exactly the mean"""
        result = run_monte_carlo(100000, 0, 10.0, simulations=50, years=1, std_dev=0.0, seed=1)

        for value in result.percentiles.model_dump().values():
            self.assertAlmostEqual(value, 110000.0, places=4)
        self.assertAlmostEqual(result.average, 110000.0, places=4)
        self.assertEqual(result.success_rate, 0.0)
        self.assertEqual(result.target_value, 200000.0)

    def test_contributions_earn_half_the_return(self):
        values = simulate_paths(5, 0.0, 1000.0, 10.0, 0.0, 1, seed=7)
        for value in values:
            self.assertAlmostEqual(value, 12000 * 1.05, places=6)

    def test_zero_years_keeps_starting_corpus(self):
        result = run_monte_carlo(250000, 5000, 12.0, simulations=20, years=0, seed=3)
        self.assertEqual(result.percentiles.p10, 250000.0)
        self.assertEqual(result.percentiles.p90, 250000.0)
        self.assertEqual(result.success_rate, 0.0)

    def test_same_seed_same_result(self):
        first = run_monte_carlo(1000000, 20000, 12.0, simulations=400, years=15, seed=42, workers=4)
        second = run_monte_carlo(1000000, 20000, 12.0, simulations=400, years=15, seed=42, workers=4)
        self.assertEqual(first, second)

    def test_different_seeds_differ(self):
        first = run_monte_carlo(1000000, 20000, 12.0, simulations=400, years=15, seed=1)
        second = run_monte_carlo(1000000, 20000, 12.0, simulations=400, years=15, seed=2)
        self.assertNotEqual(first.average, second.average)

    def test_percentiles_are_ordered(self):
        result = run_monte_carlo(500000, 10000, 12.0, simulations=1000, years=20, seed=11)
        p = result.percentiles
        self.assertLessEqual(p.p10, p.p25)
        self.assertLessEqual(p.p25, p.p50)
        self.assertLessEqual(p.p50, p.p75)
        self.assertLessEqual(p.p75, p.p90)

    def test_success_rate_is_a_fraction(self):
        result = run_monte_carlo(500000, 10000, 12.0, simulations=1000, years=10, seed=5)
        self.assertGreaterEqual(result.success_rate, 0.0)
        self.assertLessEqual(result.success_rate, 1.0)
        # Ten years at 12% with contributions comfortably doubles the corpus on average
        self.assertGreater(result.success_rate, 0.5)

    def test_fewer_paths_than_workers(self):
        result = run_monte_carlo(100000, 0, 10.0, simulations=3, years=5, seed=9, workers=8)
        self.assertEqual(result.simulations, 3)

    def test_invalid_arguments(self):
        with self.assertRaises(ConfigurationError):
            run_monte_carlo(100000, 0, 10.0, simulations=0)
        with self.assertRaises(ConfigurationError):
            run_monte_carlo(100000, 0, 10.0, years=-1)

    def test_serialized_keys(self):
        dumped = run_monte_carlo(100000, 0, 10.0, simulations=10, years=1, seed=0).model_dump(by_alias=True)
        for key in ("simulations", "startingCorpus", "monthlyContribution", "successRate", "percentiles", "average"):
            self.assertIn(key, dumped)


class TestPortfolioMonteCarlo(unittest.TestCase):

    def test_uses_whole_portfolio(self):
        scenario = resolve_scenario(make_assumptions(current_age=50))
        result = run_portfolio_monte_carlo(sample_investments(), scenario, simulations=100, seed=4)

        self.assertEqual(result.years, 10)
        self.assertAlmostEqual(result.starting_corpus, 10650000.0)
        # EPF 12,000 + mutual fund 25,000 + NPS 5,000
        self.assertAlmostEqual(result.monthly_contribution, 42000.0)
        self.assertEqual(result.mean_return, 12.0)
        self.assertEqual(result.std_dev, 8.0)

    def test_years_override(self):
        scenario = resolve_scenario(make_assumptions())
        result = run_portfolio_monte_carlo(sample_investments(), scenario, simulations=10, years=3, seed=4)
        self.assertEqual(result.years, 3)

if __name__ == "__main__":
    unittest.main()
