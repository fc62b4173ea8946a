import unittest

from retirement_engine.income import calculate_retirement_income, project_income
from retirement_engine.rate_config import IncomeStrategy
from retirement_engine.scenario import resolve_scenario
from retirement_engine.schemas import IncomeProjectionRow
from retirement_engine.strategies import get_strategy, STRATEGIES
from retirement_engine.tests.test_helpers import make_assumptions

CORPUS = 1200000.0

class TestWithdrawalStrategies(unittest.TestCase):

    def setUp(self):
        self.scenario = resolve_scenario(make_assumptions())

    def test_every_strategy_registered(self):
        self.assertEqual(set(STRATEGIES.keys()), set(IncomeStrategy))
        for tag in IncomeStrategy:
            self.assertEqual(get_strategy(tag).tag, tag)

    def test_required_corpus_sustainable(self):
        strategy = get_strategy(IncomeStrategy.SUSTAINABLE)
        self.assertAlmostEqual(strategy.required_corpus(96000, self.scenario), 1200000.0)

    def test_required_corpus_sustainable_zero_withdrawal(self):
        scenario = resolve_scenario(make_assumptions(withdrawal_rate=0.0))
        strategy = get_strategy(IncomeStrategy.SUSTAINABLE)
        self.assertAlmostEqual(strategy.required_corpus(100000, scenario), 2500000.0)

    def test_required_corpus_four_percent(self):
        strategy = get_strategy(IncomeStrategy.SAFE_4_PERCENT)
        self.assertAlmostEqual(strategy.required_corpus(100000, self.scenario), 2500000.0)

    def test_required_corpus_depletion_sums_inflated_years(self):
        strategy = get_strategy(IncomeStrategy.SIMPLE_DEPLETION)
        flat = resolve_scenario(make_assumptions(inflation_rate=0.0))
        self.assertAlmostEqual(strategy.required_corpus(100000, flat), 2500000.0)

        expected = sum(100000 * 1.06 ** year for year in range(25))
        self.assertAlmostEqual(strategy.required_corpus(100000, self.scenario), expected, places=4)

    def test_display_names(self):
        self.assertEqual(
            get_strategy(IncomeStrategy.SUSTAINABLE).display_name(self.scenario),
            "Sustainable (10% return, 8% withdrawal)"
        )
        self.assertEqual(get_strategy(IncomeStrategy.SAFE_4_PERCENT).display_name(self.scenario), "4% Safe Withdrawal")
        self.assertEqual(
            get_strategy(IncomeStrategy.SIMPLE_DEPLETION).explanation(self.scenario),
            "Corpus depletes over 25 years"
        )


class TestRetirementIncome(unittest.TestCase):

    def test_income_under_each_strategy(self):
        scenario = resolve_scenario(make_assumptions())
        income = calculate_retirement_income(CORPUS, scenario)

        self.assertEqual(income.retirement_years, 25)
        self.assertAlmostEqual(income.monthly_retirement_income, 4000.0)
        self.assertAlmostEqual(income.monthly_income_4_percent, 4000.0)
        self.assertAlmostEqual(income.monthly_income_from_corpus, 8000.0)
        self.assertAlmostEqual(income.yearly_income_from_corpus, 96000.0)
        self.assertEqual(income.income_strategy, "SUSTAINABLE")
        self.assertAlmostEqual(income.selected_monthly_income, 8000.0)

    def test_selected_strategy_follows_scenario(self):
        scenario = resolve_scenario(make_assumptions(income_strategy="SAFE_4_PERCENT"))
        income = calculate_retirement_income(CORPUS, scenario)
        self.assertAlmostEqual(income.selected_monthly_income, 4000.0)
        self.assertEqual(income.selected_strategy_name, "4% Safe Withdrawal")

    def test_serialized_keys(self):
        scenario = resolve_scenario(make_assumptions())
        dumped = calculate_retirement_income(CORPUS, scenario).model_dump(by_alias=True)
        self.assertIn("monthlyIncome4Percent", dumped)
        self.assertIn("monthlyIncomeFromCorpus", dumped)
        self.assertIn("retirementIncomeProjection", dumped)

    def test_zero_corpus(self):
        scenario = resolve_scenario(make_assumptions())
        income = calculate_retirement_income(0.0, scenario)
        self.assertEqual(income.selected_monthly_income, 0.0)
        for row in income.retirement_income_projection:
            self.assertEqual(row.corpus, 0.0)


class TestIncomeProjection(unittest.TestCase):

    def test_sustainable_corpus_grows_at_net_rate(self):
        scenario = resolve_scenario(make_assumptions())
        rows = project_income(CORPUS, scenario)

        self.assertEqual([r.year for r in rows], [0, 5, 10, 15, 20, 25])
        self.assertTrue(all(isinstance(r, IncomeProjectionRow) for r in rows))
        self.assertEqual(rows[0].age, 60)
        self.assertAlmostEqual(rows[1].corpus, round(CORPUS * 1.02 ** 5, 2), places=2)
        self.assertAlmostEqual(rows[1].monthly_income, round(CORPUS * 1.02 ** 5 * 0.08 / 12, 2), places=2)

    def test_depletion_runs_out_at_life_expectancy(self):
        scenario = resolve_scenario(make_assumptions(income_strategy="SIMPLE_DEPLETION"))
        rows = project_income(CORPUS, scenario)

        for row in rows[:-1]:
            self.assertAlmostEqual(row.monthly_income, 4000.0, places=2)
        self.assertAlmostEqual(rows[-1].corpus, 0.0, places=2)
        self.assertEqual(rows[-1].monthly_income, 0.0)

    def test_four_percent_income_is_fixed(self):
        scenario = resolve_scenario(make_assumptions(income_strategy="SAFE_4_PERCENT"))
        rows = project_income(CORPUS, scenario)
        self.assertTrue(all(r.monthly_income == 4000.0 for r in rows))
        self.assertGreater(rows[-1].corpus, CORPUS)

    def test_projection_capped_at_thirty_years(self):
        scenario = resolve_scenario(make_assumptions(current_age=30, retirement_age=45, life_expectancy=95))
        rows = project_income(CORPUS, scenario)
        self.assertEqual(rows[-1].year, 30)
        self.assertEqual(len(rows), 7)

    def test_short_retirement(self):
        scenario = resolve_scenario(make_assumptions(retirement_age=60, life_expectancy=63))
        rows = project_income(CORPUS, scenario)
        self.assertEqual([r.year for r in rows], [0])

    def test_income_never_negative(self):
        for tag in IncomeStrategy:
            scenario = resolve_scenario(make_assumptions(
                income_strategy=tag.value, corpus_return_rate=0.0, withdrawal_rate=30.0
            ))
            for row in project_income(CORPUS, scenario):
                self.assertGreaterEqual(row.monthly_income, 0.0)
                self.assertGreaterEqual(row.corpus, 0.0)

if __name__ == "__main__":
    unittest.main()
