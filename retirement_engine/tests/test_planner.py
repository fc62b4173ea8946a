import unittest

from retirement_engine.errors import ConfigurationError
from retirement_engine.models import ExpenseRecord
from retirement_engine.planner import (
    PlannerSnapshot,
    generate_retirement_plan,
    generate_retirement_plans,
    run_snapshot_monte_carlo,
    snapshot_recommendations,
    snapshot_calendar,
)
from retirement_engine.tests.test_helpers import TODAY, make_assumptions, sample_snapshot

class TestRetirementPlan(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.plan = generate_retirement_plan(sample_snapshot(), today=TODAY)

    def test_matrix_covers_today_to_retirement(self):
        matrix = self.plan.matrix
        self.assertEqual(len(matrix), 26)
        self.assertEqual(matrix[0].year, 2025)
        self.assertEqual(matrix[-1].year, 2050)
        self.assertEqual(matrix[-1].age, 60)

    def test_opening_row_matches_starting_balances(self):
        start = self.plan.summary.starting_balances
        self.assertAlmostEqual(start.total_starting, 2900000.0)
        self.assertAlmostEqual(start.other_liquid_total, 400000.0)
        self.assertAlmostEqual(self.plan.matrix[0].total_corpus, start.total_starting)
        self.assertAlmostEqual(self.plan.matrix[0].other_liquid_balance, start.other_liquid_total)

    def test_maturities_land_in_their_years(self):
        by_year = {row.year: row for row in self.plan.matrix}

        self.assertEqual(by_year[2028].maturing_investments, ["Bank FD (FD)"])
        self.assertAlmostEqual(by_year[2028].investment_maturity, round(300000 * 1.075 ** 3, 2), places=2)
        self.assertEqual(by_year[2032].maturing_policies, ["Endowment Plan"])
        self.assertEqual(by_year[2032].insurance_maturity, 1200000.0)

        report = self.plan.maturing_before_retirement
        self.assertEqual(report.investment_count, 1)
        self.assertEqual(report.insurance_count, 1)

    def test_goal_outflow_inflated(self):
        row = next(r for r in self.plan.matrix if r.year == 2035)
        self.assertEqual(row.goals_this_year, ["Child Education"])
        self.assertAlmostEqual(row.goal_outflow, round(2000000 * 1.06 ** 10, 2), places=2)

    def test_summary_agrees_with_matrix(self):
        summary = self.plan.summary
        final = self.plan.matrix[-1].net_corpus

        self.assertEqual(summary.final_corpus, final)
        self.assertEqual(summary.selected_monthly_income, summary.monthly_income_from_corpus)
        self.assertEqual(summary.income_strategy, "SUSTAINABLE")
        self.assertEqual(self.plan.gap_analysis.projected_corpus, final)
        self.assertEqual(summary.years_to_retirement, 25)
        self.assertEqual(summary.retirement_years, 25)
        self.assertEqual(summary.scenario, "Test Plan")
        self.assertIn("Real Estate", summary.excluded_from_corpus)

    def test_step_up_annotation(self):
        optimization = self.plan.summary.sip_step_up_optimization
        self.assertEqual(optimization.required_corpus, self.plan.gap_analysis.required_corpus)
        for row in self.plan.matrix:
            self.assertIsNotNone(row.sip_step_up_active)

    def test_serialized_plan(self):
        dumped = self.plan.model_dump(by_alias=True, mode="json")

        self.assertEqual(set(dumped.keys()), {"matrix", "summary", "gapAnalysis", "maturingBeforeRetirement"})
        self.assertIn("startingBalances", dumped["summary"])
        self.assertIn("sipStepUpOptimization", dumped["summary"])
        for key in (
            "monthlyRetirementIncome", "monthlyIncome4Percent", "monthlyIncomeFromCorpus",
            "yearlyIncomeFromCorpus", "incomeStrategy", "selectedMonthlyIncome",
            "selectedStrategyName", "corpusReturnRate", "withdrawalRate", "retirementIncomeProjection",
        ):
            self.assertIn(key, dumped["summary"])
        self.assertNotIn("income", dumped["summary"])
        self.assertEqual(dumped["summary"]["finalCorpus"], self.plan.matrix[-1].net_corpus)
        self.assertIn("netCorpus", dumped["matrix"][0])
        self.assertIn("MUTUAL_FUND", dumped["matrix"][0]["balances"])


class TestPlannerEdges(unittest.TestCase):

    def test_invalid_ages_raise(self):
        with self.assertRaises(ConfigurationError):
            generate_retirement_plan(sample_snapshot(current_age=65), today=TODAY)

    def test_empty_snapshot(self):
        plan = generate_retirement_plan(PlannerSnapshot(), today=TODAY)

        self.assertEqual(len(plan.matrix), 26)
        self.assertTrue(all(row.net_corpus == 0.0 for row in plan.matrix))
        self.assertEqual(plan.gap_analysis.required_corpus, 0.0)
        self.assertTrue(plan.gap_analysis.is_on_track)
        self.assertIsNone(plan.summary.sip_step_up_optimization.optimal_stop_year)

    def test_plan_logs_at_info(self):
        with self.assertLogs("retirement_engine.planner", level="INFO"):
            generate_retirement_plan(sample_snapshot(), today=TODAY)

    def test_batch_preserves_order(self):
        snapshots = [sample_snapshot(retirement_age=age) for age in (45, 60, 50, 55)]
        plans = generate_retirement_plans(snapshots, today=TODAY, max_workers=3)
        self.assertEqual([len(p.matrix) for p in plans], [11, 26, 16, 21])

    def test_batch_matches_single(self):
        snapshot = sample_snapshot()
        self.assertEqual(
            generate_retirement_plans([snapshot], today=TODAY)[0],
            generate_retirement_plan(snapshot, today=TODAY)
        )

    def test_empty_batch(self):
        self.assertEqual(generate_retirement_plans([]), [])

    def test_batch_raises_first_failure(self):
        snapshots = [sample_snapshot(), PlannerSnapshot(assumptions=make_assumptions(life_expectancy=50))]
        with self.assertRaises(ConfigurationError):
            generate_retirement_plans(snapshots, today=TODAY)

    def test_snapshot_monte_carlo(self):
        result = run_snapshot_monte_carlo(sample_snapshot(), simulations=50, seed=8)
        self.assertEqual(result.years, 25)
        self.assertEqual(result, run_snapshot_monte_carlo(sample_snapshot(), simulations=50, seed=8))

    def test_time_bound_expense_dated_from_today(self):
        snapshot = sample_snapshot()
        snapshot.expenses.append(ExpenseRecord(
            name="Day Care", amount=8000.0, is_time_bound=True, end_age=6, dependent_current_age=2
        ))
        gap = generate_retirement_plan(snapshot, today=TODAY).gap_analysis

        ending, = gap.ending_expenses_before_retirement
        self.assertEqual(ending.end_year, 2029)
        self.assertEqual(ending.years_remaining, 4)
        self.assertEqual(gap.recurring_expense_count, 2)

    def test_snapshot_recommendations(self):
        report = snapshot_recommendations(sample_snapshot())
        self.assertEqual(report.monthly_income, 200000.0)
        self.assertEqual(report.monthly_expenses, 60000.0)

    def test_snapshot_calendar(self):
        calendar = snapshot_calendar(sample_snapshot(), year=2025)
        self.assertEqual(calendar.year, 2025)
        self.assertEqual(calendar.monthly_totals["FEB"], 54000.0)

if __name__ == "__main__":
    unittest.main()
