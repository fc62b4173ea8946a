import unittest

from retirement_engine.analysis import (
    analyze_goals,
    calculate_net_worth,
    projected_portfolio_value,
    generate_recommendations,
)
from retirement_engine.models import (
    InvestmentRecord,
    InsuranceRecord,
    InsuranceType,
    GoalRecord,
    LoanRecord,
    ExpenseRecord,
    IncomeRecord,
)
from retirement_engine.rate_config import AssetClass
from retirement_engine.tests.test_helpers import sample_investments, sample_insurance, sample_snapshot

def single_fund(value=100000.0, rate=10.0):
    return [InvestmentRecord(name="Fund", type=AssetClass.MUTUAL_FUND, current_value=value, expected_return=rate)]

class TestGoalFunding(unittest.TestCase):

    def test_projected_portfolio_value(self):
        self.assertAlmostEqual(projected_portfolio_value(single_fund(), 5), 100000 * 1.1 ** 5, places=4)
        # Falls back to the mutual-fund default of 12%
        no_rate = [InvestmentRecord(type=AssetClass.MUTUAL_FUND, current_value=100000.0)]
        self.assertAlmostEqual(projected_portfolio_value(no_rate, 1), 112000.0, places=4)

    def test_fully_funded_goal(self):
        goals = [GoalRecord(name="Car", target_amount=100000.0, target_year=2030)]
        result = analyze_goals(goals, single_fund(), 0.0, 2025)

        goal = result.goals[0]
        self.assertEqual(goal.years_away, 5)
        self.assertEqual(goal.status, "FUNDED")
        self.assertEqual(goal.funding_percent, 100.0)
        self.assertEqual(goal.gap, 0.0)

    def test_unfunded_goal_reports_gap(self):
        goals = [GoalRecord(name="House", target_amount=1000000.0, target_year=2030)]
        result = analyze_goals(goals, single_fund(), 0.0, 2025)

        goal = result.goals[0]
        self.assertEqual(goal.status, "UNFUNDED")
        self.assertAlmostEqual(goal.funding_percent, 16.1, places=1)
        self.assertAlmostEqual(goal.gap, 1000000.0 - 100000 * 1.1 ** 5, places=1)

    def test_partial_goal_with_inflation(self):
        goals = [GoalRecord(name="Trip", target_amount=200000.0, target_year=2030)]
        result = analyze_goals(goals, single_fund(), 6.0, 2025)

        goal = result.goals[0]
        self.assertAlmostEqual(goal.inflated_amount, 200000 * 1.06 ** 5, places=1)
        self.assertEqual(goal.status, "PARTIAL")

    def test_portfolio_shared_by_target_amount(self):
        goals = [
            GoalRecord(name="Later", target_amount=300000.0, target_year=2035),
            GoalRecord(name="Sooner", target_amount=100000.0, target_year=2030),
            GoalRecord(name="Undated", target_amount=500000.0),
        ]
        result = analyze_goals(goals, single_fund(), 0.0, 2025)

        self.assertEqual([g.name for g in result.goals], ["Sooner", "Later"])
        self.assertAlmostEqual(result.total_goals_value, 400000.0)
        sooner, later = result.goals
        self.assertAlmostEqual(sooner.allocation, 0.25 * 100000 * 1.1 ** 5, places=1)
        self.assertAlmostEqual(later.allocation, 0.75 * 100000 * 1.1 ** 10, places=1)

    def test_goals_without_amounts_see_whole_portfolio(self):
        goals = [GoalRecord(name="Someday", target_year=2030)]
        result = analyze_goals(goals, single_fund(), 6.0, 2025)

        goal = result.goals[0]
        self.assertAlmostEqual(goal.allocation, goal.projected_corpus, places=1)
        self.assertEqual(goal.funding_percent, 0.0)
        self.assertEqual(goal.status, "UNFUNDED")


class TestNetWorth(unittest.TestCase):

    def test_sample_portfolio(self):
        loans = [LoanRecord(name="Car Loan", outstanding_amount=400000.0)]
        result = calculate_net_worth(sample_investments(), sample_insurance(), loans)

        self.assertAlmostEqual(result.total_investments, 10650000.0)
        self.assertEqual(result.insurance_fund_value, 0.0)
        self.assertAlmostEqual(result.total_liabilities, 400000.0)
        self.assertAlmostEqual(result.net_worth, 10250000.0)
        self.assertAlmostEqual(result.asset_breakdown["REAL_ESTATE"], 7500000.0)
        self.assertAlmostEqual(result.asset_breakdown["MUTUAL_FUND"], 1000000.0)
        # Flat and gold coins
        self.assertAlmostEqual(result.illiquid_assets, 7750000.0)

    def test_ulip_fund_value_counts_as_asset(self):
        insurance = [InsuranceRecord(policy_name="ULIP", type=InsuranceType.ULIP, fund_value=250000.0)]
        result = calculate_net_worth([], insurance)
        self.assertEqual(result.total_assets, 250000.0)
        self.assertEqual(result.net_worth, 250000.0)

    def test_untyped_holding_is_other(self):
        result = calculate_net_worth([InvestmentRecord(current_value=5000.0)])
        self.assertEqual(result.asset_breakdown, {"OTHER": 5000.0})
        self.assertIn("netWorth", result.model_dump(by_alias=True))

class TestRecommendations(unittest.TestCase):

    def test_sample_position_needs_emergency_fund_only(self):
        snapshot = sample_snapshot()
        report = generate_recommendations(snapshot.investments, snapshot.insurance, snapshot.expenses, snapshot.incomes)

        self.assertEqual([r.title for r in report.recommendations], ["Build Emergency Fund"])
        self.assertEqual(report.recommendations[0].type, "danger")
        self.assertIn("₹360,000", report.recommendations[0].description)
        self.assertIn("Current: ₹100,000", report.recommendations[0].description)
        self.assertEqual(report.savings_rate, 70.0)
        self.assertEqual(report.monthly_savings, 140000.0)

    def test_bare_position(self):
        expenses = [ExpenseRecord(name="Rent", amount=90000.0)]
        incomes = [IncomeRecord(name="Salary", monthly_amount=100000.0)]
        report = generate_recommendations(expenses=expenses, incomes=incomes)

        self.assertEqual(
            [r.title for r in report.recommendations],
            ["Build Emergency Fund", "Get Health Insurance", "Consider Term Insurance",
             "Increase Savings Rate", "Start SIP Investments"]
        )
        self.assertEqual(report.savings_rate, 10.0)
        self.assertIn("10%", report.recommendations[3].description)

    def test_no_income_skips_income_checks(self):
        insurance = [InsuranceRecord(type=InsuranceType.HEALTH)]
        report = generate_recommendations(insurance=insurance)

        self.assertEqual([r.title for r in report.recommendations], ["Start SIP Investments"])
        self.assertEqual(report.savings_rate, 0.0)

    def test_solid_position(self):
        investments = [
            InvestmentRecord(type=AssetClass.CASH, current_value=600000.0),
            InvestmentRecord(type=AssetClass.MUTUAL_FUND, current_value=100000.0, monthly_sip=20000.0),
        ]
        insurance = [InsuranceRecord(type=InsuranceType.HEALTH), InsuranceRecord(type=InsuranceType.TERM_LIFE)]
        report = generate_recommendations(
            investments, insurance,
            [ExpenseRecord(amount=50000.0)], [IncomeRecord(monthly_amount=150000.0)]
        )

        self.assertEqual(len(report.recommendations), 1)
        self.assertEqual(report.recommendations[0].type, "success")
        self.assertIn("savingsRate", report.model_dump(by_alias=True))

if __name__ == "__main__":
    unittest.main()
