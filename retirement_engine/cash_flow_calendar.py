import logging
from typing import Iterable, List, Optional, Dict
from datetime import date

from .models import InvestmentRecord, InsuranceRecord, LoanRecord, PremiumFrequency
from .rate_config import AssetClass
from .schemas import CalendarEntry, YearCalendar, MonthPayment, MonthCalendar

logger = logging.getLogger(__name__)

MONTH_NAMES = ("JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC")

# PPF deposits are placed at the end of the financial year
PPF_CONTRIBUTION_MONTH = 3

DEFAULT_PAYMENT_DAY = 1

# Premium instalments per year and the month gap between them
PREMIUM_SCHEDULE = {
    PremiumFrequency.MONTHLY: (12, 1),
    PremiumFrequency.QUARTERLY: (4, 3),
    PremiumFrequency.HALF_YEARLY: (2, 6),
    PremiumFrequency.YEARLY: (1, 12),
}


def _flat(amount: float) -> Dict[str, float]:
    return {name: amount for name in MONTH_NAMES}

def _entry(description: str, category: str, months: Dict[str, float], day: Optional[int] = None) -> CalendarEntry:
    return CalendarEntry(
        description=description,
        category=category,
        day_of_month=day,
        months={name: round(amount, 2) for name, amount in months.items()},
        yearly_total=round(sum(months.values()), 2),
    )

def premium_months(policy: InsuranceRecord) -> Dict[str, float]:
    """
    Spread a policy's annual premium over the year, starting in its
    renewal month (January if unknown). Unknown frequency is taken as
    yearly; single-premium policies have nothing left to pay.
    """
    months = _flat(0.0)
    frequency = policy.premium_frequency or PremiumFrequency.YEARLY
    if frequency not in PREMIUM_SCHEDULE:
        return months

    instalments, gap = PREMIUM_SCHEDULE[frequency]
    start = (policy.renewal_month or 1) - 1
    for i in range(instalments):
        months[MONTH_NAMES[(start + i * gap) % 12]] = policy.annual_premium / instalments
    return months

def generate_year_calendar(
    investments: Iterable[InvestmentRecord] = (),
    insurance: Iterable[InsuranceRecord] = (),
    loans: Iterable[LoanRecord] = (),
    year: Optional[int] = None
) -> YearCalendar:
    """
    Month-by-month outflow calendar for one year.

    Args:
        investments: SIPs and RD deposits are paid every month on their
            sip_day, PPF contributions once in March
        insurance: premiums by frequency from the renewal month
        loans: EMIs while months remain on the loan, from January
        year: calendar year (default: this year)

    Returns:
        YearCalendar with one entry per payment stream and monthly totals
    """
    if year is None:
        year = date.today().year
    investments = list(investments)
    entries: List[CalendarEntry] = []

    # 1. SIPs, and RD deposits on the same monthly cycle
    for inv in investments:
        if not inv.monthly_sip or inv.monthly_sip <= 0:
            continue
        category = "RD" if inv.type == AssetClass.RD else "SIP"
        entries.append(_entry(
            "{} {}".format(inv.name, category), category, _flat(inv.monthly_sip),
            day=inv.sip_day or DEFAULT_PAYMENT_DAY,
        ))

    # 2. Loan EMIs
    for loan in loans:
        if not loan.remaining_months or loan.remaining_months <= 0 or not loan.emi:
            continue
        paying = min(loan.remaining_months, 12)
        months = {name: (loan.emi if m < paying else 0.0) for m, name in enumerate(MONTH_NAMES)}
        entries.append(_entry(
            "{} EMI".format(loan.name), "EMI", months, day=loan.emi_day or DEFAULT_PAYMENT_DAY
        ))

    # 3. Insurance premiums
    for policy in insurance:
        if not policy.annual_premium or policy.annual_premium <= 0:
            continue
        months = premium_months(policy)
        if not any(months.values()):
            continue
        entries.append(_entry("{} Premium".format(policy.policy_name), "INSURANCE", months))

    # 4. PPF yearly contributions
    for inv in investments:
        if inv.type != AssetClass.PPF or not inv.yearly_contribution or inv.yearly_contribution <= 0:
            continue
        months = _flat(0.0)
        months[MONTH_NAMES[PPF_CONTRIBUTION_MONTH - 1]] = inv.yearly_contribution
        entries.append(_entry("{} Contribution".format(inv.name), "PPF", months))

    totals = {name: round(sum(e.months[name] for e in entries), 2) for name in MONTH_NAMES}
    logger.debug("Calendar %d: %d payment streams", year, len(entries))

    return YearCalendar(
        year=year,
        entries=entries,
        monthly_totals=totals,
        yearly_grand_total=round(sum(totals.values()), 2),
    )

def month_calendar(calendar: YearCalendar, month: int) -> MonthCalendar:
    """Payments falling due in one month (1-12) of a year calendar."""
    if not 1 <= month <= 12:
        raise ValueError("month must be between 1 and 12, got {}".format(month))
    name = MONTH_NAMES[month - 1]
    payments = [
        MonthPayment(
            description=e.description,
            category=e.category,
            amount=e.months[name],
            day_of_month=e.day_of_month,
        )
        for e in calendar.entries if e.months[name] > 0
    ]
    return MonthCalendar(month=month, month_name=name, entries=payments, total=calendar.monthly_totals[name])
