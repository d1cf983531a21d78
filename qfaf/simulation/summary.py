from typing import Sequence

from qfaf.models import YearResult, CalculatedSizing, ProjectionSummary
from qfaf.utils import safe_number


def summarize(years: Sequence[YearResult], sizing: CalculatedSizing) -> ProjectionSummary:
    """
    Reduce a run to its headline numbers.

    Tax alpha is annualized over the actual number of years:
        total savings / total exposure / years
    """
    total_tax_savings = sum(y.tax_savings for y in years)
    total_nol_generated = sum(y.excess_to_nol for y in years)
    final_portfolio_value = years[-1].total_value if years else 0.0

    num_years = len(years) or 1
    if sizing.total_exposure > 0:
        effective_tax_alpha = safe_number(total_tax_savings / sizing.total_exposure / num_years)
    else:
        effective_tax_alpha = 0.0

    return ProjectionSummary(
        total_tax_savings=safe_number(total_tax_savings),
        final_portfolio_value=safe_number(final_portfolio_value),
        effective_tax_alpha=effective_tax_alpha,
        total_nol_generated=safe_number(total_nol_generated),
    )
