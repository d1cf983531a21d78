"""
Reporting for QFAF projections.

Tabular views of a run as pandas DataFrames, and console reports for a
single projection, a scenario sweep, and a strategy comparison.
"""

import pandas as pd
from typing import List, Optional

from qfaf.models import CalculationResult
from qfaf.tax.section461 import Section461YearResult, summarize_section461


# ============================================================================
# DATAFRAMES
# ============================================================================

YEAR_COLUMNS = [
    'year', 'qfaf_value', 'collateral_value', 'total_value',
    'st_gains_generated', 'st_losses_harvested', 'lt_gains_realized', 'net_st_gain_loss',
    'ordinary_losses_generated', 'usable_ordinary_loss', 'excess_to_nol',
    'nol_used', 'capital_loss_used_against_income',
    'st_loss_carryforward', 'lt_loss_carryforward', 'nol_carryforward',
    'tax_savings', 'qfaf_tax_benefit', 'collateral_tax_benefit',
    'federal_tax', 'state_tax', 'total_tax', 'baseline_tax',
    'income', 'income_offset_amount', 'max_income_offset_capacity',
    'effective_st_loss_rate',
]


def years_to_frame(result: CalculationResult) -> pd.DataFrame:
    """One row per projection year, indexed by year."""
    rows = [y.to_dict() for y in result.years]
    df = pd.DataFrame(rows, columns=YEAR_COLUMNS)
    df = df.set_index('year')
    df['cumulative_tax_savings'] = df['tax_savings'].cumsum()
    return df


def summary_to_frame(results: dict) -> pd.DataFrame:
    """
    One row per labelled run.

    Args:
        results: {label: CalculationResult}
    """
    rows = []
    for label, result in results.items():
        rows.append({
            'label': label,
            'strategy': result.sizing.strategy_name,
            'collateral_value': result.sizing.collateral_value,
            'qfaf_value': result.sizing.qfaf_value,
            'total_exposure': result.sizing.total_exposure,
            'total_tax_savings': result.summary.total_tax_savings,
            'final_portfolio_value': result.summary.final_portfolio_value,
            'effective_tax_alpha': result.summary.effective_tax_alpha,
            'total_nol_generated': result.summary.total_nol_generated,
        })
    return pd.DataFrame(rows).set_index('label') if rows else pd.DataFrame()


def section461_to_frame(results: List[Section461YearResult]) -> pd.DataFrame:
    rows = []
    for r in results:
        rows.append({
            'year': r.year,
            'cash_infusion': r.input.cash_infusion,
            'subscription_size': r.subscription_size,
            'estimated_ordinary_loss': r.estimated_ordinary_loss,
            'carry_forward_prior': r.carry_forward_prior,
            'allowed_loss': r.allowed_loss,
            'carry_forward_next': r.carry_forward_next,
            'tax_savings': r.tax_savings,
            'total_fees': r.total_fees,
            'net_savings_no_alpha': r.net_savings_no_alpha,
        })
    return pd.DataFrame(rows).set_index('year') if rows else pd.DataFrame()


# ============================================================================
# CONSOLE REPORTS
# ============================================================================

def print_projection_report(result: CalculationResult, title: Optional[str] = None):
    sizing = result.sizing
    summary = result.summary
    width = 120

    print(f"\n{'=' * width}")
    print(title or f"QFAF PROJECTION - {sizing.strategy_name} ({len(result.years)} YEARS)")
    print(f"{'=' * width}")
    print(f"  Collateral:            ${sizing.collateral_value:>15,.0f}")
    print(f"  QFAF:                  ${sizing.qfaf_value:>15,.0f}  ({sizing.qfaf_ratio:.1%} of collateral)")
    print(f"  Total exposure:        ${sizing.total_exposure:>15,.0f}")
    print(f"  Avg ST loss rate:      {sizing.avg_st_loss_rate:>16.2%}  (years 1-{sizing.sizing_years})")
    print(f"  §461(l) limit:         ${sizing.section_461_limit:>15,.0f}")
    print(f"  Year 1 ordinary loss:  ${sizing.year1_ordinary_losses:>15,.0f}  "
          f"(usable ${sizing.year1_usable_ordinary_loss:,.0f}, to NOL ${sizing.year1_excess_to_nol:,.0f})")

    print("-" * width)
    print(f"{'Year':<5} {'Collateral':>14} {'QFAF':>12} {'ST Gains':>12} {'ST Losses':>12} {'LT Gains':>11} "
          f"{'Usable Ord':>11} {'NOL CF':>12} {'ST CF':>10} {'Savings':>11}")
    print("-" * width)
    for y in result.years:
        print(f"{y.year:<5} {y.collateral_value:>14,.0f} {y.qfaf_value:>12,.0f} {y.st_gains_generated:>12,.0f} "
              f"{y.st_losses_harvested:>12,.0f} {y.lt_gains_realized:>11,.0f} {y.usable_ordinary_loss:>11,.0f} "
              f"{y.nol_carryforward:>12,.0f} {y.st_loss_carryforward:>10,.0f} {y.tax_savings:>11,.0f}")
    print("-" * width)

    print(f"  Total tax savings:     ${summary.total_tax_savings:>15,.0f}")
    print(f"  Total NOL generated:   ${summary.total_nol_generated:>15,.0f}")
    print(f"  Final portfolio value: ${summary.final_portfolio_value:>15,.0f}")
    print(f"  Effective tax alpha:   {summary.effective_tax_alpha:>16.2%} per year")
    print("=" * width)


def print_scenario_report(analysis):
    print(f"\n{'=' * 80}")
    print("MARKET SCENARIOS")
    print(f"{'=' * 80}")
    print(f"{'Scenario':<14} {'Prob':>6} {'Return':>8} {'Tax Savings':>15} {'Final Value':>16} {'Tax Alpha':>10}")
    print("-" * 80)
    for o in analysis.outcomes:
        print(f"{o.label:<14} {o.probability:>6.0%} {o.annual_return:>8.1%} ${o.total_tax_savings:>14,.0f} "
              f"${o.final_portfolio_value:>15,.0f} {o.effective_tax_alpha:>10.2%}")
    print("-" * 80)
    print(f"{'Expected':<14} {'':>6} {'':>8} ${analysis.expected_tax_savings:>14,.0f} "
          f"${analysis.expected_portfolio_value:>15,.0f} {analysis.expected_tax_alpha:>10.2%}")
    print("=" * 80)


def print_strategy_comparison(comparisons):
    print(f"\n{'=' * 100}")
    print("STRATEGY COMPARISON (ranked by tax alpha)")
    print(f"{'=' * 100}")
    print(f"{'Rank':<5} {'ID':<14} {'Strategy':<16} {'QFAF':>12} {'Exposure':>14} {'Tax Savings':>14} "
          f"{'NOL':>12} {'Alpha':>8}")
    print("-" * 100)
    for c in comparisons:
        print(f"{c.rank:<5} {c.strategy_id:<14} {c.strategy_name:<16} {c.qfaf_value:>12,.0f} "
              f"{c.total_exposure:>14,.0f} {c.total_tax_savings:>14,.0f} {c.total_nol_generated:>12,.0f} "
              f"{c.effective_tax_alpha:>8.2%}")
    print("=" * 100)


def print_section461_report(results: List[Section461YearResult]):
    summary = summarize_section461(results)
    print(f"\n{'=' * 100}")
    print("§461(l) ORDINARY LOSS PLANNER")
    print(f"{'=' * 100}")
    print(f"{'Year':<6} {'Infusion':>13} {'Subscription':>13} {'Ord. Loss':>13} {'Allowed':>12} "
          f"{'CF Next':>12} {'Savings':>12} {'Net':>12}")
    print("-" * 100)
    for r in results:
        print(f"{r.year:<6} {r.input.cash_infusion:>13,.0f} {r.subscription_size:>13,.0f} "
              f"{r.estimated_ordinary_loss:>13,.0f} {r.allowed_loss:>12,.0f} {r.carry_forward_next:>12,.0f} "
              f"{r.tax_savings:>12,.0f} {r.net_savings_no_alpha:>12,.0f}")
    print("-" * 100)
    print(f"{'Total':<6} {summary.total_cash_infusion:>13,.0f} {summary.total_subscription_size:>13,.0f} "
          f"{summary.total_estimated_ordinary_loss:>13,.0f} {summary.total_allowed_loss:>12,.0f} "
          f"{summary.final_carry_forward:>12,.0f} {summary.total_tax_savings:>12,.0f} "
          f"{summary.total_net_savings_no_alpha:>12,.0f}")
    print("=" * 100)
