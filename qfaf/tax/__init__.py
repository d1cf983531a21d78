from qfaf.tax.engine import (
    CarryforwardResult, compute_carryforwards,
    GoldenTestCase, GOLDEN_TESTS, run_golden_tests
)
from qfaf.tax.brackets import (
    FEDERAL_TAX_BRACKETS_2026, LTCG_BRACKETS_2026,
    NIIT_THRESHOLD_2026, NIIT_RATE, STATE_TAX_RATES
)
from qfaf.tax.marginal import (
    find_marginal_rate, marginal_ordinary_rate, marginal_ltcg_rate,
    lookup_state_rate, BracketTableProvider
)
from qfaf.tax.rates import (
    BracketBased, FlatOverride, TaxRates, choose_rate_source, resolve_tax_rates,
    RateOverrideStore, InMemoryRateOverrideStore, StrategyRateResolver
)
from qfaf.tax.section461 import (
    Section461YearInput, Section461YearResult, Section461Summary,
    compute_section461_year, compute_section461_years, summarize_section461,
    default_section461_inputs, update_section461_input, apply_filing_status_limits
)
