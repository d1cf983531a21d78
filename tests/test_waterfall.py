"""
Carryforward netting waterfall.

Hand-calculated golden cases plus the conservation and cap invariants.
"""

import pytest

from qfaf.tax.engine import compute_carryforwards, GOLDEN_TESTS, run_golden_tests


def _run(**overrides):
    kwargs = dict(
        net_st_gain_loss=0.0, lt_gains=0.0, usable_ordinary_loss=0.0,
        st_loss_cf_in=0.0, lt_loss_cf_in=0.0, nol_cf_in=0.0,
        filing_status='mfj', income=500000,
    )
    kwargs.update(overrides)
    return compute_carryforwards(**kwargs)


def _conserved(result, st_in, lt_in, net_st):
    entering = st_in + lt_in + max(0.0, -net_st)
    leaving = result.total_absorbed + result.st_loss_cf_out + result.lt_loss_cf_out
    return entering == pytest.approx(leaving)


# =============================================================================
# GOLDEN CASES
# =============================================================================

class TestGoldenCases:

    @pytest.mark.parametrize("case", GOLDEN_TESTS, ids=lambda c: c.name)
    def test_golden_case(self, case):
        passed, message = case.run()
        assert passed, message

    def test_run_golden_tests_reports_all_passing(self, capsys):
        results = run_golden_tests()
        assert results['failed'] == 0
        assert results['passed'] == len(GOLDEN_TESTS)
        assert "RESULTS" in capsys.readouterr().out


# =============================================================================
# ORDERING
# =============================================================================

class TestWaterfallOrder:

    def test_st_cf_hits_st_gain_before_lt(self):
        result = _run(net_st_gain_loss=30000, lt_gains=50000, st_loss_cf_in=40000)
        assert result.offsets['st_cf_to_st'] == 30000
        assert result.offsets['st_cf_to_lt'] == 10000
        assert result.taxable_st == 0
        assert result.taxable_lt == 40000

    def test_lt_cf_hits_lt_gain_before_st(self):
        result = _run(net_st_gain_loss=20000, lt_gains=5000, lt_loss_cf_in=15000)
        assert result.offsets['lt_cf_to_lt'] == 5000
        assert result.offsets['lt_cf_to_st'] == 10000
        assert result.taxable_st == 10000

    def test_current_st_loss_offsets_lt_then_carries(self):
        result = _run(net_st_gain_loss=-100000, lt_gains=29000)
        assert result.offsets['current_st_loss_to_lt'] == 29000
        # 71k carried, less the 3k used against income
        assert result.st_loss_cf_out == 68000
        assert result.taxable_lt == 0

    def test_capital_loss_drawn_from_st_first(self):
        result = _run(st_loss_cf_in=2000, lt_loss_cf_in=5000)
        assert result.capital_loss_used_against_income == 3000
        assert result.st_loss_cf_out == 0
        assert result.lt_loss_cf_out == 4000

    def test_nol_limited_to_fraction_of_taxable_income(self):
        result = _run(income=200000, usable_ordinary_loss=50000, nol_cf_in=1000000)
        assert result.taxable_income_before_nol == 150000
        assert result.nol_used == pytest.approx(120000)

    def test_nol_never_exceeds_balance(self):
        result = _run(income=1000000, nol_cf_in=10000)
        assert result.nol_used == 10000

    def test_negative_taxable_income_uses_no_nol(self):
        result = _run(income=100000, usable_ordinary_loss=512000, nol_cf_in=50000)
        assert result.nol_used == 0

    def test_custom_nol_limit(self):
        result = _run(income=100000, nol_cf_in=1000000, nol_offset_limit=0.5)
        assert result.nol_used == pytest.approx(50000)

    def test_trace_prints_steps(self, capsys):
        _run(net_st_gain_loss=-50000, lt_gains=20000, trace=True)
        out = capsys.readouterr().out
        assert "CARRYFORWARD NETTING TRACE" in out
        assert "Step 5" in out


# =============================================================================
# INVARIANTS
# =============================================================================

CASES = [
    dict(net_st_gain_loss=0, lt_gains=290000, st_loss_cf_in=100000),
    dict(net_st_gain_loss=-285000, lt_gains=29000),
    dict(net_st_gain_loss=120000, lt_gains=10000, st_loss_cf_in=50000, lt_loss_cf_in=90000),
    dict(net_st_gain_loss=-1000, lt_gains=0, st_loss_cf_in=500, lt_loss_cf_in=800),
    dict(net_st_gain_loss=5000, lt_gains=70000, lt_loss_cf_in=3000000),
    dict(net_st_gain_loss=0, lt_gains=0, filing_status='mfs', lt_loss_cf_in=40000),
]


class TestWaterfallInvariants:

    @pytest.mark.parametrize("case", CASES)
    def test_conservation(self, case):
        result = _run(**case)
        assert _conserved(result, case.get('st_loss_cf_in', 0), case.get('lt_loss_cf_in', 0),
                          case['net_st_gain_loss'])

    @pytest.mark.parametrize("case", CASES)
    def test_outputs_non_negative(self, case):
        result = _run(**case)
        for value in (result.st_loss_cf_out, result.lt_loss_cf_out, result.nol_used,
                      result.capital_loss_used_against_income, result.taxable_st, result.taxable_lt):
            assert value >= 0

    @pytest.mark.parametrize("case", CASES)
    def test_capital_loss_cap(self, case):
        result = _run(**case)
        cap = 1500 if case.get('filing_status') == 'mfs' else 3000
        assert result.capital_loss_used_against_income <= cap

    def test_mfs_cap(self):
        result = _run(filing_status='mfs', st_loss_cf_in=100000)
        assert result.capital_loss_used_against_income == 1500
        assert result.st_loss_cf_out == 98500
