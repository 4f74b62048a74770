from decimal import Decimal

import pytest

from ledger_core import money
from ledger_core.exceptions import (InsufficientFunds, InvalidAmount, InvalidPayee,
                                    InvalidRate)
from ledger_core.payees import PersonnelPayee, UserPayee, payee_from_ids

""" Income arithmetic """


def test_vat_is_extracted_from_vat_inclusive_gross():
    # 50,000 @ 18% -> 50000 * 18 / 118
    assert money.vat_from_gross("50000", 18) == Decimal("7627.12")
    assert money.net_after_vat("50000", Decimal("7627.12")) == Decimal("42372.88")


def test_zero_vat_rate_yields_zero_vat():
    assert money.vat_from_gross("1234.56", 0) == Decimal("0.00")
    assert money.net_after_vat("1234.56", 0) == Decimal("1234.56")


def test_commission_and_distributable():
    assert money.commission(Decimal("42372.88"), 15) == Decimal("6355.93")
    assert money.distributable(Decimal("42372.88"), Decimal("6355.93")) == Decimal("36016.95")


def test_withholding_is_a_share_of_the_vat():
    # 7627.12 * 50 / 100
    assert money.withholding("50000", 18, 50) == Decimal("3813.56")
    assert money.withholding("50000", 18, 0) == Decimal("0.00")


def test_income_breakdown_chains_every_step():
    breakdown = money.income_breakdown("50000", "18", "15")
    assert breakdown.gross_amount == Decimal("50000.00")
    assert breakdown.vat_amount == Decimal("7627.12")
    assert breakdown.net_amount == Decimal("42372.88")
    assert breakdown.commission_amount == Decimal("6355.93")
    assert breakdown.distributable_amount == Decimal("36016.95")


@pytest.mark.parametrize("gross", ["0", "0.01", "99.99", "1000", "50000", "123456.78"])
@pytest.mark.parametrize("rate", [0, 1, 8, 18, 20, 100])
def test_net_plus_vat_gives_back_gross(gross, rate):
    vat = money.vat_from_gross(gross, rate)
    net = money.net_after_vat(gross, vat)
    assert abs(net + vat - Decimal(gross)) <= Decimal("0.01")


""" Rounding """


def test_rounding_is_half_up():
    assert money.round_financial("1.005") == Decimal("1.01")
    assert money.round_financial("2.345") == Decimal("2.35")
    assert money.round_financial("-2.345") == Decimal("-2.35")
    assert money.round_financial("2.344") == Decimal("2.34")


def test_floats_go_through_their_string_form():
    assert money.to_money(0.1) == Decimal("0.10")
    assert money.to_money(19.99) == Decimal("19.99")


""" Input validation """


@pytest.mark.parametrize("bad", ["-1", -0.01, "abc", "", None, True, float("nan"), float("inf"), "Infinity", [1]])
def test_bad_amounts_raise_invalid_amount(bad):
    with pytest.raises(InvalidAmount):
        money.vat_from_gross(bad, 18)


@pytest.mark.parametrize("bad", [-1, "100.01", 101, float("nan"), "x"])
def test_rates_outside_0_100_raise_invalid_rate(bad):
    with pytest.raises(InvalidRate):
        money.commission("100", bad)


def test_vat_larger_than_gross_is_rejected():
    with pytest.raises(InvalidAmount):
        money.net_after_vat("100", "150")


""" Shares """


@pytest.mark.parametrize("shares, expected", [
    ([100], True),
    ([50, 30, 20], True),
    (["33.33", "33.33", "33.34"], True),
    (["33.33", "33.33", "33.33"], True),  # 99.99 is within 0.01
    (["33.3", "33.3", "33.3"], False),
    ([50, 49], False),
    ([60, 60], False),
    ([], False),
])
def test_validate_shares(shares, expected):
    assert money.validate_shares(shares) is expected


def test_split_by_shares():
    assert money.split_by_shares("1000", [70, 30]) == [Decimal("700.00"), Decimal("300.00")]
    with pytest.raises(InvalidRate):
        money.split_by_shares("1000", [50, 40])


""" Balances """


def test_check_sufficient_balance():
    check = money.check_sufficient_balance("5000", "10000")
    assert not check.sufficient
    assert check.shortfall == Decimal("5000.00")
    assert not check.has_debt

    assert money.check_sufficient_balance("10000", "10000").sufficient


def test_any_debt_blocks_payout():
    check = money.check_sufficient_balance("100", "50", debt="20")
    assert not check.sufficient
    assert check.has_debt
    assert check.shortfall == Decimal("20.00")


def test_apply_debt_to_income():
    assert money.apply_debt_to_income("100", "30") == (Decimal("70.00"), Decimal("0.00"))
    assert money.apply_debt_to_income("30", "100") == (Decimal("0.00"), Decimal("70.00"))
    assert money.apply_debt_to_income("50", "0") == (Decimal("50.00"), Decimal("0.00"))


""" Formatting """


def test_format_currency_uses_turkish_grouping():
    assert money.format_currency("1234.56") == "₺1.234,56"
    assert money.format_currency("-1234567.891") == "-₺1.234.567,89"
    assert money.format_currency(0, symbol="TL ") == "TL 0,00"


def test_format_percentage():
    assert money.format_percentage(18) == "%18,00"
    assert money.format_percentage("12.345", decimals=1) == "%12,3"


def test_parse_turkish_number():
    assert money.parse_turkish_number("1.234,56") == Decimal("1234.56")
    assert money.parse_turkish_number("50.000") == Decimal("50000")
    assert money.parse_turkish_number(" 7,5 ") == Decimal("7.5")
    for bad in ("", "   ", "abc", None):
        with pytest.raises(InvalidAmount):
            money.parse_turkish_number(bad)


""" Errors and payees """


def test_errors_carry_structured_context():
    error = InsufficientFunds(available=Decimal("5000.00"), requested=Decimal("10000.00"))
    assert error.as_dict() == {
        "code": "insufficient_funds",
        "message": "Insufficient balance. Available: 5000.00, requested: 10000.00.",
        "params": {"available": "5000.00", "requested": "10000.00"},
    }


def test_payee_is_exactly_one_kind():
    assert payee_from_ids(user_id=3) == UserPayee(3)
    assert payee_from_ids(personnel_id=3) == PersonnelPayee(3)
    assert UserPayee(3) != PersonnelPayee(3)
    assert PersonnelPayee(3).lookup() == {"user_id": None, "personnel_id": 3}
    with pytest.raises(InvalidPayee):
        payee_from_ids(user_id=1, personnel_id=2)
    with pytest.raises(InvalidPayee):
        payee_from_ids()
