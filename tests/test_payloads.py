from decimal import Decimal

import pytest

from potsplit.errors import InvalidInputError
from potsplit.ledger import summarize_pot
from potsplit.models import Currency, Equal, Expense, Pot, SinglePayer, Split, Weighted
from potsplit.payloads import (
    amount_to_json,
    currency_to_json,
    expense_payload,
    expense_view,
    parse_policy,
    pay_payload,
    pot_view,
)


def test_parse_policy_defaults_to_equal():
    assert parse_policy({}) == Equal()
    assert parse_policy({"policy": "EQUAL"}) == Equal()


def test_parse_policy_single_payer():
    assert parse_policy({"policy": "single_payer", "payer_id": 7}) == SinglePayer("7")
    with pytest.raises(InvalidInputError, match="payer_not_participant"):
        parse_policy({"policy": "single_payer"})


def test_parse_policy_weighted():
    policy = parse_policy({"policy": "weighted", "weights": {"a": 60, "b": "40.5"}})
    assert policy == Weighted({"a": Decimal("60"), "b": Decimal("40.5")})
    with pytest.raises(InvalidInputError, match="zero_weights"):
        parse_policy({"policy": "weighted"})
    with pytest.raises(InvalidInputError, match="invalid_weight"):
        parse_policy({"policy": "weighted", "weights": {"a": "heavy"}})


def test_parse_policy_unknown():
    with pytest.raises(InvalidInputError, match="unknown_policy"):
        parse_policy({"policy": "random"})


def test_expense_payload_serializes_cents_as_decimal_strings():
    splits = [Split("bob", 333), Split("alice", 334, True)]
    assert expense_payload(2, "Dinner", splits) == {
        "currency_id": 2,
        "description": "Dinner",
        "splits": [
            {"user_id": "bob", "amount": "3.33", "is_paid": False},
            {"user_id": "alice", "amount": "3.34", "is_paid": True},
        ],
    }


def test_pay_payload():
    assert pay_payload(5, Split("bob", 1250)) == {"expense_id": 5, "user_id": "bob", "sum_paid": "12.50"}


def test_expense_view_for_owner_and_debtor():
    expense = Expense(1, "Dinner", 1000, "alice", [Split("alice", 334, True, 1), Split("bob", 333, False, 2), Split("carol", 333, False, 3)])

    owner = expense_view(expense, "alice")
    assert owner["amount"] == "10.00"
    assert owner["sum"] == "6.66"
    assert (owner["paid"], owner["total"]) == (1, 3)
    assert [s["can_mark_paid"] for s in owner["splits"]] == [False, True, True]

    debtor = expense_view(expense, "bob")
    assert debtor["sum"] == "-3.33"
    assert [s["can_mark_paid"] for s in debtor["splits"]] == [False, True, False]

    archived = expense_view(expense, "alice", archived=True)
    assert not any(s["can_mark_paid"] for s in archived["splits"])


def test_pot_view():
    pot = Pot(3, "alice", 1, ["alice", "bob"], "Trip")
    view = pot_view(pot, summarize_pot([], "alice"))
    assert view == {
        "id": 3,
        "name": "Trip",
        "owner_id": "alice",
        "default_currency_id": 1,
        "users": ["alice", "bob"],
        "archived": False,
        "balance": "0.00",
        "expense_count": 0,
        "can_delete": True,
        "can_archive": True,
    }


def test_amounts_survive_past_float_precision():
    assert amount_to_json(10**28 + 1) == "100000000000000000000000000.01"
    assert amount_to_json(-5) == "-0.05"


def test_currency_to_json():
    assert currency_to_json(Currency(2, "Euro", "EUR")) == {"id": 2, "name": "Euro", "symbol": "EUR"}
