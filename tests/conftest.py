from typing import Dict, List, Optional

import pytest

from potsplit.app import create_app
from potsplit.models import Currency, Expense, Pot, Split


class MemoryStore:
    """Same surface as PotStore, kept in dicts."""

    def __init__(self) -> None:
        self.pots: Dict[int, Pot] = {}
        self.expenses: Dict[int, Expense] = {}
        self.currencies: Dict[int, Currency] = {1: Currency(1, "Euro", "EUR")}
        self._ids = {"pot": 0, "expense": 0, "split": 0, "currency": 1}

    def _next(self, kind: str) -> int:
        self._ids[kind] += 1
        return self._ids[kind]

    def list_pots(self, user_id: str) -> List[Pot]:
        return [pot for pot in self.pots.values() if pot.has_member(user_id)]

    def get_pot(self, pot_id: int) -> Optional[Pot]:
        return self.pots.get(pot_id)

    def create_pot(self, name, owner_id, default_currency_id) -> int:
        pot_id = self._next("pot")
        self.pots[pot_id] = Pot(pot_id, owner_id, default_currency_id, [owner_id], name)
        return pot_id

    def add_user(self, pot_id, user_id) -> bool:
        pot = self.pots[pot_id]
        if user_id in pot.participants:
            return False
        pot.participants.append(user_id)
        return True

    def remove_user(self, pot_id, user_id) -> bool:
        pot = self.pots[pot_id]
        if user_id not in pot.participants:
            return False
        pot.participants.remove(user_id)
        return True

    def set_archived(self, pot_id, archived) -> None:
        self.pots[pot_id].archived = archived

    def delete_pot(self, pot_id) -> None:
        del self.pots[pot_id]
        for expense_id in [e.id for e in self.expenses.values() if e.pot_id == pot_id]:
            del self.expenses[expense_id]

    def list_expenses(self, pot_id) -> List[Expense]:
        return [e for e in self.expenses.values() if e.pot_id == pot_id]

    def get_expense(self, expense_id) -> Optional[Expense]:
        return self.expenses.get(expense_id)

    def create_expense(self, pot_id, owner_id, description, currency_id, splits) -> Expense:
        stored = [Split(s.participant_id, s.amount, s.is_paid, self._next("split")) for s in splits]
        expense = Expense(
            self._next("expense"),
            description,
            sum(s.amount for s in stored),
            owner_id,
            stored,
            pot_id,
            currency_id,
        )
        self.expenses[expense.id] = expense
        return expense

    def mark_split_paid(self, split_id) -> bool:
        for expense in self.expenses.values():
            for index, split in enumerate(expense.splits):
                if split.id == split_id:
                    if split.is_paid:
                        return False
                    expense.splits[index] = Split(split.participant_id, split.amount, True, split.id)
                    return True
        return False

    def list_currencies(self) -> List[Currency]:
        return sorted(self.currencies.values(), key=lambda c: c.name)

    def get_currency(self, currency_id) -> Optional[Currency]:
        return self.currencies.get(currency_id)

    def get_currency_by_symbol(self, symbol) -> Optional[Currency]:
        return next((c for c in self.currencies.values() if c.symbol == symbol), None)

    def create_currency(self, name, symbol) -> Currency:
        currency = Currency(self._next("currency"), name, symbol)
        self.currencies[currency.id] = currency
        return currency


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def app(store):
    app = create_app(store=store)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(client):
    def _login(user_id: str):
        with client.session_transaction() as sess:
            sess["user_id"] = user_id
        return client

    return _login


@pytest.fixture
def pot(store):
    pot_id = store.create_pot("Trip", "alice", 1)
    store.add_user(pot_id, "bob")
    store.add_user(pot_id, "carol")
    return store.get_pot(pot_id)
