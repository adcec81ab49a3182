from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from .db import Database
from .models import Currency, Expense, Pot, Split

logger = logging.getLogger(__name__)


class PotStore:
    """MySQL persistence for pots, their members, expenses, splits and currencies."""

    def __init__(self, database: Database) -> None:
        self.db = database

    def list_pots(self, user_id: str) -> List[Pot]:
        rows = self.db.fetch_all(
            """
            SELECT DISTINCT p.id, p.name, p.owner_id, p.default_currency_id, p.archived
            FROM pots p
            LEFT JOIN pots_to_users pu ON pu.pot_id = p.id
            WHERE p.owner_id = %s OR pu.user_id = %s
            ORDER BY p.name
            """,
            (user_id, user_id),
        )
        members = self._members([row["id"] for row in rows])
        return [self._pot(row, members.get(row["id"], [])) for row in rows]

    def get_pot(self, pot_id: int) -> Optional[Pot]:
        row = self.db.fetch_one(
            "SELECT id, name, owner_id, default_currency_id, archived FROM pots WHERE id=%s",
            (pot_id,),
        )
        if not row:
            return None
        return self._pot(row, self._members([pot_id]).get(pot_id, []))

    def create_pot(self, name: str, owner_id: str, default_currency_id: Optional[int]) -> int:
        pot_id = self.db.execute(
            "INSERT INTO pots (name, owner_id, default_currency_id) VALUES (%s, %s, %s)",
            (name, owner_id, default_currency_id),
        )
        self.add_user(pot_id, owner_id)
        logger.info("Created pot %s for %s", pot_id, owner_id)
        return pot_id

    def add_user(self, pot_id: int, user_id: str) -> bool:
        added = self.db.update(
            "INSERT IGNORE INTO pots_to_users (pot_id, user_id) VALUES (%s, %s)",
            (pot_id, user_id),
        )
        return added > 0

    def remove_user(self, pot_id: int, user_id: str) -> bool:
        removed = self.db.update(
            "DELETE FROM pots_to_users WHERE pot_id=%s AND user_id=%s",
            (pot_id, user_id),
        )
        return removed > 0

    def set_archived(self, pot_id: int, archived: bool) -> None:
        self.db.update("UPDATE pots SET archived=%s WHERE id=%s", (int(archived), pot_id))

    def delete_pot(self, pot_id: int) -> None:
        with self.db.cursor() as cursor:
            cursor.execute(
                "DELETE es FROM expense_splits es JOIN expenses e ON es.expense_id = e.id WHERE e.pot_id=%s",
                (pot_id,),
            )
            cursor.execute("DELETE FROM expenses WHERE pot_id=%s", (pot_id,))
            cursor.execute("DELETE FROM pots_to_users WHERE pot_id=%s", (pot_id,))
            cursor.execute("DELETE FROM pots WHERE id=%s", (pot_id,))

    def list_expenses(self, pot_id: int) -> List[Expense]:
        rows = self.db.fetch_all(
            """
            SELECT id, pot_id, owner_id, description, currency_id
            FROM expenses
            WHERE pot_id=%s
            ORDER BY created_at DESC, id DESC
            """,
            (pot_id,),
        )
        splits = self._splits([row["id"] for row in rows])
        return [self._expense(row, splits.get(row["id"], [])) for row in rows]

    def get_expense(self, expense_id: int) -> Optional[Expense]:
        row = self.db.fetch_one(
            "SELECT id, pot_id, owner_id, description, currency_id FROM expenses WHERE id=%s",
            (expense_id,),
        )
        if not row:
            return None
        return self._expense(row, self._splits([expense_id]).get(expense_id, []))

    def create_expense(
        self,
        pot_id: int,
        owner_id: str,
        description: str,
        currency_id: Optional[int],
        splits: Sequence[Split],
    ) -> Expense:
        stored: List[Split] = []
        # expense and splits commit together or not at all
        with self.db.cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO expenses (pot_id, owner_id, description, currency_id)
                VALUES (%s, %s, %s, %s)
                """,
                (pot_id, owner_id, description, currency_id),
            )
            expense_id = cursor.lastrowid
            for split in splits:
                cursor.execute(
                    """
                    INSERT INTO expense_splits (expense_id, user_id, amount_cents, is_paid)
                    VALUES (%s, %s, %s, %s)
                    """,
                    (expense_id, split.participant_id, split.amount, int(split.is_paid)),
                )
                stored.append(Split(split.participant_id, split.amount, split.is_paid, cursor.lastrowid))

        logger.info("Created expense %s in pot %s with %d splits", expense_id, pot_id, len(stored))
        return Expense(
            id=expense_id,
            description=description,
            total_amount=sum(split.amount for split in stored),
            owner_id=owner_id,
            splits=stored,
            pot_id=pot_id,
            currency_id=currency_id,
        )

    def mark_split_paid(self, split_id: int) -> bool:
        changed = self.db.update(
            "UPDATE expense_splits SET is_paid=1 WHERE id=%s AND is_paid=0",
            (split_id,),
        )
        return changed > 0

    def list_currencies(self) -> List[Currency]:
        rows = self.db.fetch_all("SELECT id, name, symbol FROM currencies ORDER BY name")
        return [self._currency(row) for row in rows]

    def get_currency(self, currency_id: int) -> Optional[Currency]:
        row = self.db.fetch_one("SELECT id, name, symbol FROM currencies WHERE id=%s", (currency_id,))
        return self._currency(row) if row else None

    def get_currency_by_symbol(self, symbol: str) -> Optional[Currency]:
        row = self.db.fetch_one("SELECT id, name, symbol FROM currencies WHERE symbol=%s", (symbol,))
        return self._currency(row) if row else None

    def create_currency(self, name: str, symbol: str) -> Currency:
        currency_id = self.db.execute(
            "INSERT INTO currencies (name, symbol) VALUES (%s, %s)",
            (name, symbol),
        )
        logger.info("Created currency %s (%s)", symbol, currency_id)
        return Currency(currency_id, name, symbol)

    def _members(self, pot_ids: List[int]) -> Dict[int, List[str]]:
        if not pot_ids:
            return {}
        placeholders = ", ".join(["%s"] * len(pot_ids))
        rows = self.db.fetch_all(
            f"SELECT pot_id, user_id FROM pots_to_users WHERE pot_id IN ({placeholders}) ORDER BY user_id",
            pot_ids,
        )
        members: Dict[int, List[str]] = {}
        for row in rows:
            members.setdefault(row["pot_id"], []).append(row["user_id"])
        return members

    def _splits(self, expense_ids: List[int]) -> Dict[int, List[Split]]:
        if not expense_ids:
            return {}
        placeholders = ", ".join(["%s"] * len(expense_ids))
        rows = self.db.fetch_all(
            f"""
            SELECT id, expense_id, user_id, amount_cents, is_paid
            FROM expense_splits
            WHERE expense_id IN ({placeholders})
            ORDER BY id
            """,
            expense_ids,
        )
        splits: Dict[int, List[Split]] = {}
        for row in rows:
            splits.setdefault(row["expense_id"], []).append(
                Split(row["user_id"], int(row["amount_cents"]), bool(row["is_paid"]), row["id"])
            )
        return splits

    @staticmethod
    def _pot(row: Dict[str, Any], members: List[str]) -> Pot:
        return Pot(
            id=row["id"],
            owner_id=row["owner_id"],
            default_currency_id=row["default_currency_id"],
            participants=members,
            name=row["name"],
            archived=bool(row["archived"]),
        )

    @staticmethod
    def _currency(row: Dict[str, Any]) -> Currency:
        return Currency(row["id"], row["name"], row["symbol"])

    @staticmethod
    def _expense(row: Dict[str, Any], splits: List[Split]) -> Expense:
        return Expense(
            id=row["id"],
            description=row["description"],
            total_amount=sum(split.amount for split in splits),
            owner_id=row["owner_id"],
            splits=splits,
            pot_id=row["pot_id"],
            currency_id=row["currency_id"],
        )
