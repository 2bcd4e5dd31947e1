from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

from conftest import NOW

from app.residence import rows
from app.residence.actions import (
    AddExpense,
    DeleteExpense,
    TopUpPettyCash,
    UpdateExpense,
    UpdatePettyCash,
)
from app.residence.domain import PETTY_CASH_CATEGORY, Expense, ExpenseId, PaymentMethod
from app.residence.engine import reduce
from app.residence.gateway import OpKind


def _expense(amount: str, method: PaymentMethod = PaymentMethod.PETTY_CASH, expense_id: str = "e1") -> Expense:
    return Expense(
        id=ExpenseId(expense_id),
        category="Compras Limpieza",
        description="Detergente",
        amount=Decimal(amount),
        date=NOW,
        method=method,
    )


def test_petty_cash_expense_decreases_balance(residence):
    transition = reduce(residence, AddExpense(_expense("5000")), NOW)

    assert transition.state.petty_cash == residence.petty_cash - 5000
    insert, balance = transition.outbox
    assert insert.table == rows.EXPENSES
    assert balance.kind == OpKind.UPDATE
    assert balance.table == rows.CONFIGURATIONS
    assert balance.filters == {"id": residence.configuration.id}
    assert balance.row["petty_cash"] == Decimal("45000")


def test_negative_petty_cash_expense_is_a_top_up(residence):
    transition = reduce(residence, AddExpense(_expense("-5000")), NOW)
    assert transition.state.petty_cash == residence.petty_cash + 5000


def test_other_methods_leave_balance_alone(residence):
    transition = reduce(residence, AddExpense(_expense("5000", PaymentMethod.TRANSFER)), NOW)

    assert transition.state.petty_cash == residence.petty_cash
    assert [op.table for op in transition.outbox] == [rows.EXPENSES]


def test_top_up_records_one_inflow_and_credits_once(residence):
    transition = reduce(residence, TopUpPettyCash(Decimal("20000"), expense_id="top-1"), NOW)

    assert transition.state.petty_cash == Decimal("70000")
    (inflow,) = transition.state.expenses
    assert inflow.id == "top-1"
    assert inflow.amount == Decimal("-20000")
    assert inflow.category == PETTY_CASH_CATEGORY
    assert inflow.method == PaymentMethod.PETTY_CASH
    assert len([op for op in transition.outbox if op.table == rows.CONFIGURATIONS]) == 1


def test_top_up_rejects_non_positive_amount(residence):
    transition = reduce(residence, TopUpPettyCash(Decimal("0")), NOW)
    assert transition.state is residence


def test_deleting_petty_cash_expense_restores_balance(residence):
    state = reduce(residence, AddExpense(_expense("5000")), NOW).state
    transition = reduce(state, DeleteExpense("e1"), NOW)

    assert transition.state.expenses == ()
    assert transition.state.petty_cash == residence.petty_cash


def test_updating_expense_applies_only_the_difference(residence):
    state = reduce(residence, AddExpense(_expense("5000")), NOW).state
    transition = reduce(state, UpdateExpense(_expense("8000")), NOW)
    assert transition.state.petty_cash == residence.petty_cash - 8000

    moved = reduce(transition.state, UpdateExpense(_expense("8000", PaymentMethod.CASH)), NOW)
    assert moved.state.petty_cash == residence.petty_cash


def test_updating_expense_without_petty_cash_change_skips_balance_write(residence):
    state = reduce(residence, AddExpense(_expense("5000", PaymentMethod.CASH)), NOW).state
    edited = replace(_expense("5000", PaymentMethod.CASH), description="Lavandina")
    transition = reduce(state, UpdateExpense(edited), NOW)

    assert [op.table for op in transition.outbox] == [rows.EXPENSES]
    assert transition.state.expense("e1").description == "Lavandina"


def test_update_petty_cash_replaces_balance(residence):
    transition = reduce(residence, UpdatePettyCash(Decimal("1234")), NOW)

    assert transition.state.petty_cash == Decimal("1234")
    (op,) = transition.outbox
    assert op.row["petty_cash"] == Decimal("1234")
