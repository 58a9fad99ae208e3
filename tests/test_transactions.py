"""Tests for the transaction ledger."""

from __future__ import annotations

from datetime import datetime

import pytest

from piggy.core.exceptions import NotFoundError
from piggy.schemas.position import PositionCloseRequest
from piggy.schemas.transaction import (
    TransactionBulkCreateInput,
    TransactionCreateRequest,
    TransactionFilter,
    TransactionListInput,
    TransactionUpdateInput,
)
from piggy.services import positions, transactions


MISSING_ID = "c" + "0" * 32


@pytest.fixture
def dividend_input():
    def _make(position_id: str, **overrides) -> TransactionCreateRequest:
        fields = {
            "position_id": position_id,
            "type": "DIVIDEND",
            "date": datetime(2024, 1, 20),
            "quantity": 10,
            "price": 0.25,
            "fees": 0,
        }
        fields.update(overrides)
        return TransactionCreateRequest(**fields)

    return _make


class TestCreateTransaction:
    """Manual ledger entries."""

    @pytest.mark.asyncio
    async def test_total_value_is_quantity_times_price(
        self, db_session, open_position_input, dividend_input
    ):
        position = await positions.create_position(db_session, open_position_input())

        txn = await transactions.create_transaction(db_session, dividend_input(position["id"]))

        assert txn["type"] == "DIVIDEND"
        assert txn["total_value"] == pytest.approx(2.5)
        assert txn["position_id"] == position["id"]

    @pytest.mark.asyncio
    async def test_unknown_position(self, db_session, dividend_input):
        with pytest.raises(NotFoundError):
            await transactions.create_transaction(db_session, dividend_input(MISSING_ID))

    @pytest.mark.asyncio
    async def test_get_by_position_oldest_first(
        self, db_session, open_position_input, dividend_input
    ):
        position = await positions.create_position(db_session, open_position_input())
        await transactions.create_transaction(db_session, dividend_input(position["id"]))

        ledger = await transactions.get_by_position(db_session, position["id"])

        assert [t["type"] for t in ledger] == ["BUY", "DIVIDEND"]

    @pytest.mark.asyncio
    async def test_get_unknown_transaction(self, db_session):
        with pytest.raises(NotFoundError):
            await transactions.get_transaction(db_session, MISSING_ID)


class TestUpdateTransaction:
    """Merged updates keep total_value consistent."""

    @pytest.mark.asyncio
    async def test_price_change_recomputes_total(
        self, db_session, open_position_input, dividend_input
    ):
        position = await positions.create_position(db_session, open_position_input())
        txn = await transactions.create_transaction(db_session, dividend_input(position["id"]))

        updated = await transactions.update_transaction(
            db_session, TransactionUpdateInput(id=txn["id"], price=0.5)
        )

        assert updated["price"] == pytest.approx(0.5)
        assert updated["total_value"] == pytest.approx(5.0)

    @pytest.mark.asyncio
    async def test_notes_only_keeps_total(
        self, db_session, open_position_input, dividend_input
    ):
        position = await positions.create_position(db_session, open_position_input())
        txn = await transactions.create_transaction(db_session, dividend_input(position["id"]))

        updated = await transactions.update_transaction(
            db_session, TransactionUpdateInput(id=txn["id"], notes="Q1 dividend")
        )

        assert updated["notes"] == "Q1 dividend"
        assert updated["total_value"] == pytest.approx(2.5)

    @pytest.mark.asyncio
    async def test_update_unknown(self, db_session):
        with pytest.raises(NotFoundError):
            await transactions.update_transaction(
                db_session, TransactionUpdateInput(id=MISSING_ID, notes="x")
            )


class TestListAndSummary:
    """Filtered listings and aggregates."""

    @pytest.mark.asyncio
    async def test_list_filters_by_type_and_user(
        self, db_session, open_position_input, dividend_input, user
    ):
        position = await positions.create_position(db_session, open_position_input())
        await transactions.create_transaction(db_session, dividend_input(position["id"]))

        result = await transactions.list_transactions(
            db_session, TransactionListInput(user_id=user["id"], type="DIVIDEND")
        )

        assert result["total"] == 1
        assert result["transactions"][0]["type"] == "DIVIDEND"
        assert result["has_more"] is False
        assert result["pagination"] == {"limit": 50, "offset": 0, "total": 1}

    @pytest.mark.asyncio
    async def test_list_date_range(self, db_session, open_position_input, dividend_input, user):
        position = await positions.create_position(db_session, open_position_input())
        await transactions.create_transaction(
            db_session, dividend_input(position["id"], date=datetime(2024, 6, 1))
        )

        result = await transactions.list_transactions(
            db_session,
            TransactionListInput(
                user_id=user["id"], start_date=datetime(2024, 5, 1), end_date=datetime(2024, 7, 1)
            ),
        )

        assert [t["type"] for t in result["transactions"]] == ["DIVIDEND"]

    @pytest.mark.asyncio
    async def test_summary_after_round_trip(self, db_session, open_position_input, user):
        position = await positions.create_position(db_session, open_position_input())
        await positions.close_position(
            db_session,
            PositionCloseRequest(
                position_id=position["id"],
                close_date=datetime(2024, 2, 1),
                exit_price=120,
                sell_fees=3,
            ),
        )

        summary = await transactions.get_summary(db_session, TransactionFilter(user_id=user["id"]))

        assert summary["summary"]["total_transactions"] == 2
        assert summary["summary"]["total_volume"] == pytest.approx(2200)
        assert summary["summary"]["total_fees"] == pytest.approx(8)
        assert summary["summary"]["total_shares"] == 20
        by_type = {row["type"]: row for row in summary["by_type"]}
        assert by_type["BUY"]["total_value"] == pytest.approx(1000)
        assert by_type["SELL"]["total_value"] == pytest.approx(1200)
        assert len(summary["recent_transactions"]) == 2

    @pytest.mark.asyncio
    async def test_summary_empty(self, db_session, user):
        summary = await transactions.get_summary(db_session, TransactionFilter(user_id=user["id"]))

        assert summary["summary"]["total_transactions"] == 0
        assert summary["summary"]["total_volume"] == 0
        assert summary["by_type"] == []


class TestBulkAndDelete:
    @pytest.mark.asyncio
    async def test_create_bulk_counts(self, db_session, open_position_input, dividend_input):
        position = await positions.create_position(db_session, open_position_input())

        result = await transactions.create_bulk(
            db_session,
            TransactionBulkCreateInput(
                transactions=[
                    dividend_input(position["id"], date=datetime(2024, 3, 1)),
                    dividend_input(position["id"], date=datetime(2024, 6, 1)),
                ]
            ),
        )

        assert result == {"created": 2}
        assert len(await transactions.get_by_position(db_session, position["id"])) == 3

    @pytest.mark.asyncio
    async def test_create_bulk_empty(self, db_session):
        result = await transactions.create_bulk(
            db_session, TransactionBulkCreateInput(transactions=[])
        )

        assert result == {"created": 0}

    @pytest.mark.asyncio
    async def test_create_bulk_unknown_position(self, db_session, dividend_input):
        with pytest.raises(NotFoundError) as exc_info:
            await transactions.create_bulk(
                db_session, TransactionBulkCreateInput(transactions=[dividend_input(MISSING_ID)])
            )

        assert exc_info.value.details["position_ids"] == [MISSING_ID]

    @pytest.mark.asyncio
    async def test_delete(self, db_session, open_position_input, dividend_input):
        position = await positions.create_position(db_session, open_position_input())
        txn = await transactions.create_transaction(db_session, dividend_input(position["id"]))

        assert await transactions.delete_transaction(db_session, txn["id"]) == {"success": True}
        with pytest.raises(NotFoundError):
            await transactions.get_transaction(db_session, txn["id"])
        with pytest.raises(NotFoundError):
            await transactions.delete_transaction(db_session, txn["id"])
