"""Tests for the position lifecycle."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest
from pydantic import ValidationError as PydanticValidationError

from piggy.core.exceptions import ConflictError, InvalidStateError, NotFoundError
from piggy.schemas.position import (
    PositionCloseRequest,
    PositionListInput,
    PositionUpdateInput,
)
from piggy.services import positions


MISSING_ID = "c" + "0" * 32


def _close(position_id: str, **overrides) -> PositionCloseRequest:
    fields = {
        "position_id": position_id,
        "close_date": datetime(2024, 2, 1, 15, 30),
        "exit_price": 120,
        "sell_fees": 3,
    }
    fields.update(overrides)
    return PositionCloseRequest(**fields)


class TestCreatePosition:
    """Opening a position."""

    @pytest.mark.asyncio
    async def test_create_computes_entry_values(self, db_session, open_position_input):
        position = await positions.create_position(db_session, open_position_input())

        assert position["status"] == "OPEN"
        assert position["position_type"] == "LONG"
        assert position["total_buy_value"] == pytest.approx(1000)
        assert position["capital_allocated"] == pytest.approx(1005)
        assert position["tags"] == ["breakout", "tech"]
        assert position["realized_pnl"] is None

    @pytest.mark.asyncio
    async def test_create_records_paired_buy(self, db_session, open_position_input):
        position = await positions.create_position(db_session, open_position_input())

        assert len(position["transactions"]) == 1
        buy = position["transactions"][0]
        assert buy["type"] == "BUY"
        assert buy["quantity"] == 10
        assert buy["price"] == pytest.approx(100)
        assert buy["total_value"] == pytest.approx(1000)
        assert buy["fees"] == pytest.approx(5)

    @pytest.mark.asyncio
    async def test_create_includes_stock_and_user(self, db_session, open_position_input, user, stock):
        position = await positions.create_position(db_session, open_position_input())

        assert position["stock"]["symbol"] == "AAPL"
        assert position["stock"]["exchange"]["code"] == "NASDAQ"
        assert position["user"]["id"] == user["id"]

    @pytest.mark.asyncio
    async def test_create_unknown_stock(self, db_session, open_position_input):
        with pytest.raises(NotFoundError):
            await positions.create_position(
                db_session, open_position_input(stock_id=MISSING_ID)
            )

    def test_quantity_must_be_positive(self, open_position_input):
        with pytest.raises(PydanticValidationError):
            open_position_input(quantity=0)

    def test_entry_price_must_be_positive(self, open_position_input):
        with pytest.raises(PydanticValidationError):
            open_position_input(entry_price=-1)

    def test_open_reason_required(self, open_position_input):
        with pytest.raises(PydanticValidationError):
            open_position_input(open_reason="")


class TestClosePosition:
    """Closing a position."""

    @pytest.mark.asyncio
    async def test_close_worked_example(self, db_session, open_position_input):
        opened = await positions.create_position(db_session, open_position_input())

        closed = await positions.close_position(db_session, _close(opened["id"]))

        assert closed["status"] == "CLOSED"
        assert closed["total_sell_value"] == pytest.approx(1200)
        assert closed["realized_pnl"] == pytest.approx(192)
        assert closed["return_percentage"] == pytest.approx(19.10, abs=0.01)
        assert closed["exit_price"] == pytest.approx(120)
        assert closed["sell_fees"] == pytest.approx(3)
        # Entry values are untouched by the close
        assert closed["capital_allocated"] == pytest.approx(1005)
        assert closed["total_buy_value"] == pytest.approx(1000)

    @pytest.mark.asyncio
    async def test_close_appends_sell(self, db_session, open_position_input):
        opened = await positions.create_position(db_session, open_position_input())

        closed = await positions.close_position(db_session, _close(opened["id"]))

        types = [t["type"] for t in closed["transactions"]]
        assert types == ["BUY", "SELL"]
        sell = closed["transactions"][1]
        assert sell["quantity"] == 10
        assert sell["total_value"] == pytest.approx(1200)
        assert sell["fees"] == pytest.approx(3)

    @pytest.mark.asyncio
    async def test_close_records_journal_fields(self, db_session, open_position_input):
        opened = await positions.create_position(db_session, open_position_input())

        closed = await positions.close_position(
            db_session,
            _close(opened["id"], trade_grade="A", lessons_learned="Stick to the plan"),
        )

        assert closed["trade_grade"] == "A"
        assert closed["lessons_learned"] == "Stick to the plan"

    @pytest.mark.asyncio
    async def test_close_twice_is_invalid_state(self, db_session, open_position_input):
        opened = await positions.create_position(db_session, open_position_input())
        await positions.close_position(db_session, _close(opened["id"]))

        with pytest.raises(InvalidStateError):
            await positions.close_position(db_session, _close(opened["id"], exit_price=130))

        position = await positions.get_position(db_session, opened["id"])
        assert position["exit_price"] == pytest.approx(120)
        assert len(position["transactions"]) == 2

    @pytest.mark.asyncio
    async def test_close_with_stale_open_snapshot(self, db_session, open_position_input, mocker):
        """The conditional status update rejects a close that read the row before another close."""
        opened = await positions.create_position(db_session, open_position_input())
        stale = SimpleNamespace(
            id=opened["id"],
            status="OPEN",
            quantity=10,
            total_buy_value=Decimal("1000"),
            buy_fees=Decimal("5"),
            capital_allocated=Decimal("1005"),
        )
        await positions.close_position(db_session, _close(opened["id"]))
        mocker.patch(
            "piggy.repositories.positions_orm.lock_position",
            new_callable=mocker.AsyncMock,
            return_value=stale,
        )

        with pytest.raises(InvalidStateError):
            await positions.close_position(db_session, _close(opened["id"], exit_price=130))

        position = await positions.get_position(db_session, opened["id"])
        assert position["exit_price"] == pytest.approx(120)
        assert [t["type"] for t in position["transactions"]] == ["BUY", "SELL"]

    @pytest.mark.asyncio
    async def test_close_unknown_position(self, db_session):
        with pytest.raises(NotFoundError):
            await positions.close_position(db_session, _close(MISSING_ID))


class TestUpdatePosition:
    """Merging journal and risk fields."""

    @pytest.mark.asyncio
    async def test_update_merges_only_provided_fields(self, db_session, open_position_input):
        opened = await positions.create_position(
            db_session, open_position_input(strategy="Momentum", notes="initial")
        )

        updated = await positions.update_position(
            db_session, PositionUpdateInput(id=opened["id"], stop_loss_price=95)
        )

        assert updated["stop_loss_price"] == pytest.approx(95)
        assert updated["strategy"] == "Momentum"
        assert updated["notes"] == "initial"
        assert updated["capital_allocated"] == pytest.approx(1005)

    @pytest.mark.asyncio
    async def test_update_replaces_tags(self, db_session, open_position_input):
        opened = await positions.create_position(db_session, open_position_input())

        updated = await positions.update_position(
            db_session, PositionUpdateInput(id=opened["id"], tags=["swing"])
        )

        assert updated["tags"] == ["swing"]

    @pytest.mark.asyncio
    async def test_update_unknown_position(self, db_session):
        with pytest.raises(NotFoundError):
            await positions.update_position(db_session, PositionUpdateInput(id=MISSING_ID, notes="x"))


class TestDeletePosition:
    """Guarded deletes."""

    @pytest.mark.asyncio
    async def test_delete_with_transactions_conflicts(self, db_session, open_position_input):
        opened = await positions.create_position(db_session, open_position_input())

        with pytest.raises(ConflictError):
            await positions.delete_position(db_session, opened["id"])

        assert await positions.get_position(db_session, opened["id"])

    @pytest.mark.asyncio
    async def test_delete_without_transactions(self, db_session, open_position_input):
        from piggy.repositories import transactions_orm

        opened = await positions.create_position(db_session, open_position_input())
        buy_id = opened["transactions"][0]["id"]
        await transactions_orm.delete_transaction(db_session, buy_id)

        assert await positions.delete_position(db_session, opened["id"]) == {"success": True}
        with pytest.raises(NotFoundError):
            await positions.get_position(db_session, opened["id"])

    @pytest.mark.asyncio
    async def test_delete_unknown_position(self, db_session):
        with pytest.raises(NotFoundError):
            await positions.delete_position(db_session, MISSING_ID)


class TestListPositions:
    """Filtering and ordering."""

    @pytest.mark.asyncio
    async def test_list_newest_first_with_filters(self, db_session, open_position_input, user):
        first = await positions.create_position(
            db_session, open_position_input(open_date=datetime(2024, 1, 1))
        )
        second = await positions.create_position(
            db_session, open_position_input(open_date=datetime(2024, 3, 1))
        )
        await positions.close_position(db_session, _close(first["id"]))

        everything = await positions.list_positions(db_session, PositionListInput(user_id=user["id"]))
        assert [p["id"] for p in everything["positions"]] == [second["id"], first["id"]]
        assert everything["total"] == 2
        assert everything["has_more"] is False

        open_only = await positions.list_positions(
            db_session, PositionListInput(user_id=user["id"], status="OPEN")
        )
        assert [p["id"] for p in open_only["positions"]] == [second["id"]]

    @pytest.mark.asyncio
    async def test_open_summary(self, db_session, open_position_input, user):
        first = await positions.create_position(db_session, open_position_input())
        await positions.create_position(
            db_session, open_position_input(quantity=5, entry_price=50, buy_fees=1)
        )
        await positions.create_position(db_session, open_position_input())
        await positions.close_position(db_session, _close(first["id"]))

        summary = await positions.get_open_summary(db_session, user["id"])

        assert summary["total_positions"] == 2
        assert summary["total_value"] == pytest.approx(1000 + 250)
        assert summary["total_invested"] == pytest.approx(1005 + 251)
        assert all(p["status"] == "OPEN" for p in summary["positions"])
