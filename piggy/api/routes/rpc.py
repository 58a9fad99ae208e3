"""RPC transport: queries over GET, mutations over POST.

    GET  /rpc/position.getById?input={"id": "c..."}
    POST /rpc/position.close   {"position_id": "c...", ...}

Successful calls answer `{"result": {"data": ...}}`; failures use the
standard error envelope.
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Query, Request

from piggy.api import rpc
from piggy.core.exceptions import ValidationError
from piggy.database.session import DbSession


router = APIRouter(prefix="/rpc", tags=["RPC"])


def _result(data: Any) -> dict[str, Any]:
    return {"result": {"data": data}}


async def _read_body(request: Request) -> Any:
    body = await request.body()
    if not body:
        return None
    try:
        return json.loads(body)
    except json.JSONDecodeError as e:
        raise ValidationError(message=f"Body is not valid JSON: {e.msg}") from e


@router.get("", summary="List procedures")
async def list_procedures() -> dict:
    return {"procedures": rpc.list_procedures()}


@router.get("/{procedure}", summary="Call a query")
async def call_query(
    procedure: str,
    db: DbSession,
    raw_input: str | None = Query(None, alias="input", description="JSON-encoded procedure input"),
) -> dict:
    return _result(await rpc.call(db, procedure, "GET", rpc.decode_query_input(raw_input)))


@router.post("/{procedure}", summary="Call a mutation")
async def call_mutation(procedure: str, request: Request, db: DbSession) -> dict:
    return _result(await rpc.call(db, procedure, "POST", await _read_body(request)))
