"""Procedure registry for the RPC surface.

Procedures are named `<entity>.<operation>` and are either queries (GET)
or mutations (POST). Each declares a pydantic input model; raw input is
validated against it before the handler runs.

Usage:
    @query("position.getById", IdInput)
    async def get_position(db: AsyncSession, data: IdInput):
        ...
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from piggy.core.exceptions import (
    MethodNotAllowedError,
    NotFoundError,
    ValidationError,
    validation_details,
)
from piggy.core.logging import get_logger


logger = get_logger("api.rpc")

QUERY = "query"
MUTATION = "mutation"

Handler = Callable[[AsyncSession, Any], Awaitable[Any]]


@dataclass(frozen=True)
class Procedure:
    name: str
    kind: str
    input_model: type[BaseModel] | None
    handler: Handler

    @property
    def method(self) -> str:
        return "GET" if self.kind == QUERY else "POST"


# Global procedure registry
_registry: dict[str, Procedure] = {}


def _register(name: str, kind: str, input_model: type[BaseModel] | None) -> Callable:
    def decorator(func: Handler) -> Handler:
        if name in _registry:
            raise ValueError(f"Procedure {name} is already registered")
        _registry[name] = Procedure(name=name, kind=kind, input_model=input_model, handler=func)
        logger.debug(f"Registered {kind}: {name}")
        return func

    return decorator


def query(name: str, input_model: type[BaseModel] | None = None) -> Callable:
    """Register a read-only procedure, served over GET."""
    return _register(name, QUERY, input_model)


def mutation(name: str, input_model: type[BaseModel] | None = None) -> Callable:
    """Register a state-changing procedure, served over POST."""
    return _register(name, MUTATION, input_model)


def get_procedure(name: str) -> Procedure | None:
    return _registry.get(name)


def list_procedures() -> list[dict[str, str]]:
    return [
        {"name": p.name, "type": p.kind, "method": p.method}
        for p in sorted(_registry.values(), key=lambda p: p.name)
    ]


def decode_query_input(raw: str | None) -> Any:
    """Decode the `input` query parameter of a GET call."""
    if raw is None or raw == "":
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError(message=f"Input is not valid JSON: {e.msg}") from e


def parse_input(procedure: Procedure, raw: Any) -> BaseModel | None:
    if procedure.input_model is None:
        return None
    try:
        return procedure.input_model.model_validate(raw if raw is not None else {})
    except PydanticValidationError as e:
        raise ValidationError(
            message=f"Invalid input for {procedure.name}",
            details=validation_details(e.errors()),
        ) from e


async def call(session: AsyncSession, name: str, method: str, raw_input: Any) -> Any:
    """Resolve, validate and run a procedure."""
    procedure = get_procedure(name)
    if procedure is None:
        raise NotFoundError(message=f"No procedure found on path \"{name}\"")
    if procedure.method != method:
        raise MethodNotAllowedError(
            message=f"{procedure.name} is a {procedure.kind}; use {procedure.method}"
        )
    data = parse_input(procedure, raw_input)
    return await procedure.handler(session, data)
