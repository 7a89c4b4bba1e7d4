"""
Partial-update statement builder for the `users` table.

Given a user id and a sparse mapping of field -> new value, build one
parameterized UPDATE statement:

    UPDATE users
       SET <present fields, in MUTABLE_FIELDS order>,
           updated_at = CASE WHEN created_at > <now> THEN created_at ELSE <now> END
     WHERE users.id = ?
    RETURNING users.id, users.username, ...

The SET clause order comes from `MUTABLE_FIELDS`, never from the input mapping,
so equal inputs always compile to byte-identical SQL. `<now>` is the storage clock
(`now()`) unless the caller binds a value; either way `updated_at` can never fall
behind `created_at`, even when rows are written by hosts whose clocks disagree.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping
from uuid import UUID

from sqlalchemy import ColumnElement, Update, case, func, literal, update

from user_registry.exceptions.base import InvalidInputError
from user_registry.models.user import User

# Fixed allow-list and order of columns a partial update may assign.
MUTABLE_FIELDS: tuple[str, ...] = ("username", "email", "full_name")

users_table = User.__table__


@dataclass(frozen=True)
class PartialUpdate:
    """
    Result of `build_partial_update`.

    Attributes:
        statement: executable SQLAlchemy Update with RETURNING of every column.
        fields: the assigned mutable fields, in assignment order.
        params: positional parameter values, in the order they bind:
                [*field values, refreshed_at, refreshed_at, user_id], without the
                two timestamps when the storage clock is used
    """
    statement: Update
    fields: tuple[str, ...]
    params: tuple[Any, ...]


def refreshed_timestamp(refreshed_at: datetime | None = None) -> ColumnElement:
    """
    Expression for the new `updated_at`: the given instant (or storage `now()`),
    but never earlier than the row's own `created_at`.
    """
    def _now() -> ColumnElement:
        if refreshed_at is None:
            return func.now()
        return literal(refreshed_at, users_table.c.updated_at.type)

    created_at = users_table.c.created_at
    return case((created_at > _now(), created_at), else_=_now())


def build_partial_update(
    user_id: UUID,
    changes: Mapping[str, Any],
    *,
    refreshed_at: datetime | None = None,
) -> PartialUpdate:
    """
    Build the UPDATE statement for a sparse set of field assignments.

    Args:
        user_id: id of the row to update (always the last parameter).
        changes: field -> value for the fields being changed. Only keys in
                 MUTABLE_FIELDS are accepted.
        refreshed_at: bound "now" for `updated_at`; None means the storage clock.

    Raises:
        InvalidInputError: if `changes` contains a key outside MUTABLE_FIELDS.
        ValueError: if `changes` is empty. An update with nothing to assign is a
                    read, and the caller must fetch instead of writing.
    """
    unknown = sorted(set(changes) - set(MUTABLE_FIELDS))
    if unknown:
        raise InvalidInputError(f"Field(s) cannot be updated: {', '.join(unknown)}", fields=unknown)

    if not changes:
        raise ValueError("build_partial_update() requires at least one field to assign")

    assignments: list[tuple[Any, Any]] = []
    fields: list[str] = []
    params: list[Any] = []

    for field in MUTABLE_FIELDS:
        if field not in changes:
            continue
        assignments.append((users_table.c[field], changes[field]))
        fields.append(field)
        params.append(changes[field])

    # timestamp refresh always follows the caller's fields
    assignments.append((users_table.c.updated_at, refreshed_timestamp(refreshed_at)))
    if refreshed_at is not None:
        params.extend((refreshed_at, refreshed_at))

    # identity predicate is bound last
    params.append(user_id)

    statement = (
        update(users_table)
        .where(users_table.c.id == user_id)
        .ordered_values(*assignments)
        .returning(*users_table.c)
    )

    return PartialUpdate(statement=statement, fields=tuple(fields), params=tuple(params))


# Why `ordered_values()` and not `values(**changes)`?
#   - `values()` renders SET in table column order, which happens to match today but
#     silently changes if a column is reordered in the model.
#   - `ordered_values()` renders SET exactly in the order we append, so the statement
#     shape is owned by MUTABLE_FIELDS.
#
# | Input                                   | SET clause                                     |
# | --------------------------------------- | ---------------------------------------------- |
# | {"full_name": "B", "username": "a"}     | username=?, full_name=?, updated_at=<refresh>  |
# | {"email": "x@y.z"}                      | email=?, updated_at=<refresh>                  |
# | {}                                      | ValueError (caller fetches instead)            |
