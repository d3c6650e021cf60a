"""Condition tree models.

A tree is either a leaf :class:`Condition` (one field compared with one
operator) or a :class:`ConditionGroup` combining children with AND/OR. Both
carry their own ``negate`` flag; it is applied once, by whoever evaluates
that node.
"""

from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel, Field

GroupOperator = Literal["AND", "OR"]


class Condition(BaseModel):
    """Leaf predicate: ``field <operator> value``."""

    field: str = Field(description="Attribute name, e.g. 'genres' or 'year'")
    operator: str = Field(description="Comparison operator supported by the field")
    value: Any = Field(description="Scalar, list or {min, max} range depending on operator")
    negate: bool = Field(default=False, description="Invert the result of this leaf")


class ConditionGroup(BaseModel):
    """Internal node combining child nodes with AND or OR."""

    operator: GroupOperator
    conditions: list[ConditionNode]
    negate: bool = False


ConditionNode = Union[Condition, ConditionGroup]

ConditionGroup.model_rebuild()


class FieldCriterion(BaseModel):
    """Stored criterion of a simple (single field) router rule."""

    field: str
    operator: str = "equals"
    value: Any
    negate: bool = False

    def as_condition(self) -> Condition:
        return Condition(field=self.field, operator=self.operator, value=self.value, negate=self.negate)
