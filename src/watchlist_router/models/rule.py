"""Router rule and routing decision models."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from watchlist_router.models.condition import ConditionNode, FieldCriterion
from watchlist_router.models.content import InstanceType

RuleType = Literal["conditional", "genre", "user", "year", "season", "language", "certification"]
SeriesType = Literal["standard", "anime", "daily"]
MinimumAvailability = Literal["announced", "inCinemas", "released"]

DEFAULT_RULE_ORDER = 50


class RouterRule(BaseModel):
    """Persisted routing policy mapping a criterion to a target instance."""

    id: str | None = None
    name: str = Field(min_length=1)
    type: RuleType
    target_type: InstanceType
    target_instance_id: int

    criterion: FieldCriterion | None = None
    condition: ConditionNode | None = None

    quality_profile: int | str | None = None
    root_folder: str | None = None
    tags: list[str] = Field(default_factory=list)
    search_on_add: bool | None = None
    season_monitoring: str | None = None
    series_type: SeriesType | None = None
    minimum_availability: MinimumAvailability | None = None

    order: int = DEFAULT_RULE_ORDER
    enabled: bool = True

    always_require_approval: bool = False
    bypass_user_quotas: bool = False
    approval_reason: str | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @model_validator(mode="after")
    def _exactly_one_criterion(self) -> RouterRule:
        if (self.criterion is None) == (self.condition is None):
            raise ValueError("a rule needs exactly one of 'criterion' or 'condition'")
        if self.type == "conditional" and self.condition is None:
            raise ValueError("conditional rules store a 'condition' tree")
        if self.type != "conditional" and self.criterion is None:
            raise ValueError(f"{self.type} rules store a field 'criterion'")
        return self


class RoutingDecision(BaseModel):
    """Resolved target instance and add-settings for an item."""

    instance_id: int
    instance_type: InstanceType
    quality_profile: int | str | None = None
    root_folder: str | None = None
    tags: list[str] = Field(default_factory=list)
    priority: int = Field(default=DEFAULT_RULE_ORDER, description="Rule order carried into the decision")
    evaluator_priority: int = Field(default=0, description="Priority of the evaluator that produced it")
    search_on_add: bool | None = None
    season_monitoring: str | None = None
    series_type: SeriesType | None = None
    minimum_availability: MinimumAvailability | None = None
    synced_instances: list[int] = Field(default_factory=list)

    evaluator: str | None = None
    rule_id: str | None = None

    @classmethod
    def from_rule(cls, rule: RouterRule, *, evaluator: str, evaluator_priority: int) -> RoutingDecision:
        return cls(
            instance_id=rule.target_instance_id,
            instance_type=rule.target_type,
            quality_profile=rule.quality_profile,
            root_folder=rule.root_folder,
            tags=list(rule.tags),
            priority=rule.order,
            evaluator_priority=evaluator_priority,
            search_on_add=rule.search_on_add,
            season_monitoring=rule.season_monitoring,
            series_type=rule.series_type,
            minimum_availability=rule.minimum_availability,
            evaluator=evaluator,
            rule_id=rule.id,
        )
