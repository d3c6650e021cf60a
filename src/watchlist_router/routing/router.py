"""Router orchestrator.

Runs every applicable evaluator plugin for an item in a thread pool, each
bounded by a timeout, and reduces the candidates to one decision per target
instance.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, wait

import structlog

from watchlist_router.models import ContentItem, RoutingContext, RoutingDecision, instance_type_for
from watchlist_router.routing.evaluators import FieldEvaluator
from watchlist_router.routing.registry import EvaluatorRegistry

logger = structlog.get_logger()

Candidate = tuple[int, RoutingDecision]


def resolve_conflicts(candidates: list[Candidate]) -> list[RoutingDecision]:
    """Reduce candidates to the best tier, one decision per instance.

    Candidates are ``(registration_index, decision)`` pairs, ranked by
    evaluator priority, then rule priority (both descending), then
    registration index. Only the decisions sharing the best
    ``(evaluator_priority, priority)`` pair are returned; within that tier the
    first decision for each instance wins.
    """

    if not candidates:
        return []

    ranked = sorted(candidates, key=lambda c: (-c[1].evaluator_priority, -c[1].priority, c[0]))
    best = (ranked[0][1].evaluator_priority, ranked[0][1].priority)

    resolved: list[RoutingDecision] = []
    seen: set[int] = set()
    for _, decision in ranked:
        if (decision.evaluator_priority, decision.priority) != best:
            break
        if decision.instance_id in seen:
            continue
        seen.add(decision.instance_id)
        resolved.append(decision)
    return resolved


class ContentRouter:
    """Routes content items to target instances using the registered evaluators."""

    def __init__(
        self,
        registry: EvaluatorRegistry,
        *,
        timeout_seconds: float = 5.0,
        max_workers: int = 8,
    ) -> None:
        self._registry = registry
        self._timeout = timeout_seconds
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="evaluator")

    @property
    def registry(self) -> EvaluatorRegistry:
        return self._registry

    def close(self) -> None:
        self._pool.shutdown(wait=False, cancel_futures=True)

    def route(self, item: ContentItem, context: RoutingContext) -> list[RoutingDecision]:
        """Return the routing decisions for an item; empty means no rule matched."""

        direct = self._direct_decision(context)
        if direct is not None:
            return [direct]

        applicable = [
            (index, evaluator)
            for index, evaluator in enumerate(self._registry.evaluators)
            if self._applies(evaluator, item, context)
        ]
        if not applicable:
            logger.info("routing_no_applicable_evaluators", title=item.title, content_type=context.content_type)
            return []

        candidates = self._collect(item, context, applicable)
        decisions = resolve_conflicts(candidates)

        logger.info(
            "routing_completed",
            title=item.title,
            content_type=context.content_type,
            candidates=len(candidates),
            instances=[d.instance_id for d in decisions],
        )
        return decisions

    def _direct_decision(self, context: RoutingContext) -> RoutingDecision | None:
        """Decision for sync targets and forced instances, which bypass the rules."""

        instance_type = instance_type_for(context.content_type)
        if context.syncing and context.sync_target_instance_id is not None:
            logger.info("routing_sync_target", instance_id=context.sync_target_instance_id)
            return RoutingDecision(
                instance_id=context.sync_target_instance_id,
                instance_type=instance_type,
                evaluator="sync",
            )
        if context.forced_instance_id is not None:
            logger.info("routing_forced", instance_id=context.forced_instance_id)
            return RoutingDecision(
                instance_id=context.forced_instance_id,
                instance_type=instance_type,
                evaluator="forced",
            )
        return None

    def _applies(self, evaluator: FieldEvaluator, item: ContentItem, context: RoutingContext) -> bool:
        if not evaluator.handles_content_type(context):
            return False
        try:
            return evaluator.applies(item, context)
        except Exception as exc:
            logger.warning("evaluator_applies_failed", evaluator=evaluator.name, error=str(exc))
            return False

    def _collect(
        self,
        item: ContentItem,
        context: RoutingContext,
        applicable: list[tuple[int, FieldEvaluator]],
    ) -> list[Candidate]:
        futures: dict[Future, tuple[int, FieldEvaluator]] = {
            self._pool.submit(evaluator.match_rules, item, context): (index, evaluator)
            for index, evaluator in applicable
        }
        done, not_done = wait(futures, timeout=self._timeout)

        for future in not_done:
            future.cancel()
            _, evaluator = futures[future]
            logger.warning("evaluator_timed_out", evaluator=evaluator.name, timeout_seconds=self._timeout)

        candidates: list[Candidate] = []
        for future, (index, evaluator) in futures.items():
            if future not in done:
                continue
            try:
                decisions = future.result()
            except Exception as exc:
                logger.error("evaluator_failed", evaluator=evaluator.name, error=str(exc))
                continue
            if decisions is None:
                logger.warning("evaluator_skipped", evaluator=evaluator.name, reason="rules unavailable")
                continue
            candidates.extend((index, decision) for decision in decisions)
        return candidates
