"""Evaluator plugins, one per routable attribute."""

from watchlist_router.routing.evaluators.base import FieldEvaluator, RuleSource, TreeEvaluator
from watchlist_router.routing.evaluators.certification import CertificationEvaluator
from watchlist_router.routing.evaluators.conditional import ConditionalEvaluator
from watchlist_router.routing.evaluators.genre import GenreEvaluator
from watchlist_router.routing.evaluators.language import LanguageEvaluator
from watchlist_router.routing.evaluators.season import SeasonEvaluator
from watchlist_router.routing.evaluators.user import UserEvaluator
from watchlist_router.routing.evaluators.year import YearEvaluator

__all__ = [
    "CertificationEvaluator",
    "ConditionalEvaluator",
    "FieldEvaluator",
    "GenreEvaluator",
    "LanguageEvaluator",
    "RuleSource",
    "SeasonEvaluator",
    "TreeEvaluator",
    "UserEvaluator",
    "YearEvaluator",
]
