"""Dependency injection for FastAPI endpoints"""

from functools import lru_cache
from fastapi import Request
from careguard_gateway.config import settings
from careguard_gateway.domain.policy import DEFAULT_POLICY, ScoringPolicy
from careguard_gateway.infrastructure.clients.notifier import NotifierClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_notifier_client() -> NotifierClient:
    """Provide caregiver notification client instance"""
    return NotifierClient()


@lru_cache
def get_scoring_policy() -> ScoringPolicy:
    """Default policy, or the one loaded from SCORING_POLICY_FILE, with SCORING_TIMEZONE applied"""
    policy = ScoringPolicy.from_file(settings.scoring_policy_file) if settings.scoring_policy_file else DEFAULT_POLICY
    if settings.scoring_timezone:
        policy = ScoringPolicy.from_dict({"scoring_timezone": settings.scoring_timezone}, base=policy)
    return policy
