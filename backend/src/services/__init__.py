"""
Business logic services.
"""

from src.services.usage_recorder import UsageRecorder
from src.services.studio_context import StudioContext, resolve_studio_context, resolve_plan_code

__all__ = ["UsageRecorder", "StudioContext", "resolve_studio_context", "resolve_plan_code"]
