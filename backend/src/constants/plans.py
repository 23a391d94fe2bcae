"""
Default plan tiers seeded into an empty plans table (dev/test environments).

Quotas: None = unlimited. Production plans are managed by billing
workflows; these rows are only written when no plan exists yet.
"""

from typing import Any, Dict, List

DEFAULT_PLANS: List[Dict[str, Any]] = [
    {
        "code": "Starter",
        "name": "Starter",
        "description": "A professional portfolio that receives contact requests.",
        "max_projects": 6,
        "max_testimonials": 6,
        "max_monthly_requests": 40,
        "max_users": 1,
        "premium_templates_allowed": False,
    },
    {
        "code": "Pro",
        "name": "Pro",
        "description": "More conversion and a custom domain.",
        "max_projects": 30,
        "max_testimonials": 20,
        "max_monthly_requests": 200,
        "max_users": 1,
        "premium_templates_allowed": True,
    },
    {
        "code": "Studio",
        "name": "Studio",
        "description": "Studios with several artists and a busier pipeline.",
        "max_projects": 999,
        "max_testimonials": 999,
        "max_monthly_requests": 9999,
        "max_users": 5,
        "premium_templates_allowed": True,
    },
]
