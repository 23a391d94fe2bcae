"""
Studio site template catalog.

Premium templates require a plan with premium_templates_allowed.
"""

from enum import Enum
from typing import Dict


class TemplateCode(str, Enum):
    MODERN = "MODERNO"
    CLASSIC = "CLASSICO"
    MINIMALIST = "MINIMALISTA"
    ARTISAN = "ARTESANAL"
    URBAN = "URBANO"


# template code -> is_premium
TEMPLATE_CATALOG: Dict[str, bool] = {
    TemplateCode.MODERN.value: False,
    TemplateCode.CLASSIC.value: False,
    TemplateCode.MINIMALIST.value: False,
    TemplateCode.ARTISAN.value: True,
    TemplateCode.URBAN.value: True,
}


def is_premium_template(code: str) -> bool:
    """Unknown template codes are treated as non-premium."""
    return TEMPLATE_CATALOG.get(code, False)
