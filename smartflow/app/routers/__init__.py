# -*- coding: utf-8 -*-
from .features import router as features_router
from .providers import router as providers_router

__all__ = ["features_router", "providers_router"]
