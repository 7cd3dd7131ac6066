# -*- coding: utf-8 -*-
"""FastAPI application exposing provider and feature configuration."""
from __future__ import annotations

from fastapi import FastAPI

from .. import __version__
from ..providers import ConfigManager
from .routers import features_router, providers_router


def create_app(manager: ConfigManager) -> FastAPI:
    """Build the app around an injected ConfigManager.

    Routes read the manager from ``app.state.config_manager``; every
    mutation goes through it, so persistence follows the manager's
    ``on_settings_change`` callback.
    """
    app = FastAPI(title="smartflow", version=__version__)
    app.state.config_manager = manager
    app.include_router(providers_router)
    app.include_router(features_router)
    return app
