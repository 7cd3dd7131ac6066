# -*- coding: utf-8 -*-
"""API routes for feature bindings."""

from __future__ import annotations

from typing import Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Path
from pydantic import BaseModel, Field

from ...providers import (
    KNOWN_FEATURES,
    ConfigManager,
    FeatureBinding,
    ModelConfig,
    get_default_prompt_template,
)
from .providers import config_errors, get_manager

router = APIRouter(prefix="/features", tags=["features"])


class FeatureInfo(BaseModel):
    binding: Optional[FeatureBinding] = None
    resolved: bool = Field(
        default=False,
        description="Binding points at an existing provider and model",
    )


class ResolvedFeatureInfo(BaseModel):
    feature: str
    provider_id: str
    provider_name: str
    endpoint: str
    model: ModelConfig
    prompt_template: str = Field(
        ...,
        description="Bound template, or the feature's default",
    )


@router.get(
    "",
    response_model=Dict[str, FeatureInfo],
    summary="List known and bound features",
)
async def list_features(
    manager: ConfigManager = Depends(get_manager),
) -> Dict[str, FeatureInfo]:
    names = list(KNOWN_FEATURES) + sorted(
        set(manager.settings.feature_bindings) - set(KNOWN_FEATURES),
    )
    return {
        name: FeatureInfo(
            binding=manager.get_feature_binding(name),
            resolved=manager.resolve_feature_config(name) is not None,
        )
        for name in names
    }


@router.put(
    "/{feature}",
    response_model=FeatureBinding,
    summary="Bind a feature to a provider and model",
)
async def set_feature_binding(
    feature: str = Path(..., description="Feature name"),
    body: FeatureBinding = Body(...),
    manager: ConfigManager = Depends(get_manager),
) -> FeatureBinding:
    with config_errors():
        manager.set_feature_binding(feature, body)
    return manager.get_feature_binding(feature)


@router.delete(
    "/{feature}",
    status_code=204,
    summary="Remove a feature binding",
)
async def remove_feature_binding(
    feature: str = Path(..., description="Feature name"),
    manager: ConfigManager = Depends(get_manager),
) -> None:
    if not manager.remove_feature_binding(feature):
        raise HTTPException(
            status_code=404,
            detail=f"Feature '{feature}' is not bound",
        )


@router.get(
    "/{feature}/resolve",
    response_model=ResolvedFeatureInfo,
    summary="Resolve a feature to its provider and model",
    description="404 when the feature is unbound or its provider/model "
    "no longer exists. API keys are never returned.",
)
async def resolve_feature(
    feature: str = Path(..., description="Feature name"),
    manager: ConfigManager = Depends(get_manager),
) -> ResolvedFeatureInfo:
    resolved = manager.resolve_feature_config(feature)
    if resolved is None:
        raise HTTPException(
            status_code=404,
            detail=f"Feature '{feature}' is not configured",
        )
    return ResolvedFeatureInfo(
        feature=feature,
        provider_id=resolved.provider.id,
        provider_name=resolved.provider.name,
        endpoint=resolved.provider.endpoint,
        model=resolved.model,
        prompt_template=(
            resolved.prompt_template or get_default_prompt_template(feature)
        ),
    )
