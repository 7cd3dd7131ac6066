# -*- coding: utf-8 -*-
"""API routes for providers, models and their API keys."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Request
from pydantic import BaseModel, Field

from ...providers import (
    ApiFormat,
    ConfigManager,
    ConfigValidationError,
    KeyConfig,
    LocalKeyConfig,
    ModelConfig,
    ModelNotFoundError,
    Provider,
    ProviderModelOption,
    ProviderNotFoundError,
    ProviderPreset,
    SharedKeyConfig,
    list_presets,
    mask_api_key,
)

router = APIRouter(prefix="/providers", tags=["providers"])


def get_manager(request: Request) -> ConfigManager:
    return request.app.state.config_manager


@contextmanager
def config_errors() -> Iterator[None]:
    """Translate ConfigManager errors into HTTP errors."""
    try:
        yield
    except (ProviderNotFoundError, ModelNotFoundError) as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ConfigValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


# ---------------------------------------------------------------------------
# Request / response schemas
# ---------------------------------------------------------------------------


class ProviderInfo(BaseModel):
    """Provider as shown to clients; keys are masked."""

    id: str
    name: str
    endpoint: str
    has_api_key: bool = False
    current_api_key: str = Field(
        default="",
        description="Masked key currently in use",
    )
    key_count: int = 0
    current_key_index: int = 0
    models: List[ModelConfig] = Field(default_factory=list)


class ProviderCreateRequest(BaseModel):
    name: str = Field(..., description="Display name")
    endpoint: str = Field(..., description="Base API URL as entered")
    api_keys: List[str] = Field(
        default_factory=list,
        description="Inline API keys; more than one enables rotation",
    )
    secret_ids: List[str] = Field(
        default_factory=list,
        description="Shared secret ids, appended after inline keys",
    )


class ProviderUpdateRequest(BaseModel):
    name: Optional[str] = None
    endpoint: Optional[str] = None
    api_key: Optional[str] = Field(
        default=None,
        description="Replace the single key with this inline key",
    )
    secret_id: Optional[str] = Field(
        default=None,
        description="Replace the single key with this shared secret",
    )


class KeyCreateRequest(BaseModel):
    api_key: Optional[str] = None
    secret_id: Optional[str] = None


class ModelCreateRequest(BaseModel):
    name: str = Field(..., description="Model identifier used in API calls")
    display_name: str = ""
    temperature: float = 0.7
    top_p: float = 1.0
    max_output_tokens: int = 0
    api_format: ApiFormat = ApiFormat.CHAT_COMPLETIONS
    reasoning_effort: Optional[str] = None


class ModelUpdateRequest(BaseModel):
    name: Optional[str] = None
    display_name: Optional[str] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    max_output_tokens: Optional[int] = None
    api_format: Optional[ApiFormat] = None
    reasoning_effort: Optional[str] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def build_provider_info(
    provider: Provider,
    manager: ConfigManager,
) -> ProviderInfo:
    return ProviderInfo(
        id=provider.id,
        name=provider.name,
        endpoint=provider.endpoint,
        has_api_key=manager.has_api_key(provider.id),
        current_api_key=mask_api_key(manager.get_api_key(provider.id)),
        key_count=manager.get_api_key_count(provider.id),
        current_key_index=provider.current_key_index,
        models=provider.models,
    )


def _key_config(
    api_key: Optional[str],
    secret_id: Optional[str],
) -> KeyConfig:
    if bool(api_key) == bool(secret_id):
        raise HTTPException(
            status_code=400,
            detail="Provide exactly one of api_key or secret_id",
        )
    if api_key:
        return LocalKeyConfig(value=api_key)
    return SharedKeyConfig(secret_id=secret_id)


# ---------------------------------------------------------------------------
# Endpoints: providers
# ---------------------------------------------------------------------------


@router.get(
    "",
    response_model=List[ProviderInfo],
    summary="List configured providers",
)
async def list_all_providers(
    manager: ConfigManager = Depends(get_manager),
) -> List[ProviderInfo]:
    return [build_provider_info(p, manager) for p in manager.get_providers()]


@router.get(
    "/presets",
    response_model=List[ProviderPreset],
    summary="List built-in provider presets",
)
async def list_provider_presets() -> List[ProviderPreset]:
    return list_presets()


@router.get(
    "/options",
    response_model=List[ProviderModelOption],
    summary="Flattened provider / model choices",
    description="One entry per model, labelled 'Provider / Model'.",
)
async def list_model_options(
    manager: ConfigManager = Depends(get_manager),
) -> List[ProviderModelOption]:
    return manager.get_provider_model_options()


@router.post(
    "",
    response_model=ProviderInfo,
    status_code=201,
    summary="Add a provider",
)
async def create_provider(
    body: ProviderCreateRequest = Body(...),
    manager: ConfigManager = Depends(get_manager),
) -> ProviderInfo:
    configs: List[KeyConfig] = [LocalKeyConfig(value=k) for k in body.api_keys]
    configs.extend(SharedKeyConfig(secret_id=s) for s in body.secret_ids)
    with config_errors():
        if len(configs) == 1:
            provider = manager.add_provider(
                body.name,
                body.endpoint,
                key_config=configs[0],
            )
        else:
            provider = manager.add_provider(
                body.name,
                body.endpoint,
                key_configs=configs,
            )
    return build_provider_info(provider, manager)


@router.put(
    "/{provider_id}",
    response_model=ProviderInfo,
    summary="Update a provider",
    description="Partial update; omitted fields are kept.",
)
async def update_provider(
    provider_id: str = Path(..., description="Provider identifier"),
    body: ProviderUpdateRequest = Body(...),
    manager: ConfigManager = Depends(get_manager),
) -> ProviderInfo:
    updates = body.model_dump(
        include={"name", "endpoint"},
        exclude_none=True,
    )
    if body.api_key or body.secret_id:
        updates["key_config"] = _key_config(body.api_key, body.secret_id)
    with config_errors():
        provider = manager.update_provider(provider_id, **updates)
    return build_provider_info(provider, manager)


@router.delete(
    "/{provider_id}",
    status_code=204,
    summary="Delete a provider",
    description="Bindings that reference the provider are removed too.",
)
async def delete_provider(
    provider_id: str = Path(..., description="Provider identifier"),
    manager: ConfigManager = Depends(get_manager),
) -> None:
    with config_errors():
        manager.delete_provider(provider_id)


# ---------------------------------------------------------------------------
# Endpoints: keys
# ---------------------------------------------------------------------------


@router.post(
    "/{provider_id}/keys",
    response_model=ProviderInfo,
    status_code=201,
    summary="Append an API key to the rotation list",
)
async def add_provider_key(
    provider_id: str = Path(..., description="Provider identifier"),
    body: KeyCreateRequest = Body(...),
    manager: ConfigManager = Depends(get_manager),
) -> ProviderInfo:
    key_config = _key_config(body.api_key, body.secret_id)
    with config_errors():
        manager.add_api_key(provider_id, key_config)
        provider = manager.get_provider(provider_id)
    return build_provider_info(provider, manager)


@router.delete(
    "/{provider_id}/keys/{index}",
    response_model=ProviderInfo,
    summary="Remove an API key from the rotation list",
)
async def remove_provider_key(
    provider_id: str = Path(..., description="Provider identifier"),
    index: int = Path(..., description="Key index"),
    manager: ConfigManager = Depends(get_manager),
) -> ProviderInfo:
    with config_errors():
        manager.remove_api_key(provider_id, index)
        provider = manager.get_provider(provider_id)
    return build_provider_info(provider, manager)


@router.post(
    "/{provider_id}/rotate-key",
    response_model=ProviderInfo,
    summary="Switch to the next usable API key",
)
async def rotate_provider_key(
    provider_id: str = Path(..., description="Provider identifier"),
    manager: ConfigManager = Depends(get_manager),
) -> ProviderInfo:
    provider = manager.get_provider(provider_id)
    if provider is None:
        raise HTTPException(
            status_code=404,
            detail=f"Provider '{provider_id}' not found",
        )
    manager.rotate_api_key(provider_id)
    return build_provider_info(provider, manager)


# ---------------------------------------------------------------------------
# Endpoints: models
# ---------------------------------------------------------------------------


@router.get(
    "/{provider_id}/models",
    response_model=List[ModelConfig],
    summary="List a provider's models",
)
async def list_provider_models(
    provider_id: str = Path(..., description="Provider identifier"),
    manager: ConfigManager = Depends(get_manager),
) -> List[ModelConfig]:
    if manager.get_provider(provider_id) is None:
        raise HTTPException(
            status_code=404,
            detail=f"Provider '{provider_id}' not found",
        )
    return manager.get_models(provider_id)


@router.post(
    "/{provider_id}/models",
    response_model=ModelConfig,
    status_code=201,
    summary="Add a model",
)
async def create_model(
    provider_id: str = Path(..., description="Provider identifier"),
    body: ModelCreateRequest = Body(...),
    manager: ConfigManager = Depends(get_manager),
) -> ModelConfig:
    with config_errors():
        return manager.add_model(provider_id, **body.model_dump())


@router.put(
    "/{provider_id}/models/{model_id}",
    response_model=ModelConfig,
    summary="Update a model",
    description="Partial update; omitted fields are kept.",
)
async def update_model(
    provider_id: str = Path(..., description="Provider identifier"),
    model_id: str = Path(..., description="Model identifier"),
    body: ModelUpdateRequest = Body(...),
    manager: ConfigManager = Depends(get_manager),
) -> ModelConfig:
    with config_errors():
        return manager.update_model(
            provider_id,
            model_id,
            **body.model_dump(exclude_unset=True),
        )


@router.delete(
    "/{provider_id}/models/{model_id}",
    status_code=204,
    summary="Delete a model",
    description="Bindings that reference the model are removed too.",
)
async def delete_model(
    provider_id: str = Path(..., description="Provider identifier"),
    model_id: str = Path(..., description="Model identifier"),
    manager: ConfigManager = Depends(get_manager),
) -> None:
    with config_errors():
        manager.delete_model(provider_id, model_id)
