# app/api/deps.py
from functools import lru_cache
from fastapi import Depends, HTTPException
from app.core.config import Settings, get_settings
from app.db import mongo
from app.domain.repositories.product_repo import CatalogRepo
from app.domain.repositories.profile_repo import ProfileRepo
from app.domain.services.llm_svc import ModelClient, OpenAIModelClient

@lru_cache
def _load_catalog(path: str) -> CatalogRepo:
    return CatalogRepo.from_json_file(path)

# Static catalog, loaded once per path
def catalog_dep(settings: Settings = Depends(get_settings)) -> CatalogRepo:
    return _load_catalog(settings.CATALOG_PATH)

# Read-only user profile store (MongoDB)
def profile_repo_dep(settings: Settings = Depends(get_settings)) -> ProfileRepo:
    if not mongo.is_connected():
        raise HTTPException(status_code=503, detail="Profile store unavailable")
    return ProfileRepo(mongo.get_db(), collection_name=settings.PROFILE_COLLECTION)

# Generative model client (streaming)
def model_client_dep(settings: Settings = Depends(get_settings)) -> ModelClient:
    return OpenAIModelClient(settings)
