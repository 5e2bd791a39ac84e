from functools import lru_cache
from typing import Literal
import os
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["development", "production"]

def _env_file_for(app_env: EnvName) -> str:
    return ".env.development" if app_env == "development" else ".env.production"

class Settings(BaseSettings):

    # Core
    APP_ENV: EnvName = "development"
    APP_NAME: str = "ShopSmartRecommendations"
    DEBUG: bool = False
    GIT_SHA: str = "unknown"

    # Mongo (user profile store, optional)
    MONGO_URI: str = ""
    MONGO_DB: str = "shopsmart"
    PROFILE_COLLECTION: str = "userProfiles"

    # Static catalog
    CATALOG_PATH: str = "data/products.json"

    # OpenAI
    OPENAI_API_KEY: str = ""
    OPENAI_RECO_MODEL: str = "gpt-4o-mini"
    openai_timeout_s: int = 60  # seconds, whole stream
    llm_temperature: float = 0.7
    llm_top_p: float = 0.9

    # Recommendation pipeline
    candidate_limit: int = 30             # max products handed to the model
    similar_default_limit: int = 8        # related items when caller gives no limit

    # Client cache config
    reco_cache_ttl: int = 30 * 60         # 30 minutes
    reco_cache_prefix: str = "ai-recommendations"

    # CORS, CSV list
    ALLOWED_ORIGINS: str = ""

    # pydantic-settings config will be set dynamically in the factory below
    model_config = SettingsConfigDict(env_file=None, case_sensitive=True)

@lru_cache
def get_settings() -> Settings:
    """
    Factory that chooses the right .env file based on APP_ENV.
    Cache makes it cheap to inject via FastAPI dependencies.
    """
    app_env: EnvName = os.getenv("APP_ENV", "development")  # earliest switch
    env_file = _env_file_for(app_env)
    return Settings(
                _env_file=env_file,  # load .env.development or .env.production
                _env_file_encoding="utf-8"
    )
