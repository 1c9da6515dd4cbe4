import os
from functools import lru_cache

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    entry_fetch_limit: int = Field(40, ge=1, alias="ROLL_JOURNAL_ENTRY_FETCH_LIMIT")
    prior_plan_fetch_limit: int = Field(8, ge=0, alias="ROLL_JOURNAL_PRIOR_PLAN_FETCH_LIMIT")
    plan_id_namespace: str = Field("roll-journal:weekly-plan", min_length=1, alias="ROLL_JOURNAL_PLAN_ID_NAMESPACE")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()  # type: ignore[call-arg]
    except ValidationError as exc:
        raise RuntimeError(f"Invalid journal configuration: {exc}") from exc
