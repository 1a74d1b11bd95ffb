from typing import Literal, Self

from pydantic import model_validator
from pydantic_settings import BaseSettings

from orderspec.core.modules.reorder.models import TargetPolicy


class Config(BaseSettings):
    """Configuration loaded from environment variables."""

    backend: Literal["memory", "mongo"] = "memory"
    database_url: str | None = None  # e.g. mongodb://localhost:27017/orderspec, required for the mongo backend
    records_collection: str = "records"
    allocators_collection: str = "allocators"
    target_policy: TargetPolicy = TargetPolicy.STRICT  # How out-of-range move targets are handled
    debug: bool = False

    model_config = {
        "env_file": [".env"],
        "env_prefix": "ORDERSPEC_",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def check_database_url(self) -> Self:
        if self.backend == "mongo" and not self.database_url:
            raise ValueError("database_url is required for the mongo backend")
        return self
