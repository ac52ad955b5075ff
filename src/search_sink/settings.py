from functools import lru_cache
from typing import Dict, List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .existence import CollectionPolicy


class SinkSettings(BaseSettings):
    """Connection, auto-create and dispatch settings (env prefix ``SEARCH_SINK_``)."""

    model_config = SettingsConfigDict(
        env_prefix="SEARCH_SINK_", env_file=".env", case_sensitive=False, extra="ignore"
    )

    hosts: List[str] = ["http://localhost:9200"]
    username: Optional[str] = None
    password: Optional[str] = None
    use_ssl: bool = False
    verify_certs: bool = True
    timeout: float = 30.0

    auto_create: bool = False
    num_shards: int = Field(1, ge=1)
    replication_factor: int = Field(1, ge=1)
    max_shards_per_node: int = Field(1, ge=1)

    transport: Literal["direct", "buffered"] = "direct"
    buffer_max_actions: int = Field(500, ge=1)
    max_request_size: Optional[int] = Field(None, ge=1)
    refresh: Optional[Literal["true", "false", "wait_for"]] = None

    destination_map: Dict[str, str] = {}

    def collection_policy(self) -> CollectionPolicy:
        return CollectionPolicy(
            auto_create=self.auto_create,
            num_shards=self.num_shards,
            replication_factor=self.replication_factor,
            max_shards_per_node=self.max_shards_per_node,
        )


@lru_cache()
def get_settings() -> SinkSettings:
    return SinkSettings()
