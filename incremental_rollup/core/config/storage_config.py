"""Storage backend configuration model."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, model_validator


class StorageConfig(BaseModel):
    """Selects the storage backend.

    JSON examples:
        "storage": {"backend": "local"}

        "storage": {
          "backend": "oci",
          "bucket": "analytics",
          "region": "eu-frankfurt-1",
          "auth_mode": "api_key",
          "oci_config_file": "~/.oci/config"
        }
    """

    backend: Literal["local", "oci"] = "local"

    bucket: str | None = None
    region: str | None = None
    auth_mode: Literal["instance_principal", "api_key"] = "instance_principal"
    oci_config_file: str | None = None

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def validate_backend(self) -> StorageConfig:
        if self.backend == "oci" and not self.bucket:
            raise ValueError("bucket is required for the oci backend")

        if self.auth_mode == "api_key" and self.oci_config_file is None:
            raise ValueError("oci_config_file is required for api_key auth")

        return self
