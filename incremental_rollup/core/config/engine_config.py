"""Compute engine configuration model.

This module defines the EngineConfig schema used to locate and construct
the compute engine collaborator from JSON configuration.
"""

from __future__ import annotations

import importlib
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class EngineConfig(BaseModel):
    """Engine config that collects arbitrary extra keys into ``params``.

    JSON example:
        "engine": {
          "class_path": "my_jobs.engines:SparkEngine",
          "master": "yarn",
          "queue": "batch"
        }

    Result:
        class_path="my_jobs.engines:SparkEngine"
        params={"master": "yarn", "queue": "batch"}
    """

    class_path: str = Field(..., min_length=1, pattern=r"^[\w.]+:\w+$")

    params: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="allow")

    @model_validator(mode="before")
    @classmethod
    def _collect_extras_into_params(cls, data: Any) -> Any:
        """Collect unknown top-level keys into the ``params`` mapping."""
        if not isinstance(data, dict):
            return data

        d = dict(data)

        explicit_params = d.pop("params", None)

        extras = {k: v for k, v in d.items() if k != "class_path"}

        for k in extras:
            d.pop(k, None)

        merged: dict[str, Any] = {}
        if isinstance(explicit_params, dict):
            merged.update(explicit_params)
        merged.update(extras)

        d["params"] = merged
        return d

    def build(self) -> Any:
        """Import the engine class and instantiate it with ``params``."""
        module_path, class_name = self.class_path.split(":")
        module = importlib.import_module(module_path)
        cls = getattr(module, class_name)

        run = getattr(cls, "run", None)
        if not callable(run):
            raise TypeError(f"Loaded class {class_name} does not define run().")

        return cls(**dict(self.params))
