# src/linebreaker/config/io.py
from __future__ import annotations

from pathlib import Path
from typing import Any

from omegaconf import DictConfig, OmegaConf
from pydantic import BaseModel

from linebreaker.config.game import GameConfig


def to_plain_dict(cfg: Any) -> dict[str, Any]:
    if isinstance(cfg, BaseModel):
        return cfg.model_dump(mode="json")
    if isinstance(cfg, DictConfig):
        data = OmegaConf.to_container(cfg, resolve=True)
        if not isinstance(data, dict):
            raise TypeError("config must resolve to a mapping")
        return data
    raise TypeError(f"unsupported config type: {type(cfg).__name__}")


def load_yaml(path: Path) -> dict[str, Any]:
    cfg = OmegaConf.load(Path(path))
    data = OmegaConf.to_container(cfg, resolve=True)
    if not isinstance(data, dict):
        raise TypeError(f"config({path}) must be a mapping")
    return data


def load_game_config(path: Path | None = None, *, overrides: list[str] | None = None) -> GameConfig:
    """
    Load a GameConfig from YAML (top-level or under a `game:` key) and apply
    dotlist overrides such as ["timing.gravity_interval_ms=20000"].
    """
    base = OmegaConf.create({})
    if path is not None:
        data = load_yaml(path)
        base = OmegaConf.create(data.get("game", data))
    if overrides:
        base = OmegaConf.merge(base, OmegaConf.from_dotlist(list(overrides)))
    return GameConfig.model_validate(to_plain_dict(base))


__all__ = ["to_plain_dict", "load_yaml", "load_game_config"]
