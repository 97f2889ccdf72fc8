import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

CONFIG_PATH = Path.home() / ".bpsr_verify.json"
DEFAULT_VERSION = "1.2.3"
DEFAULT_TOP_PLAYERS = 10

ENV_MAPPING: Dict[str, str] = {
    "version": "BPSR_VERSION",
    "top_players": "BPSR_TOP_PLAYERS",
    "history": "BPSR_HISTORY",
}

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class BpsrConfig:
    version: str = DEFAULT_VERSION
    top_players: int = DEFAULT_TOP_PLAYERS
    history: bool = True

    def to_dict(self) -> Dict[str, object]:
        return {
            "version": self.version,
            "top_players": self.top_players,
            "history": self.history,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "BpsrConfig":
        cfg = cls()
        version = data.get("version")
        if isinstance(version, str) and version:
            cfg.version = version
        top = data.get("top_players")
        if isinstance(top, int) and not isinstance(top, bool) and top > 0:
            cfg.top_players = top
        history = data.get("history")
        if isinstance(history, bool):
            cfg.history = history
        return cfg


def _merge_env(cfg: BpsrConfig) -> BpsrConfig:
    version = os.getenv(ENV_MAPPING["version"], "")
    if version:
        cfg.version = version
    top = os.getenv(ENV_MAPPING["top_players"], "")
    if top.strip().isdigit() and int(top) > 0:
        cfg.top_players = int(top)
    history = os.getenv(ENV_MAPPING["history"], "").strip().lower()
    if history in _TRUE_VALUES:
        cfg.history = True
    elif history in _FALSE_VALUES:
        cfg.history = False
    return cfg


def load_config(path: Path = CONFIG_PATH) -> BpsrConfig:
    config = BpsrConfig()
    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            if isinstance(data, dict):
                config = BpsrConfig.from_dict(data)
        except (OSError, ValueError):
            # Fall back to defaults/env if file malformed.
            pass
    return _merge_env(config)


def save_config(config: BpsrConfig, path: Path = CONFIG_PATH) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
    try:
        os.chmod(path, 0o600)
    except OSError:
        pass


def resolve_config(config: Optional[BpsrConfig] = None) -> BpsrConfig:
    return config or load_config()
