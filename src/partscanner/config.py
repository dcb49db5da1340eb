import os
import tomllib
from pathlib import Path
from typing import Mapping, Optional

from .sheets import SheetsClient

ENV_API_KEY = "GOOGLE_SHEETS_API_KEY"
ENV_SPREADSHEET_ID = "GOOGLE_SPREADSHEET_ID"
ENV_SHEET_NAME = "GOOGLE_SHEET_NAME"


def load_env(path: str | Path = ".env") -> dict[str, str]:
    env_path = Path(path)
    if not env_path.exists():
        return {}
    env: dict[str, str] = {}
    with env_path.open("r", encoding="utf-8") as f:
        for raw_line in f:
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            if line.startswith("export "):
                line = line[len("export ") :]
            if "=" not in line:
                continue
            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip()
            if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
                value = value[1:-1]
            if key:
                env[key] = value
    return env


def load_config(path: str | Path, required: bool = True) -> dict:
    config_path = Path(path)
    if not config_path.exists():
        if required:
            raise FileNotFoundError(f"Config not found: {config_path}")
        return {}
    with config_path.open("rb") as f:
        return tomllib.load(f)


def load_settings(config_path: str | Path) -> tuple[dict, dict[str, str]]:
    """Config TOML plus the .env beside it; process environment wins over .env."""
    config = load_config(config_path, required=False)
    env = load_env(Path(config_path).resolve().parent / ".env")
    env.update(
        {
            key: value
            for key, value in os.environ.items()
            if key in (ENV_API_KEY, ENV_SPREADSHEET_ID, ENV_SHEET_NAME)
        }
    )
    return config, env


def sheets_client_from(config: Mapping, env: Mapping[str, str]) -> SheetsClient:
    sheets_cfg = config.get("sheets", {})
    sheet_name: Optional[str] = env.get(ENV_SHEET_NAME) or sheets_cfg.get(
        "sheet_name", "Sheet1"
    )
    return SheetsClient(
        api_key=env.get(ENV_API_KEY) or sheets_cfg.get("api_key"),
        spreadsheet_id=env.get(ENV_SPREADSHEET_ID) or sheets_cfg.get("spreadsheet_id"),
        sheet_name=sheet_name,
        timeout=sheets_cfg.get("timeout_seconds", 15),
    )
