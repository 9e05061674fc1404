import copy
import json
from pathlib import Path
from typing import Any, Dict

from ..parsing.options import FilterOptions

DEFAULT_CONFIG: Dict[str, Any] = {
    "dialect": "gnu",
    "filters": {
        "directives": True,
        "labels": True,
        "commentOnly": True,
        "binary": False,
        "libraryCode": False,
        "dontMaskFilenames": False,
    },
    "user_files": [],
    "pin_globals": True,
    "demangle": False,
    "log_file": "/tmp/asmfilter_engine.log",
}


class ConfigManager:
    """
    Persistent user preferences in ~/.asmfilter/config.json, merged over DEFAULT_CONFIG.
    """

    def __init__(self):
        self.config_dir = Path.home() / ".asmfilter"
        self.config_file = self.config_dir / "config.json"
        self.config = self.load_config()

    def load_config(self) -> Dict[str, Any]:
        self.config_dir.mkdir(parents=True, exist_ok=True)
        config = copy.deepcopy(DEFAULT_CONFIG)

        if not self.config_file.exists():
            return config

        try:
            with open(self.config_file, "r") as f:
                user_config = json.load(f)
        except (OSError, json.JSONDecodeError):
            # Corrupt or unreadable: fall back to defaults
            return config

        if not isinstance(user_config, dict):
            return config

        for key, value in user_config.items():
            if key == "filters" and isinstance(value, dict):
                config["filters"].update(value)
            else:
                config[key] = value
        return config

    def save_config(self):
        self.config_dir.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, "w") as f:
            json.dump(self.config, f, indent=2)

    def get(self, key: str, default: Any = None) -> Any:
        return self.config.get(key, default)

    def set(self, key: str, value: Any):
        self.config[key] = value
        self.save_config()

    def filter_options(self) -> FilterOptions:
        return FilterOptions.from_mapping(self.get("filters", {}))

    def set_filter_options(self, options: FilterOptions):
        self.set("filters", options.to_mapping())
