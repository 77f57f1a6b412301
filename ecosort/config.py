"""
Configuration defaults and JSON config loading
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_CONFIG: Dict[str, Any] = {
    "detector": {
        "model_path": None,
        "confidence_threshold": 0.35
    },
    "classifier": {
        "top_k": 5,
        "min_category_score": 0.25
    },
    "pipeline": {
        "adapter_timeout_seconds": 10.0,
        "override_threshold": 60
    },
    "history": {
        "directory": "data",
        "max_records": 1000
    },
    "log_level": "INFO",
    "log_file": "logs/ecosort.log"
}


def merge_dicts(default: Dict, user: Dict) -> Dict:
    """Recursively overlay user values on defaults"""
    result = copy.deepcopy(default)
    for key, value in user.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_dicts(result[key], value)
        else:
            result[key] = value
    return result


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from file or use defaults"""
    if config_path and Path(config_path).exists():
        try:
            with open(config_path, 'r') as f:
                user_config = json.load(f)
            if not isinstance(user_config, dict):
                raise ValueError("top-level JSON value must be an object")
            return merge_dicts(DEFAULT_CONFIG, user_config)
        except (OSError, ValueError) as e:
            logging.getLogger(__name__).warning(
                f"Failed to load config {config_path}: {e}. Using default configuration"
            )
    elif config_path:
        logging.getLogger(__name__).warning(f"Config file {config_path} not found, using defaults")

    return copy.deepcopy(DEFAULT_CONFIG)
