__all__ = ["save_yaml", "load_yaml", "bundled_file"]

import os

import yaml


def bundled_file(module_file: str, name: str) -> str:
    return os.path.join(os.path.dirname(os.path.abspath(module_file)), name)


def save_yaml(data, file, **kwargs):
    with open(file, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, allow_unicode=True, sort_keys=False, **kwargs)


def load_yaml(file, **kwargs):
    with open(file, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f, **kwargs)
    if data is None:
        return {}
    return data
