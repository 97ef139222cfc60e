__all__ = ["save_json", "load_json"]


import json


def save_json(data, file, **kwargs):
    with open(file, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, **kwargs)


def load_json(file, **kwargs):
    with open(file, "r", encoding="utf-8") as f:
        return json.load(f, **kwargs)
