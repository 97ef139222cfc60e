import logging

import pytest

from pepfrag.chem.pep.losses import NeutralLossCollection
from pepfrag.chem.pep.mods import ModificationCollection
from pepfrag.context import register_dependencies
from pepfrag.specio.annotation import SpectrumAnnotator
from pepfrag.util.collections.dict import (
    chain_get,
    chain_get_typed,
    chain_item,
    chain_item_typed,
    merge_dict,
)
from pepfrag.util.config import Configurable, load_configs
from pepfrag.util.di import Context
from pepfrag.util.io.json import save_json
from pepfrag.util.io.yaml import save_yaml
from pepfrag.util.log import get_logger


class TestDict:
    d = {"a": {"b": {"c": 1}}, "x": "2"}

    def test_chain_item(self):
        assert chain_item(self.d, "a", "b", "c") == 1
        with pytest.raises(KeyError):
            chain_item(self.d, "a", "c")

    def test_chain_get(self):
        assert chain_get(self.d, "a", "b") == {"c": 1}
        assert chain_get(self.d, "a", "b", "c", "d") is None
        assert chain_get(self.d, "y", default=0) == 0

    def test_typed(self):
        assert chain_item_typed(self.d, int, "a", "b", "c") == 1
        assert chain_item_typed(self.d, int, "x", allow_convert=True) == 2
        with pytest.raises(TypeError):
            chain_item_typed(self.d, int, "x")
        assert chain_get_typed(self.d, int, "x") is None
        assert chain_get_typed(self.d, dict, "a", "x", default={}) == {}

    def test_merge_dict(self):
        merged = merge_dict(self.d, {"a": {"b": {"e": 3}}, "x": None})
        assert merged == {"a": {"b": {"c": 1, "e": 3}}, "x": None}
        assert self.d["a"]["b"] == {"c": 1}


class TestConfigurable:
    def test_dict(self):
        c = Configurable({"a": {"b": 1}})
        assert c.get_config("a", "b") == 1
        assert c.get_config("a", "c", required=False) is None
        with pytest.raises(KeyError):
            c.get_config("a", "c")

    def test_files(self, tmp_path):
        yaml_file = str(tmp_path / "configs.yaml")
        json_file = str(tmp_path / "configs.json")
        save_yaml({"tolerance": 10}, yaml_file)
        save_json({"tolerance": "5"}, json_file)
        assert load_configs(yaml_file) == {"tolerance": 10}
        assert Configurable(json_file).get_config(
            "tolerance", typed=float, allow_convert=True
        ) == 5.0

    def test_invalid(self, tmp_path):
        file = str(tmp_path / "list.yaml")
        save_yaml([1, 2], file)
        with pytest.raises(ValueError):
            load_configs(file)

    def test_set_configs(self):
        c = Configurable({"a": {"b": 1, "c": 2}})
        c.set_configs({"a": {"c": 3}})
        assert c.get_configs() == {"a": {"b": 1, "c": 3}}


class TestContext:
    def test_build(self):
        def make_pair(first, second=2):
            return (first, second)

        ctx = Context()
        ctx.register("first", 1)
        ctx.register("pair", make_pair, second=3)
        assert ctx.get("pair") == (1, 3)
        assert ctx.get("pair") is ctx.get("pair")
        assert ctx.build(make_pair) == (1, 2)

    def test_missing(self):
        def needs(missing):
            return missing

        ctx = Context()
        assert "missing" not in ctx
        with pytest.raises(KeyError):
            ctx.get("missing")
        with pytest.raises(KeyError):
            ctx.build(needs)

    def test_reregister(self):
        ctx = Context()
        ctx.register("value", lambda: [1])
        first = ctx.get("value")
        ctx.register("value", lambda: [2])
        assert ctx.get("value") == [2]
        assert first == [1]

    def test_factory_keywords(self):
        def make(name=None, file=None):
            return (name, file)

        ctx = Context()
        ctx.register("value", make, name="x", file=None)
        assert ctx.get("value") == ("x", None)

    def test_invalid_factory(self):
        with pytest.raises(ValueError):
            Context().register("value", 1, extra=2)


class TestLogger:
    def test_handlers(self, tmp_path):
        file = str(tmp_path / "test.log")
        logger = get_logger("pepfrag.test_handlers", file=file)
        logger = get_logger("pepfrag.test_handlers", file=file)
        assert len(logger.handlers) == 2
        assert logger.level == logging.INFO
        logger.info("message")
        for h in logger.handlers:
            h.flush()
        with open(file, "r", encoding="utf-8") as f:
            assert "[INFO] message" in f.read()
        for h in list(logger.handlers):
            logger.removeHandler(h)
            h.close()


def test_register_dependencies():
    ctx = register_dependencies(log_name="pepfrag.test_context")
    modifications = ctx.get("modifications")
    assert isinstance(modifications, ModificationCollection)
    assert isinstance(ctx.get("neutral_losses"), NeutralLossCollection)
    assert "elements" not in ctx.factories

    annotator = ctx.get("annotator")
    assert isinstance(annotator, SpectrumAnnotator)
    assert annotator.neutral_losses is ctx.get("neutral_losses")
    assert annotator.logger is ctx.get("logger")
    assert annotator.max_charge == 1

    logger = ctx.get("logger")
    for h in list(logger.handlers):
        logger.removeHandler(h)
