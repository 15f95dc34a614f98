"""
Tests for configuration loading and collection selection.
"""

import json

import pytest

from mongots.config import Config, ParseAsMap
from mongots.errors import ConfigError


def test_from_dict_reads_camel_case_keys():
    config = Config.from_dict({
        "uri": "mongodb://localhost:27017",
        "database": "shop",
        "poolSize": 4,
        "documentWorkers": 2,
        "collections": ["orders"],
        "mongodbTypes": True,
        "parseFieldAsMap": [{"collection": "orders", "field": "metadata"}],
        "sortDocumentsBySize": False,
    })

    assert config.uri == "mongodb://localhost:27017"
    assert config.database == "shop"
    assert config.pool_size == 4
    assert config.document_workers == 2
    assert config.collections == ["orders"]
    assert config.mongodb_types is True
    assert config.parse_field_as_map == [ParseAsMap("orders", "metadata")]
    assert config.sort_documents_by_size is False


def test_defaults():
    config = Config.from_dict({"dataDir": "dump"})
    assert config.mongodb_types is False
    assert config.sort_documents_by_size is True
    assert config.document_workers == 1
    assert config.pool_size is None
    assert config.lists_collections


def test_load_from_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"uri": "mongodb://db", "database": "app", "collections": None}))
    config = Config.load(path)
    assert config.database == "app"
    assert config.collections is None


@pytest.mark.parametrize("content", ["{not json", ""])
def test_load_invalid_json(tmp_path, content):
    path = tmp_path / "config.json"
    path.write_text(content)
    with pytest.raises(ConfigError):
        Config.load(path)


def test_load_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="Error when processing config"):
        Config.load(tmp_path / "nope.json")


@pytest.mark.parametrize("data", [
    {},
    {"uri": "mongodb://db"},
    {"database": "app"},
    {"uri": "mongodb://db", "database": "app", "dataDir": "dump"},
    {"dataDir": "dump", "collections": ["a"], "excludeCollections": ["b"]},
    {"dataDir": "dump", "poolSize": 0},
    {"dataDir": "dump", "documentWorkers": "many"},
    {"dataDir": "dump", "mongodbTypes": "yes"},
    {"dataDir": "dump", "collections": "users"},
    {"dataDir": "dump", "parseFieldAsMap": [{"collection": "a"}]},
    {"dataDir": "dump", "colections": ["typo"]},
    ["dataDir", "dump"],
])
def test_invalid_configs(data):
    with pytest.raises(ConfigError):
        Config.from_dict(data)


def test_select_all():
    config = Config(data_dir="dump")
    assert config.select_collections(["a", "b"]) == ["a", "b"]


def test_select_include_list_is_used_as_given():
    config = Config(data_dir="dump", collections=["b", "z"])
    assert not config.lists_collections
    assert config.select_collections(["a", "b"]) == ["b", "z"]


def test_empty_include_list_means_all():
    config = Config(data_dir="dump", collections=[])
    assert config.lists_collections
    assert config.select_collections(["a"]) == ["a"]


def test_select_exclude_list():
    config = Config(data_dir="dump", exclude_collections=["a"])
    assert config.select_collections(["a", "b", "c"]) == ["b", "c"]


def test_inference_options():
    config = Config(data_dir="dump", mongodb_types=True,
                    parse_field_as_map=[ParseAsMap("orders", "metadata")])
    options = config.inference_options()
    assert options.mongodb_types
    assert options.parses_as_map("orders", "metadata")
    assert not options.parses_as_map("users", "metadata")
