import copy

import pytest

from kubebind.core.errors import (
    ExternalResourceNotFound,
    InvalidDefinition,
    MissingKey,
    PathNotFound,
    TypeMismatch,
)
from kubebind.core.models import ObjectType
from kubebind.resolution.definitions import (
    DEFINITION_TYPES,
    MapFromDataFieldDefinition,
    SliceOfMapsFromPathDefinition,
    SliceOfStringsFromPathDefinition,
    StringDefinition,
    StringOfMapDefinition,
)


# ---------------------------------------------------------------------------
# string
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("output_name,path,value,expected", [
    ("username", "{.status.dbCredentials.username}", None, {"username": "AzureDiamond"}),
    ("anotherName", "{.status.dbCredentials.username}", None, {"anotherName": "AzureDiamond"}),
    ("foo", "", "bar", {"foo": "bar"}),
    ("foo", "foo-{.status.dbCredentials.username}", None, {"foo": "foo-AzureDiamond"}),
    ("foo", "{.status.dbCredentials.username}-{.status.dbCredentials.password}", None,
     {"foo": "AzureDiamond-foo"}),
], ids=["outputName", "alias", "raw value", "prefix", "two paths"])
def test_string_definition(db_object, output_name, path, value, expected):
    d = StringDefinition(path=path, output_name=output_name, value=value)
    assert d.apply(db_object).get() == expected


def test_string_definition_literal_wins_over_path(db_object):
    d = StringDefinition(path="{.status.missing}", output_name="foo", value="bar")
    assert d.apply(db_object).get() == {"foo": "bar"}


def test_string_definition_requires_output_name_and_source():
    with pytest.raises(InvalidDefinition):
        StringDefinition(path="{.status}")
    with pytest.raises(InvalidDefinition):
        StringDefinition(output_name="foo")


def test_string_definition_surfaces_missing_path(db_object):
    d = StringDefinition(path="{.status.nope}", output_name="foo")
    with pytest.raises(PathNotFound):
        d.apply(db_object)


# ---------------------------------------------------------------------------
# stringOfMap
# ---------------------------------------------------------------------------

def test_string_of_map_with_output_name(db_object):
    d = StringOfMapDefinition(path="{.status.dbCredentials}", output_name="dbCredentials")
    assert d.apply(db_object).get() == {
        "dbCredentials": {"username": "AzureDiamond", "password": "foo"},
    }


def test_string_of_map_without_output_name_flattens(db_object):
    d = StringOfMapDefinition(path="{.status.dbCredentials}")
    assert d.apply(db_object).get() == {"username": "AzureDiamond", "password": "foo"}


def test_string_of_map_rejects_scalars(db_object):
    d = StringOfMapDefinition(path="{.status.dbCredentials.username}")
    with pytest.raises(TypeMismatch) as exc:
        d.apply(db_object)
    assert exc.value.expected == "map"
    assert exc.value.actual == "string"


def test_string_of_map_returns_a_copy(db_object):
    original = copy.deepcopy(db_object)
    value = StringOfMapDefinition(path="{.status.dbCredentials}").apply(db_object)
    value.get()["username"] = "changed"
    assert db_object == original


def test_string_of_map_copies_nested_maps():
    source = {"status": {"config": {"db": {"host": "h"}}}}
    value = StringOfMapDefinition(path="{.status.config}", output_name="config").apply(source)
    value.get()["config"]["db"]["host"] = "changed"
    assert source["status"]["config"]["db"]["host"] == "h"


# ---------------------------------------------------------------------------
# sliceOfStrings / sliceOfMaps
# ---------------------------------------------------------------------------

def test_slice_of_strings_from_path(bootstrap_object):
    d = SliceOfStringsFromPathDefinition(
        path="{.status.bootstrap}", source_value="url", output_name="bootstrap",
    )
    assert d.apply(bootstrap_object).get() == {
        "bootstrap": ["www.example.com", "secure.example.com"],
    }


def test_slice_of_strings_keeps_order_and_count():
    items = [{"v": str(i)} for i in range(7)]
    d = SliceOfStringsFromPathDefinition(path="{.items}", source_value="v", output_name="out")
    assert d.apply({"items": items}).get() == {"out": [str(i) for i in range(7)]}


def test_slice_of_maps_from_path(bootstrap_object):
    d = SliceOfMapsFromPathDefinition(
        path="{.status.bootstrap}", source_key="type", source_value="url", output_name="bootstrap",
    )
    assert d.apply(bootstrap_object).get() == {
        "bootstrap": {"http": "www.example.com", "https": "secure.example.com"},
    }


def test_slice_of_maps_last_duplicate_wins():
    obj = {"items": [
        {"type": "http", "url": "a"},
        {"type": "https", "url": "b"},
        {"type": "http", "url": "c"},
    ]}
    d = SliceOfMapsFromPathDefinition(
        path="{.items}", source_key="type", source_value="url", output_name="out",
    )
    result = d.apply(obj).get()["out"]
    assert result == {"http": "c", "https": "b"}
    assert len(result) <= len(obj["items"])


@pytest.mark.parametrize("cls,kwargs", [
    (SliceOfStringsFromPathDefinition, {"source_value": "url"}),
    (SliceOfMapsFromPathDefinition, {"source_key": "type", "source_value": "url"}),
])
def test_slice_variants_shape_errors(cls, kwargs):
    d = cls(path="{.items}", output_name="out", **kwargs)

    with pytest.raises(TypeMismatch):
        d.apply({"items": {"type": "http"}})
    with pytest.raises(TypeMismatch):
        d.apply({"items": ["not-a-map"]})
    with pytest.raises(MissingKey) as exc:
        d.apply({"items": [{"type": "http", "url": "a"}, {"type": "https"}]})
    assert exc.value.key == "url"
    assert exc.value.path == "{.items}[1]"


def test_slice_of_maps_missing_source_key():
    d = SliceOfMapsFromPathDefinition(
        path="{.items}", source_key="type", source_value="url", output_name="out",
    )
    with pytest.raises(MissingKey) as exc:
        d.apply({"items": [{"url": "a"}]})
    assert exc.value.key == "type"


def test_slice_variants_require_fields():
    with pytest.raises(InvalidDefinition):
        SliceOfStringsFromPathDefinition(path="{.items}", output_name="out")
    with pytest.raises(InvalidDefinition):
        SliceOfMapsFromPathDefinition(path="{.items}", source_key="k", source_value="v")


# ---------------------------------------------------------------------------
# mapFromDataField
# ---------------------------------------------------------------------------

def _store_object(name):
    return {
        "metadata": {"namespace": "test-namespace"},
        "status": {"dbCredentials": name},
    }


def test_map_from_secret_data_field(store):
    d = MapFromDataFieldDefinition(
        path="{.status.dbCredentials}", object_type=ObjectType.SECRET, reader=store,
    )
    value = d.apply(_store_object("dbCredentials-secret"))
    assert value.get() == {"username": "user", "password": "password"}


def test_map_from_constructed_secret_name(store):
    d = MapFromDataFieldDefinition(
        path="foo-{.status.dbCredentials}", object_type=ObjectType.SECRET, reader=store,
    )
    value = d.apply(_store_object("dbCredentials-secret"))
    assert value.get() == {"username": "user", "password": "password"}


def test_constructed_name_is_fetched_verbatim(store):
    # Only "foo-dbCredentials-secret" exists under the prefixed name
    d = MapFromDataFieldDefinition(
        path="foo-{.status.dbCredentials}", object_type=ObjectType.SECRET, reader=store,
    )
    with pytest.raises(ExternalResourceNotFound) as exc:
        d.apply(_store_object("other"))
    assert exc.value.name == "foo-other"


def test_map_from_config_map_data_field(store):
    d = MapFromDataFieldDefinition(
        path="{.status.dbCredentials}", object_type=ObjectType.CONFIG_MAP, reader=store,
    )
    value = d.apply(_store_object("dbCredentials-configMap"))
    assert value.get() == {"username": "user", "password": "password"}


def test_map_from_config_map_with_output_name_and_source_value(store):
    d = MapFromDataFieldDefinition(
        path="{.status.dbCredentials}", object_type=ObjectType.CONFIG_MAP,
        source_value="username", output_name="user", reader=store,
    )
    assert d.apply(_store_object("dbCredentials-configMap")).get() == {"user": "user"}


def test_source_value_defaults_output_name(store):
    d = MapFromDataFieldDefinition(
        path="{.status.dbCredentials}", source_value="password", reader=store,
    )
    assert d.apply(_store_object("dbCredentials-secret")).get() == {"password": "password"}


def test_whole_data_map_nested_under_output_name(store):
    d = MapFromDataFieldDefinition(
        path="{.status.dbCredentials}", output_name="db", reader=store,
    )
    assert d.apply(_store_object("dbCredentials-secret")).get() == {
        "db": {"username": "user", "password": "password"},
    }


def test_missing_source_value_key(store):
    d = MapFromDataFieldDefinition(
        path="{.status.dbCredentials}", source_value="token", reader=store,
    )
    with pytest.raises(MissingKey) as exc:
        d.apply(_store_object("dbCredentials-secret"))
    assert exc.value.key == "token"


def test_namespace_is_required(store):
    d = MapFromDataFieldDefinition(path="{.status.dbCredentials}", reader=store)
    with pytest.raises(PathNotFound):
        d.apply({"status": {"dbCredentials": "dbCredentials-secret"}})


def test_name_must_be_a_string(store, db_object):
    d = MapFromDataFieldDefinition(path="{.status.dbCredentials}", reader=store)
    with pytest.raises(TypeMismatch):
        d.apply(db_object)


def test_wrong_namespace_is_not_found(store):
    d = MapFromDataFieldDefinition(path="{.status.dbCredentials}", reader=store)
    obj = _store_object("dbCredentials-secret")
    obj["metadata"]["namespace"] = "elsewhere"
    with pytest.raises(ExternalResourceNotFound):
        d.apply(obj)


def test_map_from_data_field_requires_reader():
    with pytest.raises(InvalidDefinition):
        MapFromDataFieldDefinition(path="{.status.dbCredentials}")


def test_variant_registry_is_closed():
    assert set(DEFINITION_TYPES) == {
        "string", "stringOfMap", "sliceOfStrings", "sliceOfMaps", "mapFromDataField",
    }


def test_definitions_produce_fresh_values(db_object):
    d = StringOfMapDefinition(path="{.status.dbCredentials}", output_name="creds")
    first = d.apply(db_object)
    second = d.apply(db_object)
    assert first == second
    assert first.payload is not second.payload
