from __future__ import annotations

from collections.abc import Callable

import pytest

import sdkgen


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("void", "void"),
        ("bool", "bool"),
        ("System.Boolean", "bool"),
        ("byte", "uint8_t"),
        ("sbyte", "int8_t"),
        ("short", "int16_t"),
        ("ushort", "uint16_t"),
        ("int", "int"),
        ("Int32", "int"),
        ("uint", "unsigned int"),
        ("long", "int64_t"),
        ("ulong", "uint64_t"),
        ("float", "float"),
        ("double", "double"),
        ("char", "char16_t"),
        ("string", "BNM::Structures::Mono::String*"),
        ("System.String", "BNM::Structures::Mono::String*"),
        ("object", "BNM::IL2CPP::Il2CppObject*"),
        ("IntPtr", "void*"),
    ],
)
def test_t_01_primitive_table_mapping(
    make_ref: Callable[..., sdkgen.TypeReference], name: str, expected: str
) -> None:
    assert sdkgen.map_type_reference(make_ref(name), None) == expected


def test_t_02_enum_maps_to_underlying_type(
    make_type: Callable[..., sdkgen.TypeEntity],
    make_ref: Callable[..., sdkgen.TypeReference],
) -> None:
    byte_enum = make_type(
        "Mode",
        kind=sdkgen.KIND_ENUM,
        fields=[sdkgen.FieldEntity("value__", sdkgen.TypeReference("byte"))],
    )
    default_enum = make_type("Flags", kind=sdkgen.KIND_ENUM)

    assert sdkgen.map_type_reference(make_ref("Mode", target=byte_enum), None) == "uint8_t"
    assert sdkgen.map_type_reference(make_ref("Flags", target=default_enum), None) == "int"


@pytest.mark.parametrize("name", ["List<int>", "Dictionary<string, Player>", "List`1", "int?"])
def test_t_03_generic_instances_erase_to_void_pointer(
    make_ref: Callable[..., sdkgen.TypeReference], name: str
) -> None:
    assert sdkgen.map_type_reference(make_ref(name), None) == "void*"


def test_t_04_generic_parameters_of_type_and_method_erase_to_void_pointer(
    make_type: Callable[..., sdkgen.TypeEntity],
    make_ref: Callable[..., sdkgen.TypeReference],
    make_method: Callable[..., sdkgen.MethodEntity],
) -> None:
    owner = make_type("Box`1", generic_params=("T",))
    method = make_method("Get")
    method.generic_params = ("U",)

    assert sdkgen.map_type_reference(make_ref("T"), owner) == "void*"
    assert sdkgen.map_type_reference(make_ref("U"), owner, method) == "void*"
    assert sdkgen.map_type_reference(make_ref("U"), owner) == "BNM::IL2CPP::Il2CppObject*"


def test_t_05_arrays_and_pointers(make_ref: Callable[..., sdkgen.TypeReference]) -> None:
    assert (
        sdkgen.map_type_reference(make_ref("float[]"), None)
        == "BNM::Structures::Mono::Array<float>*"
    )
    assert (
        sdkgen.map_type_reference(make_ref("Player[]"), None)
        == "BNM::Structures::Mono::Array<BNM::IL2CPP::Il2CppObject*>*"
    )
    assert (
        sdkgen.map_type_reference(make_ref("List<int>[]"), None)
        == "BNM::Structures::Mono::Array<void*>*"
    )
    assert sdkgen.map_type_reference(make_ref("byte*"), None) == "uint8_t*"


def test_t_06_by_ref_and_output_parameters_gain_pointer_suffix(
    make_ref: Callable[..., sdkgen.TypeReference],
) -> None:
    by_ref = make_ref("int", is_by_ref=True)
    out_param = sdkgen.ParameterEntity("value", make_ref("Player"), is_output=True)

    assert sdkgen.map_type_reference(by_ref, None) == "int*"
    assert sdkgen.map_parameter_type(out_param, None) == "BNM::IL2CPP::Il2CppObject**"


def test_t_07_unity_value_types_map_to_bnm_structures(
    make_type: Callable[..., sdkgen.TypeEntity],
    make_ref: Callable[..., sdkgen.TypeReference],
) -> None:
    unity_vector = make_type("Vector3", namespace="UnityEngine", kind=sdkgen.KIND_STRUCT)
    game_vector = make_type("Vector3", namespace="Game.Math", kind=sdkgen.KIND_STRUCT)

    assert (
        sdkgen.map_type_reference(make_ref("Vector3"), None)
        == "BNM::Structures::Unity::Vector3"
    )
    assert (
        sdkgen.map_type_reference(make_ref("Vector3", target=unity_vector), None)
        == "BNM::Structures::Unity::Vector3"
    )
    assert (
        sdkgen.map_type_reference(make_ref("Vector3", target=game_vector), None)
        == "BNM::IL2CPP::Il2CppObject*"
    )


def test_t_08_unresolved_and_user_types_fall_back_to_object_pointer(
    make_type: Callable[..., sdkgen.TypeEntity],
    make_ref: Callable[..., sdkgen.TypeReference],
) -> None:
    user_class = make_type("Player")

    assert sdkgen.map_type_reference(make_ref("Nowhere.Thing"), None) == (
        "BNM::IL2CPP::Il2CppObject*"
    )
    assert sdkgen.map_type_reference(make_ref("Player", target=user_class), None) == (
        "BNM::IL2CPP::Il2CppObject*"
    )


def test_t_09_metadata_index_resolution_rules(
    make_type: Callable[..., sdkgen.TypeEntity],
) -> None:
    a_item = make_type("Item", namespace="A")
    b_item = make_type("Item", namespace="B")
    unique = make_type("Unique", namespace="A")
    index = sdkgen.MetadataIndex([a_item, b_item, unique])

    assert index.resolve("A.Item") is a_item
    assert index.resolve("global::B.Item") is b_item
    assert index.resolve("Item") is None
    assert index.resolve("Item", context=unique) is a_item
    assert index.resolve("Unique") is unique
    assert index.resolve("Missing") is None


def test_t_10_link_references_resolves_element_types() -> None:
    enum = sdkgen.TypeEntity("Game", "Mode", sdkgen.KIND_ENUM, "Assembly-CSharp.dll")
    owner = sdkgen.TypeEntity(
        "Game",
        "Player",
        sdkgen.KIND_CLASS,
        "Assembly-CSharp.dll",
        fields=[sdkgen.FieldEntity("modes", sdkgen.TypeReference("Mode[]"))],
    )
    sdkgen.link_references([sdkgen.ModuleEntity("Assembly-CSharp.dll", [enum, owner])])

    ref = owner.fields[0].type_ref
    assert ref.element is not None
    assert ref.element.target is enum
    assert sdkgen.map_type_reference(ref, owner) == "BNM::Structures::Mono::Array<int>*"
