"""BNM reflection SDK generator for IL2CPP builds.

Generates C++ headers that describe every type of an IL2CPP build as a
compile-time-typed facade over BNM's runtime name lookup. The type graph is
read from an Il2CppDumper `dump.cs`; output is one header per type under
Includes/ plus one include manifest per namespace.

Usage:
    python sdkgen.py path/to/dump.cs --output-dir SDK
    python sdkgen.py path/to/dumps/
"""

import argparse
import re
import shutil
from dataclasses import dataclass
from pathlib import Path

DEFAULT_OUTPUT_DIR = Path("SDK")
DEFAULT_MODULE_NAME = "Assembly-CSharp.dll"
DUMP_GLOB = "*.cs"


# ===--- CLI config contracts ---=== #


@dataclass(frozen=True)
class GenerateConfig:
    input_path: Path
    output_dir: Path


VALID_ERROR_CODES = {
    "PATH_NOT_FOUND",
}


class ConfigError(Exception):
    def __init__(self, code: str, message: str, suggestion: str | None = None):
        if code not in VALID_ERROR_CODES:
            raise ValueError(f"Unknown config error code: {code}")
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion


class MetadataError(ValueError):
    """Raised when a metadata dump cannot be read as a type graph."""


def validate_path_exists(
    path: Path | None, label: str, suggestion: str | None = None
) -> Path:
    if path is None:
        raise ConfigError(
            "PATH_NOT_FOUND",
            f"{label} is required: no path provided.",
            suggestion or f"Pass the path explicitly: sdkgen.py /path/to/{label}",
        )
    if path.exists():
        return path
    raise ConfigError(
        "PATH_NOT_FOUND",
        f"Path for {label} does not exist: {path}",
        suggestion or "Provide an existing dump file or a directory of dumps.",
    )


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate a BNM reflection SDK from an Il2CppDumper dump"
    )
    parser.add_argument("input", type=Path, nargs="?", default=None)
    parser.add_argument("--output-dir", type=Path, default=DEFAULT_OUTPUT_DIR)
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = build_argument_parser()
    return parser.parse_args(argv)


def validate_config(args: argparse.Namespace) -> GenerateConfig | None:
    """Turn parsed arguments into a GenerateConfig.

    Returns None when no input was given; the tool does nothing in that case.

    Raises:
        ConfigError: PATH_NOT_FOUND if the input path does not exist.
    """
    if args.input is None:
        return None

    input_path = validate_path_exists(
        args.input,
        "input",
        "Run Il2CppDumper first and pass the generated dump.cs:\n"
        "  Il2CppDumper libil2cpp.so global-metadata.dat out/\n"
        "  python sdkgen.py out/dump.cs",
    )
    return GenerateConfig(input_path=input_path, output_dir=args.output_dir)


def build_config(argv: list[str] | None = None) -> GenerateConfig | None:
    return validate_config(parse_args(argv))


# ===--- Constants ---=== #

BNM_UMBRELLA_INCLUDE = "#include <BNMIncludes.hpp>"
BNM_OBJECT = "BNM::IL2CPP::Il2CppObject"
BNM_OBJECT_PTR = "BNM::IL2CPP::Il2CppObject*"
BNM_STRING_PTR = "BNM::Structures::Mono::String*"
BNM_ARRAY = "BNM::Structures::Mono::Array"
BNM_UNITY_NAMESPACE = "BNM::Structures::Unity"
OPAQUE_POINTER = "void*"

ROOT_OBJECT_TYPE = "System.Object"
UNITY_NAMESPACE = "UnityEngine"
GLOBAL_NAMESPACE_KEY = "-"
INCLUDES_DIR = "Includes"
HEADER_SUFFIX = ".h"
INDENT = "\t"

PLACEHOLDER_CHAR = "$"
EMPTY_NAME_PLACEHOLDER = "_"
IDENTIFIER_CHARS = frozenset(
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_"
)
RESERVED_WORDS = frozenset({"auto", "register"})

SKIPPED_TYPE_PREFIXES = ("<Module>", "<PrivateImplementationDetails>")
CONSTRUCTOR_NAMES = frozenset({".ctor", ".cctor"})
ENUM_VALUE_FIELD = "value__"
DEFAULT_ENUM_UNDERLYING = "int"

KIND_CLASS = "class"
KIND_STRUCT = "struct"
KIND_ENUM = "enum"
KIND_INTERFACE = "interface"
TYPE_KINDS = (KIND_CLASS, KIND_STRUCT, KIND_ENUM, KIND_INTERFACE)

# (C# keyword, CLR name, C++ spelling); every metadata primitive kind.
_PRIMITIVE_KINDS = (
    ("void", "Void", "void"),
    ("bool", "Boolean", "bool"),
    ("char", "Char", "char16_t"),
    ("sbyte", "SByte", "int8_t"),
    ("byte", "Byte", "uint8_t"),
    ("short", "Int16", "int16_t"),
    ("ushort", "UInt16", "uint16_t"),
    ("int", "Int32", "int"),
    ("uint", "UInt32", "unsigned int"),
    ("long", "Int64", "int64_t"),
    ("ulong", "UInt64", "uint64_t"),
    ("float", "Single", "float"),
    ("double", "Double", "double"),
    ("string", "String", BNM_STRING_PTR),
    ("nint", "IntPtr", OPAQUE_POINTER),
    ("nuint", "UIntPtr", OPAQUE_POINTER),
    ("object", "Object", BNM_OBJECT_PTR),
    ("TypedReference", "TypedReference", OPAQUE_POINTER),
)

PRIMITIVE_TYPES = {
    alias: cpp
    for keyword, clr_name, cpp in _PRIMITIVE_KINDS
    for alias in (keyword, clr_name, f"System.{clr_name}")
}

# Unity value types BNM ships layout-compatible structures for.
UNITY_STRUCTURES = frozenset(
    {
        "Vector2",
        "Vector3",
        "Vector4",
        "Quaternion",
        "Color",
        "Color32",
        "Rect",
        "Matrix4x4",
        "Ray",
        "RaycastHit",
    }
)


# ===--- Metadata model ---=== #


class TypeReference:
    """A type as written in metadata, resolved against a MetadataIndex.

    Arrays and unmanaged pointers carry their element reference so the
    element can be resolved and mapped on its own.
    """

    def __init__(self, name: str, is_by_ref: bool = False):
        self.name = name.strip()
        self.is_by_ref = is_by_ref
        self.target = None
        self.element = None
        if self.name.endswith("*"):
            self.element = TypeReference(self.name[:-1])
        elif self.name.endswith("]") and "[" in self.name:
            self.element = TypeReference(self.name[: self.name.rindex("[")])

    @property
    def is_pointer(self) -> bool:
        return self.name.endswith("*")

    @property
    def is_array(self) -> bool:
        return self.element is not None and not self.is_pointer

    @property
    def is_generic_instance(self) -> bool:
        return (
            _find_generic_open(self.name) > 0
            or "`" in self.name
            or self.name.endswith("?")
        )

    def __repr__(self) -> str:
        return f"TypeReference({self.name!r}, is_by_ref={self.is_by_ref})"


class ParameterEntity:
    def __init__(self, name: str, type_ref: TypeReference, is_output: bool = False):
        self.name = name
        self.type_ref = type_ref
        self.is_output = is_output


class FieldEntity:
    def __init__(
        self,
        name: str,
        type_ref: TypeReference,
        is_static: bool = False,
        is_literal: bool = False,
        constant_value: int | None = None,
    ):
        self.name = name
        self.type_ref = type_ref
        self.is_static = is_static
        self.is_literal = is_literal
        self.constant_value = constant_value


class MethodEntity:
    def __init__(
        self,
        name: str,
        return_type: TypeReference,
        is_static: bool = False,
        parameters: list[ParameterEntity] | None = None,
        generic_params: tuple[str, ...] = (),
    ):
        self.name = name
        self.return_type = return_type
        self.is_static = is_static
        self.parameters = [] if parameters is None else parameters
        self.generic_params = generic_params

    @property
    def is_constructor(self) -> bool:
        return self.name in CONSTRUCTOR_NAMES


class TypeEntity:
    def __init__(
        self,
        namespace: str,
        name: str,
        kind: str,
        module: str,
        base_type: TypeReference | None = None,
        fields: list[FieldEntity] | None = None,
        methods: list[MethodEntity] | None = None,
        generic_params: tuple[str, ...] = (),
        type_def_index: int | None = None,
    ):
        if kind not in TYPE_KINDS:
            raise ValueError(f"Unknown type kind: {kind}")
        self.namespace = namespace
        self.name = name
        self.kind = kind
        self.module = module
        self.base_type = base_type
        self.fields = [] if fields is None else fields
        self.methods = [] if methods is None else methods
        self.generic_params = generic_params
        self.type_def_index = type_def_index

    @property
    def full_name(self) -> str:
        if self.namespace:
            return f"{self.namespace}.{self.name}"
        return self.name

    @property
    def runtime_name(self) -> str:
        # Nested types are dumped as Outer.Inner; the runtime knows them as Inner.
        return self.name.rsplit(".", 1)[-1]

    @property
    def is_struct(self) -> bool:
        return self.kind == KIND_STRUCT

    @property
    def is_enum(self) -> bool:
        return self.kind == KIND_ENUM

    @property
    def underlying_type(self) -> str:
        for f in self.fields:
            if f.name == ENUM_VALUE_FIELD and not f.is_static:
                return f.type_ref.name
        return DEFAULT_ENUM_UNDERLYING

    def __repr__(self) -> str:
        return f"TypeEntity({self.kind} {self.full_name!r})"


class ModuleEntity:
    def __init__(self, name: str, types: list[TypeEntity] | None = None):
        self.name = name
        self.types = [] if types is None else types


class MetadataIndex:
    """Name lookup over every type of a dump.

    Simple names that occur in more than one namespace are ambiguous and
    resolve to nothing unless the referencing type's namespace settles them.
    """

    def __init__(self, types: list[TypeEntity]):
        self._by_full_name: dict[str, TypeEntity] = {}
        self._by_simple_name: dict[str, TypeEntity | None] = {}
        for entity in types:
            self._by_full_name.setdefault(entity.full_name, entity)
            if entity.name in self._by_simple_name:
                if self._by_simple_name[entity.name] is not entity:
                    self._by_simple_name[entity.name] = None
            else:
                self._by_simple_name[entity.name] = entity

    def resolve(
        self, name: str, context: TypeEntity | None = None
    ) -> TypeEntity | None:
        if name.startswith("global::"):
            name = name[len("global::") :]
        found = self._by_full_name.get(name)
        if found is not None:
            return found
        if context is not None and context.namespace:
            found = self._by_full_name.get(f"{context.namespace}.{name}")
            if found is not None:
                return found
        return self._by_simple_name.get(name)


def _resolve_reference(
    ref: TypeReference | None, index: MetadataIndex, context: TypeEntity
) -> None:
    while ref is not None:
        ref.target = index.resolve(ref.name, context)
        ref = ref.element


def link_references(modules: list[ModuleEntity]) -> MetadataIndex:
    """Resolve every type reference of every module against one index.

    Args:
        modules: Modules parsed from one dump. All modules share the index,
            so references across modules resolve.

    Returns:
        The MetadataIndex built over all types.
    """
    index = MetadataIndex([t for module in modules for t in module.types])
    for module in modules:
        for entity in module.types:
            _resolve_reference(entity.base_type, index, entity)
            for f in entity.fields:
                _resolve_reference(f.type_ref, index, entity)
            for method in entity.methods:
                _resolve_reference(method.return_type, index, entity)
                for param in method.parameters:
                    _resolve_reference(param.type_ref, index, entity)
    return index


# ===--- Dump parsing ---=== #

IMAGE_RE = re.compile(r"^//\s*Image\s+\d+:\s*(?P<name>.+?)\s+-\s+(?P<start>\d+)\s*$")
DLL_RE = re.compile(r"^//\s*Dll\s*:\s*(?P<name>.+?)\s*$")
NAMESPACE_RE = re.compile(r"^//\s*Namespace:\s*(?P<name>.*?)\s*$")
TYPE_DEF_INDEX_RE = re.compile(r"//\s*TypeDefIndex:\s*(?P<index>\d+)")
TYPE_HEADER_RE = re.compile(
    r"^(?P<mods>(?:(?:public|private|protected|internal|static|sealed|abstract"
    r"|readonly|unsafe|ref|partial|new)\s+)*)"
    r"(?P<kind>class|struct|enum|interface)\s+(?P<rest>\S.*)$"
)

SECTION_FIELDS = "fields"
SECTION_PROPERTIES = "properties"
SECTION_METHODS = "methods"
_SECTION_MARKERS = {
    "// Fields": SECTION_FIELDS,
    "// Properties": SECTION_PROPERTIES,
    "// Methods": SECTION_METHODS,
}

# Line and block comments, including the GenericInstMethod listings.
COMMENT_PREFIXES = ("//", "/*", "*", "|")

MEMBER_MODIFIERS = frozenset(
    {
        "public",
        "private",
        "protected",
        "internal",
        "static",
        "readonly",
        "const",
        "volatile",
        "new",
        "fixed",
        "unsafe",
        "virtual",
        "override",
        "abstract",
        "sealed",
        "extern",
        "async",
    }
)
PARAMETER_MODIFIERS = frozenset({"out", "ref", "in", "params", "this"})

_OPENERS = "<[("
_CLOSERS = ">])"


def _find_top_level(text: str, token: str) -> int:
    """Index of the first `token` outside brackets and quotes, or -1."""
    depth = 0
    quote = None
    i = 0
    while i < len(text):
        ch = text[i]
        if quote is not None:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in "\"'":
            quote = ch
        elif depth == 0 and text.startswith(token, i):
            return i
        elif ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth = max(depth - 1, 0)
        i += 1
    return -1


def _split_top_level(text: str, separator: str = ",") -> list[str]:
    parts = []
    rest = text
    while True:
        idx = _find_top_level(rest, separator)
        if idx < 0:
            break
        parts.append(rest[:idx].strip())
        rest = rest[idx + len(separator) :]
    parts.append(rest.strip())
    return [p for p in parts if p]


def _find_generic_open(name: str) -> int:
    """Index of the `<` opening a trailing generic argument list, or -1."""
    if not name.endswith(">"):
        return -1
    depth = 0
    for i in range(len(name) - 1, -1, -1):
        if name[i] == ">":
            depth += 1
        elif name[i] == "<":
            depth -= 1
            if depth == 0:
                return i
    return -1


def _strip_code(line: str) -> str:
    """Drop string/char literal contents and the trailing // comment."""
    out = []
    quote = None
    i = 0
    while i < len(line):
        ch = line[i]
        if quote is not None:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
                out.append(ch)
        elif ch in "\"'":
            quote = ch
            out.append(ch)
        elif line.startswith("//", i):
            break
        else:
            out.append(ch)
        i += 1
    return "".join(out)


def _strip_comment(line: str) -> str:
    idx = _find_top_level(line, "//")
    return line if idx < 0 else line[:idx]


def _strip_attributes(text: str) -> str:
    text = text.strip()
    while text.startswith("["):
        end = _find_top_level(text[1:], "]")
        if end < 0:
            break
        text = text[end + 2 :].strip()
    return text


def _strip_modifiers(
    declaration: str, modifiers: frozenset[str] = MEMBER_MODIFIERS
) -> tuple[set[str], str]:
    found: set[str] = set()
    remaining = declaration.strip()
    while True:
        parts = remaining.split(None, 1)
        if len(parts) == 2 and parts[0] in modifiers:
            found.add(parts[0])
            remaining = parts[1]
            continue
        return found, remaining


def _split_type_and_name(declaration: str) -> tuple[str, str]:
    """Split `Dictionary<int, string> lookup` into its type and its name."""
    declaration = declaration.strip()
    depth = 0
    for index, char in enumerate(declaration):
        if char in _OPENERS:
            depth += 1
        elif char in _CLOSERS:
            depth = max(depth - 1, 0)
        elif char.isspace() and depth == 0:
            return declaration[:index], declaration[index:].strip()
    return declaration, ""


def _split_generic_name(name: str) -> tuple[str, tuple[str, ...]]:
    """`List<T>` becomes (`List\\`1`, ("T",)); other names pass through."""
    open_idx = _find_generic_open(name)
    if open_idx <= 0:
        return name, ()
    params = tuple(_split_top_level(name[open_idx + 1 : -1]))
    return f"{name[:open_idx]}`{len(params)}", params


def _parse_int_literal(text: str | None) -> int | None:
    if not text:
        return None
    text = text.strip()
    for base in (0, 10):
        try:
            return int(text, base)
        except ValueError:
            continue
    return None


def parse_field_line(line: str) -> FieldEntity | None:
    code = _strip_attributes(_strip_comment(line)).strip()
    if not code.endswith(";"):
        return None
    code = code[:-1].strip()

    value_text = None
    eq = _find_top_level(code, "=")
    if eq >= 0:
        value_text = code[eq + 1 :].strip()
        code = code[:eq].strip()

    mods, rest = _strip_modifiers(code)
    type_name, name = _split_type_and_name(rest)
    if not type_name or not name:
        return None

    is_literal = "const" in mods
    return FieldEntity(
        name=name,
        type_ref=TypeReference(type_name),
        is_static=is_literal or "static" in mods,
        is_literal=is_literal,
        constant_value=_parse_int_literal(value_text) if is_literal else None,
    )


def parse_parameter(text: str) -> ParameterEntity:
    text = _strip_attributes(text)
    eq = _find_top_level(text, "=")
    if eq >= 0:
        text = text[:eq].strip()
    mods, rest = _strip_modifiers(text, PARAMETER_MODIFIERS)
    type_name, name = _split_type_and_name(rest)
    return ParameterEntity(
        name=name,
        type_ref=TypeReference(type_name, is_by_ref=bool(mods & {"ref", "in"})),
        is_output="out" in mods,
    )


def parse_method_line(line: str) -> MethodEntity | None:
    code = _strip_attributes(_strip_comment(line)).strip()
    if code.endswith("{ }"):
        code = code[:-3].strip()
    elif code.endswith("{}"):
        code = code[:-2].strip()
    code = code.rstrip(";").strip()
    if not code.endswith(")"):
        return None

    open_idx = _find_top_level(code, "(")
    if open_idx < 0:
        return None
    head = code[:open_idx].strip()
    param_block = code[open_idx + 1 : -1].strip()

    mods, rest = _strip_modifiers(head)
    returns_by_ref = False
    if rest.startswith("ref "):
        # `ref T` and `ref readonly T` returns.
        returns_by_ref = True
        rest = rest[len("ref ") :].lstrip()
        if rest.startswith("readonly "):
            rest = rest[len("readonly ") :].lstrip()
    return_type, raw_name = _split_type_and_name(rest)
    if not return_type or not raw_name:
        return None

    name, generic_params = raw_name, ()
    open_generic = _find_generic_open(raw_name)
    if open_generic > 0:
        name = raw_name[:open_generic]
        generic_params = tuple(_split_top_level(raw_name[open_generic + 1 : -1]))

    return MethodEntity(
        name=name,
        return_type=TypeReference(return_type, is_by_ref=returns_by_ref),
        is_static="static" in mods,
        parameters=[parse_parameter(p) for p in _split_top_level(param_block)],
        generic_params=generic_params,
    )


def parse_type_header(
    line: str, namespace: str, module: str
) -> TypeEntity | None:
    """Parse `public class Foo<T> : Bar, IBaz // TypeDefIndex: 12`."""
    stripped = _strip_attributes(line)
    m = TYPE_HEADER_RE.match(stripped)
    if m is None:
        return None

    index_match = TYPE_DEF_INDEX_RE.search(stripped)
    rest = _strip_comment(m.group("rest")).strip().rstrip("{").strip()

    base_candidates: list[str] = []
    colon = _find_top_level(rest, " : ")
    if colon >= 0:
        base_candidates = _split_top_level(rest[colon + 3 :])
        rest = rest[:colon].strip()

    kind = m.group("kind")
    name, generic_params = _split_generic_name(rest)
    entity = TypeEntity(
        namespace=namespace,
        name=name,
        kind=kind,
        module=module,
        generic_params=generic_params,
        type_def_index=int(index_match.group("index")) if index_match else None,
    )
    if base_candidates:
        if kind == KIND_ENUM:
            # `enum Foo : byte` declares the underlying type, not a base.
            entity.fields.append(
                FieldEntity(ENUM_VALUE_FIELD, TypeReference(base_candidates[0]))
            )
        else:
            entity.base_type = TypeReference(base_candidates[0])
    return entity


def _module_for_index(images: list[tuple[int, str]], index: int | None) -> str | None:
    if index is None:
        return None
    found = None
    for start, name in images:
        if start <= index:
            found = name
    return found


def _count_braces(line: str) -> int:
    code = _strip_code(line)
    return code.count("{") - code.count("}")


def parse_dump(text: str) -> list[ModuleEntity]:
    """Parse Il2CppDumper dump.cs text into modules of unlinked TypeEntity.

    Module names come from `// Dll :` markers when present, else from the
    `// Image N: name - start` table keyed by each type's TypeDefIndex.

    Raises:
        MetadataError: A type body is not closed before the end of input.
    """
    modules: dict[str, ModuleEntity] = {}
    images: list[tuple[int, str]] = []
    current_dll = None
    namespace = ""

    current: TypeEntity | None = None
    current_line = 0
    depth = 0
    opened = False
    section = None

    for line_no, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()

        if current is None:
            if not line:
                continue
            m = IMAGE_RE.match(line)
            if m:
                images.append((int(m.group("start")), m.group("name")))
                images.sort()
                continue
            m = DLL_RE.match(line)
            if m:
                current_dll = m.group("name")
                continue
            m = NAMESPACE_RE.match(line)
            if m:
                namespace = m.group("name").replace("<", "").replace(">", "")
                continue
            header = parse_type_header(line, namespace, DEFAULT_MODULE_NAME)
            if header is None:
                continue
            header.module = (
                current_dll
                or _module_for_index(images, header.type_def_index)
                or DEFAULT_MODULE_NAME
            )
            current, current_line = header, line_no
            depth, opened, section = 0, False, None
            line = _strip_comment(line)

        if "{" in _strip_code(line):
            opened = True
        depth += _count_braces(line)

        if opened and depth <= 0:
            modules.setdefault(current.module, ModuleEntity(current.module))
            modules[current.module].types.append(current)
            current = None
            namespace = ""
            continue

        if line in _SECTION_MARKERS:
            section = _SECTION_MARKERS[line]
            continue
        if not line or line.startswith(COMMENT_PREFIXES) or depth != 1:
            continue

        if section == SECTION_FIELDS:
            parsed_field = parse_field_line(line)
            if parsed_field is not None:
                current.fields.append(parsed_field)
        elif section == SECTION_METHODS:
            parsed_method = parse_method_line(line)
            if parsed_method is not None:
                current.methods.append(parsed_method)

    if current is not None:
        raise MetadataError(
            f"Type {current.full_name} starting at line {current_line} is never closed"
        )
    return list(modules.values())


def load_dump(path: Path) -> list[ModuleEntity]:
    """Read, parse and link one dump file.

    Raises:
        OSError: The file cannot be read.
        MetadataError: The dump is malformed.
    """
    text = Path(path).read_text(encoding="utf-8", errors="replace")
    modules = parse_dump(text)
    link_references(modules)
    return modules


# ===--- Identifier sanitizing ---=== #


def sanitize_identifier(raw: str | None) -> str:
    """Return a C++-safe identifier for a metadata name.

    Characters outside [A-Za-z0-9_] are replaced one-for-one with `$`; a name
    starting with a digit gets a leading `_`; reserved words get a trailing
    `_`. Empty names become `_`.
    """
    if not raw:
        return EMPTY_NAME_PLACEHOLDER
    result = "".join(ch if ch in IDENTIFIER_CHARS else PLACEHOLDER_CHAR for ch in raw)
    if raw[0].isdigit():
        result = "_" + result
    if result in RESERVED_WORDS:
        result += "_"
    return result


def header_filename(name: str) -> str:
    return sanitize_identifier(name) + HEADER_SUFFIX


def namespace_segments(namespace: str) -> list[str]:
    cleaned = namespace.replace("<", "").replace(">", "")
    return [part for part in cleaned.split(".") if part]


def namespace_key(namespace: str) -> str:
    cleaned = ".".join(namespace_segments(namespace))
    return cleaned or GLOBAL_NAMESPACE_KEY


def include_path_for(entity: TypeEntity) -> str:
    return "/".join(
        [INCLUDES_DIR, *namespace_segments(entity.namespace), header_filename(entity.name)]
    )


def include_statement(entity: TypeEntity) -> str:
    return f'#include "{include_path_for(entity)}"'


def qualified_cpp_name(entity: TypeEntity) -> str:
    parts = [
        *(sanitize_identifier(s) for s in namespace_segments(entity.namespace)),
        sanitize_identifier(entity.name),
    ]
    return "::" + "::".join(parts)


def cpp_string(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


# ===--- Type mapping ---=== #


def is_generic_parameter(
    name: str, context: TypeEntity | None, method: MethodEntity | None = None
) -> bool:
    if context is not None and name in context.generic_params:
        return True
    return method is not None and name in method.generic_params


def _map_base_type(
    ref: TypeReference, context: TypeEntity | None, method: MethodEntity | None
) -> str:
    if ref.element is not None:
        inner = _map_base_type(ref.element, context, method)
        if ref.is_pointer:
            return inner + "*"
        return f"{BNM_ARRAY}<{inner}>*"

    if ref.name in PRIMITIVE_TYPES:
        return PRIMITIVE_TYPES[ref.name]
    if ref.is_generic_instance or is_generic_parameter(ref.name, context, method):
        return OPAQUE_POINTER

    target = ref.target
    if target is not None and target.is_enum:
        return PRIMITIVE_TYPES.get(
            target.underlying_type, PRIMITIVE_TYPES[DEFAULT_ENUM_UNDERLYING]
        )

    simple_name = ref.name.rsplit(".", 1)[-1]
    if simple_name in UNITY_STRUCTURES and (
        target is None or target.namespace == UNITY_NAMESPACE
    ):
        return f"{BNM_UNITY_NAMESPACE}::{simple_name}"
    return BNM_OBJECT_PTR


def map_type_reference(
    ref: TypeReference,
    context: TypeEntity | None,
    method: MethodEntity | None = None,
) -> str:
    """Map a metadata type reference to a C++ type expression.

    Enums map to their underlying integer type, generic instantiations and
    generic parameters of `context` or `method` map to `void*`, and every
    unrecognized type falls back to `BNM::IL2CPP::Il2CppObject*`. By-ref
    references gain a pointer suffix.
    """
    mapped = _map_base_type(ref, context, method)
    if ref.is_by_ref:
        return mapped + "*"
    return mapped


def map_parameter_type(
    param: ParameterEntity,
    context: TypeEntity | None,
    method: MethodEntity | None = None,
) -> str:
    mapped = map_type_reference(param.type_ref, context, method)
    if param.is_output:
        return mapped + "*"
    return mapped


def map_enum_underlying_type(entity: TypeEntity) -> str:
    return PRIMITIVE_TYPES.get(
        entity.underlying_type, PRIMITIVE_TYPES[DEFAULT_ENUM_UNDERLYING]
    )


# ===--- Duplicate resolution ---=== #


class DuplicateMethodTable:
    """Per-run counter of method names seen per declaring type.

    The first occurrence of (owner, name) gets no suffix, later ones get
    `_1`, `_2`, ... in call order. Counts are never reset within a run.
    """

    def __init__(self) -> None:
        self._counts: dict[tuple[str, str], int] = {}

    def suffix(self, owner: str, method_name: str) -> str:
        key = (owner, method_name)
        seen = self._counts.get(key, 0)
        self._counts[key] = seen + 1
        if seen == 0:
            return ""
        return f"_{seen}"

    def __len__(self) -> int:
        return len(self._counts)


# ===--- Output writer ---=== #


class HeaderWriter:
    """Accumulates header text; callers pass the indentation depth."""

    def __init__(self) -> None:
        self._chunks: list[str] = []

    def write_line(self, text: str = "", depth: int = 0) -> None:
        self._chunks.append(INDENT * depth + text + "\n")

    def write(self, text: str, depth: int = 0) -> None:
        self._chunks.append(INDENT * depth + text)

    def continue_line(self, text: str, terminate: bool = True) -> None:
        self._chunks.append(text + "\n" if terminate else text)

    def getvalue(self) -> str:
        return "".join(self._chunks)


@dataclass(frozen=True)
class FileWriteResult:
    """Result of writing a single generated file.

    Attributes:
        filename: Filename written, e.g. "Player.h" or "Game.Core.h".
        path: Absolute path of the written file.
        line_count: Number of newline characters in the written content.
        byte_count: Number of bytes written (UTF-8 encoded).
    """

    filename: str
    path: Path
    line_count: int
    byte_count: int


def write_text_file(path: Path, content: str) -> FileWriteResult:
    """Write one generated file, creating parent directories.

    Raises:
        OSError: Propagated directly if the filesystem write fails.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8", newline="\n")
    return FileWriteResult(
        filename=path.name,
        path=path.resolve(),
        line_count=content.count("\n"),
        byte_count=len(content.encode("utf-8")),
    )


# ===--- Member emitters ---=== #

_THIS_OBJECT = f"({BNM_OBJECT_PTR})this"


def emit_field(
    writer: HeaderWriter, depth: int, owner: TypeEntity, field: FieldEntity
) -> bool:
    """Emit the getter/setter pair for one field. Literals emit nothing."""
    if field.is_literal:
        return False

    name = sanitize_identifier(field.name)
    field_type = map_type_reference(field.type_ref, owner)
    static = "static " if field.is_static else ""
    lookup = f'StaticClass().GetField("{cpp_string(field.name)}")'
    bind = f"__bnm__field__.SetInstance({_THIS_OBJECT});"

    writer.write(f"template <typename T = {field_type}>", depth)
    writer.continue_line(f" {static}T {name}() {{")
    writer.write_line(f"static BNM::Field<T> __bnm__field__ = {lookup};", depth + 1)
    if not field.is_static:
        writer.write_line(bind, depth + 1)
    writer.write_line("return __bnm__field__();", depth + 1)
    writer.write_line("}", depth)

    writer.write_line(f"{static}void set_{name}({field_type} value) {{", depth)
    writer.write_line(
        f"static BNM::Field<{field_type}> __bnm__field__ = {lookup};", depth + 1
    )
    if not field.is_static:
        writer.write_line(bind, depth + 1)
    writer.write_line("__bnm__field__.Set(value);", depth + 1)
    writer.write_line("}", depth)
    return True


def emit_method(
    writer: HeaderWriter,
    depth: int,
    owner: TypeEntity,
    method: MethodEntity,
    duplicates: DuplicateMethodTable,
) -> bool:
    """Emit the invocation wrapper for one method. Constructors emit nothing.

    The runtime handle is looked up by name and parameter count only, so
    same-arity overloads share a lookup; only the wrapper names differ.
    """
    if method.is_constructor:
        return False

    name = sanitize_identifier(method.name)
    name += duplicates.suffix(owner.full_name, method.name)
    return_type = map_type_reference(method.return_type, owner, method)
    params = [
        (map_parameter_type(p, owner, method), sanitize_identifier(p.name))
        for p in method.parameters
    ]
    signature = ", ".join(f"{t} {n}" for t, n in params)
    static = "static " if method.is_static else ""

    writer.write(f"template <typename T = {return_type}>", depth)
    writer.continue_line(f" {static}T {name}({signature}) {{")
    writer.write_line(
        "static BNM::Method<T> __bnm__method__ = "
        f'StaticClass().GetMethod("{cpp_string(method.name)}", {len(params)});',
        depth + 1,
    )
    if method.is_static:
        writer.write("return __bnm__method__(", depth + 1)
    else:
        writer.write(f"return __bnm__method__[{_THIS_OBJECT}](", depth + 1)
    writer.continue_line(", ".join(n for _, n in params) + ");")
    writer.write_line("}", depth)
    return True


def enum_literals(entity: TypeEntity) -> list[FieldEntity]:
    return [
        f
        for f in entity.fields
        if f.is_literal and f.is_static and f.constant_value is not None
    ]


def emit_enum_body(writer: HeaderWriter, depth: int, owner: TypeEntity) -> int:
    """Emit `enum class` with the enum's literals; returns the literal count."""
    literals = enum_literals(owner)
    writer.write_line(
        f"enum class {sanitize_identifier(owner.name)} : "
        f"{map_enum_underlying_type(owner)}",
        depth,
    )
    writer.write_line("{", depth)
    for index, literal in enumerate(literals):
        comma = "," if index < len(literals) - 1 else ""
        writer.write_line(
            f"{sanitize_identifier(literal.name)} = {literal.constant_value}{comma}",
            depth + 1,
        )
    writer.write_line("};", depth)
    return len(literals)


# ===--- Class emitter ---=== #


@dataclass(frozen=True)
class EmittedHeader:
    """Header text for one type plus what went into it.

    Attributes:
        text: Complete header source including trailing newline.
        field_accessors: Fields that received a getter/setter pair.
        method_wrappers: Methods that received an invocation wrapper.
        enumerators: Literals emitted into an enum class.
    """

    text: str
    field_accessors: int = 0
    method_wrappers: int = 0
    enumerators: int = 0


def resolve_base_type(entity: TypeEntity) -> TypeEntity | None:
    """Return the emitted base class of `entity`, or None.

    Structs and enums never have one. The base must resolve to a class other
    than System.Object; interfaces in the base clause are not bases.
    """
    if entity.kind in (KIND_STRUCT, KIND_ENUM) or entity.base_type is None:
        return None
    base = entity.base_type.target
    if base is None or base.kind != KIND_CLASS:
        return None
    if base.full_name == ROOT_OBJECT_TYPE:
        return None
    return base


class ClassEmitter:
    def __init__(self, session: "GenerationSession"):
        self.session = session
        self.depth = 0

    def emit(self, entity: TypeEntity) -> EmittedHeader:
        writer = HeaderWriter()
        self.depth = 0

        writer.write_line("#pragma once")
        writer.write_line(BNM_UMBRELLA_INCLUDE)
        writer.write_line()

        base = resolve_base_type(entity)
        if base is not None:
            writer.write_line(include_statement(base))

        for segment in namespace_segments(entity.namespace):
            writer.write_line(
                f"namespace {sanitize_identifier(segment)} {{", self.depth
            )
            self.depth += 1

        class_name = sanitize_identifier(entity.name)
        if entity.is_struct:
            writer.write_line(f"struct {class_name}", self.depth)
        else:
            base_name = qualified_cpp_name(base) if base is not None else BNM_OBJECT
            writer.write_line(f"class {class_name} : public {base_name}", self.depth)

        writer.write_line("{", self.depth)
        self.depth += 1
        writer.write_line("public:", self.depth)
        self._emit_static_class(writer, entity)
        writer.write_line("", self.depth)

        accessors = wrappers = enumerators = 0
        if entity.is_enum:
            enumerators = emit_enum_body(writer, self.depth, entity)
        else:
            for f in entity.fields:
                accessors += emit_field(writer, self.depth, entity, f)
            writer.write_line("", self.depth)
            if not entity.is_struct:
                for method in entity.methods:
                    wrappers += emit_method(
                        writer, self.depth, entity, method, self.session.duplicates
                    )

        self.depth -= 1
        writer.write_line("};", self.depth)
        while self.depth > 0:
            self.depth -= 1
            writer.write_line("}", self.depth)

        return EmittedHeader(
            text=writer.getvalue(),
            field_accessors=accessors,
            method_wrappers=wrappers,
            enumerators=enumerators,
        )

    def _emit_static_class(self, writer: HeaderWriter, entity: TypeEntity) -> None:
        writer.write_line("static BNM::Class StaticClass() {", self.depth)
        writer.write_line(
            f'return BNM::Class("{cpp_string(entity.namespace)}", '
            f'"{cpp_string(entity.runtime_name)}", '
            f'BNM::Image("{cpp_string(entity.module)}"));',
            self.depth + 1,
        )
        writer.write_line("}", self.depth)


# ===--- Namespace manifest ---=== #


class NamespaceManifest:
    """Include statements per namespace, in first-seen order, no duplicates."""

    def __init__(self) -> None:
        self._includes: dict[str, dict[str, None]] = {}

    def add(self, namespace: str, include: str) -> bool:
        entries = self._includes.setdefault(namespace_key(namespace), {})
        if include in entries:
            return False
        entries[include] = None
        return True

    def keys(self) -> tuple[str, ...]:
        return tuple(self._includes)

    def includes(self, key: str) -> tuple[str, ...]:
        return tuple(self._includes.get(key, {}))

    def render(self, key: str) -> str:
        return "".join(line + "\n" for line in self.includes(key))

    def write_all(self, output_root: Path) -> tuple[FileWriteResult, ...]:
        """Write `<output_root>/<key>.h` for every namespace key.

        Raises:
            OSError: Propagated directly from any write failure.
        """
        return tuple(
            write_text_file(Path(output_root) / f"{key}{HEADER_SUFFIX}", self.render(key))
            for key in self._includes
        )


# ===--- Generation session ---=== #


class GenerationSession:
    """State shared by every type emitted during one run.

    A fresh session per run makes repeated runs produce identical output.
    """

    def __init__(self) -> None:
        self.duplicates = DuplicateMethodTable()
        self.manifest = NamespaceManifest()
        self.emitter = ClassEmitter(self)


# ===--- Module walker ---=== #


@dataclass(frozen=True)
class ModuleWriteResult:
    """Result of emitting every type of one module.

    Attributes:
        module_name: Module file name, e.g. "Assembly-CSharp.dll".
        files: One FileWriteResult per header written, in emission order.
        kinds: Kind of each emitted type, parallel to files.
        skipped: Compiler-synthesized types that were not emitted.
        field_accessors: Getter/setter pairs across the module.
        method_wrappers: Method wrappers across the module.
        enumerators: Enum literals across the module.
    """

    module_name: str
    files: tuple[FileWriteResult, ...]
    kinds: tuple[str, ...]
    skipped: int = 0
    field_accessors: int = 0
    method_wrappers: int = 0
    enumerators: int = 0


def is_synthetic_type(entity: TypeEntity) -> bool:
    return entity.name.startswith(SKIPPED_TYPE_PREFIXES)


def type_header_path(output_root: Path, entity: TypeEntity) -> Path:
    path = Path(output_root) / INCLUDES_DIR
    for segment in namespace_segments(entity.namespace):
        path = path / segment
    return path / header_filename(entity.name)


def walk_module(
    session: GenerationSession, module: ModuleEntity, output_root: Path
) -> ModuleWriteResult:
    """Emit and write a header for every type of `module`, in order.

    Each emitted type registers its own include with the session manifest.

    Raises:
        OSError: Propagated directly from any write failure.
    """
    files: list[FileWriteResult] = []
    kinds: list[str] = []
    skipped = accessors = wrappers = enumerators = 0

    for entity in module.types:
        if is_synthetic_type(entity):
            skipped += 1
            continue
        session.manifest.add(entity.namespace, include_statement(entity))
        header = session.emitter.emit(entity)
        files.append(write_text_file(type_header_path(output_root, entity), header.text))
        kinds.append(entity.kind)
        accessors += header.field_accessors
        wrappers += header.method_wrappers
        enumerators += header.enumerators

    return ModuleWriteResult(
        module_name=module.name,
        files=tuple(files),
        kinds=tuple(kinds),
        skipped=skipped,
        field_accessors=accessors,
        method_wrappers=wrappers,
        enumerators=enumerators,
    )


# ===--- Pipeline ---=== #


@dataclass(frozen=True)
class GenerationResult:
    """Everything one run wrote.

    Attributes:
        output_dir: Output root all files were written under.
        modules: Per-module results in processing order.
        manifests: Namespace manifests, written last.
    """

    output_dir: Path
    modules: tuple[ModuleWriteResult, ...]
    manifests: tuple[FileWriteResult, ...]

    @property
    def files(self) -> tuple[FileWriteResult, ...]:
        headers = tuple(f for module in self.modules for f in module.files)
        return headers + self.manifests

    @property
    def total_lines(self) -> int:
        return sum(f.line_count for f in self.files)


def discover_dump_files(input_path: Path) -> tuple[Path, ...]:
    """A file is processed as-is; a directory yields its *.cs files by name."""
    input_path = Path(input_path)
    if input_path.is_dir():
        return tuple(sorted(p for p in input_path.glob(DUMP_GLOB) if p.is_file()))
    return (input_path,)


def prepare_output_root(output_dir: Path) -> Path:
    """Remove any previous output tree and recreate an empty root."""
    output_dir = Path(output_dir)
    if output_dir.exists():
        shutil.rmtree(output_dir)
    output_dir.mkdir(parents=True)
    return output_dir


def run_generate(config: GenerateConfig) -> GenerationResult:
    """Execute the complete generation pipeline for a GenerateConfig.

    Stages: clear output -> per dump (parse -> link -> walk modules) ->
    write namespace manifests -> summary.

    Raises:
        OSError: Dump not readable or filesystem write failure.
        MetadataError: Malformed dump.
    """
    session = GenerationSession()
    prepare_output_root(config.output_dir)

    module_results: list[ModuleWriteResult] = []
    for dump_path in discover_dump_files(config.input_path):
        print(f"Parsing: {dump_path}")
        modules = load_dump(dump_path)
        print(
            f"  Loaded: {len(modules)} modules, "
            f"{sum(len(m.types) for m in modules)} types"
        )
        for module in modules:
            module_results.append(walk_module(session, module, config.output_dir))

    manifests = session.manifest.write_all(config.output_dir)
    result = GenerationResult(
        output_dir=Path(config.output_dir),
        modules=tuple(module_results),
        manifests=manifests,
    )
    print(
        f"  Written: {len(result.files)} files, "
        f"{result.total_lines} lines to {result.output_dir}"
    )

    print_generation_summary(build_generation_summary(result))
    return result


# ===--- Summary report ---=== #


@dataclass(frozen=True)
class GenerationSummary:
    """Complete, immutable data for the post-generation console report.

    Attributes:
        output_dir: Output root as string.
        kind_counts: (kind, count) per entry of TYPE_KINDS, in that order.
        skipped: Synthetic types left out.
        field_accessors: Getter/setter pairs across the run.
        method_wrappers: Method wrappers across the run.
        enumerators: Enum literals across the run.
        module_headers: (module name, header count) in processing order.
        manifest_count: Namespace manifests written.
        total_lines: Lines across every written file.
        file_count: Files written, headers and manifests.
    """

    output_dir: str
    kind_counts: tuple[tuple[str, int], ...]
    skipped: int
    field_accessors: int
    method_wrappers: int
    enumerators: int
    module_headers: tuple[tuple[str, int], ...]
    manifest_count: int
    total_lines: int
    file_count: int


def build_generation_summary(result: GenerationResult) -> GenerationSummary:
    all_kinds = [kind for module in result.modules for kind in module.kinds]
    return GenerationSummary(
        output_dir=str(result.output_dir),
        kind_counts=tuple((kind, all_kinds.count(kind)) for kind in TYPE_KINDS),
        skipped=sum(m.skipped for m in result.modules),
        field_accessors=sum(m.field_accessors for m in result.modules),
        method_wrappers=sum(m.method_wrappers for m in result.modules),
        enumerators=sum(m.enumerators for m in result.modules),
        module_headers=tuple((m.module_name, len(m.files)) for m in result.modules),
        manifest_count=len(result.manifests),
        total_lines=result.total_lines,
        file_count=len(result.files),
    )


_KIND_LABELS = {
    KIND_CLASS: "Classes:",
    KIND_STRUCT: "Structs:",
    KIND_ENUM: "Enums:",
    KIND_INTERFACE: "Interfaces:",
}


def format_generation_summary(summary: GenerationSummary) -> str:
    """Render a GenerationSummary as the console report.

    Returns a string with exactly one trailing newline.
    """
    lines: list[str] = []
    lines.append("BNM SDK generated:")
    lines.append("")
    lines.append(f"  Output:     {summary.output_dir}")
    lines.append("")
    lines.append("  Types generated:")
    for kind, count in summary.kind_counts:
        lines.append(f"    {_KIND_LABELS[kind]:<17}{count:>6}")
    lines.append(f"    {'Skipped:':<17}{summary.skipped:>6}")
    lines.append("")
    lines.append("  Members generated:")
    lines.append(f"    {'Field accessors:':<17}{summary.field_accessors:>6}")
    lines.append(f"    {'Method wrappers:':<17}{summary.method_wrappers:>6}")
    lines.append(f"    {'Enumerators:':<17}{summary.enumerators:>6}")
    lines.append("")
    lines.append("  Modules:")
    for module_name, header_count in summary.module_headers:
        lines.append(f"    {module_name:<28} {header_count:>6,} headers")
    lines.append(f"    {'Namespace manifests':<28} {summary.manifest_count:>6,}")
    lines.append("")
    lines.append(
        f"  Total: {summary.total_lines:,} lines across {summary.file_count} files"
    )
    lines.append("")

    return "\n".join(lines)


def print_generation_summary(summary: GenerationSummary) -> None:
    print(format_generation_summary(summary), end="")


# ===--- Main generation ---=== #


def main():
    try:
        config = build_config()
    except ConfigError as err:
        print(f"Config error [{err.code}]: {err.message}")
        if err.suggestion:
            print(f"Hint: {err.suggestion}")
        raise SystemExit(1) from err

    if config is None:
        return

    try:
        run_generate(config)
    except (OSError, MetadataError) as err:
        print(f"Error: {err}")
        raise SystemExit(1) from err
    except (RuntimeError, ValueError) as err:
        print(f"Internal error: {err}")
        raise SystemExit(1) from err


if __name__ == "__main__":
    main()
