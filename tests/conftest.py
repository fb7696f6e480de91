import argparse
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

GENERATOR_DIR = Path(__file__).resolve().parent.parent
if str(GENERATOR_DIR) not in sys.path:
    sys.path.insert(0, str(GENERATOR_DIR))

import sdkgen  # noqa: E402

FIXTURES_DIR = GENERATOR_DIR / "tests" / "fixtures"


@pytest.fixture
def dump_path() -> Path:
    return FIXTURES_DIR / "dump_minimal.cs"


@pytest.fixture
def existing_paths(tmp_path: Path) -> dict[str, Path]:
    dump = tmp_path / "dump.cs"
    dump.write_text("// Image 0: Assembly-CSharp.dll - 0\n", encoding="utf-8")

    dump_dir = tmp_path / "dumps"
    dump_dir.mkdir()

    output_dir = tmp_path / "SDK"
    return {"dump": dump, "dump_dir": dump_dir, "output_dir": output_dir}


@pytest.fixture
def missing_path(tmp_path: Path) -> Path:
    return tmp_path / "missing"


@pytest.fixture
def make_args(existing_paths: dict[str, Path]) -> Callable[..., argparse.Namespace]:
    def _make_args(**overrides: object) -> argparse.Namespace:
        base_args: dict[str, object] = {
            "input": existing_paths["dump"],
            "output_dir": existing_paths["output_dir"],
        }
        base_args.update(overrides)
        return argparse.Namespace(**base_args)

    return _make_args


@pytest.fixture
def make_type() -> Callable[..., sdkgen.TypeEntity]:
    def _make_type(
        name: str,
        *,
        namespace: str = "Game",
        kind: str = sdkgen.KIND_CLASS,
        module: str = "Assembly-CSharp.dll",
        base: "sdkgen.TypeEntity | None" = None,
        fields: list[sdkgen.FieldEntity] | None = None,
        methods: list[sdkgen.MethodEntity] | None = None,
        generic_params: tuple[str, ...] = (),
    ) -> sdkgen.TypeEntity:
        base_ref = None
        if base is not None:
            base_ref = sdkgen.TypeReference(base.name)
            base_ref.target = base
        return sdkgen.TypeEntity(
            namespace=namespace,
            name=name,
            kind=kind,
            module=module,
            base_type=base_ref,
            fields=fields,
            methods=methods,
            generic_params=generic_params,
        )

    return _make_type


@pytest.fixture
def make_ref() -> Callable[..., sdkgen.TypeReference]:
    def _make_ref(
        name: str,
        *,
        target: "sdkgen.TypeEntity | None" = None,
        is_by_ref: bool = False,
    ) -> sdkgen.TypeReference:
        ref = sdkgen.TypeReference(name, is_by_ref=is_by_ref)
        ref.target = target
        return ref

    return _make_ref


@pytest.fixture
def make_method() -> Callable[..., sdkgen.MethodEntity]:
    def _make_method(
        name: str,
        return_type: str = "void",
        *,
        params: list[tuple[str, str]] | None = None,
        is_static: bool = False,
    ) -> sdkgen.MethodEntity:
        return sdkgen.MethodEntity(
            name=name,
            return_type=sdkgen.TypeReference(return_type),
            is_static=is_static,
            parameters=[
                sdkgen.ParameterEntity(param_name, sdkgen.TypeReference(param_type))
                for param_type, param_name in (params or [])
            ],
        )

    return _make_method
