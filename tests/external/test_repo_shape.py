from __future__ import annotations

from pathlib import Path


_README_ANCHORS = (
    # One-line summary
    "Generate a BNM reflection SDK",
    "Prerequisites",
    "Il2CppDumper",
    # Quick start
    "python sdkgen.py path/to/dump.cs --output-dir SDK",
    # Optional output directory flag
    "`--output-dir` is an extension",
    # Output table
    "SDK/Includes/",
    "SDK/-.h",
    # Testing instructions
    "pytest",
    # License section
    "MIT",
)


def _tool_root() -> Path:
    return Path(__file__).resolve().parents[2]


def test_t_01_required_artifacts_exist() -> None:
    tool_root = _tool_root()
    required_paths = {
        "sdkgen.py",
        "pyproject.toml",
        "README.md",
        "tests/conftest.py",
        "tests/test_cli.py",
        "tests/test_sanitize.py",
        "tests/test_type_mapping.py",
        "tests/test_dump_parser.py",
        "tests/test_emitters.py",
        "tests/test_writer.py",
        "tests/test_pipeline.py",
        "tests/test_summary.py",
        "tests/fixtures/dump_minimal.cs",
        "tests/external/test_external_cli.py",
        "tests/external/test_repo_shape.py",
    }

    missing = sorted(path for path in required_paths if not (tool_root / path).exists())
    assert missing == []


def test_t_02_generated_output_is_not_checked_in() -> None:
    tool_root = _tool_root()

    for relative_path in ("SDK", "Includes"):
        assert not (tool_root / relative_path).exists()


def test_t_03_readme_includes_required_sections() -> None:
    readme = _tool_root() / "README.md"
    assert readme.exists(), "README.md must exist"
    content = readme.read_text(encoding="utf-8")
    missing = [anchor for anchor in _README_ANCHORS if anchor not in content]
    assert missing == [], f"README.md missing required anchors: {missing}"


def test_t_04_pyproject_declares_module_and_script() -> None:
    content = (_tool_root() / "pyproject.toml").read_text(encoding="utf-8")

    assert 'py-modules = ["sdkgen"]' in content
    assert 'sdkgen = "sdkgen:main"' in content
