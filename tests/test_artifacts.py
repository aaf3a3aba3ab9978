from __future__ import annotations

from pathlib import Path

import pytest

from actorbundle.artifacts.assembler import ArtifactAssembler, prepare_artifacts_dir
from actorbundle.artifacts.naming import bundle_name, compiled_file_stem, pascal_case, split_words
from actorbundle.config import NamingSettings
from actorbundle.errors import AssemblyError, DirectoryLifecycleError
from actorbundle.units.types import BuildUnit, UnitKind


def _unit(tmp_path: Path, name: str) -> BuildUnit:
    root = tmp_path / "units" / name
    return BuildUnit(name=name, source_root=root, entry_source=root / "src" / "actor.rs")


def _binary(tmp_path: Path, name: str, data: bytes = b"\x00asm") -> Path:
    path = tmp_path / "out" / f"{name}.wasm"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


@pytest.mark.parametrize(
    ("name", "kind", "expected"),
    [
        ("widget-test", UnitKind.TEST, "Widget.t"),
        ("hello-world-test", UnitKind.TEST, "HelloWorld.t"),
        ("hello-world", UnitKind.TARGET, "HelloWorld"),
        ("basic_token", UnitKind.TARGET, "BasicToken"),
        ("erc20-token", UnitKind.TARGET, "Erc20Token"),
        ("HTTPServer", UnitKind.TARGET, "HttpServer"),
        ("testing-test", UnitKind.TEST, "Testing.t"),
    ],
)
def test_bundle_names(name: str, kind: UnitKind, expected: str) -> None:
    assert bundle_name(name, kind) == expected


def test_test_driver_without_token() -> None:
    with pytest.raises(AssemblyError, match="doesn't have 'test'"):
        bundle_name("widget", UnitKind.TEST)


def test_word_splitting() -> None:
    assert split_words("myHTTPServer-v2") == ["my", "HTTP", "Server", "v", "2"]
    assert pascal_case("--") == ""


def test_compiled_file_stem_uses_substitution_table() -> None:
    assert compiled_file_stem("hello-world", NamingSettings()) == "hello_world"
    custom = NamingSettings(substitutions=(("-", "_"), (".", "_")))
    assert compiled_file_stem("a-b.c", custom) == "a_b_c"


def test_prepare_creates_missing_dir(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "artifacts"
    prepare_artifacts_dir(target, purge=False)
    assert target.is_dir()


def test_prepare_without_purge_is_additive(tmp_path: Path) -> None:
    target = tmp_path / "artifacts"
    target.mkdir()
    (target / "Old.wasm").write_bytes(b"old")
    prepare_artifacts_dir(target, purge=False)
    assert (target / "Old.wasm").exists()


def test_prepare_with_purge_removes_stale_files(tmp_path: Path) -> None:
    target = tmp_path / "artifacts"
    (target / "sub").mkdir(parents=True)
    (target / "Old.wasm").write_bytes(b"old")
    prepare_artifacts_dir(target, purge=True)
    assert target.is_dir()
    assert list(target.iterdir()) == []


def test_prepare_rejects_file_in_the_way(tmp_path: Path) -> None:
    target = tmp_path / "artifacts"
    target.write_text("not a dir")
    with pytest.raises(DirectoryLifecycleError):
        prepare_artifacts_dir(target, purge=False)


def test_assemble_places_binary_and_manifest(tmp_path: Path) -> None:
    assembler = ArtifactAssembler(tmp_path / "artifacts")
    assembler.prepare()
    bundle = assembler.assemble(
        _unit(tmp_path, "widget-test"),
        UnitKind.TEST,
        _binary(tmp_path, "widget_test", b"\x00asm-widget"),
        b"\xa0",
    )
    assert bundle.name == "Widget.t"
    assert bundle.binary_path == tmp_path / "artifacts" / "Widget.t.wasm"
    assert bundle.binary_path.read_bytes() == b"\x00asm-widget"
    assert bundle.manifest_path.read_bytes() == b"\xa0"
    assert (tmp_path / "out" / "widget_test.wasm").exists()


def test_assemble_requires_prepare(tmp_path: Path) -> None:
    assembler = ArtifactAssembler(tmp_path / "artifacts")
    with pytest.raises(RuntimeError):
        assembler.assemble(_unit(tmp_path, "a"), UnitKind.TARGET, _binary(tmp_path, "a"), b"")


def test_assemble_missing_and_empty_binary(tmp_path: Path) -> None:
    assembler = ArtifactAssembler(tmp_path / "artifacts")
    assembler.prepare()
    with pytest.raises(AssemblyError, match="not found"):
        assembler.assemble(_unit(tmp_path, "a"), UnitKind.TARGET, tmp_path / "nope.wasm", b"")
    with pytest.raises(AssemblyError, match="empty"):
        assembler.assemble(_unit(tmp_path, "b"), UnitKind.TARGET, _binary(tmp_path, "b", b""), b"")
    assert list((tmp_path / "artifacts").iterdir()) == []


def test_assemble_rejects_name_collision(tmp_path: Path) -> None:
    assembler = ArtifactAssembler(tmp_path / "artifacts")
    assembler.prepare()
    assembler.assemble(_unit(tmp_path, "my-actor"), UnitKind.TARGET, _binary(tmp_path, "x"), b"")
    with pytest.raises(AssemblyError, match="already produced by my-actor") as info:
        assembler.assemble(
            _unit(tmp_path, "my_actor"), UnitKind.TARGET, _binary(tmp_path, "y"), b""
        )
    assert info.value.unit == "my_actor"


def test_failed_manifest_write_rolls_back_binary(tmp_path: Path) -> None:
    artifacts = tmp_path / "artifacts"
    assembler = ArtifactAssembler(artifacts)
    assembler.prepare()
    (artifacts / "Widget.cbor").mkdir()
    with pytest.raises(AssemblyError, match="could not write ABI file"):
        assembler.assemble(_unit(tmp_path, "widget"), UnitKind.TARGET, _binary(tmp_path, "w"), b"")
    assert not (artifacts / "Widget.wasm").exists()
