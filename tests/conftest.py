from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path

import pytest

from actorbundle.config import AppConfig, CompilerSettings, NamingSettings, default_paths

FAKE_CARGO = Path(__file__).with_name("fake_cargo.py")

HELLO_WORLD_SOURCE = """\
use frc42_dispatch::match_method;
use fvm_sdk::NO_DATA_BLOCK_ID;

#[no_mangle]
fn invoke(_input: u32) -> u32 {
    let method_num = fvm_sdk::message::method_number();
    match_method!(
        method_num,
        {
            "Constructor" => {
                Constructor();
                NO_DATA_BLOCK_ID
            },
            "HelloWorld" => {
                HelloWorld()
            },
            _ => {
                fvm_sdk::vm::abort(
                    ExitCode::USR_UNHANDLED_MESSAGE.value(),
                    Some("Unknown method number"),
                );
            }
        }
    )
}

#[allow(non_snake_case)]
fn HelloWorld() -> u32 {
    let state = ActorState::load(&fvm_sdk::sself::root().unwrap());
    return_ipld(&state.who_am_i).unwrap()
}
"""

TEST_DRIVER_SOURCE = """\
#[no_mangle]
fn invoke(input: u32) -> u32 {
    std::panic::set_hook(Box::new(|info| {
        fvm_sdk::vm::exit(ExitCode::USR_ASSERTION_FAILED.value(), None, Some(&format!("{info}")))
    }));

    let method_num = fvm_sdk::message::method_number();
    match_method!(
        method_num,
        {
            "Constructor" => {
                Constructor();
                NO_DATA_BLOCK_ID
            },
            "SetUp" => {
                SetUp();
                NO_DATA_BLOCK_ID
            },
            "TestConstructorSetup" => {
                TestConstructorSetup();
                NO_DATA_BLOCK_ID
            },
            "TestMethodParameter" => {
                TestMethodParameter(input)
            },
            _ => {
                fvm_sdk::vm::abort(
                    ExitCode::USR_UNHANDLED_MESSAGE.value(),
                    Some("Unknown method number"),
                );
            }
        }
    )
}
"""

NO_ENTRY_SOURCE = """\
fn not_invoke() -> u32 {
    0
}
"""

WorkspaceFactory = Callable[..., Path]


def write_unit(parent: Path, dirname: str, source: str, name: str | None = None) -> Path:
    unit_dir = parent / dirname
    (unit_dir / "src").mkdir(parents=True, exist_ok=True)
    (unit_dir / "Cargo.toml").write_text(
        f'[package]\nname = "{name or dirname}"\nversion = "0.1.0"\nedition = "2021"\n'
    )
    (unit_dir / "src" / "actor.rs").write_text(source)
    return unit_dir


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceFactory:
    def _make(
        targets: dict[str, str] | None = None,
        tests: dict[str, str] | None = None,
    ) -> Path:
        root = tmp_path / "ws"
        root.mkdir(exist_ok=True)
        (root / "Cargo.toml").write_text('[workspace]\nmembers = ["actors/*", "tests/*"]\n')
        (root / "actors").mkdir(exist_ok=True)
        (root / "tests").mkdir(exist_ok=True)
        if targets is None:
            targets = {"hello-world": HELLO_WORLD_SOURCE}
        if tests is None:
            tests = {"hello-world-test": TEST_DRIVER_SOURCE}
        for dirname, source in targets.items():
            write_unit(root / "actors", dirname, source)
        for dirname, source in tests.items():
            write_unit(root / "tests", dirname, source)
        return root

    return _make


def fake_compiler(**env: str) -> CompilerSettings:
    return CompilerSettings(
        command=(sys.executable, str(FAKE_CARGO)),
        extra_env=dict(env),
    )


def make_config(root: Path, compiler: CompilerSettings | None = None) -> AppConfig:
    return AppConfig(
        paths=default_paths(root),
        compiler=compiler or fake_compiler(),
        naming=NamingSettings(),
    )


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in (
        "ACTORBUNDLE_ARTIFACTS_DIR",
        "ACTORBUNDLE_BUILD_DIR",
        "ACTORBUNDLE_TARGETS_DIR",
        "ACTORBUNDLE_TESTS_DIR",
        "ACTORBUNDLE_PROFILE",
        "ACTORBUNDLE_TARGET",
        "ACTORBUNDLE_BUILD_TIMEOUT",
        "CARGO",
    ):
        monkeypatch.delenv(key, raising=False)
