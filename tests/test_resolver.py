"""Tests for the configuration resolver."""

import pytest

from devshell.core.declaration import DependencySpec, PlatformKind
from devshell.core.errors import MissingTemplateSource, UnknownPlatform
from devshell.core.resolver import (
    LiteralRule,
    PathListRule,
    TemplateRule,
    default_rules,
    evaluate_rules,
    resolve,
)


def _names(dependencies: tuple[DependencySpec, ...]) -> list[str]:
    return [spec.name for spec in dependencies]


def _rules() -> list:
    return default_rules(
        toolchain_prefix="/store/llvm-10.0.1",
        library_dirs=["/store/libcxx/lib", "/store/libunwind/lib"],
        bin_dir="/project/nix/bin",
    )


def test_macos_selects_mac_group(groups) -> None:
    dependencies, _ = resolve(PlatformKind.MACOS, *groups)
    assert _names(dependencies) == ["A", "B", "C"]


def test_linux_selects_linux_group(groups) -> None:
    dependencies, _ = resolve(PlatformKind.LINUX, *groups)
    assert _names(dependencies) == ["A", "B", "D", "E"]


def test_other_selects_base_only(groups) -> None:
    dependencies, _ = resolve(PlatformKind.OTHER, *groups)
    assert _names(dependencies) == ["A", "B"]


def test_platform_string_is_accepted(groups) -> None:
    dependencies, _ = resolve("linux", *groups)
    assert _names(dependencies) == ["A", "B", "D", "E"]


def test_plain_sequences_are_accepted() -> None:
    base = [DependencySpec("git")]
    mac = (DependencySpec("Metal"),)
    dependencies, environment = resolve("macos", base, mac, [])
    assert _names(dependencies) == ["git", "Metal"]
    assert environment == {}


@pytest.mark.parametrize("platform", list(PlatformKind))
def test_empty_groups_yield_empty_set(platform: PlatformKind) -> None:
    dependencies, _ = resolve(platform, [], [], [])
    assert dependencies == ()


def test_unknown_platform(groups) -> None:
    with pytest.raises(UnknownPlatform) as exc_info:
        resolve("windows", *groups)
    assert exc_info.value.platform == "windows"
    assert "windows" in str(exc_info.value)


def test_unknown_platform_non_string(groups) -> None:
    with pytest.raises(UnknownPlatform):
        resolve(42, *groups)  # type: ignore[arg-type]


@pytest.mark.parametrize("platform", list(PlatformKind))
def test_resolve_is_deterministic(groups, platform: PlatformKind) -> None:
    prior = {"PATH": "/usr/bin", "LD_LIBRARY_PATH": "/opt/lib"}
    first = resolve(platform, *groups, rules=_rules(), prior_env=prior)
    second = resolve(platform, *groups, rules=_rules(), prior_env=dict(prior))
    assert first == second
    assert list(first[1]) == list(second[1])


def test_default_environment() -> None:
    prior = {"PATH": "/usr/bin", "LD_LIBRARY_PATH": "/opt/lib"}
    _, environment = resolve("linux", [], [], [], rules=_rules(), prior_env=prior)
    assert environment == {
        "LLVM_SYS_100_PREFIX": "/store/llvm-10.0.1",
        "APPEND_LIBRARY_PATH": "/store/libcxx/lib:/store/libunwind/lib",
        "LD_LIBRARY_PATH": "/opt/lib:/store/libcxx/lib:/store/libunwind/lib",
        "PATH": "/usr/bin:/project/nix/bin",
    }


def test_environment_keeps_rule_order() -> None:
    _, environment = resolve("macos", [], [], [], rules=_rules())
    assert list(environment) == [
        "LLVM_SYS_100_PREFIX",
        "APPEND_LIBRARY_PATH",
        "LD_LIBRARY_PATH",
        "PATH",
    ]


def test_path_appends_after_prior_value() -> None:
    rules = [PathListRule("PATH", ("/extra/bin",), inherit=True)]
    _, environment = resolve("linux", [], [], [], rules=rules, prior_env={"PATH": "/usr/bin"})
    assert environment["PATH"] == "/usr/bin:/extra/bin"


def test_inherit_without_prior_value() -> None:
    rules = [PathListRule("PATH", ("/extra/bin",), inherit=True)]
    _, environment = resolve("linux", [], [], [], rules=rules, prior_env={})
    assert environment["PATH"] == "/extra/bin"


def test_inherit_with_empty_prior_value() -> None:
    rules = [PathListRule("PATH", ("/extra/bin",), inherit=True)]
    _, environment = resolve("linux", [], [], [], rules=rules, prior_env={"PATH": ""})
    assert environment["PATH"] == "/extra/bin"


def test_non_inheriting_rule_ignores_prior_value() -> None:
    rules = [PathListRule("APPEND_LIBRARY_PATH", ("/a/lib",))]
    prior = {"APPEND_LIBRARY_PATH": "/old/lib"}
    _, environment = resolve("linux", [], [], [], rules=rules, prior_env=prior)
    assert environment["APPEND_LIBRARY_PATH"] == "/a/lib"


def test_chained_resolution_duplicates_append() -> None:
    prior = {"LD_LIBRARY_PATH": "/opt/lib"}
    append = "/store/libcxx/lib:/store/libunwind/lib"
    for _ in range(3):
        _, environment = resolve("linux", [], [], [], rules=_rules(), prior_env=prior)
        prior = {"LD_LIBRARY_PATH": environment["LD_LIBRARY_PATH"]}

    ld_library_path = prior["LD_LIBRARY_PATH"]
    assert ld_library_path.startswith("/opt/lib:")
    assert ld_library_path.count(append) == 3
    assert ld_library_path == ":".join(["/opt/lib", append, append, append])


def test_resolve_does_not_mutate_prior_env() -> None:
    prior = {"PATH": "/usr/bin"}
    resolve("linux", [], [], [], rules=_rules(), prior_env=prior)
    assert prior == {"PATH": "/usr/bin"}


def test_empty_library_dirs() -> None:
    rules = default_rules("/store/llvm", [], "/p/nix/bin")
    _, environment = resolve("macos", [], [], [], rules=rules, prior_env={"LD_LIBRARY_PATH": "/x"})
    assert environment["APPEND_LIBRARY_PATH"] == ""
    assert environment["LD_LIBRARY_PATH"] == "/x"


def test_llvm_version_in_variable_name() -> None:
    rules = default_rules("/store/llvm-11", [], "/p/nix/bin", llvm_version="110")
    _, environment = resolve("linux", [], [], [], rules=rules)
    assert environment["LLVM_SYS_110_PREFIX"] == "/store/llvm-11"


def test_literal_rule() -> None:
    environment = evaluate_rules([LiteralRule("CC", "clang")])
    assert environment == {"CC": "clang"}


def test_template_rule_substitutes_prior_resolved_value() -> None:
    rules = [
        LiteralRule("LLVM_SYS_100_PREFIX", "/store/llvm"),
        TemplateRule("LLVM_CONFIG", "${LLVM_SYS_100_PREFIX}/bin/llvm-config"),
    ]
    environment = evaluate_rules(rules)
    assert environment["LLVM_CONFIG"] == "/store/llvm/bin/llvm-config"


def test_template_rule_source() -> None:
    rule = TemplateRule("LLVM_CONFIG", "$PREFIX/bin/llvm-config")
    assert rule.source == "PREFIX"


def test_template_rule_missing_source() -> None:
    rules = [TemplateRule("LLVM_CONFIG", "${LLVM_SYS_100_PREFIX}/bin/llvm-config")]
    with pytest.raises(MissingTemplateSource) as exc_info:
        evaluate_rules(rules)
    assert exc_info.value.variable == "LLVM_CONFIG"
    assert exc_info.value.missing == "LLVM_SYS_100_PREFIX"


def test_template_source_must_come_earlier() -> None:
    rules = [
        PathListRule("LD_LIBRARY_PATH", ("${APPEND_LIBRARY_PATH}",), inherit=True),
        PathListRule("APPEND_LIBRARY_PATH", ("/a/lib",)),
    ]
    with pytest.raises(MissingTemplateSource) as exc_info:
        resolve("linux", [], [], [], rules=rules)
    assert "LD_LIBRARY_PATH" in str(exc_info.value)
    assert "APPEND_LIBRARY_PATH" in str(exc_info.value)


def test_template_rule_does_not_read_prior_env() -> None:
    rules = [TemplateRule("X", "$HOME/x")]
    with pytest.raises(MissingTemplateSource):
        evaluate_rules(rules, prior_env={"HOME": "/home/me"})


@pytest.mark.parametrize("template", ["no references", "$A and $B"])
def test_template_rule_requires_single_reference(template: str) -> None:
    with pytest.raises(ValueError):
        TemplateRule("X", template)


def test_duplicate_rule_names_rejected() -> None:
    with pytest.raises(ValueError):
        evaluate_rules([LiteralRule("X", "1"), LiteralRule("X", "2")])


def test_other_platform_uses_host_separator() -> None:
    import os

    rules = [PathListRule("P", ("/a", "/b"))]
    _, environment = resolve("other", [], [], [], rules=rules)
    assert environment["P"] == f"/a{os.pathsep}/b"


def test_dollar_in_bin_dir_is_literal() -> None:
    rules = default_rules("/store/llvm", ["/store/a/lib"], "/home/me/my$proj/nix/bin")
    _, environment = resolve("linux", [], [], [], rules=rules, prior_env={"PATH": "/usr/bin"})
    assert environment["PATH"] == "/usr/bin:/home/me/my$proj/nix/bin"


def test_dollar_in_library_dir_is_literal() -> None:
    rules = default_rules("/store/llvm", ["/store/a$1/lib", "/store/${b}/lib"], "/p/nix/bin")
    prior = {"LD_LIBRARY_PATH": "/opt/lib"}
    _, environment = resolve("linux", [], [], [], rules=rules, prior_env=prior)
    assert environment["APPEND_LIBRARY_PATH"] == "/store/a$1/lib:/store/${b}/lib"
    assert environment["LD_LIBRARY_PATH"] == "/opt/lib:/store/a$1/lib:/store/${b}/lib"


def test_dollar_in_toolchain_prefix_is_literal() -> None:
    rules = default_rules("/store/$llvm", [], "/p/nix/bin")
    _, environment = resolve("macos", [], [], [], rules=rules)
    assert environment["LLVM_SYS_100_PREFIX"] == "/store/$llvm"
