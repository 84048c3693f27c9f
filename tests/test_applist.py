from __future__ import annotations

import logging
import random
from pathlib import Path

from relwrap.analyze.applist import build_app_list
from relwrap.analyze.versions import SENTINEL_VERSION, DependencyEntry


def _table(*entries):
    return {name: DependencyEntry(version, Path("/build") / name) for name, version in entries}


def test_order_is_foundation_platform_deps_main(static_index, install_platform_app) -> None:
    install_platform_app("crypto", "5.4")
    table = _table(("svc", "1.0.0"), ("lib_b", "0.2"), ("lib_a", "2.3.0"))

    apps = build_app_list("svc", table, {"crypto"}, static_index)

    assert apps == [
        ("kernel", "9.2"),
        ("stdlib", "5.2"),
        ("crypto", "5.4"),
        ("lib_b", "0.2"),
        ("lib_a", "2.3.0"),
        ("svc", "1.0.0"),
    ]


def test_explicit_dependency_version_wins(static_index, install_platform_app) -> None:
    install_platform_app("crypto", "5.4")
    table = _table(("svc", "1.0.0"), ("crypto", "5.3"), ("kernel", "9.1"))

    apps = build_app_list("svc", table, {"crypto"}, static_index)

    assert apps == [
        ("kernel", "9.1"),
        ("stdlib", "5.2"),
        ("crypto", "5.3"),
        ("svc", "1.0.0"),
    ]


def test_missing_platform_library_is_excluded_with_warning(static_index, caplog) -> None:
    table = _table(("svc", "1.0.0"))

    with caplog.at_level(logging.WARNING):
        apps = build_app_list("svc", table, {"ghost"}, static_index)

    assert [name for name, _ in apps] == ["kernel", "stdlib", "svc"]
    assert "ghost" in caplog.text


def test_unresolvable_foundation_uses_sentinel() -> None:
    from relwrap.runtime.index import StaticLibraryIndex

    apps = build_app_list("svc", _table(("svc", "1.0.0")), set(), StaticLibraryIndex({}))

    assert apps[0] == ("kernel", SENTINEL_VERSION)
    assert apps[1] == ("stdlib", SENTINEL_VERSION)


def test_list_is_deterministic_without_duplicates(static_index, install_platform_app) -> None:
    for name in ("crypto", "ssl", "asn1", "public_key"):
        install_platform_app(name, "1.0")
    table = _table(
        ("svc", "1.0.0"), ("lib_a", "1"), ("ssl", "2.0"), ("stdlib", "5.2"), ("lib_c", "3")
    )
    platform = ["public_key", "ssl", "crypto", "asn1", "lib_a"]

    first = build_app_list("svc", table, platform, static_index)
    for _ in range(5):
        shuffled = platform[:]
        random.shuffle(shuffled)
        assert build_app_list("svc", table, shuffled, static_index) == first

    names = [name for name, _ in first]
    assert len(names) == len(set(names))
    assert names[:2] == ["kernel", "stdlib"]
    assert names[-1] == "svc"


def test_main_is_last_even_when_requested_as_platform_library(static_index) -> None:
    table = _table(("svc", "1.0.0"), ("lib_a", "1"))

    apps = build_app_list("svc", table, {"svc"}, static_index)

    assert apps[-1] == ("svc", "1.0.0")
    assert [name for name, _ in apps].count("svc") == 1
