"""Tests for discovering test files and compiling the module graph."""

import os
from pathlib import Path

import pytest

from shtest.collect import ROOT_NAME, compile_graph, discover, load_tests
from shtest.errors import CollectError
from shtest.model import DiscoveryNode, Module

BODY = "@test t {\n    true\n}\n"


def paths(modules):
    return [m.display_path for m in modules]


def test_top_level_files_are_sorted(make_tree):
    root = make_tree({"foo.sht": "", "bar.sht": ""})
    graph = load_tests(root)

    assert paths(graph.iter_modules()) == ["bar", "foo"]
    assert len(graph) == 2


def test_nested_directory_is_a_container(make_tree):
    root = make_tree({"foo.sht": "", "bar.sht": "", "subdir/baz.sht": ""})
    graph = load_tests(root)

    assert paths(graph.iter_modules()) == ["bar", "foo", "subdir", "subdir::baz"]
    assert paths(graph.iter_leaf_modules()) == ["bar", "foo", "subdir::baz"]

    baz = [m for m in graph.iter_leaf_modules() if m.name == "baz"][0]
    assert baz.module_path == ("subdir", "baz")
    assert baz.file == root / "subdir" / "baz.sht"

    subdir = [m for m in graph.iter_modules() if m.name == "subdir"][0]
    assert subdir.file is None
    assert not subdir.is_leaf


def test_ordering_is_componentwise(make_tree):
    root = make_tree({"a/z.sht": "", "a_b.sht": "", "a/b/c.sht": ""})
    graph = load_tests(root)

    assert [m.module_path for m in graph.iter_modules()] == [
        ("a",),
        ("a", "b"),
        ("a", "b", "c"),
        ("a", "z"),
        ("a_b",),
    ]


def test_only_test_extension_is_a_leaf(make_tree):
    root = make_tree({"foo.sht": "", "notes.txt": "hello", "README": ""})
    graph = load_tests(root)

    assert paths(graph.iter_modules()) == ["foo"]


def test_custom_extension(make_tree):
    root = make_tree({"foo.b": "", "bar.sht": ""})
    graph = load_tests(root, file_extension="b")

    assert paths(graph.iter_leaf_modules()) == ["foo"]


def test_empty_siblings_are_pruned(make_tree):
    root = make_tree({"foo.sht": "", "empty/": "", "other/only.txt": ""})
    graph = load_tests(root)

    assert paths(graph.iter_modules()) == ["foo"]
    assert paths(graph.iter_leaf_modules()) == ["foo"]


def test_pruning_reaches_a_fixed_point(make_tree):
    root = make_tree({"keep/x.sht": "", "a/b/c/d/": "", "a/b/junk.txt": ""})
    graph = load_tests(root)

    assert paths(graph.iter_modules()) == ["keep", "keep::x"]


def test_only_empty_directories_is_empty(make_tree):
    root = make_tree({"one/": "", "two/three/": ""})

    with pytest.raises(CollectError) as exc_info:
        load_tests(root)
    assert exc_info.value.kind == "empty"


def test_empty_root_is_empty(tmp_path: Path):
    with pytest.raises(CollectError) as exc_info:
        load_tests(tmp_path)
    assert exc_info.value.kind == "empty"


def test_missing_root_is_empty(tmp_path: Path):
    with pytest.raises(CollectError) as exc_info:
        load_tests(tmp_path / "does-not-exist")
    assert exc_info.value.kind == "empty"


def test_root_file_is_not_a_leaf(tmp_path: Path):
    root = tmp_path / "single.sht"
    root.write_text(BODY)

    with pytest.raises(CollectError) as exc_info:
        load_tests(root)
    assert exc_info.value.kind == "read_root_dir"
    assert exc_info.value.path == root


@pytest.mark.skipif(os.name != "posix" or os.geteuid() == 0, reason="needs POSIX permissions, non-root")
def test_unreadable_subdirectory_is_a_walk_error(make_tree):
    root = make_tree({"foo.sht": "", "locked/bar.sht": ""})
    locked = root / "locked"
    locked.chmod(0)
    try:
        with pytest.raises(CollectError) as exc_info:
            load_tests(root)
    finally:
        locked.chmod(0o755)
    assert exc_info.value.kind == "walk"
    assert isinstance(exc_info.value.__cause__, OSError)


def test_discover_records_root_and_edges(make_tree):
    root = make_tree({"sub/a.sht": "", "b.txt": ""})
    nodes, adj = discover(root)

    assert nodes[0].name == ROOT_NAME
    assert nodes[0].source_path == root
    assert not nodes[0].is_leaf_file

    by_name = {n.name: i for i, n in enumerate(nodes)}
    assert by_name["sub"] in adj[0]
    assert by_name["b.txt"] in adj[0]
    assert adj[by_name["sub"]] == [by_name["a"]]
    assert nodes[by_name["a"]].is_leaf_file
    assert not nodes[by_name["b.txt"]].is_leaf_file


def test_cycle_is_an_internal_error(tmp_path: Path):
    nodes = [
        DiscoveryNode(ROOT_NAME, False, tmp_path),
        DiscoveryNode("a", False, tmp_path / "a"),
        DiscoveryNode("b", False, tmp_path / "a" / "b"),
        DiscoveryNode("t", True, tmp_path / "a" / "b" / "t.sht"),
    ]
    # a <-> b form a loop detached from the root
    adj = {0: [], 1: [2], 2: [1, 3], 3: []}

    with pytest.raises(CollectError) as exc_info:
        compile_graph(nodes, adj)
    assert exc_info.value.kind == "internal"


def test_children_view(make_tree):
    root = make_tree({"x.sht": "", "dir/b.sht": "", "dir/a.sht": ""})
    graph = load_tests(root)

    assert paths(graph.children()) == ["dir", "x"]
    assert paths(graph.children(Module(("dir",)))) == ["dir::a", "dir::b"]
    assert graph.leaf_count == 3
    assert Module(("dir", "a")) in graph

    with pytest.raises(KeyError):
        graph.children(Module(("nope",)))


def test_modules_compare_by_path(tmp_path: Path):
    assert Module(("a", "b"), tmp_path / "x") == Module(("a", "b"), None)
    assert hash(Module(("a",), tmp_path)) == hash(Module(("a",)))


def test_ordering_is_stable_across_runs(make_tree):
    root = make_tree({"c.sht": "", "a/b.sht": "", "b.sht": "", "a/a.sht": ""})

    first = [m.module_path for m in load_tests(root).iter_modules()]
    second = [m.module_path for m in load_tests(root).iter_modules()]
    assert first == second


def test_acyclic_check_rejects_loops():
    from shtest import collect

    collect._check_acyclic([[1, 2], [], [3], []])
    with pytest.raises(CollectError) as exc_info:
        collect._check_acyclic([[1], [2], [1]])
    assert exc_info.value.kind == "internal"


def test_file_and_directory_with_same_name_are_rejected(make_tree):
    root = make_tree({"foo.sht": BODY, "foo/bar.sht": BODY})

    with pytest.raises(CollectError) as exc_info:
        load_tests(root)
    err = exc_info.value
    assert err.kind == "duplicate"
    assert err.path == root
    assert "'foo'" in err.message and "'foo.sht'" in err.message


def test_same_name_in_different_directories_is_fine(make_tree):
    root = make_tree({"a/x.sht": BODY, "b/x.sht": BODY})
    graph = load_tests(root)

    paths_seen = [m.module_path for m in graph.iter_modules()]
    assert len(paths_seen) == len(set(paths_seen)) == 4


@pytest.mark.skipif(os.name != "posix", reason="needs symlinks")
def test_dangling_test_file_link_is_a_walk_error(make_tree):
    root = make_tree({"ok.sht": BODY})
    (root / "gone.sht").symlink_to(root / "missing-target.sht")

    with pytest.raises(CollectError) as exc_info:
        load_tests(root)
    assert exc_info.value.kind == "walk"
    assert exc_info.value.path == root / "gone.sht"
    assert isinstance(exc_info.value.__cause__, OSError)


@pytest.mark.skipif(os.name != "posix", reason="needs symlinks")
def test_dangling_link_without_test_extension_is_ignored(make_tree):
    root = make_tree({"ok.sht": BODY})
    (root / "notes.txt").symlink_to(root / "missing-target.txt")

    assert paths(load_tests(root).iter_modules()) == ["ok"]
