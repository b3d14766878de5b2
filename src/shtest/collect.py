# collect.py
from __future__ import annotations

import os
import stat
from collections import deque
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from .errors import DUPLICATE, EMPTY, INTERNAL, READ_ROOT_DIR, WALK, CollectError
from .model import DiscoveryNode, Module
from .ui.console import get_console

# The extension (without the dot) of a test file.
FILE_EXTENSION = "sht"

# Name given to the synthetic root node (the test directory itself).
ROOT_NAME = "root"
ROOT = 0


def _raise(err: OSError) -> None:
    # os.walk swallows errors unless onerror re-raises them
    raise err


# ----------------------------------------------------------------------
# Discovery
# ----------------------------------------------------------------------

def discover(
    root_path: str | Path,
    *,
    file_extension: str = FILE_EXTENSION,
) -> Tuple[List[DiscoveryNode], Dict[int, List[int]]]:
    """
    Walk root_path and record one DiscoveryNode per filesystem entry.

    Returns (nodes, adj) where nodes[0] is the root and adj maps a node
    index to the indices of its children (parent -> child edges come from
    path containment).
    """
    root = Path(root_path)
    if not root.exists():
        raise CollectError(EMPTY, "no tests found", root)

    suffix = "." + file_extension.lstrip(".")
    nodes: List[DiscoveryNode] = [
        DiscoveryNode(name=ROOT_NAME, is_leaf_file=False, source_path=root)
    ]
    path_to_node: Dict[Path, int] = {root: ROOT}
    adj: Dict[int, List[int]] = {ROOT: []}

    def add(path: Path, *, maybe_file: bool) -> None:
        # stat errors propagate and surface as a walk error
        is_leaf = (
            maybe_file
            and path.suffix == suffix
            and stat.S_ISREG(os.stat(path).st_mode)
        )
        node = DiscoveryNode(
            name=path.stem if is_leaf else path.name,
            is_leaf_file=is_leaf,
            source_path=path,
        )
        idx = len(nodes)
        nodes.append(node)
        path_to_node[path] = idx
        adj[idx] = []
        parent = path_to_node.get(path.parent)
        if parent is not None:
            adj[parent].append(idx)

    try:
        for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
            # deterministic discovery order; views are sorted regardless
            dirnames.sort()
            base = Path(dirpath)
            for name in dirnames:
                add(base / name, maybe_file=False)
            for name in sorted(filenames):
                add(base / name, maybe_file=True)
    except OSError as e:
        failed = Path(e.filename) if e.filename is not None else None
        if failed is not None and failed == root:
            raise CollectError(
                READ_ROOT_DIR, "failed to read tests from directory", root
            ) from e
        raise CollectError(WALK, "failed to access test file or directory", failed) from e

    get_console().print_debug(f"discovered {len(nodes) - 1} entries under {root}")
    return nodes, adj


# ----------------------------------------------------------------------
# Compilation
# ----------------------------------------------------------------------

def _parents(adj: Dict[int, List[int]], count: int) -> List[Optional[int]]:
    parent: List[Optional[int]] = [None] * count
    for p, children in adj.items():
        for c in children:
            if parent[c] is not None:
                raise CollectError(INTERNAL, f"internal error: node {c} has more than one parent")
            parent[c] = p
    return parent


def _depths(adj: Dict[int, List[int]], count: int) -> List[int]:
    depth = [-1] * count
    depth[ROOT] = 0
    q = deque([ROOT])
    while q:
        node = q.popleft()
        for child in adj.get(node, []):
            if depth[child] == -1:
                depth[child] = depth[node] + 1
                q.append(child)
    if any(d == -1 for d in depth):
        orphans = [i for i, d in enumerate(depth) if d == -1]
        raise CollectError(INTERNAL, f"internal error: nodes unreachable from root: {orphans}")
    return depth


def _prune(
    nodes: List[DiscoveryNode],
    adj: Dict[int, List[int]],
) -> List[bool]:
    """
    Mark which nodes survive pruning.

    A non-root node with no children and no test file is dropped. Nodes are
    visited deepest-first so a directory emptied by pruning its children is
    itself dropped in the same pass.
    """
    count = len(nodes)
    parent = _parents(adj, count)
    depth = _depths(adj, count)
    remaining = [len(adj.get(i, [])) for i in range(count)]
    alive = [True] * count

    for idx in sorted(range(1, count), key=lambda i: depth[i], reverse=True):
        if nodes[idx].is_leaf_file:
            continue
        if remaining[idx] == 0:
            alive[idx] = False
            p = parent[idx]
            if p is not None:
                remaining[p] -= 1

    get_console().print_debug(f"pruned {alive.count(False)} empty entries")
    return alive


def _check_acyclic(children: List[List[int]]) -> None:
    indeg = [0] * len(children)
    for kids in children:
        for c in kids:
            indeg[c] += 1

    q = deque(i for i, d in enumerate(indeg) if d == 0)
    processed = 0
    while q:
        node = q.popleft()
        processed += 1
        for child in children[node]:
            indeg[child] -= 1
            if indeg[child] == 0:
                q.append(child)

    if processed != len(children):
        raise CollectError(INTERNAL, "internal error: cycle detected constructing module graph")


def _check_unique_names(kept: List[DiscoveryNode], children: List[List[int]]) -> None:
    """Siblings must map to distinct module names (e.g. not both `foo/` and `foo.sht`)."""
    for parent, kids in enumerate(children):
        seen: Dict[str, int] = {}
        for c in kids:
            name = kept[c].name
            if name in seen:
                first = kept[seen[name]].source_path.name
                raise CollectError(
                    DUPLICATE,
                    f"entries '{first}' and '{kept[c].source_path.name}' both map to module '{name}' in directory",
                    kept[parent].source_path,
                )
            seen[name] = c


def _module_paths(children: List[List[int]], is_leaf: List[bool]) -> List[Tuple[int, ...]]:
    """Depth-first (stack based) walk from the root recording ancestor chains."""
    paths: List[Tuple[int, ...]] = [()] * len(children)
    stack: List[Tuple[Tuple[int, ...], int]] = [((ROOT,), ROOT)]
    while stack:
        path, node = stack.pop()
        paths[node] = path
        if is_leaf[node]:
            continue
        for child in children[node]:
            stack.append((path + (child,), child))
    return paths


def compile_graph(
    nodes: List[DiscoveryNode],
    adj: Dict[int, List[int]],
) -> ModuleGraph:
    """Prune, verify and resolve module paths for a discovery graph."""
    if not nodes:
        raise CollectError(EMPTY, "no tests found")

    alive = _prune(nodes, adj)

    # Re-index survivors into a compact arena; the root stays at index 0.
    new_index: Dict[int, int] = {}
    kept: List[DiscoveryNode] = []
    for old, node in enumerate(nodes):
        if alive[old]:
            new_index[old] = len(kept)
            kept.append(node)
    children: List[List[int]] = [
        [new_index[c] for c in adj.get(old, []) if alive[c]]
        for old in range(len(nodes))
        if alive[old]
    ]

    _check_acyclic(children)
    _check_unique_names(kept, children)

    if not children[ROOT]:
        raise CollectError(EMPTY, "no tests found", nodes[ROOT].source_path)

    is_leaf = [node.is_leaf_file and i != ROOT for i, node in enumerate(kept)]
    for i, leaf in enumerate(is_leaf):
        if leaf and children[i]:
            raise CollectError(INTERNAL, f"internal error: test file '{kept[i].source_path}' has children")

    paths = _module_paths(children, is_leaf)
    modules = [
        Module(
            module_path=tuple(kept[n].name for n in paths[i][1:]),
            file=kept[i].source_path if is_leaf[i] else None,
        )
        for i in range(len(kept))
    ]
    return ModuleGraph(modules, children)


def load_tests(
    root_path: str | Path,
    *,
    file_extension: str = FILE_EXTENSION,
) -> ModuleGraph:
    """Load a module graph rooted in a particular directory."""
    nodes, adj = discover(root_path, file_extension=file_extension)
    return compile_graph(nodes, adj)


# ----------------------------------------------------------------------
# Module graph
# ----------------------------------------------------------------------

class ModuleGraph:
    """
    The compiled test suite: an arena of modules plus child index lists.

    Index 0 is the synthetic root; it has no file, no module path and is
    never returned from any of the views below.
    """

    def __init__(self, modules: List[Module], children: List[List[int]]):
        self._modules = modules
        self._children = children
        self._index = {m.module_path: i for i, m in enumerate(modules) if i != ROOT}

    def __len__(self) -> int:
        return len(self._modules) - 1

    def __contains__(self, module: object) -> bool:
        return isinstance(module, Module) and module.module_path in self._index

    def _sorted(self, indices) -> List[Module]:
        return sorted((self._modules[i] for i in indices), key=lambda m: m.module_path)

    def iter_modules(self) -> Iterator[Module]:
        """
        Iterate over every module, sorted by module path.

        This includes directories that hold no tests themselves. To only
        iterate over test files, see `iter_leaf_modules`.
        """
        return iter(self._sorted(range(1, len(self._modules))))

    def iter_leaf_modules(self) -> Iterator[Module]:
        """Iterate over the modules backed by a test file, sorted by module path."""
        return iter(self._sorted(i for i in range(1, len(self._modules)) if self._modules[i].is_leaf))

    def children(self, module: Optional[Module] = None) -> List[Module]:
        """Direct children of module (or the top-level modules when None)."""
        if module is None:
            idx = ROOT
        else:
            try:
                idx = self._index[module.module_path]
            except KeyError:
                raise KeyError(f"module not in graph: {module.display_path}") from None
        return self._sorted(self._children[idx])

    @property
    def leaf_count(self) -> int:
        return sum(1 for m in self._modules[1:] if m.is_leaf)
