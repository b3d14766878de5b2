# generate.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

from .collect import ModuleGraph
from .errors import DuplicateJobError, WriteError
from .model import Job, Module, Test
from .parser import parse_test_file
from .ui.console import get_console

SHEBANG = "#!/usr/bin/env bash"
SCRIPT_RUNNER = "bash"


@dataclass(frozen=True)
class ModuleTests:
    """The module path of a module and the parsed tests that it contained."""
    module_path: Tuple[str, ...]
    tests: List[Test]


@dataclass(frozen=True)
class TestJob:
    """
    Everything needed to write one test script and describe its job.

    module_path includes the test name as its final component.
    """

    name: str
    module_path: Tuple[str, ...]
    script_path: Path
    script_contents: str

    def to_job(self) -> Job:
        return Job(
            name="_".join(self.module_path),
            args=(SCRIPT_RUNNER, str(self.script_path)),
            envs={},
        )


def load_module_tests(module: Module) -> ModuleTests:
    """Parse the tests associated with a leaf module."""
    if module.file is None:
        raise ValueError(f"module '{module.display_path}' has no test file")
    tests = parse_test_file(module.file)
    get_console().print_debug(f"parsed {len(tests)} test(s) from {module.file}")
    return ModuleTests(module_path=module.module_path, tests=tests)


def module_test_file_name(module_path: Tuple[str, ...] | List[str]) -> str:
    """
    Returns the filename of a generated test script.

    Each component of the path is joined with `_` and the result is
    wrapped as `test_<joined>.sh`.
    """
    return f"test_{'_'.join(module_path)}.sh"


def transform_body(body: str) -> str:
    """Turn a test body into a bash script."""
    return f"{SHEBANG}\n\n{body}"


def module_test_jobs(out_dir: Path, module_tests: ModuleTests) -> List[TestJob]:
    test_jobs: List[TestJob] = []
    for test in module_tests.tests:
        full_path = module_tests.module_path + (test.name,)
        test_jobs.append(
            TestJob(
                name=test.name,
                module_path=full_path,
                script_path=out_dir / module_test_file_name(full_path),
                script_contents=transform_body(test.body),
            )
        )
    return test_jobs


def make_test_jobs(out_dir: str | Path, modules: ModuleGraph) -> List[TestJob]:
    """Parse every leaf module (in path order) and lay out its test jobs."""
    out = Path(out_dir)
    tests_by_module = [load_module_tests(m) for m in modules.iter_leaf_modules()]
    test_jobs: List[TestJob] = []
    for module_tests in tests_by_module:
        test_jobs.extend(module_test_jobs(out, module_tests))
    return test_jobs


def check_unique_jobs(test_jobs: List[TestJob]) -> None:
    """
    Reject tests that would share a job name (and therefore a script file).

    e.g. module `a_b` test `c` and module `a` test `b_c` both become `a_b_c`.
    """
    names = ["_".join(tj.module_path) for tj in test_jobs]
    if len(set(names)) != len(names):
        dupes = sorted({n for n in names if names.count(n) > 1})
        raise DuplicateJobError(names=dupes)


def write_test_scripts(out_dir: str | Path, test_jobs: List[TestJob]) -> None:
    """Write the generated scripts, overwriting whatever is there."""
    out = Path(out_dir)
    try:
        out.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise WriteError(path=out, reason=str(e)) from e

    for tj in test_jobs:
        try:
            # newline="" writes body line endings exactly as parsed
            with open(tj.script_path, "w", encoding="utf-8", newline="") as f:
                f.write(tj.script_contents)
        except OSError as e:
            raise WriteError(path=tj.script_path, reason=str(e)) from e
        get_console().print_debug(f"wrote {tj.script_path}")


def generate_test_jobs(out_dir: str | Path, module_graph: ModuleGraph) -> List[Job]:
    """
    Generate a list of jobs from the graph of test modules.

    All test files are parsed and job names checked for collisions before
    any script is written. Any parse, duplicate or write error aborts the
    whole run; scripts already written stay on disk.
    """
    test_jobs = make_test_jobs(out_dir, module_graph)
    check_unique_jobs(test_jobs)
    write_test_scripts(out_dir, test_jobs)
    return [tj.to_job() for tj in test_jobs]
