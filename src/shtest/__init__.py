from .collect import ModuleGraph, load_tests
from .generate import generate_test_jobs
from .model import Job, Module, Test
from .parser import parse_test_file, parse_tests

__all__ = ["ModuleGraph", "load_tests", "generate_test_jobs", "Job", "Module", "Test", "parse_test_file", "parse_tests"]
