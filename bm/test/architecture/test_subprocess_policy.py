from __future__ import annotations

import ast

from ._gate import require_arch_checks_enabled
from ._utils import bm_root, iter_source_files, read_tree


def _direct_subprocess_calls(tree: ast.AST) -> list[int]:
    lines: list[int] = []
    for node in ast.walk(tree):
        if not isinstance(node, ast.Call) or not isinstance(node.func, ast.Attribute):
            continue
        func = node.func
        if func.attr in {"run", "check_output", "Popen"} and isinstance(func.value, ast.Name) and func.value.id == "subprocess":
            lines.append(node.lineno)
    return lines


def test_subprocess_only_in_process_runner() -> None:
    require_arch_checks_enabled()

    root = bm_root()
    offenders = [
        f"{path.relative_to(root)}:{line}: direct subprocess call"
        for path in iter_source_files()
        if path.relative_to(root).as_posix() != "platform/process.py"
        for line in _direct_subprocess_calls(read_tree(path))
    ]

    assert not offenders, "Subprocess policy violations:\n" + "\n".join(offenders)
