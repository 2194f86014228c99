"""Shared output helpers for CLI commands."""

import json

from ledger.lib.diffparse import FileDiff
from ledger.lib.validate import validate
from ledger.workflow.results import OperationResult


def print_json(data) -> None:
    print(json.dumps(data, indent=2))


def emit_result(result: OperationResult, as_json: bool) -> int:
    """Print an OperationResult and return the exit code for it."""
    if as_json:
        data = result.to_dict()
        validate(data, "operation_result")
        print_json(data)
    else:
        prefix = "OK" if result.success else "ERROR"
        print(f"{prefix}: {result.message}")
        if result.conflicted_files:
            print("Conflicted files:")
            for path in result.conflicted_files:
                print(f"  {path}")
    return 0 if result.success else 1


def file_diffs_to_json(files: list[FileDiff]) -> list[dict]:
    """Serialize parsed files, checking each against the file_diff schema."""
    data = []
    for f in files:
        item = f.to_dict()
        validate(item, "file_diff")
        data.append(item)
    return data


def format_file_summary(f: FileDiff) -> str:
    name = f"{f.old_path} -> {f.path}" if f.old_path else f.path
    if f.is_binary:
        return f"  {f.status.value:<9} {name} (binary)"
    return f"  {f.status.value:<9} {name} +{f.additions} -{f.deletions}"
