#!/usr/bin/env python3
"""
inspect_checkpoint.py - Decrypt and summarize a saved session checkpoint.

Usage with plaintext checkpoints:
    python tools/inspect_checkpoint.py --checkpoint checkpoints/progress_T1_Jane.json

Usage with encrypted checkpoints:
    python tools/inspect_checkpoint.py --checkpoint checkpoints/progress_T1_Jane.enc --key-file checkpoints.key

List (and optionally delete) the saved sessions in a directory:
    python tools/inspect_checkpoint.py --list checkpoints
    python tools/inspect_checkpoint.py --list checkpoints --key-file checkpoints.key --clear-all
"""

import argparse
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from proctor.clock import format_time
from proctor.errors import CheckpointError
from proctor.persistence import EncryptedFileCheckpointStore, FileCheckpointStore
from proctor.state import SessionState


def open_directory_store(directory: Path, key_file: str = None) -> FileCheckpointStore:
    """Plain store for a directory, or the encrypted one when a key file is given."""
    if not key_file:
        return FileCheckpointStore(directory)
    with open(key_file, 'rb') as f:
        key = f.read().strip()
    return EncryptedFileCheckpointStore(directory, key)


def read_checkpoint(path: Path, key_file: str = None) -> dict:
    """Read one checkpoint file through the matching store."""
    with open(path, 'rb') as f:
        data = f.read()

    if path.suffix == EncryptedFileCheckpointStore.suffix:
        if not key_file:
            raise CheckpointError("Encrypted checkpoint requires --key-file")
        store = open_directory_store(path.parent, key_file)
    else:
        store = FileCheckpointStore(path.parent)
    return store._decode(data)


def list_checkpoints(store: FileCheckpointStore, clear_all: bool = False) -> list:
    """Print the saved sessions of a store, deleting them after confirmation."""
    sessions = store.list_sessions()
    print(f"[OK] {len(sessions)} saved session(s) in {store.directory}")
    for session_id in sessions:
        print(f"  {session_id}  ({store.path_for(session_id).name})")

    if clear_all and sessions:
        confirm = input("Delete all listed checkpoints? (y/n): ").strip().lower()
        if confirm == 'y':
            removed = store.clear_all()
            print(f"[OK] Removed {removed} checkpoint(s)")
        else:
            print("Cancelled.")
    return sessions


def summarize(record: dict) -> list:
    state = SessionState()
    problems = state.hydrate(record)

    lines = [
        f"  Version: {record.get('version', 1)}",
        f"  Phase at save: {record.get('phase', 'unknown')}",
        f"  Position: section {state.current_section_index + 1}, question {state.current_question_index + 1}",
        f"  Answers: {len(state.answers)}, marked: {len(state.marked_for_review)}, visited: {len(state.visited)}",
        f"  Violations: {state.violation_count}"
        + (" (limit already enforced)" if state.threshold_handled else ""),
        f"  Time left at save: {format_time(state.remaining_seconds)}",
        f"  MCQ completed: {state.mcq_completed}",
        f"  Coding question: {state.selected_coding_question_id or '-'}, "
        f"submissions: {len(state.coding_submissions)}",
    ]
    for problem in problems:
        lines.append(f"  [WARN] Unreadable field {problem}")
    return lines


def main():
    parser = argparse.ArgumentParser(description="Decrypt and summarize a session checkpoint.")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--checkpoint", help="Checkpoint file (.json or .enc)")
    target.add_argument("--list", metavar="DIR", help="List the saved sessions in a checkpoint directory")
    parser.add_argument("--key-file", help="Checkpoint key file for .enc checkpoints")
    parser.add_argument("--clear-all", action="store_true", help="With --list: delete every listed checkpoint")
    parser.add_argument("--raw", action="store_true", help="Print the full decoded record as JSON")
    args = parser.parse_args()

    if args.list:
        try:
            list_checkpoints(open_directory_store(Path(args.list), args.key_file), args.clear_all)
        except (OSError, CheckpointError) as e:
            print(f"[ERROR] {e}", file=sys.stderr)
            sys.exit(1)
        return

    try:
        record = read_checkpoint(Path(args.checkpoint), args.key_file)
    except FileNotFoundError as e:
        print(f"[ERROR] File not found: {e}", file=sys.stderr)
        sys.exit(1)
    except CheckpointError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        sys.exit(1)

    print(f"[OK] Checkpoint read: {args.checkpoint}")
    if args.raw:
        print(json.dumps(record, indent=2))
    else:
        for line in summarize(record):
            print(line)


if __name__ == "__main__":
    main()
