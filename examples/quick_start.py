#!/usr/bin/env python3
# Example usage of jsonl_docstore: insert, query, sort/project, delete.

import os
import tempfile

from jsonl_docstore import Database
from rich.console import Console

_console = Console()

PEOPLE = [
    {"name": "Ann", "age": 30, "bio": "fast and curious", "langs": ["en", "de"]},
    {"name": "Bob", "age": 40, "bio": "slow but steady"},
    {"name": "Cid", "age": 25, "bio": "Fast learner"},
]

def progress_printer(evt):
    if evt.get("phase", "").startswith("delete."):
        _console.print(f"[progress] {evt['phase']} {evt['pct']}% {evt.get('msg', '')}", highlight=False)

def main() -> None:
    path = os.path.join(tempfile.mkdtemp(), "people.jsonl")
    # "bio" is the only field eligible for $text matching
    db = Database(path, ["bio"], on_progress=progress_printer)

    for p in PEOPLE:
        db.insert(p)

    _console.print("Over 28:", db.find({"age": {"$gt": 28}}, sort={"age": -1}, projection=["name"]))
    _console.print("Says 'fast':", db.find({"$text": "fast"}, projection={"name": 1}))
    _console.print("Ann or Bob:", db.find({"$or": [{"name": "Ann"}, {"name": {"$eq": "Bob"}}]}))

    deleted = db.delete({"name": {"$in": ["Ann"]}})
    _console.print("Deleted (tombstoned):", deleted)
    _console.print("Live:", db.find({}, sort={"name": 1}, projection=["name"]))

    with open(path, encoding="utf-8") as f:
        _console.print("Raw log:")
        _console.print(f.read(), end="", highlight=False)

if __name__ == "__main__":
    main()
