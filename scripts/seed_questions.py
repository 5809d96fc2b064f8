#!/usr/bin/env python3
"""Load questionnaire questions from a YAML or JSON file.

The file holds a list of ``{question, category}`` entries, either at the top
level or under a ``questions`` key. Questions already in the database (same
text) are skipped.

Usage:
    python scripts/seed_questions.py questions.yaml
    python scripts/seed_questions.py questions.json --db data/cozy.db
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Allow running from project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import yaml

from cozy.questionnaire.store import QuestionnaireStore


def load_entries(path: Path) -> list[dict[str, str]]:
    text = path.read_text(encoding="utf-8")
    data = json.loads(text) if path.suffix == ".json" else yaml.safe_load(text)
    if isinstance(data, dict):
        data = data.get("questions", [])
    if not isinstance(data, list):
        msg = f"{path} must contain a list of questions"
        raise ValueError(msg)
    entries = []
    for item in data:
        if isinstance(item, str):
            item = {"question": item}
        if not isinstance(item, dict) or not str(item.get("question", "")).strip():
            msg = f"Invalid question entry: {item!r}"
            raise ValueError(msg)
        entries.append({
            "question": str(item["question"]).strip(),
            "category": str(item.get("category", "")).strip(),
        })
    return entries


async def seed(entries: list[dict[str, str]], db_path: Path | None) -> int:
    store = QuestionnaireStore(db_path)
    existing = {q.question for q in await store.list_questions()}
    added = 0
    for entry in entries:
        if entry["question"] in existing:
            continue
        await store.add_question(entry["question"], entry["category"])
        existing.add(entry["question"])
        added += 1
    return added


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed Cozy Connections questionnaire questions")
    parser.add_argument("file", type=Path, help="YAML or JSON file with questions")
    parser.add_argument("--db", type=Path, default=None, help="Database path (defaults to settings)")
    args = parser.parse_args()

    if not args.file.exists():
        print(f"ERROR: {args.file} not found")
        sys.exit(1)

    try:
        entries = load_entries(args.file)
    except (ValueError, yaml.YAMLError, json.JSONDecodeError) as exc:
        print(f"ERROR: {exc}")
        sys.exit(1)

    added = asyncio.run(seed(entries, args.db))
    print(f"Added {added} of {len(entries)} question(s).")


if __name__ == "__main__":
    main()
