import argparse
from pathlib import Path
from typing import List

from generate.config import DEFAULT_AI_NAME, DEFAULT_USER_NAME
from generate.export import load_export
from generate.models import ConversationItem
from generate.transcript import render_turns
from generate.validator import turn_deviations


def print_stats(item: ConversationItem, idx: int, total: int, user_name: str, ai_name: str) -> None:
    print("=" * 80)
    print(f"Record {idx + 1}/{total}")
    print(f"theme: {item.theme}")
    print(f"turn_count: {len(item.conversation)}")
    print(f"deviations: {turn_deviations(item.conversation, user_name, ai_name) or '-'}")
    print("=" * 80)


def print_dialogue(item: ConversationItem, user_name: str, ai_name: str) -> None:
    print("DIALOGUE")
    print("-" * 80)
    for i, turn in enumerate(render_turns(item, user_name, ai_name), start=1):
        print(f"{i:02d}. [{turn.speaker}] {turn.text}")
    print("-" * 80)


def review(items: List[ConversationItem], user_name: str, ai_name: str) -> None:
    total = len(items)
    if total == 0:
        print("No records found.")
        return

    for idx, item in enumerate(items):
        print_stats(item, idx, total, user_name, ai_name)
        print_dialogue(item, user_name, ai_name)

        while True:
            answer = input("Enter 1-next, 0-stop: ").strip()
            if answer == "1":
                break
            if answer == "0":
                print("Stopped by user.")
                return
            print("Invalid input. Please enter 1 or 0.")

    print("Reached end of dataset.")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Interactive dialogue reviewer for exported datasets")
    parser.add_argument("--dataset", required=True, help="Path to an exported dataset JSON file")
    parser.add_argument("--user_name", default=DEFAULT_USER_NAME)
    parser.add_argument("--ai_name", default=DEFAULT_AI_NAME)
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    dataset_path = Path(args.dataset)
    if not dataset_path.exists():
        raise FileNotFoundError(f"Dataset not found: {dataset_path}")
    review(load_export(dataset_path.read_bytes()), args.user_name, args.ai_name)


if __name__ == "__main__":
    main()
