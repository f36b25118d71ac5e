import argparse
import json
from pathlib import Path
from typing import Any, Dict, List


def count_dataset_records(path: Path) -> int | None:
    if not path.exists() or not path.is_file():
        return None
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    return len(data) if isinstance(data, list) else None


def inspect_manifest(data: Dict[str, Any], manifest_dir: Path) -> List[str]:
    """Issues for one manifest; relative output paths resolve against ``manifest_dir``."""
    requested = data.get("n_records_requested")
    generated = data.get("n_records_generated")
    status = data.get("status")
    issues: List[str] = []

    if status == "failed":
        failed = [t["theme"] for t in data.get("themes") or [] if t.get("error")]
        issues.append(f"run_failed (theme={failed[0] if failed else '?'})")

    if isinstance(requested, int) and isinstance(generated, int) and generated < requested:
        issues.append(f"generated<{requested} (actual {generated})")

    empty_themes = [t["theme"] for t in data.get("themes") or [] if t.get("received") == 0 and not t.get("error")]
    if empty_themes:
        issues.append(f"empty_themes={len(empty_themes)}")

    dataset_path_raw = (data.get("outputs") or {}).get("dataset_json")
    if dataset_path_raw:
        dataset_path = Path(dataset_path_raw)
        if not dataset_path.is_absolute():
            dataset_path = (manifest_dir / dataset_path).resolve()
        records = count_dataset_records(dataset_path)
        if records is None:
            issues.append("dataset_json_missing")
        elif isinstance(generated, int) and records != generated:
            issues.append(f"dataset_records_mismatch (records={records}, generated={generated})")
    return issues


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Check generation manifests for incomplete runs")
    parser.add_argument("--dir", default="datasets", help="Folder with *_manifest.json files")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    base = Path(args.dir).resolve()
    manifests = sorted(base.glob("*_manifest.json"))

    if not manifests:
        print("No *_manifest.json files found.")
        return 1

    total = len(manifests)
    failed = []

    print(f"Scanned folder: {base}")
    print(f"Found manifests: {total}\n")

    for manifest_path in manifests:
        with manifest_path.open("r", encoding="utf-8") as f:
            data = json.load(f)

        issues = inspect_manifest(data, manifest_path.parent)

        print(f"- {manifest_path.name}")
        print(
            f"  requested={data.get('n_records_requested')}, generated={data.get('n_records_generated')}, "
            f"status={data.get('status')}"
        )
        if issues:
            print(f"  status=FAILED ({'; '.join(issues)})")
            failed.append({"manifest": manifest_path.name, "issues": issues})
        else:
            print("  status=OK")

    print("\nSummary")
    print(f"- manifests_scanned={total}")
    print(f"- manifests_with_issues={len(failed)}")
    print(f"- manifests_ok={total - len(failed)}")

    if failed:
        print("\nFailed manifests:")
        for item in failed:
            print(f"- {item['manifest']}: issues={', '.join(item['issues'])}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
