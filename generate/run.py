import argparse
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Tuple

from generate.adapter import ChatGPTConversationClient
from generate.config import (
    DEFAULT_OPENAI_MODEL,
    DEFAULT_TEMPERATURE,
    DEFAULT_TOP_K,
    DEFAULT_TOP_P,
    GENERATOR_VERSION,
    TOTAL_CONVERSATIONS_TO_GENERATE,
)
from generate.export import build_export
from generate.models import GenerationRun, PersonaConfig
from generate.orchestrator import DatasetOrchestrator
from generate.settings import SettingsStore, credential_present


def build_manifest(
    run: GenerationRun,
    persona: PersonaConfig,
    client: ChatGPTConversationClient,
    dataset_path: str,
    manifest_path: str,
) -> Dict[str, Any]:
    return {
        "generator_version": GENERATOR_VERSION,
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        "n_records_requested": run.target_total,
        "n_records_generated": run.count,
        "status": run.status,
        "message": run.error_message,
        "persona": {"user_name": persona.user_name, "ai_name": persona.ai_name},
        "active_themes": list(persona.active_themes),
        "themes": [report.model_dump() for report in run.reports],
        "diagnostics": list(run.diagnostics),
        "outputs": {"dataset_json": dataset_path, "manifest_json": manifest_path},
        "notes": {
            "llm_model": client.model_name,
            "temperature": client.temperature,
            "top_p": client.top_p,
            "top_k": client.top_k,
            "structured_output": client.structured_output,
            "retry_policy": "fail_fast_per_run",
        },
    }


def write_outputs(
    run: GenerationRun,
    persona: PersonaConfig,
    client: ChatGPTConversationClient,
    out_dir: str,
) -> Tuple[str, str]:
    """Write the dataset and its manifest side by side in ``out_dir``.

    ``outputs.dataset_json`` is recorded relative to the manifest's folder so the
    pair can be inspected or moved without knowing the original working directory.
    """
    os.makedirs(out_dir, exist_ok=True)
    export = build_export(run.accumulated, persona.ai_name)
    dataset_path = os.path.join(out_dir, export.file_name)
    manifest_name = Path(export.file_name).stem + "_manifest.json"
    manifest_path = os.path.join(out_dir, manifest_name)
    with open(dataset_path, "wb") as out_f:
        out_f.write(export.content)
    with open(manifest_path, "w", encoding="utf-8") as mf:
        json.dump(
            build_manifest(run, persona, client, export.file_name, manifest_name),
            mf,
            ensure_ascii=False,
            indent=2,
        )
    return dataset_path, manifest_path


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Persona dialogue dataset generator")
    parser.add_argument("--settings", default="settings/app_settings.json", help="Persona settings JSON")
    parser.add_argument(
        "--themes",
        nargs="+",
        default=None,
        help="Override the active themes (in processing order)",
    )
    parser.add_argument("--total", type=int, default=TOTAL_CONVERSATIONS_TO_GENERATE)
    parser.add_argument("--out_dir", default="datasets")
    parser.add_argument("--model", default=DEFAULT_OPENAI_MODEL, help="OpenAI model name")
    parser.add_argument("--api_key", default=None, help="OpenAI API key (fallback: OPENAI_API_KEY env)")
    parser.add_argument("--temperature", type=float, default=DEFAULT_TEMPERATURE)
    parser.add_argument("--top_p", type=float, default=DEFAULT_TOP_P)
    parser.add_argument("--top_k", type=int, default=DEFAULT_TOP_K)
    parser.add_argument(
        "--no_structured_output",
        action="store_true",
        help="Do not request structured output (for servers without structured output support)",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Raise if fewer conversations than requested were generated",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(name)s: %(message)s")

    persona = SettingsStore(Path(args.settings)).load()
    if args.themes:
        persona = PersonaConfig.model_validate({**persona.model_dump(), "active_themes": args.themes})

    client = ChatGPTConversationClient(
        api_key=args.api_key,
        model_name=args.model,
        temperature=args.temperature,
        top_p=args.top_p,
        top_k=args.top_k,
        structured_output=not args.no_structured_output,
    )
    orchestrator = DatasetOrchestrator(client, target_total=args.total)

    def report_progress(run: GenerationRun) -> None:
        last = run.reports[-1]
        print(
            f"[PROGRESS] {run.display_count}/{run.target_total} "
            + json.dumps({"theme": last.theme, "requested": last.requested, "received": last.received}, ensure_ascii=False)
        )

    run = orchestrator.run(
        persona,
        credential_present=bool(args.api_key) or credential_present(),
        on_progress=report_progress,
    )
    if run.status == "rejected":
        raise RuntimeError(run.error_message)

    dataset_path, _ = write_outputs(run, persona, client, args.out_dir)

    print(f"[DONE] status={run.status} generated={run.count}/{run.target_total} dataset={dataset_path}")
    if run.status == "failed":
        raise RuntimeError(run.error_message)
    if args.strict and run.status != "succeeded":
        raise RuntimeError(run.error_message)


if __name__ == "__main__":
    main()
