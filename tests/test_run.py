import json

from conftest import FakeClient
from generate.adapter import ChatGPTConversationClient
from generate.config import DIALOGUE_THEMES, GENERATOR_VERSION
from generate.models import PersonaConfig
from generate.orchestrator import DatasetOrchestrator
from generate.run import build_manifest, write_outputs
from generate.utils.investigate_manifests import inspect_manifest
from shared.prompts import build_user_prompt, render_system_prompt

A, B = DIALOGUE_THEMES[:2]


def test_system_prompt_substitutes_all_placeholders():
    prompt = render_system_prompt("Alex", "Nova", "Dry wit.", "")
    assert "__" not in prompt
    assert "'Alex' and 'Nova'" in prompt
    assert "N/A" in prompt
    assert render_system_prompt("Alex", "Nova", "Dry wit.", "Short turns").count("Short turns") == 1


def test_user_prompt_mentions_theme_count_and_names():
    prompt = build_user_prompt(A, 11, "Alex", "Nova")
    assert f'"{A}"' in prompt
    assert "exactly 11" in prompt
    assert '"Alex: ' in prompt and '"Nova: ' in prompt


def make_manifest(tmp_path, client):
    persona = PersonaConfig(user_name="Alex", ai_name="Nova", active_themes=(A, B))
    run = DatasetOrchestrator(client, target_total=4).run(persona, credential_present=True)
    llm = ChatGPTConversationClient(api_key="sk-test", model_name="gpt-test")
    dataset = tmp_path / "Nova_conversations_dataset.json"
    dataset.write_text(json.dumps([item.model_dump() for item in run.accumulated]), encoding="utf-8")
    return build_manifest(run, persona, llm, str(dataset), str(tmp_path / "m.json"))


def test_manifest_records_run_outcome(tmp_path):
    manifest = make_manifest(tmp_path, FakeClient())
    assert manifest["generator_version"] == GENERATOR_VERSION
    assert manifest["n_records_requested"] == 4
    assert manifest["n_records_generated"] == 4
    assert manifest["status"] == "succeeded"
    assert manifest["message"] is None
    assert [t["theme"] for t in manifest["themes"]] == [A, B]
    assert manifest["notes"]["llm_model"] == "gpt-test"
    json.dumps(manifest)
    assert inspect_manifest(manifest, tmp_path) == []


def test_manifest_inspection_flags_failed_runs(tmp_path):
    manifest = make_manifest(tmp_path, FakeClient({B: RuntimeError("quota exceeded")}))
    issues = inspect_manifest(manifest, tmp_path)
    assert manifest["status"] == "failed"
    assert issues[0] == f"run_failed (theme={B})"
    assert "generated<4 (actual 2)" in issues


def test_manifest_inspection_flags_missing_dataset(tmp_path):
    manifest = make_manifest(tmp_path, FakeClient())
    manifest["outputs"]["dataset_json"] = str(tmp_path / "gone.json")
    assert inspect_manifest(manifest, tmp_path) == ["dataset_json_missing"]


def test_nested_out_dir_manifest_resolves_dataset_next_to_it(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    persona = PersonaConfig(user_name="Alex", ai_name="Nova", active_themes=(A, B))
    run = DatasetOrchestrator(FakeClient(), target_total=4).run(persona, credential_present=True)
    llm = ChatGPTConversationClient(api_key="sk-test", model_name="gpt-test")

    dataset_path, manifest_path = write_outputs(run, persona, llm, "out/run1")

    with open(manifest_path, encoding="utf-8") as f:
        manifest = json.load(f)
    assert manifest["outputs"]["dataset_json"] == "Nova_conversations_dataset_4_samples.json"
    assert (tmp_path / dataset_path).is_file()
    assert inspect_manifest(manifest, (tmp_path / "out" / "run1").resolve()) == []
