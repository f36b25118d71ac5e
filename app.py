from pathlib import Path
from typing import List

import streamlit as st

from generate.adapter import ChatGPTConversationClient
from generate.config import DIALOGUE_THEMES, TOTAL_CONVERSATIONS_TO_GENERATE
from generate.export import build_export
from generate.models import ConversationItem, GenerationRun, PersonaConfig
from generate.orchestrator import DatasetOrchestrator
from generate.settings import SettingsStore, credential_present
from generate.transcript import render_turns

ROOT_DIR = Path(__file__).resolve().parent
SETTINGS_FILE = ROOT_DIR / "settings" / "app_settings.json"

store = SettingsStore(SETTINGS_FILE)


@st.cache_resource
def get_client() -> ChatGPTConversationClient:
    return ChatGPTConversationClient()


def init_state() -> None:
    if "settings" not in st.session_state:
        st.session_state.settings = store.load()
    st.session_state.setdefault("run", None)
    st.session_state.setdefault("busy", False)


def render_conversation(item: ConversationItem, index: int, user_name: str, ai_name: str) -> None:
    with st.container(border=True):
        st.markdown(f"**#{index + 1} {item.theme}** · {len(item.conversation)} turns")
        for turn in render_turns(item, user_name, ai_name):
            with st.chat_message("user" if turn.is_user else "assistant"):
                st.markdown(f"**{turn.speaker}**")
                st.text(turn.text)


def render_preview(items: List[ConversationItem], user_name: str, ai_name: str, limit: int = 50) -> None:
    st.subheader("Generated Conversations Preview")
    cols = st.columns(2)
    for index, item in enumerate(items[:limit]):
        with cols[index % 2]:
            render_conversation(item, index, user_name, ai_name)
    if len(items) > limit:
        st.caption(f"Showing {limit} of {len(items)} conversations. Download the JSON for the full set.")


def render_notice(run: GenerationRun) -> None:
    if run.error_message is None:
        if run.status == "succeeded":
            st.success(f"Successfully generated {run.count} conversations! You can now download the JSON.")
        return
    if run.status in {"failed", "rejected"}:
        st.error(run.error_message)
    else:
        st.warning(run.error_message)


st.set_page_config(page_title="Persona Dialogue Studio", layout="wide")
init_state()
has_key = credential_present()
settings: PersonaConfig = st.session_state.settings

st.title("Persona Dialogue Studio")
if not has_key:
    st.error("OPENAI_API_KEY is missing. Generation features are disabled until it is set in the environment.")

tab_intro, tab_gen, tab_settings = st.tabs(["Intro", "Generator", "Settings"])

with tab_intro:
    st.header("Synthetic persona dialogues")
    st.markdown(
        f"Configure an assistant persona in **Settings**, then generate up to "
        f"{TOTAL_CONVERSATIONS_TO_GENERATE} multi-turn conversations spread across the active themes "
        "and export them as JSON."
    )
    st.caption(f"Current persona: {settings.user_name} ↔ {settings.ai_name}, {len(settings.active_themes)} themes active.")

with tab_gen:
    st.header("Dataset Generation")
    st.caption(
        f"Generate a dataset of up to {TOTAL_CONVERSATIONS_TO_GENERATE} unique conversations with "
        f"{settings.ai_name}, using the themes and personality defined in settings."
    )
    if not settings.active_themes:
        st.info("No dialogue themes are currently selected. Please go to Settings to enable themes for generation.")

    col1, col2 = st.columns([3, 1])
    with col1:
        start = st.button(
            f"Generate Dataset ({len(settings.active_themes)} themes)",
            type="primary",
            disabled=st.session_state.busy or not has_key or not settings.active_themes,
            use_container_width=True,
        )
    status_box = st.empty()
    progress_bar = st.empty()

    if start and not st.session_state.busy:
        st.session_state.busy = True
        st.session_state.run = None
        orchestrator = DatasetOrchestrator(get_client(), target_total=TOTAL_CONVERSATIONS_TO_GENERATE)

        def show_progress(run: GenerationRun) -> None:
            progress_bar.progress(
                run.display_count / run.target_total,
                text=f"Generating... ({run.display_count}/{run.target_total})",
            )

        try:
            with status_box, st.spinner(f"Summoning dialogues with {settings.ai_name}..."):
                st.session_state.run = orchestrator.run(settings, credential_present=has_key, on_progress=show_progress)
        finally:
            st.session_state.busy = False
        progress_bar.empty()

    run: GenerationRun | None = st.session_state.run
    with col2:
        if run is not None and run.accumulated:
            export = build_export(run.accumulated, settings.ai_name)
            st.download_button(
                "Download JSON",
                data=export.content,
                file_name=export.file_name,
                mime="application/json",
                disabled=st.session_state.busy,
                use_container_width=True,
            )
        else:
            st.button("Download JSON", disabled=True, use_container_width=True)

    if run is not None:
        render_notice(run)
        if run.diagnostics:
            with st.expander("Generation diagnostics"):
                for line in run.diagnostics:
                    st.write(f"- {line}")
        if run.accumulated:
            render_preview(run.accumulated, settings.user_name, settings.ai_name)

with tab_settings:
    st.header("Customize Your AI Assistant")
    with st.form("settings_form"):
        col1, col2 = st.columns(2)
        with col1:
            user_name = st.text_input("Your Name (as User)", value=settings.user_name)
        with col2:
            ai_name = st.text_input("AI's Name", value=settings.ai_name)
        ai_personality = st.text_area("AI Personality", value=settings.ai_personality, height=200)
        conversation_style = st.text_area("Conversation Style Notes", value=settings.conversation_style)

        st.subheader("Dialogue Themes")
        selected = []
        theme_cols = st.columns(2)
        for i, theme in enumerate(DIALOGUE_THEMES):
            with theme_cols[i % 2]:
                if st.checkbox(theme, value=theme in settings.active_themes, key=f"theme_{i}"):
                    selected.append(theme)

        saved = st.form_submit_button("Save Settings", type="primary")

    if saved:
        # Keep previously active themes first so their order survives the form.
        ordered = [t for t in settings.active_themes if t in selected]
        ordered += [t for t in selected if t not in ordered]
        try:
            updated = PersonaConfig(
                user_name=user_name,
                ai_name=ai_name,
                ai_personality=ai_personality,
                conversation_style=conversation_style,
                active_themes=tuple(ordered),
            )
        except ValueError as exc:
            st.error(f"Settings not saved: {exc}")
        else:
            store.save(updated)
            st.session_state.settings = updated
            st.toast("Settings saved successfully! Your changes are now active.")
            st.rerun()

    if st.button("Reset to Defaults"):
        st.session_state.settings = store.reset()
        for i in range(len(DIALOGUE_THEMES)):
            st.session_state.pop(f"theme_{i}", None)
        st.rerun()
