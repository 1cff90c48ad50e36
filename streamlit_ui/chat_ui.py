import sys
from pathlib import Path
from typing import Any, Dict, Optional

import streamlit as st
from requests.exceptions import RequestException

try:
    from core.settings import SETTINGS
except ModuleNotFoundError:
    ROOT = Path(__file__).resolve().parents[1]
    if str(ROOT) not in sys.path:
        sys.path.insert(0, str(ROOT))
    from core.settings import SETTINGS

from streamlit_ui.api_client import ChatApiClient, ChatApiError
from streamlit_ui.stream_client import ContentEvent, DoneEvent, ErrorEvent


st.set_page_config(page_title="LLM Chat", layout="centered")
st.title("Chat")

API_BASE_URL = SETTINGS.UI.API_BASE_URL
client = ChatApiClient(API_BASE_URL, timeout=SETTINGS.UI.REQUEST_TIMEOUT_SECONDS)

if "messages" not in st.session_state:
    st.session_state.messages = []
if "error" not in st.session_state:
    st.session_state.error = ""


def load_sessions():
    try:
        return client.list_sessions()
    except (ChatApiError, RequestException) as e:
        st.error(f"Failed to load sessions: {e}")
        return []


def load_messages(session_id: str):
    try:
        fetched = client.fetch_messages(session_id)
    except (ChatApiError, RequestException) as e:
        st.error(f"Failed to load conversation history: {e}")
        fetched = []
    st.session_state.messages = [
        {"role": m.get("role", "assistant"), "content": m.get("content", "")}
        for m in fetched
    ]


def select_session(session_id: Optional[str]):
    st.session_state.session_id = session_id
    st.session_state.error = ""
    if session_id:
        load_messages(session_id)
    else:
        st.session_state.messages = []


def new_session():
    try:
        session = client.create_session()
    except (ChatApiError, RequestException) as e:
        st.error(f"Failed to create session: {e}")
        return
    select_session(session.get("id"))


# Pick up the most recently active session, or create one lazily
if "session_id" not in st.session_state:
    sessions = load_sessions()
    if sessions:
        select_session(sessions[0]["id"])
    else:
        new_session()


def generation_options() -> Dict[str, Any]:
    """Sidebar controls; unset values are left to the provider's defaults."""
    options: Dict[str, Any] = {}
    with st.sidebar.expander("Generation settings"):
        model = st.text_input("Model", value=SETTINGS.OPENAI.OPENAI_MODEL)
        system_prompt = st.text_area("System prompt", value="")
        if st.checkbox("Set temperature"):
            options["temperature"] = st.slider("Temperature", 0.0, 2.0, 1.0, 0.1)
        if st.checkbox("Set top_p"):
            options["topP"] = st.slider("Top p", 0.0, 1.0, 1.0, 0.05)
        if st.checkbox("Set max tokens"):
            options["maxTokens"] = int(st.number_input("Max tokens", 1, 32000, 1024))
        if st.checkbox("Set penalties"):
            options["frequencyPenalty"] = st.slider("Frequency penalty", -2.0, 2.0, 0.0, 0.1)
            options["presencePenalty"] = st.slider("Presence penalty", -2.0, 2.0, 0.0, 0.1)
        if st.checkbox("Set seed"):
            options["seed"] = int(st.number_input("Seed", 0, 2**31 - 1, 0))
        stop = st.text_input("Stop sequences (comma separated)", value="")
    options["model"] = model or None
    options["systemPrompt"] = system_prompt or None
    stops = [s for s in (p.strip() for p in stop.split(",")) if s]
    if stops:
        options["stop"] = stops
    return options


with st.sidebar:
    st.subheader("Sessions")
    if st.button("New Chat"):
        new_session()
    for s in load_sessions():
        cols = st.columns([4, 1])
        label = s.get("title") or s["id"]
        if s["id"] == st.session_state.get("session_id"):
            label = f"▶ {label}"
        if cols[0].button(label, key=f"open_{s['id']}"):
            select_session(s["id"])
        if cols[1].button("🗑", key=f"delete_{s['id']}"):
            try:
                client.delete_session(s["id"])
            except (ChatApiError, RequestException) as e:
                st.error(f"Failed to delete session: {e}")
            if s["id"] == st.session_state.get("session_id"):
                select_session(None)
            st.rerun()
    st.caption(f"API_BASE_URL = {API_BASE_URL}")

options = generation_options()

for msg in st.session_state.messages:
    with st.chat_message(msg["role"]):
        st.markdown(msg["content"])

if st.session_state.error:
    st.error(st.session_state.error)


def send(prompt: str):
    session_id = st.session_state.get("session_id")
    if not session_id:
        st.session_state.error = "No active session. Start a new chat first."
        return

    st.session_state.error = ""
    # Optimistic insert; rolled back below if the turn fails
    st.session_state.messages.append({"role": "user", "content": prompt})
    with st.chat_message("user"):
        st.markdown(prompt)

    with st.chat_message("assistant"):
        placeholder = st.empty()
        placeholder.markdown("…")
        final = None
        failure = None
        try:
            for event in client.stream_chat(session_id, prompt, options=options):
                if isinstance(event, ContentEvent):
                    placeholder.markdown(event.text + "▌")
                elif isinstance(event, DoneEvent):
                    final = event.message
                    placeholder.markdown(final.content)
                elif isinstance(event, ErrorEvent):
                    failure = event.details or event.error
        except (ChatApiError, RequestException) as e:
            failure = str(e)

    if final is not None:
        st.session_state.messages.append(
            {"role": final.role, "content": final.content}
        )
        return

    # Cosmetic only: the server may already have stored the user turn
    st.session_state.messages.pop()
    st.session_state.error = f"Failed to send message. Please try again. ({failure})"
    st.rerun()


if prompt := st.chat_input("Type your message..."):
    send(prompt.strip())
