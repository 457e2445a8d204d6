# Run from project root: streamlit run navigator/ui.py
# UI talks to the backend API (POST /chat/stream for SSE). Each message is an independent request;
# an attached file is sent with the next message only.

import json
import os
import sys
from pathlib import Path

# Ensure project root is on path (Streamlit may run with cwd != project root)
_root_from_file = Path(__file__).resolve().parent.parent
_cwd = os.getcwd()
for _root in (_root_from_file, _cwd):
    _root = str(_root)
    if _root not in sys.path:
        sys.path.insert(0, _root)

import requests
import streamlit as st

from navigator.core.config import API_BASE

st.title("🧠 Knowledge Navigator")

# Show the tools the planner can choose from
try:
    r = requests.get(f"{API_BASE}/tools", timeout=10)
    if r.ok:
        names = [t.get("name", "") for t in r.json().get("tools") or []]
        st.caption("Tools: " + ", ".join(names))
    else:
        st.caption("Could not load tool list.")
except requests.RequestException:
    st.caption("Backend not reachable. Start the API first.")

if "messages" not in st.session_state:
    st.session_state.messages = []
if st.button("New chat", key="new_chat"):
    st.session_state.messages = []
    st.rerun()

attached = st.file_uploader("Attach a file for the next question (optional)", key="attached_file")

for msg in st.session_state.messages:
    with st.chat_message(msg["role"]):
        st.markdown(msg["content"])

# If we just submitted a query, show "Thinking..." while waiting for the stream
if st.session_state.get("pending_query"):
    prompt = st.session_state.pending_query
    upload = st.session_state.get("pending_file")
    with st.chat_message("assistant"):
        status = st.empty()
        status.caption("Planning...")
        answer_placeholder = st.empty()
        answer = ""
        try:
            files = {"file": (upload[0], upload[1])} if upload else None
            r = requests.post(
                f"{API_BASE}/chat/stream",
                data={"prompt": prompt},
                files=files,
                stream=True,
                timeout=120,
            )
            if not r.ok:
                answer = f"Error: {r.status_code}: {r.text[:200]}"
                status.empty()
                answer_placeholder.error(answer)
            else:
                current_event = None
                for line in r.iter_lines(decode_unicode=True):
                    if not line:
                        continue
                    if line.startswith("event:"):
                        current_event = line[6:].strip()
                    elif line.startswith("data:") and current_event:
                        try:
                            data = json.loads(line[5:].strip()).get("data")
                        except json.JSONDecodeError:
                            data = None
                        if current_event == "plan":
                            status.caption(f"Plan: {', '.join(data or [])}")
                        elif current_event == "step":
                            status.caption(f"Used tool: {(data or {}).get('tool', '')}")
                        elif current_event == "answer":
                            answer = data or ""
                            answer_placeholder.markdown(answer)
                        elif current_event == "error":
                            answer = data or "Sorry, something went wrong."
                            status.empty()
                            answer_placeholder.error(answer)
        except requests.RequestException as e:
            answer = f"Connection failed: {e}"
            status.empty()
            answer_placeholder.error(answer)
        st.session_state.messages.append({"role": "assistant", "content": answer or "No answer."})
    del st.session_state["pending_query"]
    st.session_state.pop("pending_file", None)
    st.rerun()

if prompt := st.chat_input("Ask anything: weather, GitHub repos, papers, docs, or your uploaded file"):
    label = f"{prompt}\n\n📎 {attached.name}" if attached else prompt
    st.session_state.messages.append({"role": "user", "content": label})
    st.session_state.pending_query = prompt
    if attached:
        attached.seek(0)
        st.session_state.pending_file = (attached.name, attached.read())
    st.rerun()
