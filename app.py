"""
codebox - Streamlit Application

A multi-language sandbox page and a coding assistant, both talking to the
codebox HTTP API.
"""

from typing import Dict, Optional

import httpx
import streamlit as st

from codebox.config import ConfigError, get_config


# Page configuration
st.set_page_config(
    page_title="codebox",
    page_icon="🧪",
    layout="wide",
)

# Custom CSS for better styling
st.markdown("""
<style>
    .main-header {
        font-size: 2.5rem;
        font-weight: 700;
        color: #1E88E5;
        margin-bottom: 0.5rem;
    }
    .sub-header {
        font-size: 1.1rem;
        color: #666;
        margin-bottom: 2rem;
    }
    .stTabs [data-baseweb="tab-list"] {
        gap: 8px;
    }
</style>
""", unsafe_allow_html=True)


LANGUAGE_LABELS = {
    "python": "Python 3.11",
    "node": "Node 20 (JS)",
    "c": "C (gcc)",
    "cpp": "C++ (g++)",
    "java": "Java 21",
}

STARTER: Dict[str, str] = {
    "python": 'print("hello from python")\n',
    "node": 'console.log("hello from node");\n',
    "c": '#include <stdio.h>\nint main(){ printf("hello from C\\n"); return 0; }\n',
    "cpp": '#include <bits/stdc++.h>\nusing namespace std; int main(){ cout<<"hello from C++\\n"; }\n',
    "java": 'public class Main { public static void main(String[] args){ System.out.println("hello from Java"); } }\n',
}

# Client-side timeout; the server enforces the real deadline
REQUEST_TIMEOUT = 120.0


def init_session_state():
    """Initialize session state variables."""
    if "language" not in st.session_state:
        st.session_state.language = "python"
    if "code" not in st.session_state:
        st.session_state.code = STARTER["python"]
    if "run_output" not in st.session_state:
        st.session_state.run_output = ""
    if "chat_history" not in st.session_state:
        st.session_state.chat_history = []


def get_api_url() -> Optional[str]:
    """Return the API base URL, or show the configuration error."""
    try:
        return get_config().api_url
    except ConfigError as e:
        st.error(f"⚠️ Configuration Error: {str(e)}")
        return None


def format_run_output(data: Dict) -> str:
    """Render a run result as the text shown under the editor."""
    def block(label: str, value: str) -> str:
        return f"\n--- {label} ---\n{value}" if value else ""

    text = f"exit: {data.get('exitCode')}"
    text += block("stdout", data.get("stdout", ""))
    text += block("stderr", data.get("stderr", ""))
    if data.get("timedOut"):
        text += "\n(timed out)"
    return text


def run_code(api_url: str, language: str, code: str, stdin: str) -> str:
    """Submit code to the runner and return the formatted output."""
    try:
        response = httpx.post(
            f"{api_url}/api/run",
            json={"language": language, "code": code, "stdin": stdin},
            timeout=REQUEST_TIMEOUT,
        )
    except httpx.HTTPError as e:
        return f"Error: could not reach the runner ({e})"

    try:
        data = response.json()
    except ValueError:
        return f"Error: {response.status_code}"
    if response.status_code != 200:
        return f"Error: {data.get('error') or response.status_code}"
    return format_run_output(data)


def on_language_change():
    """Reset the editor to the starter program for the new language."""
    st.session_state.code = STARTER[st.session_state.language]


def handle_run_page(api_url: str):
    """Language selector, editor, stdin and output."""
    col1, col2 = st.columns([3, 1])
    with col1:
        st.selectbox(
            "Language",
            options=list(LANGUAGE_LABELS.keys()),
            format_func=lambda key: LANGUAGE_LABELS[key],
            key="language",
            on_change=on_language_change,
        )
    with col2:
        st.write("")
        run_clicked = st.button("▶ Run", type="primary", use_container_width=True)

    st.text_area("Code", key="code", height=320)

    stdin_col, out_col = st.columns(2)
    with stdin_col:
        stdin = st.text_area("stdin (optional)", height=160)

    if run_clicked:
        with st.spinner("Running..."):
            st.session_state.run_output = run_code(
                api_url,
                st.session_state.language,
                st.session_state.code,
                stdin,
            )

    with out_col:
        st.text("Output")
        st.code(st.session_state.run_output or " ", language=None)


def stream_chat(api_url: str, messages):
    """Yield assistant text as it arrives."""
    with httpx.stream(
        "POST",
        f"{api_url}/api/chat",
        json={"messages": messages},
        timeout=REQUEST_TIMEOUT,
    ) as response:
        for chunk in response.iter_text():
            if chunk:
                yield chunk


def handle_chat_page(api_url: str):
    """Coding assistant conversation."""
    for turn in st.session_state.chat_history:
        with st.chat_message(turn["role"]):
            st.markdown(turn["content"])

    prompt = st.chat_input("Ask the assistant...")
    if not prompt:
        return

    st.session_state.chat_history.append({"role": "user", "content": prompt})
    with st.chat_message("user"):
        st.markdown(prompt)

    with st.chat_message("assistant"):
        try:
            reply = st.write_stream(stream_chat(api_url, st.session_state.chat_history))
        except httpx.HTTPError as e:
            reply = f"[error] {e}"
            st.markdown(reply)
    st.session_state.chat_history.append({"role": "assistant", "content": reply or ""})


def main():
    """Main application entry point."""
    init_session_state()

    st.markdown('<p class="main-header">🧪 codebox</p>', unsafe_allow_html=True)
    st.markdown(
        '<p class="sub-header">Run code in an isolated sandbox, or ask the assistant.</p>',
        unsafe_allow_html=True,
    )

    api_url = get_api_url()
    if not api_url:
        st.stop()

    run_tab, chat_tab = st.tabs(["🧪 Sandbox", "💬 Assistant"])
    with run_tab:
        handle_run_page(api_url)
    with chat_tab:
        handle_chat_page(api_url)


if __name__ == "__main__":
    main()
