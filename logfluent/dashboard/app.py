"""
LogFluent Insight - Dashboard
=============================

Upload a log, watch the AI summary arrive, then ask follow-up questions.

Run with: streamlit run logfluent/dashboard/app.py
"""

import time
from datetime import datetime

import httpx
import streamlit as st

from logfluent.api.schemas import LogStatus, MessageRole
from logfluent.config import get_settings
from logfluent.dashboard.client import ApiError, LogFluentClient
from logfluent.dashboard.state import (
    ChatTranscript,
    InvalidFileType,
    Screen,
    ViewState,
    extract_text,
    submit_question,
    sync_transcript,
    is_pending,
    status_text,
)
from logfluent.utils.logging import get_logger, setup_logging

settings = get_settings()

setup_logging(
    service_name=f"{settings.service_name}-dashboard",
    log_level=settings.log_level,
    json_output=settings.log_json
)
logger = get_logger(__name__)

REFRESH_SECONDS = 2

# =============================================================================
# CONFIGURATION
# =============================================================================

st.set_page_config(
    page_title="LogFluent Insight",
    page_icon="📊",
    layout="centered",
)


def inject_custom_css():
    st.markdown("""
    <style>
    .app-title {
        font-size: 2.4rem;
        font-weight: 700;
        text-align: center;
        background: linear-gradient(90deg, #3b82f6, #06b6d4);
        -webkit-background-clip: text;
        -webkit-text-fill-color: transparent;
        margin-bottom: 0;
    }
    .app-subtitle {
        text-align: center;
        color: #64748b;
        margin-bottom: 1.5rem;
    }
    .status-badge {
        display: inline-block;
        padding: 0.25rem 0.75rem;
        border-radius: 50px;
        font-size: 0.85rem;
        font-weight: 600;
    }
    .status-uploaded   { border: 1px solid #94a3b8; color: #94a3b8; }
    .status-processing { background: rgba(99, 102, 241, 0.15); color: #6366f1; }
    .status-completed  { background: rgba(16, 185, 129, 0.15); color: #10b981; }
    .status-error      { background: rgba(239, 68, 68, 0.15); color: #ef4444; }
    </style>
    """, unsafe_allow_html=True)


@st.cache_resource
def get_client() -> LogFluentClient:
    return LogFluentClient(settings.api_base_url)


def get_view() -> ViewState:
    if "view" not in st.session_state:
        st.session_state.view = ViewState()
    return st.session_state.view


# =============================================================================
# UPLOAD SCREEN
# =============================================================================

def render_upload(view: ViewState):
    """File picker that stores the log and runs the summarizer."""
    st.subheader("Upload Log File")
    st.caption("Upload your log file to get AI-powered analysis and insights")

    uploaded = st.file_uploader(
        "Drop your log file here or click to browse",
        help="Supports .log and .txt files, or any plain-text file"
    )
    if uploaded is None:
        return

    st.write(f"**{uploaded.name}** ({uploaded.size / 1024 / 1024:.2f} MB)")

    if not st.button("Analyze Log", type="primary", use_container_width=True):
        return

    try:
        content = extract_text(uploaded.name, uploaded.getvalue(), uploaded.type)
    except InvalidFileType as e:
        st.toast(f"Invalid file type: {e}", icon="⚠️")
        return

    client = get_client()
    try:
        with st.spinner("Uploading and analyzing..."):
            log = client.create_log(uploaded.name, content)
            client.summarize(log.id, content)
    except (ApiError, httpx.HTTPError) as e:
        logger.error(f"Upload error: {e}", extra={"log_filename": uploaded.name})
        st.toast(f"Upload failed: {e}", icon="❌")
        return

    st.toast("Log uploaded successfully! AI is analyzing your log file...", icon="✅")
    view.on_log_uploaded(log.id, uploaded.name)
    st.rerun()


# =============================================================================
# SUMMARY SCREEN
# =============================================================================

def render_summary(view: ViewState):
    """Status and summary of the current log; refreshes until analysis ends."""
    try:
        log = get_client().get_log(view.log_id)
    except (ApiError, httpx.HTTPError) as e:
        logger.error(f"Error fetching log: {e}", extra={"log_id": view.log_id})
        st.toast("Error loading log: Failed to load log details", icon="❌")
        st.error("Log not found.")
        if st.button("Upload another log"):
            view.back_to_upload()
            st.rerun()
        return

    st.subheader(f"📄 {log.filename}")
    st.markdown(
        f'<span class="status-badge status-{log.status.value}">{status_text(log.status)}</span>',
        unsafe_allow_html=True
    )

    if log.status == LogStatus.COMPLETED and log.summary:
        with st.container(border=True):
            st.markdown(log.summary)
        if st.button("💬 Start Chat for Follow-up Questions", type="primary", use_container_width=True):
            view.on_start_chat(log.id, view.filename or log.filename)
            st.rerun()

    elif log.status == LogStatus.ERROR:
        st.error("There was an error analyzing your log file. Please try uploading again.")
        if st.button("Retry"):
            st.rerun()

    elif is_pending(log.status):
        st.info("This may take a few moments depending on the log size")

    st.caption(f"Uploaded: {log.created_at.astimezone():%Y-%m-%d %H:%M:%S}")

    if st.button("Upload another log"):
        view.back_to_upload()
        st.rerun()

    if is_pending(log.status):
        time.sleep(REFRESH_SECONDS)
        st.rerun()


# =============================================================================
# CHAT SCREEN
# =============================================================================

def open_chat_session(view: ViewState) -> ChatTranscript:
    """Create this visit's session and load whatever it already holds."""
    client = get_client()
    session = client.create_session(view.log_id)
    view.session_id = session.id
    transcript = ChatTranscript(session_id=session.id)
    transcript.replace(client.list_messages(session.id))
    st.session_state.transcript = transcript
    return transcript


def render_message(role: MessageRole, content: str, created_at: datetime):
    with st.chat_message(role.value):
        st.markdown(content)
        st.caption(f"{created_at.astimezone():%H:%M:%S}")


def render_chat(view: ViewState):
    """Conversation about the current log."""
    header_left, header_right = st.columns([3, 1])
    with header_left:
        st.subheader("AI Log Assistant")
        st.caption(f"Chatting about: {view.filename}")
    with header_right:
        if st.button("← Back"):
            view.back_to_summary()
            st.rerun()

    transcript = st.session_state.get("transcript")
    if view.session_id is None or transcript is None or transcript.session_id != view.session_id:
        try:
            transcript = open_chat_session(view)
        except (ApiError, httpx.HTTPError) as e:
            logger.error(f"Error creating chat session: {e}", extra={"log_id": view.log_id})
            st.toast("Failed to start chat session", icon="❌")
            return

    if transcript.has_pending():
        sync_transcript(get_client(), transcript)

    if not transcript.messages:
        st.caption("Ask me questions about your log file analysis")

    for message in transcript.messages:
        render_message(message.role, message.content, message.created_at)

    question = st.chat_input("Ask a question about your log file...")
    if not question or not question.strip():
        return

    question = question.strip()
    render_message(MessageRole.USER, question, datetime.now().astimezone())

    try:
        with st.spinner("Thinking..."):
            submit_question(get_client(), transcript, question, view.log_id)
    except (ApiError, httpx.HTTPError) as e:
        logger.error(f"Error sending message: {e}", extra={"session_id": transcript.session_id})
        st.toast("Failed to send message. Please try again.", icon="❌")

    st.rerun()


# =============================================================================
# MAIN APP
# =============================================================================

def main():
    inject_custom_css()

    st.markdown('<p class="app-title">LogFluent Insight</p>', unsafe_allow_html=True)
    st.markdown(
        '<p class="app-subtitle">AI-powered log analysis that turns complex log files '
        'into actionable insights</p>',
        unsafe_allow_html=True
    )

    view = get_view()

    if view.screen == Screen.UPLOAD:
        render_upload(view)
    elif view.screen == Screen.SUMMARY:
        render_summary(view)
    elif view.screen == Screen.CHAT:
        render_chat(view)


if __name__ == "__main__":
    main()
