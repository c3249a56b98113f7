import logging

import streamlit as st

from app.config import load_settings
from app.errors import QuizError, FetchError, EmptyPool, InvalidName, SubmissionRejected, StoreError
from app.quiz.session_machine import is_complete, elapsed_seconds
from app.storage.seed import SAMPLE_QUESTIONS
from app.ui_actions import (
    action_new_controller,
    action_load_quiz,
    action_answer,
    action_restart,
    action_progress,
    action_leaderboard,
    action_eligibility,
    action_submit_score,
    bootstrap_if_empty,
    leaderboard_frame,
    metric_label,
)

st.set_page_config(page_title="Trivia!", layout="centered")


# -------------------------
# Helpers
# -------------------------
@st.cache_resource
def get_settings():
    settings = load_settings()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    return settings


def get_controller():
    if "ctrl" not in st.session_state:
        ctrl = action_new_controller(get_settings())
        if SAMPLE_QUESTIONS.exists():
            bootstrap_if_empty(ctrl.store, SAMPLE_QUESTIONS)
        st.session_state.ctrl = ctrl
        st.session_state.load_error = None
        try:
            action_load_quiz(ctrl)
        except (FetchError, EmptyPool) as e:
            st.session_state.load_error = str(e)
    return st.session_state.ctrl


def set_feedback(msg=None, kind="info"):
    st.session_state.feedback = (msg, kind) if msg else None


# -------------------------
# Init
# -------------------------
settings = get_settings()
ctrl = get_controller()
st.session_state.setdefault("feedback", None)
st.session_state.setdefault("submit_msg", None)

with st.sidebar:
    st.markdown("## Trivia!")
    st.caption("Player")
    st.code(ctrl.user_id)
    st.caption(f"Mode: **{settings.mode}** • {'daily' if settings.daily else 'all questions'}")
    if st.button("🔁 Restart quiz"):
        try:
            action_restart(ctrl)
            st.session_state.load_error = None
            set_feedback(None)
            st.session_state.submit_msg = None
        except QuizError as e:
            st.session_state.load_error = str(e)
        st.rerun()

tab_quiz, tab_board = st.tabs(["❓ Quiz", "🏆 Leaderboard"])


with tab_quiz:
    st.title("Trivia!")

    state = None if st.session_state.load_error else ctrl.state
    if st.session_state.load_error:
        st.error(st.session_state.load_error)
    else:
        prog = action_progress(ctrl)
        st.progress(prog["streak_fraction"], text=f"Streak: {prog['streak']}")
        st.caption(f"{prog['mastered']} / {prog['total']} answered correctly")

    if state is not None and is_complete(state):
        secs = elapsed_seconds(state)
        st.success(f"🎉 You finished in {secs:.2f}s!")

        try:
            elig = action_eligibility(ctrl)
        except FetchError as e:
            elig = {"can_submit": False, "reason": f"Error fetching leaderboard information: {e}"}
        if elig.get("can_submit"):
            with st.form("score_form"):
                name = st.text_input("Enter your name", value="", max_chars=24)
                submitted = st.form_submit_button("Submit Score")
            if submitted:
                try:
                    action_submit_score(ctrl, name)
                    st.session_state.submit_msg = ("Score uploaded successfully!", "success")
                except (InvalidName, SubmissionRejected, StoreError, FetchError) as e:
                    st.session_state.submit_msg = (str(e), "error")
                st.rerun()
        elif elig.get("reason"):
            st.info(elig["reason"])

        if st.session_state.submit_msg:
            msg, kind = st.session_state.submit_msg
            (st.success if kind == "success" else st.error)(msg)

    elif state is not None and state.current is not None:
        q = state.current
        if state.is_retry_mode:
            st.warning(f"Retry mode: {len(state.retry)} question(s) left to re-answer.")
        st.subheader(q.question)

        cols = st.columns(2)
        for i, choice in enumerate(q.answers):
            if cols[i % 2].button(choice, key=f"ans_{q.id}_{i}", use_container_width=True):
                try:
                    out = action_answer(ctrl, choice)
                    set_feedback(out["message"], "success" if out["correct"] else "error")
                except QuizError as e:
                    set_feedback(str(e), "error")
                st.rerun()

        fb = st.session_state.feedback
        if fb:
            msg, kind = fb
            (st.success if kind == "success" else st.error)(msg)


with tab_board:
    st.markdown("## Leaderboard")
    try:
        entries = action_leaderboard(ctrl)
    except FetchError as e:
        entries = []
        st.error(f"Error: {e}")

    if not entries:
        st.info("No leaderboard entries found.")
    else:
        st.dataframe(
            leaderboard_frame(entries, metric_label(settings)),
            hide_index=True,
            use_container_width=True,
        )
