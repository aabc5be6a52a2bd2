"""
Session carrier: the signed session cookie holds only a random session id,
progress is kept server-side in the configured progress store.
"""
from uuid import uuid4

from fastapi import Request

from trainer.services.progress import SessionProgress

SESSION_ID_KEY = "sid"


def get_session_id(request: Request) -> str:
    sid = request.session.get(SESSION_ID_KEY)
    if not sid:
        sid = uuid4().hex
        request.session[SESSION_ID_KEY] = sid
    return sid


def get_progress(request: Request) -> SessionProgress:
    return SessionProgress(request.app.state.progress_store, get_session_id(request))
