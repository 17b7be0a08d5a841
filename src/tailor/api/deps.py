from __future__ import annotations

from fastapi import Request

from tailor.core.session import TailoringSession


def get_session(request: Request) -> TailoringSession:
    return request.app.state.session
