# api/pages.py
"""Minimal HTML pages rendered by the credentials server."""
from __future__ import annotations

from html import escape
from typing import Iterable, Optional, Tuple

from fastapi.responses import HTMLResponse

from domain.oidc import LOGIN_PASSWORD_FIELD, LOGIN_USER_FIELD


def page(title: str, body: str, onload: Optional[str] = None, status_code: int = 200) -> HTMLResponse:
    onload_attr = f' onload="{escape(onload)}"' if onload else ""
    html = (
        "<!DOCTYPE html>\n"
        f"<html><head><meta charset=\"utf-8\"><title>{escape(title)}</title></head>"
        f"<body{onload_attr}>{body}</body></html>"
    )
    return HTMLResponse(html, status_code=status_code)


def hidden_inputs(fields: Iterable[Tuple[str, str]]) -> str:
    return "".join(
        f'<input type="hidden" name="{escape(k)}" value="{escape(v)}" />' for k, v in fields
    )


def auto_post_form(action: str, fields: Iterable[Tuple[str, str]]) -> HTMLResponse:
    # JS 実行できないクライアントのために noscript の submit ボタンも置く
    body = (
        f'<form method="post" action="{escape(action)}">'
        f"{hidden_inputs(fields)}"
        '<noscript><p>Script is disabled. Click Submit to continue.</p>'
        '<input type="submit" value="Submit" /></noscript>'
        "</form>"
    )
    return page("Working...", body, onload="javascript:document.forms[0].submit()")


def login_form(action: str, return_url: str, error: Optional[str] = None, status_code: int = 200) -> HTMLResponse:
    message = f'<p class="error">{escape(error)}</p>' if error else ""
    body = (
        "<h1>Log in</h1>"
        f"{message}"
        f'<form method="post" action="{escape(action)}">'
        f'<input type="text" name="{LOGIN_USER_FIELD}" value="" />'
        f'<input type="password" name="{LOGIN_PASSWORD_FIELD}" value="" />'
        f'<input type="hidden" name="ReturnUrl" value="{escape(return_url)}" />'
        '<button type="submit">Log in</button>'
        "</form>"
    )
    return page("Log in", body, status_code=status_code)


def error_page(title: str, message: str, status_code: int = 400) -> HTMLResponse:
    return page(title, f"<h1>{escape(title)}</h1><p>{escape(message)}</p>", status_code=status_code)
