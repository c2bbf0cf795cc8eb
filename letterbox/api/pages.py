"""
Server-rendered HTML pages.

Every dynamic value goes through ``escape`` before it is interpolated.
"""

from __future__ import annotations

import html


def escape(text: str) -> str:
    return html.escape(text, quote=True)


def render_page(title: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta http-equiv="content-type" content="text/html; charset=utf-8">
    <title>{escape(title)}</title>
</head>
<body>
{body}
</body>
</html>"""


def _error_paragraph(error: str | None) -> str:
    return f"<p><i>{escape(error)}</i></p>" if error else ""


def home_page() -> str:
    return render_page("Home", "<p>Welcome to our newsletter!</p>")


def login_page(error: str | None) -> str:
    body = f"""{_error_paragraph(error)}
<form action="/login" method="post">
    <label>Username
        <input type="text" placeholder="Enter Username" name="username">
    </label>
    <label>Password
        <input type="password" placeholder="Enter Password" name="password">
    </label>
    <button type="submit">Login</button>
</form>"""
    return render_page("Login", body)


def dashboard_page(username: str) -> str:
    body = f"""<p>Welcome {escape(username)}!</p>
<p>Available actions:</p>
<ol>
    <li><a href="/admin/password">Change password</a></li>
    <li>
        <form name="logoutForm" action="/admin/logout" method="post">
            <input type="submit" value="Logout">
        </form>
    </li>
</ol>"""
    return render_page("Admin dashboard", body)


def change_password_page(error: str | None) -> str:
    body = f"""{_error_paragraph(error)}
<form action="/admin/password" method="post">
    <label>Current password
        <input type="password" placeholder="Enter current password" name="current_password">
    </label>
    <br>
    <label>New password
        <input type="password" placeholder="Enter new password" name="new_password">
    </label>
    <br>
    <label>Confirm new password
        <input type="password" placeholder="Type the new password again" name="new_password_check">
    </label>
    <br>
    <button type="submit">Change password</button>
</form>
<p><a href="/admin/dashboard">&lt;- Back</a></p>"""
    return render_page("Change Password", body)
