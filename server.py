

import json as _json
import logging
import os
import secrets
from pathlib import Path

from flask import (Flask, abort, current_app, g, redirect, render_template,
                   request, send_from_directory, session, url_for)
from jinja2 import DictLoader
from markupsafe import Markup

import gate
from credentials import CredentialStore
from documents import DocumentKind, DocumentRepository, base_name, is_flat_name
from errors import CMSError, InvalidCredentials, NotFound, ValidationFailed
from rendering import PLAIN_TEXT, render, render_markdown
from validation import (ensure_valid, first_error, validate_new_document_name,
                        validate_new_image, validate_new_password, validate_new_username)

ROOT = Path(__file__).resolve().parent

_CONFIG_PATH = Path(os.environ.get("CMS_CONFIG", ROOT / "cms.config.json"))
_DEFAULTS = {
    "port": 4567,
    "host": "127.0.0.1",
    "data_dir": "data",
    "credentials_file": "users.yml",
    "public_dir": "public",
    "secret_key": None,
    "debug": False,
}


def _load_config(path: Path = _CONFIG_PATH) -> dict:
    cfg = dict(_DEFAULTS)
    if path.is_file():
        try:
            with open(path) as f:
                user = _json.load(f)
            cfg.update(user)
        except (OSError, ValueError) as e:
            logging.getLogger(__name__).warning("could not load %s: %s", path.name, e)
    return cfg


def _resolve_dir(value) -> Path:
    p = Path(value)
    return p if p.is_absolute() else ROOT / p


LAYOUT = r"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{% block title %}Flat CMS{% endblock %}</title>
<style>
html, body { background: #1a1a2e; color: #e0e0f0; font-family: system-ui, sans-serif; line-height: 1.6; }
main { max-width: 48rem; margin: 2rem auto; padding: 0 1rem; }
a { color: #8670ff; }
.flash { background: rgba(134,112,255,.15); border-left: 3px solid #8670ff; padding: .5rem 1rem; white-space: pre-line; }
.session { color: #9090b0; font-size: .9rem; }
form.inline { display: inline; }
textarea { width: 100%; min-height: 20rem; font-family: monospace; }
</style>
</head>
<body>
<main>
{% set message = pop_message() %}
{% if message %}<p class="flash">{{ message }}</p>{% endif %}
{% block content %}{% endblock %}
<p class="session">
{% if signed_in_as %}
  You are logged in as {{ signed_in_as }}.
  <form class="inline" action="{{ url_for('signout') }}" method="post"><button type="submit">Sign Out</button></form>
{% else %}
  <a href="{{ url_for('signin_form') }}">Sign In</a> | <a href="{{ url_for('signup_form') }}">Sign Up</a>
{% endif %}
</p>
</main>
</body>
</html>
"""

INDEX = r"""{% extends "layout.html" %}
{% block content %}
<ul>
{% for name in files %}
  <li>
    <a href="{{ url_for('view_document', file_name=name) }}">{{ name }}</a>
    <a href="{{ url_for('edit_document', file_name=name) }}">edit</a>
    <form class="inline" action="{{ url_for('duplicate_document', file_name=name) }}" method="post"><button type="submit">duplicate</button></form>
    <form class="inline" action="{{ url_for('delete_document', file_name=name) }}" method="post"><button type="submit">delete</button></form>
  </li>
{% endfor %}
</ul>
<p><a href="{{ url_for('new_document_form') }}">New Document</a> | <a href="{{ url_for('new_image_form') }}">New Image</a></p>
{% endblock %}
"""

DOCUMENT = r"""{% extends "layout.html" %}
{% block title %}{{ name }}{% endblock %}
{% block content %}
<article>{{ body }}</article>
<p><a href="{{ url_for('index') }}">Back</a></p>
{% endblock %}
"""

NEW_DOCUMENT = r"""{% extends "layout.html" %}
{% block content %}
<form action="/new" method="post">
  <label for="new_document">Add a new document:</label>
  <input id="new_document" name="new_document" value="{{ new_document or '' }}">
  <button type="submit">Create</button>
</form>
{% endblock %}
"""

NEW_IMAGE = r"""{% extends "layout.html" %}
{% block content %}
<form action="/new_image" method="post">
  <label for="new_image">Image file name:</label>
  <input id="new_image" name="new_image" value="{{ new_image or '' }}">
  <label for="image_description">Description:</label>
  <input id="image_description" name="image_description" value="{{ image_description or '' }}">
  <button type="submit">Add Image</button>
</form>
{% endblock %}
"""

EDIT_DOCUMENT = r"""{% extends "layout.html" %}
{% block content %}
<p>Edit content of {{ name }}:</p>
<form action="{{ url_for('update_document', file_name=name) }}" method="post">
  <textarea name="edited_content">{{ content }}</textarea>
  <button type="submit">Save Changes</button>
</form>
{% endblock %}
"""

SIGN_IN = r"""{% extends "layout.html" %}
{% block content %}
<form action="/users/signin" method="post">
  <label for="username">Username:</label>
  <input id="username" name="username" value="{{ username or '' }}">
  <label for="password">Password:</label>
  <input id="password" name="password" type="password">
  <button type="submit">Sign In</button>
</form>
{% endblock %}
"""

SIGN_UP = r"""{% extends "layout.html" %}
{% block content %}
<form action="/users/new" method="post">
  <label for="new_username">Username:</label>
  <input id="new_username" name="new_username" value="{{ new_username or '' }}">
  <label for="new_password">Password:</label>
  <input id="new_password" name="new_password" type="password">
  <button type="submit">Sign Up</button>
</form>
{% endblock %}
"""

PAGE_NOT_FOUND = r"""{% extends "layout.html" %}
{% block content %}
<h1>Page not found</h1>
<p><a href="{{ url_for('index') }}">Back to the document list</a></p>
{% endblock %}
"""

TEMPLATES = {
    "layout.html": LAYOUT,
    "index.html": INDEX,
    "document.html": DOCUMENT,
    "new.html": NEW_DOCUMENT,
    "new_image.html": NEW_IMAGE,
    "edit.html": EDIT_DOCUMENT,
    "sign_in.html": SIGN_IN,
    "sign_up.html": SIGN_UP,
    "page_not_found.html": PAGE_NOT_FOUND,
}


def create_app(overrides: dict | None = None) -> Flask:
    cfg = _load_config()
    cfg.update(overrides or {})

    app = Flask(__name__)
    app.jinja_loader = DictLoader(TEMPLATES)
    app.config["CMS"] = cfg
    app.config["MARKDOWN_RENDERER"] = cfg.get("markdown_renderer", render_markdown)
    if cfg.get("testing"):
        app.config["TESTING"] = True

    secret = cfg.get("secret_key")
    if not secret:
        app.logger.warning("no secret_key configured; sessions will not survive a restart")
        secret = secrets.token_hex(32)
    app.secret_key = secret

    data_dir = _resolve_dir(cfg["data_dir"])
    public_dir = _resolve_dir(cfg["public_dir"])
    data_dir.mkdir(parents=True, exist_ok=True)
    public_dir.mkdir(parents=True, exist_ok=True)
    app.extensions["cms"] = {
        "repository": DocumentRepository(data_dir),
        "credentials": CredentialStore(_resolve_dir(cfg["credentials_file"])),
        "public_dir": public_dir,
    }

    _register_hooks(app)
    _register_routes(app)
    return app


def _repository() -> DocumentRepository:
    return current_app.extensions["cms"]["repository"]


def _credentials() -> CredentialStore:
    return current_app.extensions["cms"]["credentials"]


def _public_dir() -> Path:
    return current_app.extensions["cms"]["public_dir"]


def _form(key: str) -> str:
    return request.form.get(key, "")


def _flash_and_render(template: str, message: str, status: int = 422, **context):
    g.ctx.flash(message)
    return render_template(template, **context), status


def _register_hooks(app: Flask):

    @app.before_request
    def load_session_context():
        g.ctx = gate.SessionContext.from_session(session)

    @app.after_request
    def save_session_context(response):
        ctx = g.get("ctx")
        if ctx is not None:
            ctx.save(session)
        return response

    @app.context_processor
    def inject_session():
        ctx = g.get("ctx") or gate.SessionContext()
        return {"signed_in_as": ctx.signed_in_as, "pop_message": ctx.consume_message}

    @app.errorhandler(CMSError)
    def handle_cms_error(error: CMSError):
        g.ctx.flash(error.message)
        return redirect(url_for("index"))

    @app.errorhandler(404)
    def page_not_found(error):
        return render_template("page_not_found.html"), 404


def _register_routes(app: Flask):

    @app.route("/")
    def index():
        return render_template("index.html", files=_repository().list())

    @app.route("/new")
    def new_document_form():
        gate.require_signed_in(g.ctx)
        return render_template("new.html")

    @app.route("/new", methods=["POST"])
    def create_document():
        gate.require_signed_in(g.ctx)
        name = _form("new_document").strip()
        try:
            ensure_valid(validate_new_document_name(name, _repository()))
        except ValidationFailed as e:
            return _flash_and_render("new.html", e.message, new_document=name)
        _repository().create(name)
        app.logger.info("%s created %s", g.ctx.signed_in_as, name)
        g.ctx.flash(f"{name} has been created")
        return redirect(url_for("index"))

    @app.route("/new_image")
    def new_image_form():
        gate.require_signed_in(g.ctx)
        return render_template("new_image.html")

    @app.route("/new_image", methods=["POST"])
    def create_image():
        gate.require_signed_in(g.ctx)
        image_name = _form("new_image").strip()
        description = _form("image_description")
        try:
            ensure_valid(validate_new_image(image_name, description, _public_dir()))
        except ValidationFailed as e:
            return _flash_and_render("new_image.html", e.message,
                                     new_image=image_name, image_description=description)
        doc_name = base_name(image_name) + ".md"
        _repository().create(doc_name, f"![{description}]({image_name})")
        app.logger.info("%s added image %s as %s", g.ctx.signed_in_as, image_name, doc_name)
        g.ctx.flash("Image has been uploaded")
        return redirect(url_for("index"))

    @app.route("/<file_name>")
    def view_document(file_name):
        if "." not in file_name:
            abort(404)
        repository = _repository()
        if not repository.exists(file_name) and _is_public_asset(file_name):
            return send_from_directory(_public_dir(), file_name)
        if os.path.splitext(file_name)[1] not in DocumentKind.extensions():
            raise NotFound(file_name)
        doc = repository.resolve(file_name)
        content_type, body = render(doc.kind, repository.read(file_name),
                                    app.config["MARKDOWN_RENDERER"])
        if content_type == PLAIN_TEXT:
            return app.response_class(body, mimetype=PLAIN_TEXT)
        return render_template("document.html", name=file_name, body=Markup(body))

    @app.route("/<file_name>/edit")
    def edit_document(file_name):
        gate.require_signed_in(g.ctx)
        content = _repository().read(file_name).decode("utf-8", errors="replace")
        return render_template("edit.html", name=file_name, content=content)

    @app.route("/<file_name>", methods=["POST"])
    def update_document(file_name):
        gate.require_signed_in(g.ctx)
        repository = _repository()
        repository.resolve(file_name)
        repository.write(file_name, _form("edited_content"))
        app.logger.info("%s updated %s", g.ctx.signed_in_as, file_name)
        g.ctx.flash(f"{file_name} has been updated")
        return redirect(url_for("index"))

    @app.route("/<file_name>/delete", methods=["POST"])
    def delete_document(file_name):
        gate.require_signed_in(g.ctx)
        repository = _repository()
        repository.resolve(file_name)
        repository.delete(file_name)
        app.logger.info("%s deleted %s", g.ctx.signed_in_as, file_name)
        g.ctx.flash(f"{file_name} was deleted")
        return redirect(url_for("index"))

    @app.route("/<file_name>/duplicate", methods=["POST"])
    def duplicate_document(file_name):
        gate.require_signed_in(g.ctx)
        new_name = _repository().duplicate(file_name)
        app.logger.info("%s duplicated %s as %s", g.ctx.signed_in_as, file_name, new_name)
        g.ctx.flash(f"{file_name} has been duplicated")
        return redirect(url_for("index"))

    @app.route("/users/signin")
    def signin_form():
        gate.require_signed_out(g.ctx)
        return render_template("sign_in.html")

    @app.route("/users/signin", methods=["POST"])
    def signin():
        gate.require_signed_out(g.ctx)
        username = _form("username")
        password = _form("password")
        if not username and not password:
            return render_template("sign_in.html"), 422
        try:
            gate.sign_in(g.ctx, _credentials(), username, password)
        except InvalidCredentials as e:
            app.logger.warning("failed sign-in for %r from %s", username, request.remote_addr)
            return _flash_and_render("sign_in.html", e.message, username=e.username)
        app.logger.info("%s signed in", username)
        g.ctx.flash("Welcome!")
        return redirect(url_for("index"))

    @app.route("/users/signout", methods=["POST"])
    def signout():
        gate.require_signed_in(g.ctx)
        app.logger.info("%s signed out", g.ctx.signed_in_as)
        gate.sign_out(g.ctx)
        g.ctx.flash("You have been signed out")
        return redirect(url_for("index"))

    @app.route("/users/new")
    def signup_form():
        gate.require_signed_out(g.ctx)
        return render_template("sign_up.html")

    @app.route("/users/new", methods=["POST"])
    def signup():
        gate.require_signed_out(g.ctx)
        username = _form("new_username")
        password = _form("new_password")
        store = _credentials()
        try:
            ensure_valid(first_error(validate_new_username(username, store),
                                     validate_new_password(password)))
        except ValidationFailed as e:
            return _flash_and_render("sign_up.html", e.message, new_username=username)
        store.register(username, password)
        g.ctx.flash("User created successfully!")
        return redirect(url_for("index"))


def _is_public_asset(name: str) -> bool:
    return is_flat_name(name) and (_public_dir() / name).is_file()


def main():
    import socket
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app = create_app()
    cfg = app.config["CMS"]
    hostname = socket.gethostname()
    local_ip = socket.gethostbyname(hostname)
    print(f"Serving documents: {_resolve_dir(cfg['data_dir'])}")
    print(f"Open http://localhost:{cfg['port']}    (this machine)")
    print(f"     http://{local_ip}:{cfg['port']}  (other devices on network)")
    app.run(host=cfg["host"], port=cfg["port"], debug=cfg["debug"])


if __name__ == "__main__":
    main()
