"""ASGI entrypoint for the Calino backend API."""

from calino_backend.api.app import create_app
from calino_backend.containers import build_container

app = create_app(build_container())
