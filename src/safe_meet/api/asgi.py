"""ASGI entrypoint for the Safe-Meet cash payment API."""

from safe_meet.api.app import create_app
from safe_meet.containers import build_container

app = create_app(build_container())
