"""ASGI entrypoint for the activity admin console API."""

from activity_admin.api.app import create_app
from activity_admin.containers import build_container

app = create_app(build_container())
