"""ASGI entrypoint for the insurance bot API."""

from insurance_bot.api.app import create_app
from insurance_bot.containers import build_container

app = create_app(build_container())
