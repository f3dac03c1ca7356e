"""ASGI entrypoint for the voice nutrition API."""

from voice_nutrition.api.app import create_app
from voice_nutrition.containers import build_container

app = create_app(build_container())
